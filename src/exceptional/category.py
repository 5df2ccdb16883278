"""The always-propagating failure category.

A failure in this category is never wrapped into a carrier: the adapter lets
it through unchanged, and a carrier refuses to hold it. The category is:

- every ``BaseException`` that is not an ``Exception`` (interrupts, exits);
- every library error (``ExceptionalError``, carriers included);
- the builtin programming-error types in ``DEFAULT_PROPAGATING``, unless the
  active config sets ``default_propagate = false``;
- any extra types named by the active config's ``propagate`` list.
"""

from __future__ import annotations

from functools import cache
from typing import TYPE_CHECKING, Final

from exceptional.config import current_config, import_exception_type
from exceptional.errors import ExceptionalError

if TYPE_CHECKING:
    from exceptional.config import FrozenConfig

DEFAULT_PROPAGATING: Final[tuple[type[Exception], ...]] = (
    TypeError,
    AttributeError,
    NameError,
    AssertionError,
    NotImplementedError,
    RecursionError,
    MemoryError,
)


@cache
def _types_for(
    propagate: tuple[str, ...], default_propagate: bool
) -> tuple[type[BaseException], ...]:
    types: list[type[BaseException]] = [ExceptionalError]
    if default_propagate:
        types.extend(DEFAULT_PROPAGATING)
    types.extend(import_exception_type(name) for name in propagate)
    return tuple(types)


def propagating_types(
    cfg: FrozenConfig | None = None,
) -> tuple[type[BaseException], ...]:
    """Return the exception types that are always-propagating under *cfg*.

    Uses the ambient config when *cfg* is omitted.
    """
    cfg = cfg if cfg is not None else current_config()
    return _types_for(cfg.propagate, cfg.default_propagate)


def is_propagating(exc: BaseException, cfg: FrozenConfig | None = None) -> bool:
    """Return True when *exc* must never be wrapped into a carrier."""
    if not isinstance(exc, Exception):
        return True
    return isinstance(exc, propagating_types(cfg))


__all__ = ["DEFAULT_PROPAGATING", "is_propagating", "propagating_types"]
