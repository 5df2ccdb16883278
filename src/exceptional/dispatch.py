"""Typed unwrap dispatch.

Given a carrier and an ordered list of one to three candidate exception
types, recover the carried failure as its original type:

- the first candidate the cause is an instance of wins, and the cause itself
  (same object) is raised;
- when no candidate matches, the carrier itself is raised, unchanged, so a
  caller never receives a narrowed failure it did not ask for.

``resolve`` is the non-raising form and returns a ``Resolution``;
``rethrow`` acts on a carrier already in hand; ``unwrapping`` and
``call_unwrapped`` scope the dispatch around a block of code, typically a
whole pipeline up to its terminal operation.
"""

from __future__ import annotations

from contextlib import ContextDecorator
import dataclasses
import logging
from typing import TYPE_CHECKING, Any, Final, Literal, NoReturn, overload

from exceptional.carrier import WrappedError
from exceptional.errors import HINTS, CandidateError

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

log = logging.getLogger(__name__)

MAX_CANDIDATES: Final = 3


@dataclasses.dataclass(frozen=True, slots=True)
class Recovered[E: Exception]:
    """The cause matched ``candidate``, listed at position ``index``."""

    error: E
    candidate: type[E]
    index: int


@dataclasses.dataclass(frozen=True, slots=True)
class Unmatched:
    """No candidate matched; the carrier is what propagates."""

    carrier: WrappedError


Resolution = Recovered[Any] | Unmatched


def validate_candidates(candidates: tuple[Any, ...]) -> tuple[type[Exception], ...]:
    """Check a candidate list: one to three ``Exception`` subclasses.

    Raises:
        CandidateError: If the list is empty, too long, or holds anything
            that is not an ``Exception`` subclass.
    """
    if not 1 <= len(candidates) <= MAX_CANDIDATES:
        raise CandidateError(
            f"expected 1 to {MAX_CANDIDATES} candidate types, got {len(candidates)}",
            hint=HINTS["candidate_count"],
        )
    for candidate in candidates:
        if not (isinstance(candidate, type) and issubclass(candidate, Exception)):
            raise CandidateError(
                f"candidate {candidate!r} is not an exception class",
                hint=HINTS["candidate_type"],
            )
    return tuple(candidates)


def resolve(carrier: WrappedError, *candidates: type[Exception]) -> Resolution:
    """Match *carrier*'s cause against *candidates* in listed order.

    Overlapping candidates are not reordered: a supertype listed before one
    of its subtypes wins.
    """
    if not isinstance(carrier, WrappedError):
        raise TypeError(
            f"resolve() expects a WrappedError, got {type(carrier).__name__}"
        )
    checked = validate_candidates(candidates)
    cause = carrier.cause
    for index, candidate in enumerate(checked):
        if isinstance(cause, candidate):
            log.debug(
                "Recovered %s as candidate %d (%s)",
                type(cause).__name__,
                index,
                candidate.__name__,
            )
            return Recovered(cause, candidate, index)
    log.debug(
        "No candidate among %s matched %s",
        ", ".join(c.__name__ for c in checked),
        type(cause).__name__,
    )
    return Unmatched(carrier)


def _raise_recovered(error: Exception) -> NoReturn:
    """Raise *error* itself, keeping its explicit cause.

    The carrier is hidden as context: this sets ``__suppress_context__`` on
    *error*, and the flag stays set on that object after it is raised.
    """
    raise error from error.__cause__


@overload
def rethrow[E1: Exception](carrier: WrappedError, c1: type[E1], /) -> NoReturn: ...


@overload
def rethrow[E1: Exception, E2: Exception](
    carrier: WrappedError, c1: type[E1], c2: type[E2], /
) -> NoReturn: ...


@overload
def rethrow[E1: Exception, E2: Exception, E3: Exception](
    carrier: WrappedError, c1: type[E1], c2: type[E2], c3: type[E3], /
) -> NoReturn: ...


def rethrow(carrier: WrappedError, *candidates: type[Exception]) -> NoReturn:
    """Raise the carried failure if a candidate matches, else the carrier.

    A recovered failure keeps its own ``__cause__``; its context is suppressed
    so the carrier does not show up in its traceback.

    Example:
        try:
            pipeline.to_list()
        except WrappedError as e:
            rethrow(e, FileNotFoundError, PermissionError)
    """
    match resolve(carrier, *candidates):
        case Recovered(error=error):
            _raise_recovered(error)
        case Unmatched(carrier=unmatched):
            raise unmatched


class UnwrapScope(ContextDecorator):
    """Context manager (and decorator) that unwraps carriers leaving it.

    Only a ``WrappedError`` is dispatched. Success and every other exception
    pass through unchanged. An unmatched carrier propagates as-is.
    """

    def __init__(self, candidates: tuple[type[Exception], ...]):
        """Validate the candidates eagerly, before any block runs."""
        self._candidates = validate_candidates(candidates)

    @property
    def candidates(self) -> tuple[type[Exception], ...]:
        return self._candidates

    def __enter__(self) -> UnwrapScope:
        return self

    def __exit__(
        self,
        _: type[BaseException] | None,
        exc: BaseException | None,
        __: TracebackType | None,
    ) -> Literal[False]:
        """Raise the recovered failure, or let the original outcome stand."""
        if isinstance(exc, WrappedError):
            resolution = resolve(exc, *self._candidates)
            if isinstance(resolution, Recovered):
                _raise_recovered(resolution.error)
        return False


@overload
def unwrapping[E1: Exception](c1: type[E1], /) -> UnwrapScope: ...


@overload
def unwrapping[E1: Exception, E2: Exception](
    c1: type[E1], c2: type[E2], /
) -> UnwrapScope: ...


@overload
def unwrapping[E1: Exception, E2: Exception, E3: Exception](
    c1: type[E1], c2: type[E2], c3: type[E3], /
) -> UnwrapScope: ...


def unwrapping(*candidates: type[Exception]) -> UnwrapScope:
    """Scope in which carriers are unwrapped against *candidates*.

    Example:
        with unwrapping(OSError):
            sizes = ExceptionalStream.of(*paths).map(os.path.getsize).to_list()
    """
    return UnwrapScope(candidates)


@overload
def call_unwrapped[R, E1: Exception](
    block: Callable[[], R], c1: type[E1], /
) -> R: ...


@overload
def call_unwrapped[R, E1: Exception, E2: Exception](
    block: Callable[[], R], c1: type[E1], c2: type[E2], /
) -> R: ...


@overload
def call_unwrapped[R, E1: Exception, E2: Exception, E3: Exception](
    block: Callable[[], R], c1: type[E1], c2: type[E2], c3: type[E3], /
) -> R: ...


def call_unwrapped(block: Callable[[], Any], *candidates: type[Exception]) -> Any:
    """Call *block* and unwrap any carrier it raises.

    Returns the block's value on success; a block without a return value
    yields ``None``.
    """
    with UnwrapScope(candidates):
        return block()


__all__ = [
    "MAX_CANDIDATES",
    "Recovered",
    "Resolution",
    "Unmatched",
    "UnwrapScope",
    "call_unwrapped",
    "resolve",
    "rethrow",
    "unwrapping",
    "validate_candidates",
]
