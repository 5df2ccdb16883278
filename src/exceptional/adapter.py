"""Adapt failable callables into plain callables of the same shape.

``wrap`` is the single generic adaptation: whatever the shape, the adapted
callable runs the original and, when it raises an ordinary failure, raises a
``WrappedError`` carrying it instead. Always-propagating failures go through
untouched. There is no retry, buffering or reordering; the adapted callable
fails exactly when, and where, the original does.
"""

from __future__ import annotations

import functools
import logging
from typing import (
    TYPE_CHECKING,
    Any,
    Final,
    NoReturn,
    TypeGuard,
    assert_never,
    cast,
    overload,
)

from exceptional.carrier import to_unchecked
from exceptional.errors import InvariantViolationError
from exceptional.shapes import Shape, check_arity

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator

log = logging.getLogger(__name__)

#: Attribute set on adapted callables, holding the shape they were adapted to.
ADAPTED_ATTR: Final = "__exceptional_shape__"


def _name(fn: object) -> str:
    return getattr(fn, "__qualname__", None) or repr(fn)


def _raise_converted(exc: Exception, fn: object) -> NoReturn:
    converted = to_unchecked(exc)
    if converted is exc:
        log.debug(
            "Passing %s from %s through unwrapped", type(exc).__name__, _name(fn)
        )
        raise exc
    log.debug("Carrying %s raised by %s", type(exc).__name__, _name(fn))
    raise converted from exc


def _invoke(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    try:
        return fn(*args, **kwargs)
    except Exception as exc:
        _raise_converted(exc, fn)


def iter_carried[T](iterable: Iterable[T], origin: object) -> Iterator[T]:
    """Iterate *iterable*, leaving its ordinary failures as carriers.

    Each pull is converted the way an adapted callable converts a failure;
    *origin* names the producer in debug records.
    """
    iterator = _invoke(iter, iterable)
    while True:
        try:
            item = next(iterator)
        except StopIteration:
            return
        except Exception as exc:
            _raise_converted(exc, origin)
        yield item


def _build(fn: Callable[..., Any], shape: Shape) -> Callable[..., Any]:
    """Return the adapter case for *shape*; exhaustive over ``Shape``."""
    match shape:
        case Shape.RUNNABLE:

            def run() -> None:
                _invoke(fn)

            return run
        case Shape.SUPPLIER:

            def supply() -> Any:
                return _invoke(fn)

            return supply
        case Shape.CONSUMER:

            def accept(t: Any) -> None:
                _invoke(fn, t)

            return accept
        case Shape.FUNCTION | Shape.PREDICATE | Shape.UNARY_OPERATOR:

            def apply(t: Any) -> Any:
                return _invoke(fn, t)

            return apply
        case Shape.BI_CONSUMER:

            def accept2(t: Any, u: Any) -> None:
                _invoke(fn, t, u)

            return accept2
        case Shape.BI_FUNCTION | Shape.BI_PREDICATE | Shape.BINARY_OPERATOR:

            def apply2(t: Any, u: Any) -> Any:
                return _invoke(fn, t, u)

            return apply2
        case Shape.VARIADIC:

            def call(*args: Any, **kwargs: Any) -> Any:
                return _invoke(fn, *args, **kwargs)

            return call
        case _:
            assert_never(shape)


def wrap[**P, R](
    fn: Callable[P, R], shape: Shape = Shape.VARIADIC
) -> Callable[P, R]:
    """Adapt *fn* so that ordinary failures leave it as ``WrappedError``.

    Args:
        fn: The failable callable.
        shape: How the adapted callable will be invoked. Defaults to
            ``Shape.VARIADIC``, which forwards any arguments.

    Returns:
        A callable of the same shape. Consumer shapes return ``None``; all
        others return what *fn* returns. Adapting an already adapted callable
        to the same shape returns it unchanged.

    Raises:
        TypeError: If *fn* is not callable.
        ShapeMismatchError: If *fn*'s signature cannot accept the shape.
    """
    if not callable(fn):
        raise TypeError(f"wrap() expects a callable, got {type(fn).__name__}")
    if getattr(fn, ADAPTED_ATTR, None) is shape:
        return fn
    check_arity(fn, shape)
    adapted = _build(fn, shape)
    functools.update_wrapper(adapted, fn)
    setattr(adapted, ADAPTED_ATTR, shape)
    return cast("Callable[P, R]", adapted)


@overload
def failable[**P, R](fn: Callable[P, R], /) -> Callable[P, R]: ...


@overload
def failable[**P, R](
    shape: Shape = ..., /
) -> Callable[[Callable[P, R]], Callable[P, R]]: ...


def failable(fn_or_shape: Any = Shape.VARIADIC, /) -> Any:
    """Decorator form of ``wrap``.

    Example:
        @failable(Shape.FUNCTION)
        def load(path: str) -> bytes:
            with open(path, "rb") as f:
                return f.read()
    """
    if isinstance(fn_or_shape, Shape):
        return functools.partial(wrap, shape=fn_or_shape)
    return wrap(fn_or_shape)


def is_adapted(fn: object) -> TypeGuard[Callable[..., Any]]:
    """Return True if *fn* was produced by ``wrap``."""
    return callable(fn) and isinstance(getattr(fn, ADAPTED_ATTR, None), Shape)


def shape_of(fn: object) -> Shape | None:
    """Return the shape *fn* was adapted to, or None for plain callables."""
    shape = getattr(fn, ADAPTED_ATTR, None)
    return shape if isinstance(shape, Shape) else None


def _verify_cases() -> None:
    def probe(*_args: Any, **_kwargs: Any) -> None:
        return None

    for shape in Shape:
        try:
            _build(probe, shape)
        except AssertionError as e:
            raise InvariantViolationError(
                f"no adapter case for shape {shape.value!r}", component="adapter"
            ) from e


_verify_cases()


__all__ = [
    "ADAPTED_ATTR",
    "failable",
    "is_adapted",
    "iter_carried",
    "shape_of",
    "wrap",
]
