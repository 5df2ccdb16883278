"""Closed set of callable shapes the adapter supports.

A shape names how a callable is invoked (its arity) and what the caller does
with its result. Every member of ``Shape`` has one ``ShapeSpec`` here and one
adapter case in ``exceptional.adapter``; both mappings are checked when the
modules are imported.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import inspect
from typing import TYPE_CHECKING, Final, Literal

from exceptional.errors import InvariantViolationError, ShapeMismatchError

if TYPE_CHECKING:
    from collections.abc import Callable

#: Marks shapes that accept any arguments.
VARIADIC_ARITY: Final = -1


class Shape(str, Enum):
    """Supported callable shapes."""

    RUNNABLE = "runnable"  # () -> None
    SUPPLIER = "supplier"  # () -> R
    CONSUMER = "consumer"  # (T) -> None
    FUNCTION = "function"  # (T) -> R
    PREDICATE = "predicate"  # (T) -> bool
    UNARY_OPERATOR = "unary_operator"  # (T) -> T
    BI_CONSUMER = "bi_consumer"  # (T, U) -> None
    BI_FUNCTION = "bi_function"  # (T, U) -> R
    BI_PREDICATE = "bi_predicate"  # (T, U) -> bool
    BINARY_OPERATOR = "binary_operator"  # (T, T) -> T
    VARIADIC = "variadic"  # (*args, **kwargs) -> R


@dataclass(frozen=True, slots=True)
class ShapeSpec:
    """Descriptor for a shape: how many positional arguments, what comes back."""

    arity: int
    returns: Literal["none", "value", "bool"]

    @property
    def is_variadic(self) -> bool:
        return self.arity == VARIADIC_ARITY


_SPECS: Final[dict[Shape, ShapeSpec]] = {
    Shape.RUNNABLE: ShapeSpec(0, "none"),
    Shape.SUPPLIER: ShapeSpec(0, "value"),
    Shape.CONSUMER: ShapeSpec(1, "none"),
    Shape.FUNCTION: ShapeSpec(1, "value"),
    Shape.PREDICATE: ShapeSpec(1, "bool"),
    Shape.UNARY_OPERATOR: ShapeSpec(1, "value"),
    Shape.BI_CONSUMER: ShapeSpec(2, "none"),
    Shape.BI_FUNCTION: ShapeSpec(2, "value"),
    Shape.BI_PREDICATE: ShapeSpec(2, "bool"),
    Shape.BINARY_OPERATOR: ShapeSpec(2, "value"),
    Shape.VARIADIC: ShapeSpec(VARIADIC_ARITY, "value"),
}


def spec_of(shape: Shape) -> ShapeSpec:
    """Return the descriptor for *shape*."""
    return _SPECS[shape]


def check_arity(fn: Callable[..., object], shape: Shape) -> None:
    """Fail fast when *fn* cannot be called with *shape*'s arity.

    Callables without an introspectable signature (some builtins and C
    extensions) are accepted as-is.

    Raises:
        ShapeMismatchError: If the signature cannot bind the arity.
    """
    spec = spec_of(shape)
    if spec.is_variadic:
        return
    try:
        sig = inspect.signature(fn)
    except (TypeError, ValueError):
        return
    try:
        sig.bind(*([None] * spec.arity))
    except TypeError as e:
        name = getattr(fn, "__qualname__", repr(fn))
        raise ShapeMismatchError(
            f"{name} cannot be called as {shape.value} "
            f"with {spec.arity} positional argument(s): {e}",
            shape=shape.value,
        ) from e


def _verify_registry() -> None:
    missing = [shape.value for shape in Shape if shape not in _SPECS]
    if missing:
        raise InvariantViolationError(
            f"shapes without a descriptor: {', '.join(missing)}", component="shapes"
        )


_verify_registry()


__all__ = ["VARIADIC_ARITY", "Shape", "ShapeSpec", "check_arity", "spec_of"]
