"""The carrier exception and its small helpers.

``WrappedError`` holds exactly one original failure while it crosses code
that only expects plain callables (``map``, ``filter``, sort keys, ...). The
original is recovered later with ``WrappedError.unwrap`` or the scoped helpers
in ``exceptional.dispatch``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, NoReturn

from exceptional.category import is_propagating
from exceptional.errors import HINTS, ExceptionalError, InvalidCauseError

if TYPE_CHECKING:
    from exceptional.dispatch import Resolution


class WrappedError(ExceptionalError):
    """Carries an ordinary failure raised by an adapted callable.

    The carried failure is available as ``cause`` and is also set as
    ``__cause__`` so tracebacks show where it was originally raised.

    Example:
        try:
            ExceptionalStream.of("a.txt").map(read_file).to_list()
        except WrappedError as e:
            e.unwrap(OSError)  # raises the OSError, or ``e`` if no match
    """

    def __init__(self, cause: Exception) -> None:
        """Wrap *cause*.

        Raises:
            InvalidCauseError: If *cause* is not an ``Exception`` or belongs to
                the always-propagating category.
        """
        if not isinstance(cause, Exception):
            raise InvalidCauseError(
                f"cause must be an Exception instance, got {type(cause).__name__}"
            )
        if is_propagating(cause):
            raise InvalidCauseError(
                f"{type(cause).__name__} is always-propagating and cannot be wrapped",
                hint=HINTS["propagating_cause"],
            )
        self._cause = cause
        super().__init__(f"{type(cause).__qualname__}: {cause}")
        self.__cause__ = cause

    @property
    def cause(self) -> Exception:
        """The original failure."""
        return self._cause

    def rethrow_cause(self) -> NoReturn:
        """Raise the original failure, whatever its type."""
        raise self._cause

    def resolve(self, *candidates: type[Exception]) -> Resolution:
        """Match the cause against *candidates* without raising."""
        from exceptional.dispatch import resolve

        return resolve(self, *candidates)

    def unwrap(self, *candidates: type[Exception]) -> NoReturn:
        """Raise the cause if it matches a candidate, else raise this carrier."""
        from exceptional.dispatch import rethrow

        rethrow(self, *candidates)

    def __reduce__(self) -> tuple[Any, ...]:
        return (type(self), (self._cause,))


def to_unchecked(exc: Exception) -> Exception:
    """Return *exc* if it is always-propagating, else a carrier holding it."""
    if is_propagating(exc):
        return exc
    return WrappedError(exc)


def raise_if_instance(exception_type: type[Exception], exc: Exception) -> None:
    """Raise *exc* if it is an instance of *exception_type*.

    Useful in a chain of checks when handling a carrier's cause by hand:

        raise_if_instance(OSError, carrier.cause)
        raise_if_instance(ValueError, carrier.cause)
        raise carrier
    """
    if isinstance(exc, exception_type):
        raise exc


__all__ = ["WrappedError", "raise_if_instance", "to_unchecked"]
