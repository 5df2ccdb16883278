"""Exception hierarchy for Exceptional.

Every library error derives from ``ExceptionalError``. The whole hierarchy is
part of the always-propagating category: the adapter never wraps a library
error, so a carrier is never wrapped twice and a misuse is never hidden inside
a carrier.
"""

from __future__ import annotations


class ExceptionalError(Exception):
    """Base exception for all Exceptional errors."""

    def __init__(self, message: str | None, *, hint: str | None = None) -> None:
        """Initialize with an optional actionable hint."""
        self.hint = hint
        msg_str = str(message) if message is not None else "None"
        super().__init__(msg_str)

    def __str__(self) -> str:
        """Return the full error message including the hint."""
        msg = super().__str__()
        return f"{msg}. {self.hint}" if self.hint else msg


class ConfigurationError(ExceptionalError):
    """Configuration validation or resolution failed."""


class InvalidCauseError(ExceptionalError, TypeError):
    """A carrier was constructed around a failure it must not hold."""


class ShapeMismatchError(ExceptionalError, TypeError):
    """A callable cannot be invoked with the arity of its declared shape."""

    def __init__(
        self, message: str, *, shape: str | None = None, hint: str | None = None
    ) -> None:
        self.shape = shape
        super().__init__(message, hint=hint)


class CandidateError(ExceptionalError, TypeError):
    """An unwrap candidate list is empty, too long, or holds a non-exception."""


class StreamConsumedError(ExceptionalError, RuntimeError):
    """A stream was reused after a stage was linked or a terminal op ran."""


class InvariantViolationError(ExceptionalError):
    """Raised when an internal invariant is violated.

    Signals impossible states that indicate a bug, e.g. a shape without an
    adapter case.
    """

    def __init__(
        self, message: str, component: str | None = None, hint: str | None = None
    ):
        """Create an invariant violation error.

        Args:
            message: Human-readable description of the violated invariant.
            component: Optional component name where the issue was detected.
            hint: Optional actionable hint for resolution.
        """
        self.component = component
        msg = message if component is None else f"[{component}] {message}"
        super().__init__(msg, hint=hint)


# --- Actionable Hints ---

HINTS = {
    "propagating_cause": (
        "Always-propagating failures are raised as-is; use to_unchecked() "
        "to wrap only when needed"
    ),
    "candidate_count": "Pass between one and three exception classes",
    "candidate_type": "Candidates must be subclasses of Exception",
    "stream_reuse": "Build a new stream for each terminal operation",
    "unknown_exception": (
        "Use a fully qualified dotted name such as 'mypkg.errors.BugError'"
    ),
}


__all__ = [
    "HINTS",
    "CandidateError",
    "ConfigurationError",
    "ExceptionalError",
    "InvalidCauseError",
    "InvariantViolationError",
    "ShapeMismatchError",
    "StreamConsumedError",
]
