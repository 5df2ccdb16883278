"""Exceptional: failable callables in lazy pipelines.

Public API:
    - wrap() / failable: Adapt a may-fail callable into a plain one whose
      ordinary failures leave it as a WrappedError
    - WrappedError: The carrier holding the original failure
    - unwrapping() / call_unwrapped() / rethrow(): Recover the original
      failure as one of 1 to 3 candidate types
    - ExceptionalStream: Lazy, single-use pipeline whose stages are adapted
    - config_scope(): Scope the always-propagating category
"""

from __future__ import annotations

import logging

from exceptional.adapter import failable, is_adapted, shape_of, wrap
from exceptional.carrier import WrappedError, raise_if_instance, to_unchecked
from exceptional.category import DEFAULT_PROPAGATING, is_propagating
from exceptional.config import FrozenConfig, config_scope, resolve_config
from exceptional.dispatch import (
    Recovered,
    Resolution,
    Unmatched,
    call_unwrapped,
    resolve,
    rethrow,
    unwrapping,
)
from exceptional.errors import (
    CandidateError,
    ConfigurationError,
    ExceptionalError,
    InvalidCauseError,
    InvariantViolationError,
    ShapeMismatchError,
    StreamConsumedError,
)
from exceptional.shapes import Shape
from exceptional.stream import ExceptionalStream

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("exceptional-pipelines")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("exceptional").addHandler(logging.NullHandler())


__all__ = [
    "DEFAULT_PROPAGATING",
    "CandidateError",
    "ConfigurationError",
    "ExceptionalError",
    "ExceptionalStream",
    "FrozenConfig",
    "InvalidCauseError",
    "InvariantViolationError",
    "Recovered",
    "Resolution",
    "Shape",
    "ShapeMismatchError",
    "StreamConsumedError",
    "Unmatched",
    "WrappedError",
    "call_unwrapped",
    "config_scope",
    "failable",
    "is_adapted",
    "is_propagating",
    "raise_if_instance",
    "resolve",
    "resolve_config",
    "rethrow",
    "shape_of",
    "to_unchecked",
    "unwrapping",
    "wrap",
]
