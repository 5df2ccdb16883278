"""Always-propagating category: defaults, config extension and opt-out."""

from __future__ import annotations

import pytest

from exceptional.carrier import WrappedError
from exceptional.category import DEFAULT_PROPAGATING, is_propagating, propagating_types
from exceptional.config import config_scope, resolve_config
from exceptional.errors import ConfigurationError, ExceptionalError
from tests.helpers import Boom

pytestmark = pytest.mark.unit


@pytest.mark.parametrize("exc_type", DEFAULT_PROPAGATING)
def test_programming_errors_propagate_by_default(exc_type: type[Exception]) -> None:
    assert is_propagating(exc_type())


@pytest.mark.parametrize(
    "exc", [KeyboardInterrupt(), SystemExit(0), GeneratorExit()]
)
def test_non_exception_base_exceptions_always_propagate(exc: BaseException) -> None:
    with config_scope(default_propagate=False):
        assert is_propagating(exc)


def test_library_errors_always_propagate() -> None:
    with config_scope(default_propagate=False):
        assert is_propagating(ExceptionalError("x"))
        assert is_propagating(ConfigurationError("x"))
        assert ExceptionalError in propagating_types()


@pytest.mark.parametrize(
    "exc", [Boom(), OSError("Test"), TimeoutError(), ValueError(), StopIteration()]
)
def test_ordinary_failures_do_not_propagate(exc: Exception) -> None:
    assert not is_propagating(exc)


def test_carrier_is_propagating() -> None:
    assert is_propagating(WrappedError(Boom()))


def test_default_propagate_false_drops_builtin_defaults() -> None:
    with config_scope(default_propagate=False):
        assert not is_propagating(TypeError())
        assert not is_propagating(AttributeError())


def test_configured_names_extend_the_category() -> None:
    with config_scope(propagate=["ValueError", "tests.helpers.Boom"]):
        assert is_propagating(ValueError())
        assert is_propagating(Boom())
        # Subclasses are covered as well.
        assert is_propagating(UnicodeDecodeError("utf-8", b"", 0, 1, "bad"))
    assert not is_propagating(ValueError())


def test_explicit_config_wins_over_ambient() -> None:
    cfg = resolve_config(overrides={"propagate": ["LookupError"]})
    with config_scope(default_propagate=False):
        assert is_propagating(KeyError("k"), cfg)
        assert not is_propagating(KeyError("k"))
