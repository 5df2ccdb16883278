# src/exceptional/config/utils.py

"""Configuration utilities and shared functionality.

Pure helpers that can be imported without creating circular dependencies:
path resolution, environment constants and exception-name lookup.
"""

from __future__ import annotations

import builtins
from functools import cache
import importlib
import os
from pathlib import Path

# --- Constants ---

ENV_PREFIX = "EXCEPTIONAL_"
CONFIG_TOOL_NAME = "exceptional"

PYPROJECT_PATH_VAR = "EXCEPTIONAL_PYPROJECT_PATH"

_TRUTHY = {"1", "true", "yes", "on"}

# --- Path Utilities ---


def get_pyproject_path() -> Path:
    """Return path to the project pyproject.toml.

    ``EXCEPTIONAL_PYPROJECT_PATH`` overrides the default of
    ``./pyproject.toml``.
    """
    if override := os.environ.get(PYPROJECT_PATH_VAR):
        return Path(override)
    return Path.cwd() / "pyproject.toml"


# --- Value Coercion ---


def coerce_bool(v: str) -> bool:
    """Convert string to boolean using common conventions."""
    return v.strip().lower() in _TRUTHY


def split_names(v: str) -> tuple[str, ...]:
    """Split a comma-separated list of names, dropping blanks."""
    return tuple(part.strip() for part in v.split(",") if part.strip())


# --- Exception Type Lookup ---


@cache
def import_exception_type(name: str) -> type[BaseException]:
    """Resolve an exception class from a builtin or dotted name.

    Bare names are looked up in ``builtins``; dotted names are imported as
    ``module.attr``.

    Raises:
        ValueError: If the name cannot be resolved to an exception class.
    """
    name = name.strip()
    if not name:
        raise ValueError("exception name must not be empty")

    module_name, _, attr = name.rpartition(".")
    if module_name:
        try:
            module = importlib.import_module(module_name)
        except ImportError as e:
            raise ValueError(f"cannot import module {module_name!r}") from e
        obj = getattr(module, attr, None)
    else:
        obj = getattr(builtins, attr, None)

    if not (isinstance(obj, type) and issubclass(obj, BaseException)):
        raise ValueError(f"{name!r} is not an exception class")
    return obj


def field_spec_hint(field: str) -> str:
    """Return a compact hint for setting a config field via env or files."""
    env_key = f"{ENV_PREFIX}{field.upper()}"
    return f"Set {env_key} or [tool.{CONFIG_TOOL_NAME}] {field} in pyproject.toml."
