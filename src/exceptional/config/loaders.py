# src/exceptional/config/loaders.py

"""Configuration loaders for environment and files.

Pure data loading functions that extract configuration values from the
environment and from ``pyproject.toml`` without validating them. Each loader
returns a plain dictionary that the core resolver merges.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path

import tomllib

from . import utils

# Meta/control variables that steer resolution but aren't config fields
META_ENV_FIELDS = {"pyproject_path"}

# --- Environment Loading ---


def load_env() -> Mapping[str, Any]:
    """Load configuration from ``EXCEPTIONAL_*`` environment variables.

    Boolean fields are coerced using common conventions; list fields are
    split on commas. Unknown fields are passed through as strings so the
    schema can report them.
    """
    from .core import Settings  # local import to keep loaders import-light

    config: dict[str, Any] = {}
    for key, value in os.environ.items():
        if not key.startswith(utils.ENV_PREFIX):
            continue
        field_name = key[len(utils.ENV_PREFIX) :].lower()
        if field_name in META_ENV_FIELDS:
            continue
        info = Settings.model_fields.get(field_name)
        target_type = info.annotation if info is not None else None
        config[field_name] = _coerce_env_value(value, target_type)
    return config


def _coerce_env_value(value: str, target_type: Any) -> Any:
    if target_type is bool:
        return utils.coerce_bool(value)
    if target_type == tuple[str, ...]:
        return utils.split_names(value)
    return value


# --- File Loading ---


def _read_toml(path: Path) -> dict[str, Any]:
    """Read a TOML file, returning an empty dict when it is missing.

    A file that exists but cannot be parsed is a configuration error rather
    than silently ignored.
    """
    if not path.exists():
        return {}

    from exceptional.errors import ConfigurationError

    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(
            f"Invalid TOML in {path}: {e}",
            hint=f"Fix the file or point {utils.PYPROJECT_PATH_VAR} elsewhere",
        ) from e


def load_pyproject() -> Mapping[str, Any]:
    """Load the ``[tool.exceptional]`` table from pyproject.toml."""
    data = _read_toml(utils.get_pyproject_path())
    section = data.get("tool", {}).get(utils.CONFIG_TOOL_NAME, {})
    return dict(section) if isinstance(section, dict) else {}
