# src/exceptional/config/__init__.py

"""Configuration management for Exceptional.

The core principle is resolve-once, freeze-then-flow: configuration is
resolved into immutable FrozenConfig objects, and the adapter reads the one
active in the current context when a wrapped callable fails.

Key exports:
- resolve_config: Main API for configuration resolution
- FrozenConfig: Immutable configuration payload
- config_scope: Context manager for scoped configuration
- current_config: The FrozenConfig active in the current context
- Settings: Pydantic schema for validation and defaults
"""

# ruff: noqa: I001

from .core import (
    ConfigScope,
    FieldOrigin,
    FrozenConfig,
    Origin,
    Settings,
    SourceMap,
    audit_lines,
    config_scope,
    current_config,
    reset_default_config,
    resolve_config,
    was_field_overridden,
)
from .utils import field_spec_hint, import_exception_type

__all__ = [  # noqa: RUF022
    # Main public API
    "resolve_config",
    "FrozenConfig",
    "config_scope",
    "current_config",
    "reset_default_config",
    # Core types for typing and advanced usage
    "ConfigScope",
    "Settings",
    "Origin",
    "FieldOrigin",
    "SourceMap",
    # Audit helpers
    "audit_lines",
    "was_field_overridden",
    "field_spec_hint",
    "import_exception_type",
]
