# src/exceptional/config/core.py

"""Core configuration schema and resolution.

This module provides:
- Single source of truth for configuration schema (Settings)
- Immutable runtime payload (FrozenConfig)
- Pure data resolution with audit tracking (SourceMap)
- Context-local ambient scope (config_scope / current_config)
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from enum import Enum
import logging
import threading
from typing import TYPE_CHECKING, Any, Literal, overload
import warnings

from pydantic import BaseModel, Field, ValidationError, field_validator

from exceptional.errors import HINTS, ConfigurationError

from .utils import field_spec_hint, import_exception_type, split_names

if TYPE_CHECKING:
    from collections.abc import Mapping
    from types import TracebackType

log = logging.getLogger(__name__)

# --- Schema (Pydantic wall) ---


class Settings(BaseModel):
    """Pydantic settings schema for configuration validation and defaults.

    All configuration resolution flows through this schema so that a bad
    exception name is reported once, at resolution time, rather than at the
    first failing pipeline stage.
    """

    #: Extra exception types (builtin or dotted names) that are never wrapped.
    propagate: tuple[str, ...] = Field(default=())
    #: Whether the builtin programming-error types are always-propagating.
    default_propagate: bool = Field(default=True)

    model_config = {"extra": "allow"}

    @field_validator("propagate", mode="before")
    @classmethod
    def normalize_propagate(cls, v: Any) -> Any:
        """Accept a comma-separated string or any sequence of names."""
        if isinstance(v, str):
            return split_names(v)
        if isinstance(v, list | tuple):
            return tuple(str(item).strip() for item in v if str(item).strip())
        return v

    @field_validator("propagate")
    @classmethod
    def validate_propagate(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """Every name must resolve to an exception class."""
        for name in v:
            import_exception_type(name)
        return v


# --- Immutable runtime payload ---


@dataclass(frozen=True)
class FrozenConfig:
    """Immutable configuration payload.

    Read by the adapter and the carrier at invocation time to decide which
    failures belong to the always-propagating category.
    """

    propagate: tuple[str, ...]
    default_propagate: bool

    def __str__(self) -> str:
        return (
            f"FrozenConfig(propagate={self.propagate!r}, "
            f"default_propagate={self.default_propagate!r})"
        )

    __repr__ = __str__


# --- Audit types ---


class Origin(str, Enum):
    """Source origin for configuration field values."""

    DEFAULT = "default"
    PROJECT = "project"
    ENV = "env"
    OVERRIDES = "overrides"


@dataclass(frozen=True)
class FieldOrigin:
    """Tracks the origin and context of a configuration field value."""

    origin: Origin
    env_key: str | None = None  # e.g., "EXCEPTIONAL_PROPAGATE"
    file: str | None = None  # e.g., "./pyproject.toml"


SourceMap = dict[str, FieldOrigin]


# --- Ambient scope ---

_AMBIENT: contextvars.ContextVar[FrozenConfig | None] = contextvars.ContextVar(
    "exceptional_ambient_config", default=None
)

_DEFAULT_LOCK = threading.Lock()
_DEFAULT: FrozenConfig | None = None
_DOTENV_LOADED: bool = False


class ConfigScope:
    """Context manager for temporarily setting ambient configuration."""

    def __init__(self, cfg: FrozenConfig):
        """Initialize the context manager with a configuration."""
        self._token: contextvars.Token[FrozenConfig | None] | None = None
        self._cfg = cfg

    def __enter__(self) -> FrozenConfig:
        """Enter the context and set ambient configuration."""
        self._token = _AMBIENT.set(self._cfg)
        return self._cfg

    def __exit__(
        self,
        _: type[BaseException] | None,
        __: BaseException | None,
        ___: TracebackType | None,
    ) -> Literal[False]:
        """Exit the context and restore previous ambient configuration."""
        if self._token is not None:
            _AMBIENT.reset(self._token)
        return False


def config_scope(
    cfg_or_overrides: Mapping[str, Any] | FrozenConfig | None = None,
    **overrides: object,
) -> ConfigScope:
    """Create a scoped configuration context.

    Args:
        cfg_or_overrides: Either a FrozenConfig to use directly, or a mapping
            of overrides to apply during resolution.
        **overrides: Additional override values (merged with cfg_or_overrides
            if it's a mapping).

    Returns:
        A context manager yielding the FrozenConfig active in the scope.

    Example:
        with config_scope(propagate=["ValueError"]):
            stream.map(int).to_list()  # ValueError is no longer wrapped
    """
    if isinstance(cfg_or_overrides, FrozenConfig):
        return ConfigScope(cfg_or_overrides)
    combined = {**(cfg_or_overrides or {}), **overrides}
    return ConfigScope(resolve_config(overrides=combined))


def current_config() -> FrozenConfig:
    """Return the ambient config, or the cached default resolution.

    The default reads the process environment as it is; only an explicit
    ``resolve_config`` or ``config_scope`` call loads a .env file.
    """
    scoped = _AMBIENT.get()
    if scoped is not None:
        return scoped
    global _DEFAULT
    if _DEFAULT is None:
        with _DEFAULT_LOCK:
            if _DEFAULT is None:
                _DEFAULT = resolve_config(dotenv=False)
    return _DEFAULT


def reset_default_config() -> None:
    """Drop the cached default so the next lookup re-reads all sources."""
    global _DEFAULT
    with _DEFAULT_LOCK:
        _DEFAULT = None


def _try_load_dotenv() -> None:
    """Load a .env file once, before the environment is read."""
    global _DOTENV_LOADED
    if _DOTENV_LOADED:
        return
    from dotenv import load_dotenv

    load_dotenv()
    _DOTENV_LOADED = True


# --- Public resolution API ---


@overload
def resolve_config(
    overrides: Mapping[str, Any] | None = ...,
    *,
    explain: Literal[True],
    dotenv: bool = ...,
) -> tuple[FrozenConfig, SourceMap]: ...


@overload
def resolve_config(
    overrides: Mapping[str, Any] | None = ...,
    *,
    explain: Literal[False] = ...,
    dotenv: bool = ...,
) -> FrozenConfig: ...


def resolve_config(
    overrides: Mapping[str, Any] | None = None,
    *,
    explain: bool = False,
    dotenv: bool = True,
) -> FrozenConfig | tuple[FrozenConfig, SourceMap]:
    """Resolve configuration from all sources into a FrozenConfig.

    Precedence: defaults < project < env < overrides.

    Args:
        overrides: Programmatic configuration overrides.
        explain: If True, return tuple of (config, source_map) for audit.
        dotenv: If True, load a .env file (once per process) before reading
            the environment.

    Returns:
        FrozenConfig instance, or tuple of (FrozenConfig, SourceMap) if explain=True.

    Raises:
        ConfigurationError: If configuration validation fails.
    """
    if dotenv:
        _try_load_dotenv()

    from .loaders import load_env, load_pyproject

    merged, sources = _resolve_layers(
        overrides=overrides or {},
        env=load_env(),
        project=load_pyproject(),
    )

    try:
        settings = Settings.model_validate(merged)
    except ValidationError as e:
        err = e.errors()[0]
        msg = err.get("msg")
        # Remove "Value error, " prefix if present (Pydantic standard wrapper)
        if msg and msg.startswith("Value error, "):
            msg = msg[13:]
        loc = ".".join(str(part) for part in err.get("loc", ()))
        hint = _hint_for(loc)
        raise ConfigurationError(
            f"Configuration validation failed for {loc or 'settings'}: {msg}",
            hint=hint,
        ) from e

    frozen = _freeze(settings, merged)
    log.debug("Resolved %s", frozen)
    return (frozen, sources) if explain else frozen


# --- Internal helpers (pure & tiny) ---


def _freeze(settings: Settings, merged: Mapping[str, Any]) -> FrozenConfig:
    known_fields = set(Settings.model_fields.keys())
    for name in (k for k in merged if k not in known_fields):
        warnings.warn(
            f"Configuration: unknown field '{name}' is ignored",
            UserWarning,
            stacklevel=4,
        )
    return FrozenConfig(
        propagate=settings.propagate,
        default_propagate=settings.default_propagate,
    )


def _hint_for(loc: str) -> str | None:
    field = loc.split(".", 1)[0]
    if field == "propagate":
        return HINTS["unknown_exception"]
    if field in Settings.model_fields:
        return field_spec_hint(field)
    return None


def _resolve_layers(
    *,
    overrides: Mapping[str, Any],
    env: Mapping[str, Any],
    project: Mapping[str, Any],
) -> tuple[dict[str, Any], SourceMap]:
    """Merge layers with last-wins precedence while recording origins."""
    from .utils import ENV_PREFIX, get_pyproject_path

    layers = [
        (Origin.PROJECT, project),
        (Origin.ENV, env),
        (Origin.OVERRIDES, overrides),
    ]

    out: dict[str, Any] = {}
    src: SourceMap = {}

    for k, v in Settings().model_dump().items():
        out[k] = v
        src[k] = FieldOrigin(origin=Origin.DEFAULT)

    for origin, payload in layers:
        for k, v in payload.items():
            out[k] = v
            if origin is Origin.ENV:
                src[k] = FieldOrigin(origin=origin, env_key=f"{ENV_PREFIX}{k.upper()}")
            elif origin is Origin.PROJECT:
                src[k] = FieldOrigin(origin=origin, file=str(get_pyproject_path()))
            else:
                src[k] = FieldOrigin(origin=origin)

    return out, src


# --- Minimal audit helpers ---


def _origin_label(where: FieldOrigin) -> str:
    match where.origin:
        case Origin.ENV:
            return f"env:{where.env_key}"
        case Origin.PROJECT:
            return f"file:{where.file or 'pyproject.toml'}"
        case _:
            return str(where.origin.value)


def audit_lines(sources: SourceMap) -> list[str]:
    """Produce human-readable audit lines, one per field, in sorted order."""
    return [f"{field}: {_origin_label(sources[field])}" for field in sorted(sources)]


def was_field_overridden(sources: SourceMap, field: str) -> bool:
    """Return True if a field's value did not come from defaults."""
    fo = sources.get(field)
    return bool(fo and fo.origin is not Origin.DEFAULT)
