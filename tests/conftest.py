"""Pytest configuration and fixtures.

Provides environment isolation and configuration cache resets. Fixtures here
are autouse unless noted.
"""

from __future__ import annotations

from contextlib import suppress
import logging
import os
from typing import TYPE_CHECKING

import pytest

from exceptional.config import reset_default_config

if TYPE_CHECKING:
    from collections.abc import Generator
    from pathlib import Path

# =============================================================================
# Environment Isolation (Autouse)
# =============================================================================


@pytest.fixture(autouse=True)
def block_dotenv(request, monkeypatch):
    """Prevent python-dotenv from loading project .env files during tests.

    Opt-out: @pytest.mark.allow_dotenv
    """
    if request.node.get_closest_marker("allow_dotenv"):
        return
    with suppress(Exception):
        monkeypatch.setattr(
            "dotenv.load_dotenv", lambda *_args, **_kwargs: False, raising=False
        )


@pytest.fixture(autouse=True)
def isolate_exceptional_env(request, monkeypatch, tmp_path: Path):
    """Ensure a clean EXCEPTIONAL_* environment for each test.

    The project file points at a path that does not exist, so the repository's
    own pyproject.toml never leaks into a test.
    Opt-out: @pytest.mark.allow_env_pollution
    """
    if request.node.get_closest_marker("allow_env_pollution"):
        return

    for key in list(os.environ.keys()):
        if key.startswith("EXCEPTIONAL_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv(
        "EXCEPTIONAL_PYPROJECT_PATH", str(tmp_path / "isolated" / "pyproject.toml")
    )


@pytest.fixture(autouse=True)
def fresh_default_config() -> Generator[None]:
    """Drop the cached default config around every test."""
    reset_default_config()
    yield
    reset_default_config()


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture
def debug_logs(caplog: pytest.LogCaptureFixture) -> pytest.LogCaptureFixture:
    """Capture DEBUG records from the exceptional logger (not autouse)."""
    caplog.set_level(logging.DEBUG, logger="exceptional")
    return caplog


# =============================================================================
# Project Files
# =============================================================================


@pytest.fixture
def write_pyproject(tmp_path: Path, monkeypatch):
    """Write a pyproject.toml and point resolution at it (not autouse)."""

    def _write(body: str) -> Path:
        path = tmp_path / "pyproject.toml"
        path.write_text(body, encoding="utf-8")
        monkeypatch.setenv("EXCEPTIONAL_PYPROJECT_PATH", str(path))
        return path

    return _write
