"""
Workbench configuration — all environment variables in one place.

Read from environment at import. Invalid values fail at startup.
"""

from __future__ import annotations

import json
import os

from workbench.kernel.preview import DEFAULT_EXTERNALS


def parse_externals(raw: str) -> dict[str, str]:
    """
    Merge a PREVIEW_EXTERNALS JSON object over the default external table.
    An empty value means the defaults.
    """
    externals = dict(DEFAULT_EXTERNALS)
    if not raw.strip():
        return externals
    try:
        overrides = json.loads(raw)
    except json.JSONDecodeError as e:
        raise RuntimeError(f"PREVIEW_EXTERNALS is not valid JSON: {e.msg}") from e
    if not isinstance(overrides, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in overrides.items()
    ):
        raise RuntimeError("PREVIEW_EXTERNALS must be a JSON object of specifier to URL strings")
    externals.update(overrides)
    return externals


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from e
    if value < 1:
        raise RuntimeError(f"{name} must be at least 1")
    return value


class Settings:
    """Application settings from environment variables."""

    # Application
    ENVIRONMENT: str = os.environ.get("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO").upper()

    # Preview
    PREVIEW_TITLE: str = os.environ.get("PREVIEW_TITLE", "Preview")
    PREVIEW_ENTRY_PATH: str = os.environ.get("PREVIEW_ENTRY_PATH", "/App.jsx")
    PREVIEW_EXTERNALS: dict[str, str] = parse_externals(os.environ.get("PREVIEW_EXTERNALS", ""))

    # Limits
    MAX_WORKSPACES: int = _int_env("MAX_WORKSPACES", 100)


# Singleton instance
settings = Settings()
