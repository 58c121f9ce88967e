"""Environment variable loaders for configuration."""

from __future__ import annotations

import os

from .errors import InvalidConfigurationError


def env_int(name: str, default: int) -> int:
    """Return an optional integer environment variable."""

    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise InvalidConfigurationError(name, raw, "must be an integer") from exc


def env_float(name: str, default: float) -> float:
    """Return an optional float environment variable."""

    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise InvalidConfigurationError(name, raw, "must be a number") from exc
