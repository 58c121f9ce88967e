"""Shared logging helpers for friendsync."""

from __future__ import annotations

import logging
import os

from .errors import InvalidConfigurationError

# SQL echo and migration chatter drown out reconciliation logs at INFO
_NOISY_LOGGERS = ("sqlalchemy.engine", "alembic.runtime.migration")


def _level_from_env(default: int) -> int:
    raw = os.getenv("FRIENDSYNC_LOG_LEVEL")
    if raw is None or not raw.strip():
        return default
    level = logging.getLevelNamesMapping().get(raw.strip().upper())
    if level is None:
        raise InvalidConfigurationError("FRIENDSYNC_LOG_LEVEL", raw, "is not a logging level")
    return level


def configure_logging(*, level: int | None = None, force: bool = False) -> None:
    """Initialise the root logger for CLI output.

    ``level`` wins over ``FRIENDSYNC_LOG_LEVEL``, which wins over INFO.
    """

    effective = level if level is not None else _level_from_env(logging.INFO)
    logging.basicConfig(
        level=effective,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(effective, logging.WARNING))
