"""Application configuration helpers."""

from __future__ import annotations

from .errors import ConfigurationError, InvalidConfigurationError
from .logging import configure_logging
from .reconcile import ReconcileConfig, get_reconcile_config
from .storage import (
    DatabaseConfig,
    StorageConfig,
    get_database_config,
    get_storage_config,
    sqlite_uri,
)

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "InvalidConfigurationError",
    "ReconcileConfig",
    "StorageConfig",
    "configure_logging",
    "get_database_config",
    "get_reconcile_config",
    "get_storage_config",
    "sqlite_uri",
]
