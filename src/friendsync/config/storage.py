"""Where friendsync keeps its SQLite database unless told otherwise."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

APP_DIR_NAME: Final[str] = "friendsync"
DEFAULT_DB_FILENAME: Final[str] = "friendsync.db"
SQLITE_DRIVER: Final[str] = "sqlite+pysqlite"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path
    database_filename: str = DEFAULT_DB_FILENAME

    def database_path(self, *, ensure: bool = True) -> Path:
        data_dir = self.data_dir.expanduser().resolve()
        if ensure:
            data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir / self.database_filename


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str


def sqlite_uri(path: Path) -> str:
    return f"{SQLITE_DRIVER}:///{path}"


def _default_data_dir() -> Path:
    # XDG layout; LOCALAPPDATA on Windows
    if os.name == "nt":
        root = os.getenv("LOCALAPPDATA") or str(Path.home() / "AppData" / "Local")
    else:
        root = os.getenv("XDG_DATA_HOME") or str(Path.home() / ".local" / "share")
    return Path(root) / APP_DIR_NAME


def get_storage_config() -> StorageConfig:
    env_dir = os.getenv("FRIENDSYNC_DATA_DIR")
    filename = os.getenv("FRIENDSYNC_DATABASE_FILENAME") or DEFAULT_DB_FILENAME
    data_dir = Path(env_dir) if env_dir else _default_data_dir()
    return StorageConfig(data_dir=data_dir, database_filename=filename)


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    """Return ``DATABASE_URI`` if set, else a SQLite file in the data directory."""

    env_uri = os.getenv("DATABASE_URI")
    if env_uri:
        return DatabaseConfig(uri=env_uri)
    storage_config = storage or get_storage_config()
    return DatabaseConfig(uri=sqlite_uri(storage_config.database_path()))
