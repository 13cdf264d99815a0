"""Where jobsync keeps its SQLite database and HTTP cache."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

DATA_DIR_ENV: Final[str] = "JOBSYNC_DATA_DIR"
DATABASE_URI_ENV: Final[str] = "DATABASE_URI"
DB_FILENAME: Final[str] = "jobsync.db"
HTTP_CACHE_FILENAME: Final[str] = "http_cache.db"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path

    def _file(self, filename: str, *, ensure: bool) -> Path:
        root = self.data_dir.expanduser().resolve()
        if ensure:
            root.mkdir(parents=True, exist_ok=True)
        return root / filename

    def database_path(self, *, ensure: bool = True) -> Path:
        return self._file(DB_FILENAME, ensure=ensure)

    def http_cache_path(self, *, ensure: bool = True) -> Path:
        return self._file(HTTP_CACHE_FILENAME, ensure=ensure)


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str


def get_storage_config() -> StorageConfig:
    """``JOBSYNC_DATA_DIR``, else ``$XDG_DATA_HOME/jobsync`` (``~/.local/share/jobsync``)."""

    configured = os.getenv(DATA_DIR_ENV)
    if configured:
        return StorageConfig(data_dir=Path(configured))
    xdg = os.getenv("XDG_DATA_HOME")
    base = Path(xdg) if xdg else Path.home() / ".local" / "share"
    return StorageConfig(data_dir=base / "jobsync")


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    uri = os.getenv(DATABASE_URI_ENV)
    if uri:
        return DatabaseConfig(uri=uri)
    path = (storage or get_storage_config()).database_path()
    return DatabaseConfig(uri=f"sqlite+pysqlite:///{path}")


def get_http_cache_path() -> Path:
    return get_storage_config().http_cache_path()
