"""Application configuration helpers."""

from __future__ import annotations

from .env import positive_int_env, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy, cache_from_env
from .importer import ImportConfig, get_import_config
from .logging import configure_logging
from .sheets import ServiceAccountKey, SheetsConfig, default_sheets_resilience, get_sheets_config
from .storage import (
    DatabaseConfig,
    StorageConfig,
    get_database_config,
    get_http_cache_path,
    get_storage_config,
)

__all__ = [
    "CacheConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "ImportConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "ServiceAccountKey",
    "SheetsConfig",
    "StorageConfig",
    "cache_from_env",
    "configure_logging",
    "default_sheets_resilience",
    "get_database_config",
    "get_http_cache_path",
    "get_import_config",
    "get_sheets_config",
    "get_storage_config",
    "positive_int_env",
    "require_env_vars",
]
