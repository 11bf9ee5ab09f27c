"""Application configuration helpers."""

from __future__ import annotations

from .engine import EngineConfig, get_engine_config
from .env import optional_float_env, optional_int_env
from .errors import ConfigurationError
from .logging import configure_logging, resolve_log_level
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "EngineConfig",
    "StorageConfig",
    "configure_logging",
    "get_database_config",
    "get_engine_config",
    "get_storage_config",
    "optional_float_env",
    "optional_int_env",
    "resolve_log_level",
]
