"""Application configuration helpers."""

from __future__ import annotations

from .env import env_choice, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .logging import configure_logging
from .mongo import MongoConfig, get_mongo_config
from .save import AUTO_TRANSACTION_ENV, SaveConfig, get_save_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "AUTO_TRANSACTION_ENV",
    "ConfigurationError",
    "DatabaseConfig",
    "MissingConfigurationError",
    "MongoConfig",
    "SaveConfig",
    "StorageConfig",
    "configure_logging",
    "env_choice",
    "get_database_config",
    "get_mongo_config",
    "get_save_config",
    "get_storage_config",
    "require_env_vars",
]
