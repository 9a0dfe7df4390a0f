"""MongoDB connection settings."""

from __future__ import annotations

from dataclasses import dataclass

from .env import require_env_vars


@dataclass(frozen=True)
class MongoConfig:
    """Holds the MongoDB connection string and target database."""

    uri: str
    database: str


def get_mongo_config() -> MongoConfig:
    values = require_env_vars(("MONGODB_URI", "MONGODB_DATABASE"))
    return MongoConfig(uri=values["MONGODB_URI"], database=values["MONGODB_DATABASE"])
