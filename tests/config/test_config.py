from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import pytest

from docwriter.config import (
    ConfigurationError,
    DatabaseConfig,
    MissingConfigurationError,
    configure_logging,
    get_database_config,
    get_mongo_config,
    get_save_config,
    get_storage_config,
    require_env_vars,
)
from docwriter.config.logging import LOG_FORMAT
from docwriter.domain.model import AutoTransactionBehavior


def test_require_env_vars_returns_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "value")

    assert require_env_vars(["EXAMPLE_VAR"]) == {"EXAMPLE_VAR": "value"}


def test_require_env_vars_raises_when_blank(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "   ")
    monkeypatch.delenv("MISSING_VAR", raising=False)

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["EXAMPLE_VAR", "MISSING_VAR"])

    assert "EXAMPLE_VAR, MISSING_VAR" in str(exc.value)


def test_auto_transaction_defaults_to_when_needed(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("DOCWRITER_AUTO_TRANSACTION", raising=False)

    assert get_save_config().auto_transaction is AutoTransactionBehavior.WHEN_NEEDED


def test_auto_transaction_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DOCWRITER_AUTO_TRANSACTION", " Never ")

    assert get_save_config().auto_transaction is AutoTransactionBehavior.NEVER


def test_invalid_auto_transaction_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DOCWRITER_AUTO_TRANSACTION", "sometimes")

    with pytest.raises(ConfigurationError, match="DOCWRITER_AUTO_TRANSACTION"):
        get_save_config()


def test_storage_config_uses_data_dir_override(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.setenv("DOCWRITER_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.delenv("DOCWRITER_DATABASE_URI", raising=False)

    config = get_database_config(storage=get_storage_config())

    assert config.uri == f"sqlite+pysqlite:///{tmp_path / 'data' / 'documents.db'}"
    assert (tmp_path / "data").is_dir()


def test_database_uri_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DOCWRITER_DATABASE_URI", "sqlite+pysqlite:///override.db")

    assert get_database_config().uri == "sqlite+pysqlite:///override.db"


def test_async_uri_switches_sqlite_driver() -> None:
    assert DatabaseConfig("sqlite+pysqlite:///docs.db").async_uri == "sqlite+aiosqlite:///docs.db"
    assert DatabaseConfig("sqlite:///docs.db").async_uri == "sqlite+aiosqlite:///docs.db"
    assert DatabaseConfig("postgresql+asyncpg://db/docs").async_uri == "postgresql+asyncpg://db/docs"


def test_mongo_config_requires_uri_and_database(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MONGODB_URI", "mongodb://localhost:27017/?replicaSet=rs0")
    monkeypatch.delenv("MONGODB_DATABASE", raising=False)

    with pytest.raises(MissingConfigurationError, match="MONGODB_DATABASE"):
        get_mongo_config()

    monkeypatch.setenv("MONGODB_DATABASE", "shop")
    assert get_mongo_config().database == "shop"


def test_configure_logging_sets_docwriter_level(monkeypatch: pytest.MonkeyPatch) -> None:
    received: dict[str, Any] = {}
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: received.update(kwargs))
    docwriter_logger = logging.getLogger("docwriter")
    monkeypatch.setattr(docwriter_logger, "level", docwriter_logger.level)

    configure_logging(level=logging.WARNING, force=True)

    assert received["level"] == logging.WARNING
    assert received["force"] is True
    assert received["format"] == LOG_FORMAT
    assert docwriter_logger.level == logging.WARNING
