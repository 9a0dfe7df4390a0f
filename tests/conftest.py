from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

import pytest
import pytest_asyncio
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002

from docwriter.adapters.serialization import JsonValueSerializer
from docwriter.adapters.sqlalchemy import (
    AsyncSqlAlchemyStorageClient,
    SqlAlchemyStorageClient,
    create_all_tables,
    create_all_tables_async,
    create_storage_engine,
    shutdown,
    startup,
)
from docwriter.domain.model import ChangeSet
from tests.helpers.documents import OrderModel, build_order_model
from tests.support.memory_engine import AsyncMemoryClient, MemoryClient, MemoryEngine

os.environ.setdefault("DOCWRITER_DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator
    from pathlib import Path


@pytest.fixture(autouse=True)
def _capture_docwriter_logs(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="docwriter")


@pytest.fixture
def order_model() -> OrderModel:
    return build_order_model()


@pytest.fixture
def change_set() -> ChangeSet:
    return ChangeSet()


@pytest.fixture
def serializer() -> JsonValueSerializer:
    return JsonValueSerializer()


@pytest.fixture
def memory_engine() -> MemoryEngine:
    return MemoryEngine()


@pytest.fixture
def memory_client(memory_engine: MemoryEngine) -> MemoryClient:
    return MemoryClient(memory_engine)


@pytest.fixture
def async_memory_client(memory_engine: MemoryEngine) -> AsyncMemoryClient:
    return AsyncMemoryClient(memory_engine)


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    create_all_tables(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlalchemy_client(sqlite_engine: Engine) -> Iterator[SqlAlchemyStorageClient]:
    startup(engine=sqlite_engine, force=True)
    try:
        yield SqlAlchemyStorageClient()
    finally:
        shutdown()


@pytest_asyncio.fixture
async def async_sqlalchemy_client(tmp_path: Path) -> AsyncIterator[AsyncSqlAlchemyStorageClient]:
    engine = create_storage_engine(f"sqlite+aiosqlite:///{tmp_path / 'documents.db'}")
    await create_all_tables_async(engine)
    try:
        yield AsyncSqlAlchemyStorageClient(engine)
    finally:
        await engine.dispose()
