"""Asynchronous SQLAlchemy storage client (aiosqlite for SQLite databases)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Literal

from sqlalchemy.ext.asyncio import create_async_engine

from docwriter.domain.errors import StorageCommandError

from .client import StartupError
from .documents import apply_operations, find_one

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from types import TracebackType

    from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, AsyncTransaction

    from docwriter.domain.model import BulkWriteResult, Operation


def create_storage_engine(database_uri: str) -> AsyncEngine:
    return create_async_engine(database_uri)


class AsyncSqlAlchemySession:
    """Async ``SqlAlchemySession``; bulk writes run on the sync connection via ``run_sync``."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine
        self._connection: AsyncConnection | None = None
        self._transaction: AsyncTransaction | None = None

    @property
    def connection(self) -> AsyncConnection:
        if self._connection is None:
            raise StartupError("Storage session not entered")
        return self._connection

    @property
    def in_transaction(self) -> bool:
        return self._transaction is not None and self._transaction.is_active

    async def __aenter__(self) -> AsyncSqlAlchemySession:
        self._connection = await self._engine.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        try:
            if self.in_transaction:
                await self.abort_transaction()
        finally:
            await self.connection.close()
            self._connection = None
        return False

    async def start_transaction(self) -> None:
        if self.in_transaction:
            raise StorageCommandError("Transaction already in progress")
        self._transaction = await self.connection.begin()

    async def commit_transaction(self) -> None:
        await self._require_transaction().commit()
        self._transaction = None

    async def abort_transaction(self) -> None:
        await self._require_transaction().rollback()
        self._transaction = None

    async def bulk_write(
        self, collection_name: str, operations: Sequence[Operation]
    ) -> BulkWriteResult:
        if self.in_transaction:
            return await self.connection.run_sync(apply_operations, collection_name, operations)
        async with self.connection.begin():
            return await self.connection.run_sync(apply_operations, collection_name, operations)

    def _require_transaction(self) -> AsyncTransaction:
        if self._transaction is None:
            raise StorageCommandError("No transaction started")
        return self._transaction


class AsyncSqlAlchemyStorageClient:
    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine

    def start_session(self) -> AsyncSqlAlchemySession:
        return AsyncSqlAlchemySession(self.engine)

    async def find_document(
        self, collection_name: str, filter_document: Mapping[str, Any]
    ) -> dict[str, Any] | None:
        async with self.engine.connect() as connection:
            return await connection.run_sync(find_one, collection_name, filter_document)
