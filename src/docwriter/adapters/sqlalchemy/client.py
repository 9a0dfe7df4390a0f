"""Synchronous SQLAlchemy storage client implementing the storage ports."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

from sqlalchemy import create_engine

from docwriter.config import get_database_config
from docwriter.domain.errors import StorageCommandError

from .documents import apply_operations, find_one
from .mappings import create_all_tables

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from types import TracebackType

    from sqlalchemy.engine import Connection, Engine, RootTransaction

    from docwriter.domain.model import BulkWriteResult, Operation


class StartupError(RuntimeError):
    """Raised when the SQLAlchemy adapter is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    _engine: Engine | None = None

    @property
    def engine(self) -> Engine | None:
        return self._engine

    @engine.setter
    def engine(self, value: Engine | None) -> None:
        self._engine = value

    def require_engine(self) -> Engine:
        if self._engine is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call docwriter.adapters.sqlalchemy."
                "client.startup() before requesting a storage client."
            )
        return self._engine


_STATE = _AdapterState()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Initialise the SQLAlchemy engine and create the document table."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    resolved_engine = engine or create_engine(
        database_uri or get_database_config().uri, future=True
    )
    create_all_tables(resolved_engine)
    _STATE.engine = resolved_engine


def configured_engine() -> Engine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def is_started() -> bool:
    """Return whether the adapter has been initialised."""

    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None


class SqlAlchemySession:
    """One database connection; transactions map onto explicit connection transactions."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._connection: Connection | None = None
        self._transaction: RootTransaction | None = None

    @property
    def connection(self) -> Connection:
        if self._connection is None:
            raise StartupError("Storage session not entered")
        return self._connection

    @property
    def in_transaction(self) -> bool:
        return self._transaction is not None and self._transaction.is_active

    def __enter__(self) -> SqlAlchemySession:
        self._connection = self._engine.connect()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        try:
            if self.in_transaction:
                self.abort_transaction()
        finally:
            self.connection.close()
            self._connection = None
        return False

    def start_transaction(self) -> None:
        if self.in_transaction:
            raise StorageCommandError("Transaction already in progress")
        self._transaction = self.connection.begin()

    def commit_transaction(self) -> None:
        self._require_transaction().commit()
        self._transaction = None

    def abort_transaction(self) -> None:
        self._require_transaction().rollback()
        self._transaction = None

    def bulk_write(self, collection_name: str, operations: Sequence[Operation]) -> BulkWriteResult:
        if self.in_transaction:
            return apply_operations(self.connection, collection_name, operations)
        with self.connection.begin():
            return apply_operations(self.connection, collection_name, operations)

    def _require_transaction(self) -> RootTransaction:
        if self._transaction is None:
            raise StorageCommandError("No transaction started")
        return self._transaction


class SqlAlchemyStorageClient:
    def __init__(self, engine: Engine | None = None) -> None:
        self.engine = engine or _STATE.require_engine()

    def start_session(self) -> SqlAlchemySession:
        return SqlAlchemySession(self.engine)

    def find_document(
        self, collection_name: str, filter_document: Mapping[str, Any]
    ) -> dict[str, Any] | None:
        with self.engine.connect() as connection:
            return find_one(connection, collection_name, filter_document)


if TYPE_CHECKING:
    from docwriter.domain.ports import StorageClient

    _client_check: StorageClient = SqlAlchemyStorageClient()
