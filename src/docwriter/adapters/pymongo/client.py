"""PyMongo storage clients (sync and asyncio) implementing the storage ports.

Transactions need a replica set or a sharded cluster. Whether the deployment can run
them is decided once per client from the ``hello`` response, and starting a
transaction on a deployment that cannot raises ``TransactionUnsupportedError``
before anything is written.
"""

from __future__ import annotations

import inspect
from logging import getLogger
from typing import TYPE_CHECKING, Any, Final, Literal

from pymongo import AsyncMongoClient, DeleteOne, InsertOne, MongoClient, UpdateOne

from docwriter.domain.errors import StorageCommandError, TransactionUnsupportedError
from docwriter.domain.model import BulkWriteResult, OperationKind

if TYPE_CHECKING:
    from collections.abc import Awaitable, Mapping, Sequence
    from types import TracebackType

    from pymongo.asynchronous.client_session import AsyncClientSession
    from pymongo.client_session import ClientSession
    from pymongo.results import BulkWriteResult as PyMongoBulkWriteResult

    from docwriter.config import MongoConfig
    from docwriter.domain.model import Operation

log = getLogger(__name__)

TRANSACTIONS_MIN_WIRE_VERSION: Final[int] = 7
SHARDED_TRANSACTIONS_MIN_WIRE_VERSION: Final[int] = 8

type WriteModel = InsertOne[dict[str, Any]] | UpdateOne | DeleteOne


def to_write_model(operation: Operation) -> WriteModel:
    match operation.kind:
        case OperationKind.INSERT:
            return InsertOne(operation.document or {})
        case OperationKind.UPDATE:
            return UpdateOne(operation.filter or {}, operation.update_document)
        case OperationKind.DELETE:
            return DeleteOne(operation.filter or {})


def check_transaction_support(hello: Mapping[str, Any]) -> None:
    """Raise ``TransactionUnsupportedError`` unless ``hello`` reports a transactional deployment."""

    wire_version = int(hello.get("maxWireVersion", 0))
    if hello.get("msg") == "isdbgrid":
        if wire_version < SHARDED_TRANSACTIONS_MIN_WIRE_VERSION:
            raise TransactionUnsupportedError.server_version()
        return
    if "setName" not in hello:
        raise TransactionUnsupportedError.standalone_server()
    if wire_version < TRANSACTIONS_MIN_WIRE_VERSION:
        raise TransactionUnsupportedError.server_version()


def _to_result(result: PyMongoBulkWriteResult) -> BulkWriteResult:
    return BulkWriteResult(
        inserted_count=result.inserted_count,
        matched_count=result.matched_count,
        modified_count=result.modified_count,
        deleted_count=result.deleted_count,
    )


class PyMongoSession:
    def __init__(self, client: PyMongoStorageClient) -> None:
        self._client = client
        self._session: ClientSession | None = None

    @property
    def session(self) -> ClientSession:
        if self._session is None:
            raise StorageCommandError("Storage session not entered")
        return self._session

    @property
    def in_transaction(self) -> bool:
        return self._session is not None and self._session.in_transaction

    def __enter__(self) -> PyMongoSession:
        self._session = self._client.mongo.start_session()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        try:
            if self.in_transaction:
                self.session.abort_transaction()
        finally:
            self.session.end_session()
            self._session = None
        return False

    def start_transaction(self) -> None:
        self._client.ensure_transactions_supported()
        self.session.start_transaction()

    def commit_transaction(self) -> None:
        self.session.commit_transaction()

    def abort_transaction(self) -> None:
        self.session.abort_transaction()

    def bulk_write(self, collection_name: str, operations: Sequence[Operation]) -> BulkWriteResult:
        collection = self._client.database[collection_name]
        result = collection.bulk_write(
            [to_write_model(operation) for operation in operations],
            ordered=True,
            session=self.session,
        )
        return _to_result(result)


class PyMongoStorageClient:
    def __init__(self, mongo: MongoClient[dict[str, Any]], database_name: str) -> None:
        self.mongo = mongo
        self.database = mongo[database_name]
        self._transactions_checked = False

    @classmethod
    def from_config(cls, config: MongoConfig) -> PyMongoStorageClient:
        return cls(MongoClient(config.uri), config.database)

    def start_session(self) -> PyMongoSession:
        return PyMongoSession(self)

    def ensure_transactions_supported(self) -> None:
        if self._transactions_checked:
            return
        check_transaction_support(self.mongo.admin.command("hello"))
        self._transactions_checked = True

    def find_document(
        self, collection_name: str, filter_document: Mapping[str, Any]
    ) -> dict[str, Any] | None:
        return self.database[collection_name].find_one(dict(filter_document))

    def close(self) -> None:
        self.mongo.close()


async def _resolve[T](value: T | Awaitable[T]) -> T:
    if inspect.isawaitable(value):
        return await value
    return value


class AsyncPyMongoSession:
    def __init__(self, client: AsyncPyMongoStorageClient) -> None:
        self._client = client
        self._session: AsyncClientSession | None = None

    @property
    def session(self) -> AsyncClientSession:
        if self._session is None:
            raise StorageCommandError("Storage session not entered")
        return self._session

    @property
    def in_transaction(self) -> bool:
        return self._session is not None and self._session.in_transaction

    async def __aenter__(self) -> AsyncPyMongoSession:
        self._session = await _resolve(self._client.mongo.start_session())
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        try:
            if self.in_transaction:
                await self.session.abort_transaction()
        finally:
            await self.session.end_session()
            self._session = None
        return False

    async def start_transaction(self) -> None:
        await self._client.ensure_transactions_supported()
        await _resolve(self.session.start_transaction())

    async def commit_transaction(self) -> None:
        await self.session.commit_transaction()

    async def abort_transaction(self) -> None:
        await self.session.abort_transaction()

    async def bulk_write(
        self, collection_name: str, operations: Sequence[Operation]
    ) -> BulkWriteResult:
        collection = self._client.database[collection_name]
        result = await collection.bulk_write(
            [to_write_model(operation) for operation in operations],
            ordered=True,
            session=self.session,
        )
        return _to_result(result)


class AsyncPyMongoStorageClient:
    def __init__(self, mongo: AsyncMongoClient[dict[str, Any]], database_name: str) -> None:
        self.mongo = mongo
        self.database = mongo[database_name]
        self._transactions_checked = False

    @classmethod
    def from_config(cls, config: MongoConfig) -> AsyncPyMongoStorageClient:
        return cls(AsyncMongoClient(config.uri), config.database)

    def start_session(self) -> AsyncPyMongoSession:
        return AsyncPyMongoSession(self)

    async def ensure_transactions_supported(self) -> None:
        if self._transactions_checked:
            return
        check_transaction_support(await self.mongo.admin.command("hello"))
        self._transactions_checked = True

    async def find_document(
        self, collection_name: str, filter_document: Mapping[str, Any]
    ) -> dict[str, Any] | None:
        return await self.database[collection_name].find_one(dict(filter_document))

    async def close(self) -> None:
        await self.mongo.close()
