"""Ports for the document storage engine."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import TracebackType

    from docwriter.domain.model import BulkWriteResult, Operation


@runtime_checkable
class StorageSession(Protocol):
    """A storage session; transactions are started and ended on it explicitly."""

    @property
    def in_transaction(self) -> bool: ...

    def __enter__(self) -> StorageSession: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool | None: ...

    def start_transaction(self) -> None: ...

    def commit_transaction(self) -> None: ...

    def abort_transaction(self) -> None: ...

    def bulk_write(
        self, collection_name: str, operations: Sequence[Operation]
    ) -> BulkWriteResult: ...  # ordered, one request per call


@runtime_checkable
class StorageClient(Protocol):
    def start_session(self) -> StorageSession: ...


@runtime_checkable
class AsyncStorageSession(Protocol):
    """Asynchronous counterpart of ``StorageSession``; entering it acquires the session."""

    @property
    def in_transaction(self) -> bool: ...

    async def __aenter__(self) -> AsyncStorageSession: ...

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool | None: ...

    async def start_transaction(self) -> None: ...

    async def commit_transaction(self) -> None: ...

    async def abort_transaction(self) -> None: ...

    async def bulk_write(
        self, collection_name: str, operations: Sequence[Operation]
    ) -> BulkWriteResult: ...


@runtime_checkable
class AsyncStorageClient(Protocol):
    def start_session(self) -> AsyncStorageSession: ...
