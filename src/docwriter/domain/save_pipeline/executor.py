"""Execute a change set as ordered bulk writes, optionally inside a transaction."""

from __future__ import annotations

from logging import getLogger
from time import perf_counter
from typing import TYPE_CHECKING

from docwriter.domain.model import AutoTransactionBehavior
from docwriter.domain.save_pipeline.batching import create_batches
from docwriter.domain.save_pipeline.roots import resolve_changed_roots
from docwriter.domain.save_pipeline.synthesis import create_operations
from docwriter.domain.save_pipeline.transaction import AsyncTransaction, Transaction
from docwriter.domain.save_pipeline.verification import assert_writes_applied

if TYPE_CHECKING:
    from collections.abc import Mapping

    from docwriter.domain.model import Batch, BulkWriteResult, ChangeSet, EntityState, Operation
    from docwriter.domain.ports import (
        AsyncStorageClient,
        AsyncStorageSession,
        StorageClient,
        StorageSession,
        ValueSerializer,
    )

log = getLogger(__name__)


def should_start_transaction(behavior: AutoTransactionBehavior, operation_count: int) -> bool:
    match behavior:
        case AutoTransactionBehavior.ALWAYS:
            return True
        case AutoTransactionBehavior.NEVER:
            return False
        case AutoTransactionBehavior.WHEN_NEEDED:
            return operation_count > 1


def plan_operations(change_set: ChangeSet, serializer: ValueSerializer) -> list[Operation]:
    roots = resolve_changed_roots(change_set)
    return create_operations(roots, change_set, serializer)


def _log_bulk_write(batch: Batch, result: BulkWriteResult, started: float) -> None:
    log.info(
        "Executed bulk write on '%s' in %.1fms: %d inserted, %d matched, %d deleted",
        batch.collection_name,
        (perf_counter() - started) * 1000,
        result.inserted_count,
        result.matched_count,
        result.deleted_count,
    )


def _entry_states(change_set: ChangeSet) -> dict[int, EntityState]:
    return {entry.entry_id: entry.state for entry in change_set}


def _finish(
    change_set: ChangeSet, *, succeeded: bool, states: Mapping[int, EntityState]
) -> None:
    """Accept pending generated values, or discard them and undo root escalation."""

    for entry in change_set:
        if succeeded:
            entry.accept_store_generated_values()
            continue
        entry.discard_store_generated_values()
        entry.state = states.get(entry.entry_id, entry.state)


class DocumentSaver:
    """Persist change sets through a ``StorageClient``."""

    def __init__(
        self,
        client: StorageClient,
        serializer: ValueSerializer,
        auto_transaction: AutoTransactionBehavior = AutoTransactionBehavior.WHEN_NEEDED,
    ) -> None:
        self.client = client
        self.serializer = serializer
        self.auto_transaction = auto_transaction

    def save_changes(self, change_set: ChangeSet) -> int:
        """Write every pending change in ``change_set`` and return the affected document count.

        Either all writes are applied or, when a transaction is used, none are. Generated
        values are made current only when the save succeeds; on failure the entry
        states are restored as they were before the save.
        """

        states = _entry_states(change_set)
        try:
            operations = plan_operations(change_set, self.serializer)
            affected = self._execute(operations) if operations else 0
        except BaseException:
            _finish(change_set, succeeded=False, states=states)
            raise
        _finish(change_set, succeeded=True, states=states)
        return affected

    def _execute(self, operations: list[Operation]) -> int:
        with self.client.start_session() as session:
            if not should_start_transaction(self.auto_transaction, len(operations)):
                return self._write_batches(session, operations)
            with Transaction.start(session) as transaction:
                affected = self._write_batches(session, operations)
                transaction.commit()
            return affected

    def _write_batches(self, session: StorageSession, operations: list[Operation]) -> int:
        affected = 0
        for batch in create_batches(operations):
            started = perf_counter()
            result = session.bulk_write(batch.collection_name, batch.operations)
            _log_bulk_write(batch, result, started)
            affected += assert_writes_applied(batch, result)
        return affected


class AsyncDocumentSaver:
    """Asynchronous ``DocumentSaver``; cancelling the awaiting task rolls back the transaction."""

    def __init__(
        self,
        client: AsyncStorageClient,
        serializer: ValueSerializer,
        auto_transaction: AutoTransactionBehavior = AutoTransactionBehavior.WHEN_NEEDED,
    ) -> None:
        self.client = client
        self.serializer = serializer
        self.auto_transaction = auto_transaction

    async def save_changes(self, change_set: ChangeSet) -> int:
        states = _entry_states(change_set)
        try:
            operations = plan_operations(change_set, self.serializer)
            affected = await self._execute(operations) if operations else 0
        except BaseException:
            _finish(change_set, succeeded=False, states=states)
            raise
        _finish(change_set, succeeded=True, states=states)
        return affected

    async def _execute(self, operations: list[Operation]) -> int:
        async with self.client.start_session() as session:
            if not should_start_transaction(self.auto_transaction, len(operations)):
                return await self._write_batches(session, operations)
            async with await AsyncTransaction.start(session) as transaction:
                affected = await self._write_batches(session, operations)
                await transaction.commit()
            return affected

    async def _write_batches(
        self, session: AsyncStorageSession, operations: list[Operation]
    ) -> int:
        affected = 0
        for batch in create_batches(operations):
            started = perf_counter()
            result = await session.bulk_write(batch.collection_name, batch.operations)
            _log_bulk_write(batch, result, started)
            affected += assert_writes_applied(batch, result)
        return affected
