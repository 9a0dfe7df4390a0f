"""Transaction state machine wrapping a storage session.

States move ``ACTIVE -> COMMITTING -> COMMITTED`` or
``ACTIVE -> ROLLING_BACK -> ROLLED_BACK``; an error while committing or rolling
back, cancellation included, ends in ``FAILED``. Disposal is only allowed from a
terminal state. Used as a context manager, a transaction that is still active
when the block exits is rolled back, and the transaction is always disposed on
exit.
"""

from __future__ import annotations

from logging import getLogger
from time import perf_counter
from typing import TYPE_CHECKING, Literal
from uuid import UUID, uuid4

from docwriter.domain.errors import InvalidTransactionStateError
from docwriter.domain.model import TransactionState

if TYPE_CHECKING:
    from types import TracebackType

    from docwriter.domain.ports import AsyncStorageSession, StorageSession

log = getLogger(__name__)

_TERMINAL_STATES = (
    TransactionState.COMMITTED,
    TransactionState.ROLLED_BACK,
    TransactionState.FAILED,
)


def _elapsed_ms(started: float) -> float:
    return (perf_counter() - started) * 1000


class _TransactionStateMachine:
    def __init__(self, transaction_id: UUID) -> None:
        self.transaction_id = transaction_id
        self._state = TransactionState.ACTIVE

    @property
    def state(self) -> TransactionState:
        return self._state

    def _assert_state(self, action: str, *valid_states: TransactionState) -> None:
        if self._state not in valid_states:
            raise InvalidTransactionStateError(
                f"Can not {action} transaction {self.transaction_id} because it is {self._state}."
            )

    def _begin(self, action: str, transitional: TransactionState) -> float:
        self._assert_state(action, TransactionState.ACTIVE)
        self._state = transitional
        log.debug(
            "%s transaction %s", transitional.replace("_", " ").capitalize(), self.transaction_id
        )
        return perf_counter()

    def _succeed(self, final: TransactionState, started: float) -> None:
        self._state = final
        log.debug(
            "Transaction %s %s in %.1fms",
            self.transaction_id,
            final.replace("_", " "),
            _elapsed_ms(started),
        )

    def _fail(self, action: str, started: float) -> None:
        self._state = TransactionState.FAILED
        log.warning(
            "Error during %s of transaction %s after %.1fms",
            action,
            self.transaction_id,
            _elapsed_ms(started),
            exc_info=True,
        )

    def dispose(self) -> None:
        self._assert_state("dispose", *_TERMINAL_STATES)
        self._state = TransactionState.DISPOSED

    def _release(self) -> None:
        if self._state in _TERMINAL_STATES:
            self.dispose()


def _log_starting(transaction_id: UUID) -> float:
    log.info("Beginning transaction %s", transaction_id)
    return perf_counter()


def _log_started(transaction_id: UUID, started: float, *, is_async: bool) -> None:
    log.debug(
        "Began %stransaction %s in %.1fms",
        "async " if is_async else "",
        transaction_id,
        _elapsed_ms(started),
    )


class Transaction(_TransactionStateMachine):
    def __init__(self, session: StorageSession, transaction_id: UUID) -> None:
        super().__init__(transaction_id)
        self.session = session

    @classmethod
    def start(cls, session: StorageSession) -> Transaction:
        """Start a transaction on ``session``.

        Storage adapters raise ``TransactionUnsupportedError`` here when the topology
        cannot run transactions, before anything has been written.
        """

        transaction_id = uuid4()
        started = _log_starting(transaction_id)
        session.start_transaction()
        _log_started(transaction_id, started, is_async=False)
        return cls(session, transaction_id)

    def commit(self) -> None:
        started = self._begin("commit", TransactionState.COMMITTING)
        try:
            self.session.commit_transaction()
        except BaseException:
            self._fail("commit", started)
            raise
        self._succeed(TransactionState.COMMITTED, started)

    def rollback(self) -> None:
        started = self._begin("rollback", TransactionState.ROLLING_BACK)
        try:
            self.session.abort_transaction()
        except BaseException:
            self._fail("rollback", started)
            raise
        self._succeed(TransactionState.ROLLED_BACK, started)

    def __enter__(self) -> Transaction:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if self.state is TransactionState.ACTIVE:
            try:
                self.rollback()
            except Exception:  # noqa: BLE001
                # already logged by _fail; the original exception propagates
                pass
        self._release()
        return False


class AsyncTransaction(_TransactionStateMachine):
    def __init__(self, session: AsyncStorageSession, transaction_id: UUID) -> None:
        super().__init__(transaction_id)
        self.session = session

    @classmethod
    async def start(cls, session: AsyncStorageSession) -> AsyncTransaction:
        transaction_id = uuid4()
        started = _log_starting(transaction_id)
        await session.start_transaction()
        _log_started(transaction_id, started, is_async=True)
        return cls(session, transaction_id)

    async def commit(self) -> None:
        started = self._begin("commit", TransactionState.COMMITTING)
        try:
            await self.session.commit_transaction()
        except BaseException:
            self._fail("commit", started)
            raise
        self._succeed(TransactionState.COMMITTED, started)

    async def rollback(self) -> None:
        started = self._begin("rollback", TransactionState.ROLLING_BACK)
        try:
            await self.session.abort_transaction()
        except BaseException:
            self._fail("rollback", started)
            raise
        self._succeed(TransactionState.ROLLED_BACK, started)

    async def __aenter__(self) -> AsyncTransaction:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        # also reached on cancellation; the rollback is awaited before CancelledError propagates
        if self.state is TransactionState.ACTIVE:
            try:
                await self.rollback()
            except Exception:  # noqa: BLE001
                pass
        self._release()
        return False
