"""Transaction scoping on a dedicated connection."""

from collections.abc import AsyncGenerator, Awaitable, Callable, Sequence
from contextlib import asynccontextmanager
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional, TypeVar

from mysqlhelper.exceptions import TransactionError
from mysqlhelper.observability import Signal, TransactionEvent
from mysqlhelper.utils.logging import get_logger

if TYPE_CHECKING:
    from mysqlhelper.core.result import QueryResult
    from mysqlhelper.driver._connection import ConnectionManager
    from mysqlhelper.observability import SignalBus
    from mysqlhelper.protocols import ConnectionProtocol, PoolProtocol

__all__ = ("Transaction", "TransactionCoordinator", "TransactionState")

logger = get_logger("driver.transaction")

T = TypeVar("T")


class TransactionState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class Transaction:
    """Handle owning one exclusive connection from ``begin`` to commit or rollback.

    The connection goes back to the pool (or is closed when standalone)
    exactly once, on the terminal commit or rollback path, even when the
    commit or rollback itself fails.
    """

    __slots__ = ("_connections", "_pool", "_released", "_signals", "connection", "state")

    def __init__(
        self,
        connection: "ConnectionProtocol",
        pool: "Optional[PoolProtocol]",
        connections: "ConnectionManager",
        signals: "SignalBus",
    ) -> None:
        self.connection = connection
        self.state = TransactionState.IDLE
        self._pool = pool
        self._connections = connections
        self._signals = signals
        self._released = False

    @property
    def thread_id(self) -> Optional[int]:
        return self.connection.thread_id

    async def begin(self) -> None:
        if self.state is not TransactionState.IDLE:
            msg = f"Cannot begin a transaction in state {self.state.value}"
            raise TransactionError(msg)
        try:
            await self.connection.begin()
        except BaseException:
            await self._release()
            raise
        self.state = TransactionState.ACTIVE
        self._signals.emit(Signal.TRANSACTION_STARTED, TransactionEvent(thread_id=self.thread_id))

    async def commit(self) -> None:
        self._require_active()
        try:
            await self.connection.commit()
        finally:
            await self._release()
        self.state = TransactionState.COMMITTED
        self._signals.emit(Signal.TRANSACTION_COMMITTED, TransactionEvent(thread_id=self.thread_id))

    async def rollback(self, error: Optional[BaseException] = None) -> None:
        self._require_active()
        try:
            await self.connection.rollback()
        finally:
            self.state = TransactionState.ROLLED_BACK
            await self._release()
        self._signals.emit(
            Signal.TRANSACTION_ROLLED_BACK,
            TransactionEvent(thread_id=self.thread_id, error=str(error) if error is not None else None),
        )

    async def execute(self, sql: str, params: "Sequence[Any]" = ()) -> "QueryResult":
        """Run one statement on the transaction's connection, bypassing cache and hooks."""
        self._require_active()
        return await self.connection.execute(sql, tuple(params))

    def _require_active(self) -> None:
        if self.state is not TransactionState.ACTIVE:
            msg = f"Transaction is not active (state: {self.state.value})"
            raise TransactionError(msg)

    async def _release(self) -> None:
        if self._released:
            return
        self._released = True
        await self._connections.release_dedicated(self.connection, self._pool)


class TransactionCoordinator:
    """Runs caller logic inside a transaction with commit-or-rollback semantics."""

    __slots__ = ("_connections", "_signals")

    def __init__(self, connections: "ConnectionManager", signals: "SignalBus") -> None:
        self._connections = connections
        self._signals = signals

    async def begin(self) -> Transaction:
        """Acquire a dedicated connection and open a transaction on it."""
        connection, pool = await self._connections.acquire_dedicated()
        transaction = Transaction(connection, pool, self._connections, self._signals)
        await transaction.begin()
        return transaction

    async def with_transaction(self, callback: "Callable[[ConnectionProtocol], Awaitable[T]]") -> T:
        """Run ``callback(connection)`` in a transaction.

        Commits and returns the callback's value on success. On failure the
        transaction is rolled back and a :class:`TransactionError` chained to
        the original error is raised. Cancellation also rolls back, and the
        cancellation error propagates unchanged.
        """
        transaction = await self.begin()
        try:
            value = await callback(transaction.connection)
        except Exception as exc:
            await self._rollback_quietly(transaction, exc)
            msg = f"Transaction failed: {exc}"
            raise TransactionError(msg) from exc
        except BaseException as exc:
            await self._rollback_quietly(transaction, exc)
            raise
        await transaction.commit()
        return value

    @asynccontextmanager
    async def transaction(self) -> "AsyncGenerator[ConnectionProtocol, None]":
        """Context manager form of :meth:`with_transaction`."""
        transaction = await self.begin()
        try:
            yield transaction.connection
        except Exception as exc:
            await self._rollback_quietly(transaction, exc)
            msg = f"Transaction failed: {exc}"
            raise TransactionError(msg) from exc
        except BaseException as exc:
            await self._rollback_quietly(transaction, exc)
            raise
        await transaction.commit()

    @staticmethod
    async def _rollback_quietly(transaction: Transaction, error: BaseException) -> None:
        try:
            await transaction.rollback(error)
        except Exception:
            logger.exception("Rollback failed on connection %s while handling: %s", transaction.thread_id, error)
