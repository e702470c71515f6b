"""Unit tests for the transaction coordinator."""

import asyncio
import logging
from typing import Any
from unittest.mock import AsyncMock

import pytest

from mysqlhelper.config import MySQLConfig
from mysqlhelper.driver import ConnectionManager, TransactionCoordinator, TransactionState
from mysqlhelper.exceptions import TransactionError
from mysqlhelper.observability import Signal, SignalBus

pytestmark = pytest.mark.anyio


@pytest.fixture
def connection() -> AsyncMock:
    mock_connection = AsyncMock()
    mock_connection.thread_id = 11
    return mock_connection


@pytest.fixture
def pool(connection: AsyncMock) -> AsyncMock:
    mock_pool = AsyncMock()
    mock_pool.acquire.return_value = connection
    return mock_pool


@pytest.fixture
def signals() -> SignalBus:
    return SignalBus()


@pytest.fixture
def events(signals: SignalBus) -> list[tuple[Signal, Any]]:
    received: list[tuple[Signal, Any]] = []
    signals.subscribe_all(lambda signal, payload: received.append((signal, payload)))
    return received


@pytest.fixture
async def coordinator(pool: AsyncMock, connection: AsyncMock, signals: SignalBus) -> TransactionCoordinator:
    client = AsyncMock()
    client.create_pool.return_value = pool
    client.create_connection.return_value = connection
    manager = ConnectionManager(MySQLConfig(), client, signals)
    await manager.create_pool()
    return TransactionCoordinator(manager, signals)


def _transaction_signals(events: list[tuple[Signal, Any]]) -> list[Signal]:
    return [signal for signal, _ in events if signal.value.startswith("transaction_")]


async def test_commit_path(
    coordinator: TransactionCoordinator, connection: AsyncMock, pool: AsyncMock, events: list
) -> None:
    async def work(conn: Any) -> str:
        await conn.execute("INSERT INTO t (a) VALUES (?)", (1,))
        return "done"

    assert await coordinator.with_transaction(work) == "done"

    connection.begin.assert_awaited_once()
    connection.commit.assert_awaited_once()
    connection.rollback.assert_not_awaited()
    pool.release.assert_awaited_once_with(connection)
    assert _transaction_signals(events) == [Signal.TRANSACTION_STARTED, Signal.TRANSACTION_COMMITTED]


async def test_rollback_path_wraps_error(
    coordinator: TransactionCoordinator, connection: AsyncMock, pool: AsyncMock, events: list
) -> None:
    original = ValueError("insufficient funds")

    async def work(conn: Any) -> None:
        raise original

    with pytest.raises(TransactionError) as exc_info:
        await coordinator.with_transaction(work)

    assert exc_info.value.__cause__ is original
    assert "insufficient funds" in str(exc_info.value)
    connection.rollback.assert_awaited_once()
    connection.commit.assert_not_awaited()
    pool.release.assert_awaited_once_with(connection)
    assert _transaction_signals(events) == [Signal.TRANSACTION_STARTED, Signal.TRANSACTION_ROLLED_BACK]
    rolled_back = [payload for signal, payload in events if signal is Signal.TRANSACTION_ROLLED_BACK]
    assert rolled_back[0].error == "insufficient funds"


async def test_rollback_failure_does_not_mask_original(
    coordinator: TransactionCoordinator, connection: AsyncMock, pool: AsyncMock, caplog: pytest.LogCaptureFixture
) -> None:
    connection.rollback.side_effect = OSError("connection lost")
    original = ValueError("bad data")

    async def work(conn: Any) -> None:
        raise original

    with caplog.at_level(logging.ERROR, logger="mysqlhelper"):
        with pytest.raises(TransactionError) as exc_info:
            await coordinator.with_transaction(work)

    assert exc_info.value.__cause__ is original
    pool.release.assert_awaited_once_with(connection)
    assert any("Rollback failed" in record.getMessage() for record in caplog.records)


async def test_commit_failure_still_releases(
    coordinator: TransactionCoordinator, connection: AsyncMock, pool: AsyncMock
) -> None:
    connection.commit.side_effect = OSError("commit failed")

    async def work(conn: Any) -> int:
        return 1

    with pytest.raises(OSError):
        await coordinator.with_transaction(work)

    pool.release.assert_awaited_once_with(connection)


async def test_context_manager_form(
    coordinator: TransactionCoordinator, connection: AsyncMock, pool: AsyncMock
) -> None:
    async with coordinator.transaction() as conn:
        await conn.execute("UPDATE t SET a = ?", (2,))

    connection.commit.assert_awaited_once()

    with pytest.raises(TransactionError):
        async with coordinator.transaction():
            raise KeyError("missing")

    connection.rollback.assert_awaited_once()
    assert pool.release.await_count == 2


async def test_manual_handle(coordinator: TransactionCoordinator, connection: AsyncMock, pool: AsyncMock) -> None:
    transaction = await coordinator.begin()
    assert transaction.state is TransactionState.ACTIVE

    await transaction.execute("DELETE FROM t WHERE id = ?", [1])
    await transaction.rollback()

    assert transaction.state is TransactionState.ROLLED_BACK
    connection.execute.assert_awaited_once_with("DELETE FROM t WHERE id = ?", (1,))
    with pytest.raises(TransactionError):
        await transaction.commit()
    pool.release.assert_awaited_once_with(connection)


async def test_standalone_connection_closed_without_pool(signals: SignalBus, connection: AsyncMock) -> None:
    client = AsyncMock()
    client.create_connection.return_value = connection
    coordinator = TransactionCoordinator(ConnectionManager(MySQLConfig(), client, signals), signals)

    async def work(conn: Any) -> None:
        return None

    await coordinator.with_transaction(work)

    client.create_pool.assert_not_awaited()
    connection.close.assert_awaited_once()


async def test_cancelled_callback_rolls_back_and_releases(
    coordinator: TransactionCoordinator, connection: AsyncMock, pool: AsyncMock, events: list
) -> None:
    started = asyncio.Event()

    async def work(conn: Any) -> None:
        started.set()
        await asyncio.sleep(10)

    task = asyncio.create_task(coordinator.with_transaction(work))
    await started.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task

    connection.rollback.assert_awaited_once()
    connection.commit.assert_not_awaited()
    pool.release.assert_awaited_once_with(connection)
    assert _transaction_signals(events) == [Signal.TRANSACTION_STARTED, Signal.TRANSACTION_ROLLED_BACK]


async def test_cancelled_context_manager_rolls_back_and_releases(
    coordinator: TransactionCoordinator, connection: AsyncMock, pool: AsyncMock
) -> None:
    started = asyncio.Event()

    async def work() -> None:
        async with coordinator.transaction():
            started.set()
            await asyncio.sleep(10)

    task = asyncio.create_task(work())
    await started.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task

    connection.rollback.assert_awaited_once()
    pool.release.assert_awaited_once_with(connection)
