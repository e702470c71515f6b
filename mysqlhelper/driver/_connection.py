"""Connection lifecycle: pool creation, persistent connection, retrying connect."""

import asyncio
import logging
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, Optional

from mysqlhelper.exceptions import ConnectionError
from mysqlhelper.observability import ConnectionEvent, ConnectionRetryEvent, ConnectionTestEvent, PoolEvent, Signal
from mysqlhelper.utils.logging import get_logger, log_with_context

if TYPE_CHECKING:
    from mysqlhelper.config import MySQLConfig
    from mysqlhelper.core.result import PoolStatus
    from mysqlhelper.observability import SignalBus
    from mysqlhelper.protocols import ConnectionProtocol, DatabaseClientProtocol, PoolProtocol

__all__ = ("ConnectionManager",)

logger = get_logger("driver.connection")

SleepFunc = Callable[[float], Awaitable[Any]]


class ConnectionManager:
    """Owns the pool and the optional persistent connection.

    Connection resolution is pool-first: an existing pool is used, else the
    persistent connection, else a pool is created lazily. The persistent
    connection runs one statement at a time; concurrent callers queue on it.
    """

    __slots__ = ("_client", "_config", "_connection", "_connection_lock", "_pool", "_pool_lock", "_signals", "_sleep")

    def __init__(
        self,
        config: "MySQLConfig",
        client: "DatabaseClientProtocol",
        signals: "SignalBus",
        sleep: "Optional[SleepFunc]" = None,
    ) -> None:
        self._config = config
        self._client = client
        self._signals = signals
        self._sleep: SleepFunc = sleep or asyncio.sleep
        self._pool: Optional[PoolProtocol] = None
        self._connection: Optional[ConnectionProtocol] = None
        self._pool_lock = asyncio.Lock()
        self._connection_lock = asyncio.Lock()

    @property
    def pool(self) -> "Optional[PoolProtocol]":
        return self._pool

    @property
    def connection(self) -> "Optional[ConnectionProtocol]":
        return self._connection

    async def create_pool(self) -> "PoolProtocol":
        """Create the pool once; later calls return the existing pool."""
        async with self._pool_lock:
            if self._pool is None:
                self._pool = await self._client.create_pool(self._config)
                logger.info("Connection pool created (limit=%d)", self._config.connection_limit)
                self._signals.emit(Signal.POOL_CREATED, PoolEvent(connection_limit=self._config.connection_limit))
        return self._pool

    async def connect(self) -> "ConnectionProtocol":
        """Open the persistent connection, retrying on failure."""
        if self._connection is None:
            self._connection = await self.open_connection()
            self._signals.emit(Signal.CONNECTED, ConnectionEvent(thread_id=self._connection.thread_id))
        return self._connection

    async def open_connection(self) -> "ConnectionProtocol":
        """Open a new standalone connection.

        Attempts up to ``retry_attempts`` times, sleeping ``retry_delay * attempt``
        seconds between attempts.

        Raises:
            ConnectionError: When every attempt failed.
        """
        attempts = self._config.retry_attempts
        last_error: Optional[Exception] = None
        for attempt in range(1, attempts + 1):
            try:
                return await self._client.create_connection(self._config)
            except Exception as exc:
                last_error = exc
                if attempt >= attempts:
                    break
                log_with_context(
                    logger,
                    logging.WARNING,
                    "Connection attempt %d/%d failed: %s",
                    attempt,
                    attempts,
                    exc,
                    host=self._config.host,
                    attempt=attempt,
                )
                self._signals.emit(Signal.CONNECTION_RETRY, ConnectionRetryEvent(attempt=attempt, error=str(exc)))
                await self._sleep(self._config.retry_delay * attempt)
        msg = f"Failed to connect after {attempts} attempts: {last_error}"
        raise ConnectionError(msg, attempts=attempts) from last_error

    async def _acquire_from_pool(self, pool: "PoolProtocol") -> "ConnectionProtocol":
        connection = await pool.acquire()
        self._signals.emit(Signal.CONNECTION_ACQUIRED, ConnectionEvent(thread_id=connection.thread_id))
        return connection

    async def get_connection(self) -> "ConnectionProtocol":
        """Resolve a connection with the pool-first policy.

        Pooled connections must be handed back through :meth:`release_connection`.
        """
        if self._pool is not None:
            return await self._acquire_from_pool(self._pool)
        if self._connection is not None:
            return self._connection
        return await self._acquire_from_pool(await self.create_pool())

    async def release_connection(self, connection: "ConnectionProtocol") -> None:
        if connection is self._connection:
            return
        if self._pool is not None:
            await self._pool.release(connection)

    @asynccontextmanager
    async def provide_connection(self) -> "AsyncGenerator[ConnectionProtocol, None]":
        """Provide a connection for the duration of one statement."""
        connection = await self.get_connection()
        if connection is self._connection:
            async with self._connection_lock:
                yield connection
            return
        try:
            yield connection
        finally:
            await self.release_connection(connection)

    async def acquire_dedicated(self) -> "tuple[ConnectionProtocol, Optional[PoolProtocol]]":
        """Acquire a connection nobody else will use until it is released.

        Returns:
            The connection and the pool it came from, ``None`` for a standalone connection.
        """
        if self._pool is not None:
            return await self._acquire_from_pool(self._pool), self._pool
        return await self.open_connection(), None

    async def release_dedicated(self, connection: "ConnectionProtocol", pool: "Optional[PoolProtocol]") -> None:
        if pool is not None:
            await pool.release(connection)
        else:
            await connection.close()

    async def test_connection(self) -> bool:
        """Ping the database.

        Raises:
            ConnectionError: If no connection could be obtained or the ping failed.
        """
        try:
            async with self.provide_connection() as connection:
                await connection.ping()
        except Exception as exc:
            self._signals.emit(Signal.CONNECTION_TEST, ConnectionTestEvent(success=False, error=str(exc)))
            msg = f"Connection test failed: {exc}"
            raise ConnectionError(msg) from exc
        self._signals.emit(Signal.CONNECTION_TEST, ConnectionTestEvent(success=True))
        return True

    def pool_status(self) -> "Optional[PoolStatus]":
        return self._pool.status() if self._pool is not None else None

    async def close(self) -> None:
        if self._pool is not None:
            pool, self._pool = self._pool, None
            await pool.close()
            logger.info("Connection pool closed")
            self._signals.emit(Signal.POOL_CLOSED, PoolEvent(connection_limit=self._config.connection_limit))
        if self._connection is not None:
            connection, self._connection = self._connection, None
            await connection.close()
            self._signals.emit(Signal.CONNECTION_CLOSED, ConnectionEvent(thread_id=connection.thread_id))
