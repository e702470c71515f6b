"""AsyncMy implementation of the database client protocols.

Wraps asyncmy pools and connections so the execution pipeline sees dict rows,
``?`` placeholders and explicit transaction boundaries.
"""

import inspect
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Optional

import asyncmy
from asyncmy.cursors import DictCursor  # pyright: ignore

from mysqlhelper.adapters.asyncmy.config import build_connection_config, build_pool_config
from mysqlhelper.core.result import PoolStatus, QueryResult
from mysqlhelper.core.statement import to_pyformat
from mysqlhelper.exceptions import ConnectionError
from mysqlhelper.utils.logging import get_logger
from mysqlhelper.utils.serializers import to_json

if TYPE_CHECKING:
    from asyncmy.connection import Connection  # pyright: ignore
    from asyncmy.pool import Pool  # pyright: ignore

    from mysqlhelper.config import MySQLConfig

__all__ = ("AsyncmyClient", "AsyncmyConnection", "AsyncmyCursor", "AsyncmyPool", "coerce_parameter")

logger = get_logger("adapters.asyncmy")


async def _maybe_await(outcome: Any) -> None:
    if inspect.isawaitable(outcome):
        await outcome


def coerce_parameter(value: Any) -> Any:
    """Convert Python values asyncmy cannot bind natively."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (dict, list)):
        return to_json(value)
    return value


class AsyncmyCursor:
    """Context manager for AsyncMy dict-cursor operations."""

    __slots__ = ("connection", "cursor")

    def __init__(self, connection: "Connection") -> None:
        self.connection = connection
        self.cursor: Optional[DictCursor] = None

    async def __aenter__(self) -> DictCursor:
        self.cursor = self.connection.cursor(DictCursor)
        return self.cursor

    async def __aexit__(self, *_: Any) -> None:
        if self.cursor is not None:
            await self.cursor.close()


class AsyncmyConnection:
    """One asyncmy connection, either checked out of a pool or standalone."""

    __slots__ = ("_connection", "_pooled")

    def __init__(self, connection: "Connection", pooled: bool = False) -> None:
        self._connection = connection
        self._pooled = pooled

    @property
    def raw(self) -> "Connection":
        return self._connection

    @property
    def pooled(self) -> bool:
        return self._pooled

    @property
    def thread_id(self) -> Optional[int]:
        server_thread_id = getattr(self._connection, "server_thread_id", None)
        if isinstance(server_thread_id, (tuple, list)):
            return server_thread_id[0] if server_thread_id else None
        return server_thread_id

    async def execute(self, sql: str, params: "Sequence[Any]") -> QueryResult:
        args = tuple(coerce_parameter(value) for value in params) if params else None
        query = to_pyformat(sql) if args else sql
        async with AsyncmyCursor(self._connection) as cursor:
            await cursor.execute(query, args)
            if cursor.description:
                fetched = await cursor.fetchall()
                column_names = [desc[0] for desc in cursor.description]
                rows = [row if isinstance(row, dict) else dict(zip(column_names, row)) for row in fetched or []]
                return QueryResult(rows=rows, column_names=column_names, affected_rows=len(rows))
            affected_rows = cursor.rowcount if cursor.rowcount is not None and cursor.rowcount >= 0 else 0
            last_id = cursor.lastrowid or None
            return QueryResult(affected_rows=affected_rows, last_insert_id=last_id)

    async def begin(self) -> None:
        async with AsyncmyCursor(self._connection) as cursor:
            await cursor.execute("BEGIN")

    async def commit(self) -> None:
        await self._connection.commit()

    async def rollback(self) -> None:
        await self._connection.rollback()

    async def ping(self) -> None:
        await self._connection.ping(reconnect=False)

    async def close(self) -> None:
        await self._connection.ensure_closed()


class AsyncmyPool:
    """asyncmy pool honouring the ``wait_for_connections`` and ``queue_limit`` policy."""

    __slots__ = ("_pool", "_queue_limit", "_wait_for_connections", "_waiting")

    def __init__(self, pool: "Pool", wait_for_connections: bool = True, queue_limit: int = 0) -> None:
        self._pool = pool
        self._wait_for_connections = wait_for_connections
        self._queue_limit = queue_limit
        self._waiting = 0

    @property
    def raw(self) -> "Pool":
        return self._pool

    def _is_exhausted(self) -> bool:
        return self._pool.freesize == 0 and self._pool.size >= self._pool.maxsize

    async def acquire(self) -> AsyncmyConnection:
        if self._is_exhausted():
            if not self._wait_for_connections:
                msg = "No free connection available in the pool"
                raise ConnectionError(msg)
            if self._queue_limit and self._waiting >= self._queue_limit:
                msg = f"Connection queue limit of {self._queue_limit} reached"
                raise ConnectionError(msg)
        self._waiting += 1
        try:
            connection = await self._pool.acquire()
        finally:
            self._waiting -= 1
        return AsyncmyConnection(connection, pooled=True)

    async def release(self, connection: AsyncmyConnection) -> None:  # type: ignore[override]
        await _maybe_await(self._pool.release(connection.raw))

    async def close(self) -> None:
        self._pool.close()
        await self._pool.wait_closed()

    def status(self) -> PoolStatus:
        return PoolStatus(
            total_connections=self._pool.size,
            free_connections=self._pool.freesize,
            queued_requests=self._waiting,
            connection_limit=self._pool.maxsize,
            queue_limit=self._queue_limit,
        )


class AsyncmyClient:
    """Database client backed by asyncmy."""

    __slots__ = ()

    async def create_pool(self, config: "MySQLConfig") -> AsyncmyPool:
        pool_config = build_pool_config(config)
        logger.debug("Creating asyncmy pool for %s:%s", config.host, config.port)
        pool = await asyncmy.create_pool(**pool_config)
        return AsyncmyPool(pool, wait_for_connections=config.wait_for_connections, queue_limit=config.queue_limit)

    async def create_connection(self, config: "MySQLConfig") -> AsyncmyConnection:
        connection_config = build_connection_config(config)
        connection = await asyncmy.connect(**connection_config)
        return AsyncmyConnection(connection)
