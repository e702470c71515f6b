"""aiosqlite-backed implementation of the database client protocols.

Gives the suites real SQL semantics (transactions, LIMIT/OFFSET, aggregates)
without a MySQL server. Connections run in autocommit mode and transactions
are opened with an explicit ``BEGIN``, like the asyncmy adapter.
"""

import asyncio
import itertools
from collections.abc import Sequence
from datetime import date, datetime
from typing import Any, Optional

import aiosqlite

from mysqlhelper.config import MySQLConfig
from mysqlhelper.core.result import PoolStatus, QueryResult

__all__ = ("SqliteClient", "SqliteConnection", "SqlitePool")

_thread_ids = itertools.count(1)


def _coerce(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


class SqliteConnection:
    def __init__(self, connection: aiosqlite.Connection) -> None:
        self._connection = connection
        self._thread_id = next(_thread_ids)
        self.closed = False
        self.statements: list[str] = []

    @property
    def thread_id(self) -> int:
        return self._thread_id

    async def execute(self, sql: str, params: Sequence[Any]) -> QueryResult:
        self.statements.append(sql)
        cursor = await self._connection.execute(sql, tuple(_coerce(value) for value in params))
        try:
            if cursor.description:
                column_names = [column[0] for column in cursor.description]
                rows = [dict(zip(column_names, row)) for row in await cursor.fetchall()]
                return QueryResult(rows=rows, column_names=column_names, affected_rows=len(rows))
            return QueryResult(affected_rows=max(cursor.rowcount, 0), last_insert_id=cursor.lastrowid or None)
        finally:
            await cursor.close()

    async def begin(self) -> None:
        await self._connection.execute("BEGIN")

    async def commit(self) -> None:
        await self._connection.execute("COMMIT")

    async def rollback(self) -> None:
        await self._connection.execute("ROLLBACK")

    async def ping(self) -> None:
        await self._connection.execute("SELECT 1")

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            await self._connection.close()


async def _open(database: str) -> SqliteConnection:
    connection = await aiosqlite.connect(database, isolation_level=None)
    return SqliteConnection(connection)


class SqlitePool:
    def __init__(self, database: str, connection_limit: int) -> None:
        self._database = database
        self._limit = connection_limit
        self._semaphore = asyncio.Semaphore(connection_limit)
        self._free: list[SqliteConnection] = []
        self._all: list[SqliteConnection] = []
        self.released = 0

    async def acquire(self) -> SqliteConnection:
        await self._semaphore.acquire()
        if self._free:
            return self._free.pop()
        connection = await _open(self._database)
        self._all.append(connection)
        return connection

    async def release(self, connection: SqliteConnection) -> None:
        self.released += 1
        self._free.append(connection)
        self._semaphore.release()

    async def close(self) -> None:
        for connection in self._all:
            await connection.close()
        self._all.clear()
        self._free.clear()

    def status(self) -> PoolStatus:
        return PoolStatus(
            total_connections=len(self._all),
            free_connections=len(self._free),
            queued_requests=0,
            connection_limit=self._limit,
            queue_limit=0,
        )


class SqliteClient:
    """Client double; ``fail_connects`` makes the next N standalone connects fail."""

    def __init__(self, database: str, fail_connects: int = 0) -> None:
        self.database = database
        self.fail_connects = fail_connects
        self.connect_attempts = 0
        self.pool: Optional[SqlitePool] = None
        self.standalone: list[SqliteConnection] = []

    async def create_pool(self, config: MySQLConfig) -> SqlitePool:
        self.pool = SqlitePool(self.database, config.connection_limit)
        return self.pool

    async def create_connection(self, config: MySQLConfig) -> SqliteConnection:
        self.connect_attempts += 1
        if self.fail_connects > 0:
            self.fail_connects -= 1
            msg = "connection refused"
            raise OSError(msg)
        connection = await _open(self.database)
        self.standalone.append(connection)
        return connection
