"""Runtime-checkable protocols describing the database client capability.

The execution pipeline only talks to these protocols. The asyncmy adapter is
the production implementation; tests plug in doubles.
"""

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from mysqlhelper.config import MySQLConfig
    from mysqlhelper.core.result import PoolStatus, QueryResult

__all__ = ("ConnectionProtocol", "DatabaseClientProtocol", "PoolProtocol")


@runtime_checkable
class ConnectionProtocol(Protocol):
    """A single database connection."""

    @property
    def thread_id(self) -> Optional[int]:
        """Server-side connection identifier, when the driver exposes one."""
        ...

    async def execute(self, sql: str, params: "Sequence[Any]") -> "QueryResult":
        """Execute one statement written with ``?`` placeholders."""
        ...

    async def begin(self) -> None: ...

    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...

    async def ping(self) -> None: ...

    async def close(self) -> None: ...


@runtime_checkable
class PoolProtocol(Protocol):
    """A connection pool."""

    async def acquire(self) -> ConnectionProtocol: ...

    async def release(self, connection: ConnectionProtocol) -> None: ...

    async def close(self) -> None: ...

    def status(self) -> "PoolStatus": ...


@runtime_checkable
class DatabaseClientProtocol(Protocol):
    """Factory for pools and standalone connections."""

    async def create_pool(self, config: "MySQLConfig") -> PoolProtocol: ...

    async def create_connection(self, config: "MySQLConfig") -> ConnectionProtocol: ...
