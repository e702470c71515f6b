"""The :class:`MySQLHelper` facade."""

from collections.abc import AsyncIterator, Awaitable, Callable, Mapping, Sequence
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional, TypeVar, Union

from mysqlhelper.adapters.asyncmy import AsyncmyClient
from mysqlhelper.builder import (
    QueryBuilder,
    build_aggregate,
    build_analyze_table,
    build_call_procedure,
    build_create_index,
    build_create_procedure,
    build_delete,
    build_describe_table,
    build_drop_index,
    build_drop_procedure,
    build_index_exists,
    build_insert,
    build_insert_many,
    build_list_indexes,
    build_list_procedures,
    build_optimize_table,
    build_procedure_exists,
    build_select,
    build_show_tables,
    build_table_exists,
    build_truncate_table,
    build_update,
    build_upsert,
)
from mysqlhelper.config import MySQLConfig
from mysqlhelper.core.hooks import HookPipeline, HookStage, MutationContext
from mysqlhelper.core.result import (
    DeleteResult,
    IndexInfo,
    InsertResult,
    PaginatedResult,
    PaginationMeta,
    UpdateResult,
)
from mysqlhelper.core.statement import Statement
from mysqlhelper.driver import BatchCoordinator, ConnectionManager, QueryExecutor, TransactionCoordinator
from mysqlhelper.exceptions import QueryExecutionError, ValidationError
from mysqlhelper.observability import MaintenanceEvent, MaintenanceOperation, ProcedureCallEvent, Signal, SignalBus
from mysqlhelper.utils.logging import get_logger

if TYPE_CHECKING:
    from types import TracebackType

    from mysqlhelper.builder import AggregateFunction
    from mysqlhelper.core.cache import CacheStats
    from mysqlhelper.core.hooks import HookCallback
    from mysqlhelper.core.query_log import QueryLogEntry
    from mysqlhelper.core.result import BatchInsertResult, PoolStatus, QueryResult, Row
    from mysqlhelper.driver import ProgressCallback, Transaction, UpdateBatch
    from mysqlhelper.observability import SignalCallback
    from mysqlhelper.protocols import ConnectionProtocol, DatabaseClientProtocol, PoolProtocol

__all__ = ("MySQLHelper",)

logger = get_logger("helper")

T = TypeVar("T")
R = TypeVar("R")

Columns = Union[str, Sequence[str]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MySQLHelper:
    """Async MySQL access with caching, hooks, transactions and batching.

    Example:
        >>> async with MySQLHelper(MySQLConfig(user="app", database="shop")) as db:
        ...     await db.insert("users", {"name": "Ada"})
        ...     users = await db.select("users", where={"name": "Ada"})
    """

    __slots__ = ("_batches", "_clock", "_connections", "_executor", "_transactions", "config", "hooks", "signals")

    def __init__(
        self,
        config: "Union[MySQLConfig, Mapping[str, Any], None]" = None,
        client: "Optional[DatabaseClientProtocol]" = None,
        *,
        clock: "Optional[Callable[[], datetime]]" = None,
    ) -> None:
        """Create the helper; no connection is opened until first use.

        Args:
            config: A :class:`MySQLConfig` or a mapping accepted by :meth:`MySQLConfig.from_mapping`.
            client: Database client; defaults to the asyncmy client.
            clock: Source of the values written by automatic timestamps.
        """
        self.config = config if isinstance(config, MySQLConfig) else MySQLConfig.from_mapping(config or {})
        self.signals = SignalBus()
        self.hooks = HookPipeline()
        self._clock = clock or _utcnow
        self._connections = ConnectionManager(self.config, client or AsyncmyClient(), self.signals)
        self._executor = QueryExecutor(
            self._connections,
            self.hooks,
            self.signals,
            cache_enabled=self.config.cache,
            cache_ttl=self.config.cache_ttl,
            log_queries=self.config.log_queries,
        )
        self._transactions = TransactionCoordinator(self._connections, self.signals)
        self._batches = BatchCoordinator(self.signals, self.insert_many, self.update)

    async def __aenter__(self) -> "MySQLHelper":
        return self

    async def __aexit__(
        self,
        exc_type: "Optional[type[BaseException]]",
        exc_val: "Optional[BaseException]",
        exc_tb: "Optional[TracebackType]",
    ) -> None:
        await self.close()

    @property
    def executor(self) -> QueryExecutor:
        return self._executor

    # Connection management

    async def create_pool(self) -> "PoolProtocol":
        return await self._connections.create_pool()

    async def connect(self) -> "ConnectionProtocol":
        """Open the persistent connection used when no pool exists."""
        return await self._connections.connect()

    async def get_connection(self) -> "ConnectionProtocol":
        """Resolve a connection; hand pooled ones back with :meth:`release_connection`."""
        return await self._connections.get_connection()

    async def release_connection(self, connection: "ConnectionProtocol") -> None:
        await self._connections.release_connection(connection)

    async def test_connection(self) -> bool:
        return await self._connections.test_connection()

    async def close(self) -> None:
        """Close the pool and the persistent connection, and drop every cached result."""
        await self._connections.close()
        self._executor.cache.clear()

    # Hooks and signals

    def add_hook(self, stage: "Union[HookStage, str]", callback: "HookCallback") -> None:
        self.hooks.add(stage, callback)

    def remove_hook(self, stage: "Union[HookStage, str]", callback: "HookCallback") -> None:
        self.hooks.remove(stage, callback)

    def on(self, signal: "Union[Signal, str]", callback: "SignalCallback") -> "SignalCallback":
        return self.signals.subscribe(signal, callback)

    def off(self, signal: "Union[Signal, str]", callback: "SignalCallback") -> None:
        self.signals.unsubscribe(signal, callback)

    # Queries

    async def query(
        self,
        sql: str,
        params: "Optional[Sequence[Any]]" = None,
        *,
        cache: Optional[bool] = None,
        cache_ttl: Optional[float] = None,
    ) -> "QueryResult":
        """Run a statement with ``?`` placeholders through the execution pipeline."""
        return await self._executor.execute(Statement.of(sql, params), cache=cache, cache_ttl=cache_ttl)

    def query_builder(self) -> QueryBuilder:
        return QueryBuilder(self._executor)

    async def _write(self, statement: Statement) -> "QueryResult":
        return await self._executor.execute(statement, cache=False)

    # CRUD

    def _with_timestamps(self, data: "Mapping[str, Any]", *, is_update: bool, now: datetime) -> dict[str, Any]:
        stamped = dict(data)
        if not self.config.timestamps:
            return stamped
        created_at = self.config.created_at_column
        updated_at = self.config.updated_at_column
        if not is_update and created_at and stamped.get(created_at) is None:
            stamped[created_at] = now
        if updated_at and stamped.get(updated_at) is None:
            stamped[updated_at] = now
        return stamped

    async def select(
        self,
        table: str,
        columns: Columns = "*",
        where: "Optional[Mapping[str, Any]]" = None,
        order_by: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        group_by: Optional[str] = None,
        having: Optional[str] = None,
        *,
        cache: Optional[bool] = None,
        cache_ttl: Optional[float] = None,
    ) -> "list[Row]":
        statement = build_select(table, columns, where, order_by, limit, offset, group_by, having)
        return list(await self._executor.execute(statement, cache=cache, cache_ttl=cache_ttl))

    async def insert(self, table: str, data: "Mapping[str, Any]", *, skip_timestamps: bool = False) -> InsertResult:
        row = dict(data) if skip_timestamps else self._with_timestamps(data, is_update=False, now=self._clock())
        statement = build_insert(table, row)
        await self.hooks.run(HookStage.BEFORE_MUTATE, MutationContext("insert", table, data=row))
        result = await self._write(statement)
        insert_result = InsertResult(insert_id=result.last_insert_id, affected_rows=result.affected_rows)
        await self.hooks.run(
            HookStage.AFTER_MUTATE, MutationContext("insert", table, data=row, result=insert_result)
        )
        return insert_result

    async def insert_many(
        self, table: str, rows: "Sequence[Mapping[str, Any]]", *, skip_timestamps: bool = False
    ) -> InsertResult:
        """Insert every row with one multi-row ``INSERT``.

        ``insert_id`` is the id generated for the first row.

        Raises:
            ValidationError: If ``rows`` is empty or a row's columns differ from the first row's.
        """
        if not rows:
            msg = "Data array cannot be empty"
            raise ValidationError(msg)
        if skip_timestamps:
            prepared = [dict(row) for row in rows]
        else:
            now = self._clock()
            prepared = [self._with_timestamps(row, is_update=False, now=now) for row in rows]
        statement = build_insert_many(table, prepared)
        await self.hooks.run(HookStage.BEFORE_MUTATE, MutationContext("insert_many", table, data=prepared))
        result = await self._write(statement)
        insert_result = InsertResult(insert_id=result.last_insert_id, affected_rows=result.affected_rows)
        await self.hooks.run(
            HookStage.AFTER_MUTATE, MutationContext("insert_many", table, data=prepared, result=insert_result)
        )
        return insert_result

    async def upsert(
        self,
        table: str,
        data: "Mapping[str, Any]",
        update_fields: "Optional[Sequence[str]]" = None,
        *,
        skip_timestamps: bool = False,
    ) -> InsertResult:
        """``INSERT ... ON DUPLICATE KEY UPDATE``.

        Without ``update_fields`` every inserted column except the created-at
        column is overwritten on conflict.
        """
        row = dict(data) if skip_timestamps else self._with_timestamps(data, is_update=False, now=self._clock())
        exclude = (self.config.created_at_column,) if self.config.created_at_column else ()
        statement = build_upsert(table, row, update_fields, exclude=exclude)
        await self.hooks.run(HookStage.BEFORE_MUTATE, MutationContext("upsert", table, data=row))
        result = await self._write(statement)
        insert_result = InsertResult(insert_id=result.last_insert_id, affected_rows=result.affected_rows)
        await self.hooks.run(
            HookStage.AFTER_MUTATE, MutationContext("upsert", table, data=row, result=insert_result)
        )
        return insert_result

    async def update(
        self,
        table: str,
        data: "Mapping[str, Any]",
        where: "Mapping[str, Any]",
        *,
        skip_timestamps: bool = False,
    ) -> UpdateResult:
        """Update the rows matching ``where``.

        Raises:
            ValidationError: If ``data`` or ``where`` is empty.
        """
        values = dict(data) if skip_timestamps else self._with_timestamps(data, is_update=True, now=self._clock())
        statement = build_update(table, values, where)
        await self.hooks.run(HookStage.BEFORE_MUTATE, MutationContext("update", table, data=values, where=where))
        result = await self._write(statement)
        update_result = UpdateResult(affected_rows=result.affected_rows, changed_rows=result.affected_rows)
        await self.hooks.run(
            HookStage.AFTER_MUTATE,
            MutationContext("update", table, data=values, where=where, result=update_result),
        )
        return update_result

    async def delete(self, table: str, where: "Mapping[str, Any]") -> DeleteResult:
        """Delete the rows matching ``where``.

        Raises:
            ValidationError: If ``where`` is empty.
        """
        statement = build_delete(table, where)
        await self.hooks.run(HookStage.BEFORE_MUTATE, MutationContext("delete", table, where=where))
        result = await self._write(statement)
        delete_result = DeleteResult(affected_rows=result.affected_rows)
        await self.hooks.run(
            HookStage.AFTER_MUTATE, MutationContext("delete", table, where=where, result=delete_result)
        )
        return delete_result

    async def find_by_id(self, table: str, id_value: Any, id_column: str = "id") -> "Optional[Row]":
        return await self.find_one(table, {id_column: id_value})

    async def find_one(self, table: str, where: "Mapping[str, Any]") -> "Optional[Row]":
        rows = await self.select(table, where=where, limit=1)
        return rows[0] if rows else None

    async def exists(self, table: str, where: "Optional[Mapping[str, Any]]" = None) -> bool:
        return await self.count(table, where) > 0

    # Aggregates

    async def _aggregate(
        self, function: "AggregateFunction", table: str, column: str, where: "Optional[Mapping[str, Any]]"
    ) -> Any:
        statement, alias = build_aggregate(function, table, column, where)
        result = await self._executor.execute(statement)
        return result.scalar(alias)

    async def count(self, table: str, where: "Optional[Mapping[str, Any]]" = None) -> int:
        return int(await self._aggregate("COUNT", table, "*", where) or 0)

    async def sum(self, table: str, column: str, where: "Optional[Mapping[str, Any]]" = None) -> Any:
        """Sum of ``column``; 0 when no row matched."""
        value = await self._aggregate("SUM", table, column, where)
        return 0 if value is None else value

    async def avg(self, table: str, column: str, where: "Optional[Mapping[str, Any]]" = None) -> Any:
        """Average of ``column``; 0 when no row matched."""
        value = await self._aggregate("AVG", table, column, where)
        return 0 if value is None else value

    async def min(self, table: str, column: str, where: "Optional[Mapping[str, Any]]" = None) -> Any:
        return await self._aggregate("MIN", table, column, where)

    async def max(self, table: str, column: str, where: "Optional[Mapping[str, Any]]" = None) -> Any:
        return await self._aggregate("MAX", table, column, where)

    # Pagination

    async def paginate(
        self,
        table: str,
        page: int = 1,
        per_page: int = 10,
        where: "Optional[Mapping[str, Any]]" = None,
        order_by: Optional[str] = "id DESC",
        columns: Columns = "*",
    ) -> PaginatedResult:
        """Fetch one page of ``table`` with its pagination metadata.

        Raises:
            ValidationError: If ``page`` or ``per_page`` is below 1.
        """
        if page < 1 or per_page < 1:
            msg = f"page and per_page must be at least 1, got page={page} per_page={per_page}"
            raise ValidationError(msg)
        total_items = await self.count(table, where)
        data = await self.select(
            table, columns=columns, where=where, order_by=order_by, limit=per_page, offset=(page - 1) * per_page
        )
        return PaginatedResult(data=data, pagination=PaginationMeta.build(page, per_page, total_items))

    # Transactions

    async def begin_transaction(self) -> "Transaction":
        """Open a transaction; the caller must ``commit()`` or ``rollback()`` the returned handle."""
        return await self._transactions.begin()

    async def with_transaction(self, callback: "Callable[[ConnectionProtocol], Awaitable[T]]") -> T:
        return await self._transactions.with_transaction(callback)

    @asynccontextmanager
    async def transaction(self) -> "AsyncIterator[ConnectionProtocol]":
        async with self._transactions.transaction() as connection:
            yield connection

    async def transaction_query(
        self, connection: "ConnectionProtocol", sql: str, params: "Optional[Sequence[Any]]" = None
    ) -> "QueryResult":
        """Run one statement on a transaction's connection, bypassing cache and hooks."""
        return await connection.execute(sql, tuple(params or ()))

    # Batches

    async def batch_insert(
        self, table: str, rows: "Sequence[Mapping[str, Any]]", chunk_size: int = 100
    ) -> "BatchInsertResult":
        return await self._batches.batch_insert(table, rows, chunk_size)

    async def batch_update(
        self, table: str, updates: "Sequence[UpdateBatch]", chunk_size: int = 100
    ) -> "list[UpdateResult]":
        return await self._batches.batch_update(table, updates, chunk_size)

    async def batch_process(
        self,
        items: "Sequence[T]",
        processor: "Callable[[Sequence[T]], Awaitable[R]]",
        chunk_size: int = 100,
        concurrency: int = 5,
        on_progress: "Optional[ProgressCallback]" = None,
    ) -> "list[R]":
        return await self._batches.batch_process(items, processor, chunk_size, concurrency, on_progress)

    # Maintenance

    async def _maintain(
        self,
        operation: MaintenanceOperation,
        target: str,
        statement: Statement,
        table: Optional[str] = None,
        details: "Optional[dict[str, Any]]" = None,
    ) -> "QueryResult":
        event = MaintenanceEvent(operation=operation, target=target, table=table, details=details)
        self.signals.emit(Signal.MAINTENANCE_STARTED, event)
        result = await self._write(statement)
        logger.info("%s completed on %s", operation.value, target)
        self.signals.emit(Signal.MAINTENANCE_COMPLETED, event)
        return result

    # Stored procedures

    async def call_procedure(self, name: str, params: "Optional[Sequence[Any]]" = None) -> "list[Row]":
        """Call a stored procedure and return its first result set.

        Raises:
            QueryExecutionError: If the call failed.
        """
        statement = build_call_procedure(name, params or ())
        try:
            result = await self._write(statement)
        except QueryExecutionError as exc:
            msg = f"Stored procedure {name!r} failed: {exc.__cause__ or exc}"
            raise QueryExecutionError(msg, sql=statement.text, params=statement.params) from exc
        self.signals.emit(
            Signal.PROCEDURE_CALLED, ProcedureCallEvent(procedure_name=name, params=statement.params)
        )
        return list(result)

    async def create_procedure(self, name: str, params: str, body: str) -> None:
        await self._maintain(
            MaintenanceOperation.CREATE_PROCEDURE, name, build_create_procedure(name, params, body)
        )

    async def drop_procedure(self, name: str, if_exists: bool = True) -> None:
        await self._maintain(MaintenanceOperation.DROP_PROCEDURE, name, build_drop_procedure(name, if_exists))

    async def procedure_exists(self, name: str) -> bool:
        result = await self._write(build_procedure_exists(self.config.database, name))
        return int(result.scalar("count") or 0) > 0

    async def list_procedures(self) -> "list[Row]":
        return list(await self._write(build_list_procedures(self.config.database)))

    # Indexes

    async def create_index(
        self,
        table: str,
        name: str,
        columns: Columns,
        unique: bool = False,
        index_type: Optional[str] = None,
    ) -> None:
        statement = build_create_index(table, name, columns, unique=unique, index_type=index_type)
        column_list = [columns] if isinstance(columns, str) else list(columns)
        await self._maintain(
            MaintenanceOperation.CREATE_INDEX,
            name,
            statement,
            table=table,
            details={"columns": column_list, "unique": unique, "index_type": index_type},
        )

    async def drop_index(self, table: str, name: str) -> None:
        await self._maintain(MaintenanceOperation.DROP_INDEX, name, build_drop_index(table, name), table=table)

    async def index_exists(self, table: str, name: str) -> bool:
        result = await self._write(build_index_exists(self.config.database, table, name))
        return int(result.scalar("count") or 0) > 0

    async def list_indexes(self, table: str) -> "list[IndexInfo]":
        """Indexes of ``table`` with their columns in index order."""
        result = await self._write(build_list_indexes(self.config.database, table))
        indexes: dict[str, IndexInfo] = {}
        for row in result:
            index = indexes.get(row["name"])
            if index is None:
                index = indexes[row["name"]] = IndexInfo(
                    name=row["name"], columns=[], unique=int(row["non_unique"]) == 0, index_type=row["index_type"]
                )
            index.columns.append(row["column_name"])
        return list(indexes.values())

    async def analyze_table(self, table: str) -> "list[Row]":
        return list(
            await self._maintain(MaintenanceOperation.ANALYZE_TABLE, table, build_analyze_table(table), table=table)
        )

    async def optimize_table(self, table: str) -> "list[Row]":
        return list(
            await self._maintain(MaintenanceOperation.OPTIMIZE_TABLE, table, build_optimize_table(table), table=table)
        )

    # Utilities

    async def table_exists(self, table: str) -> bool:
        return bool(await self._write(build_table_exists(table)))

    async def get_table_schema(self, table: str) -> "list[Row]":
        return list(await self._write(build_describe_table(table)))

    async def get_tables(self) -> "list[str]":
        return [next(iter(row.values())) for row in await self._write(build_show_tables()) if row]

    async def truncate(self, table: str) -> None:
        await self._maintain(MaintenanceOperation.TRUNCATE_TABLE, table, build_truncate_table(table), table=table)

    # Monitoring

    def get_pool_status(self) -> "Optional[PoolStatus]":
        return self._connections.pool_status()

    def get_query_log(self) -> "list[QueryLogEntry]":
        return self._executor.query_log.entries()

    def clear_query_log(self) -> None:
        self._executor.query_log.clear()

    def get_slow_queries(self, threshold: float = 1.0) -> "list[QueryLogEntry]":
        """Logged statements slower than ``threshold`` seconds."""
        return self._executor.query_log.slow_queries(threshold)

    def clear_cache(self) -> int:
        return self._executor.clear_cache()

    @property
    def cache_stats(self) -> "CacheStats":
        return self._executor.cache.stats
