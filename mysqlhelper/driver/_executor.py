"""The query execution pipeline."""

import logging
import time
from typing import TYPE_CHECKING, Optional

from mysqlhelper.core.cache import ResultCache, create_cache_key
from mysqlhelper.core.hooks import AfterQueryContext, BeforeQueryContext, ErrorContext, HookPipeline, HookStage
from mysqlhelper.core.query_log import QueryLog, QueryLogEntry
from mysqlhelper.exceptions import QueryExecutionError, ValidationError
from mysqlhelper.observability import CacheClearedEvent, CacheHitEvent, QueryErrorEvent, QueryEvent, Signal
from mysqlhelper.utils.logging import get_logger, log_with_context

if TYPE_CHECKING:
    from mysqlhelper.core.result import QueryResult
    from mysqlhelper.core.statement import Statement
    from mysqlhelper.driver._connection import ConnectionManager
    from mysqlhelper.observability import SignalBus

__all__ = ("QueryExecutor",)

logger = get_logger("driver.executor")


class QueryExecutor:
    """Runs statements through cache, hooks, the connection and the query log.

    Order within one call: cache lookup, ``before_query`` hooks, execution,
    ``after_query`` hooks, cache write, ``QUERY_EXECUTED`` signal. A cache hit
    returns the stored result without running any hook.

    Args:
        connections: Resolves a connection per statement.
        hooks: Hook pipeline shared with the facade.
        signals: Signal bus shared with the facade.
        cache_enabled: Whether results are cached unless a call opts out.
        cache_ttl: Default TTL, in seconds, of cache entries.
        log_queries: Whether executed statements are appended to the query log.
    """

    __slots__ = ("_connections", "cache", "cache_enabled", "hooks", "log_queries", "query_log", "signals")

    def __init__(
        self,
        connections: "ConnectionManager",
        hooks: HookPipeline,
        signals: "SignalBus",
        cache_enabled: bool = False,
        cache_ttl: float = 300.0,
        log_queries: bool = False,
    ) -> None:
        self._connections = connections
        self.hooks = hooks
        self.signals = signals
        self.cache_enabled = cache_enabled
        self.cache = ResultCache(default_ttl=cache_ttl)
        self.log_queries = log_queries
        self.query_log = QueryLog()

    async def execute(
        self, statement: "Statement", *, cache: Optional[bool] = None, cache_ttl: Optional[float] = None
    ) -> "QueryResult":
        """Execute ``statement`` and return its result.

        Args:
            statement: The statement to run.
            cache: ``False`` bypasses the cache for this call.
            cache_ttl: TTL override, in seconds, for the entry written by this call.

        Raises:
            ValidationError: If the placeholder count differs from the parameter count.
            QueryExecutionError: If a hook, connection acquisition or execution failed.
        """
        if not statement.is_consistent():
            msg = (
                f"Statement has {statement.placeholder_count} placeholders "
                f"but {len(statement.params)} parameters: {statement.text}"
            )
            raise ValidationError(msg)

        use_cache = self.cache_enabled and cache is not False
        cache_key = create_cache_key(statement) if use_cache else None

        if cache_key is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.debug("Cache hit: %s", statement.text)
                self.signals.emit(Signal.CACHE_HIT, CacheHitEvent(sql=statement.text, params=statement.params))
                return cached

        try:
            await self.hooks.run(HookStage.BEFORE_QUERY, BeforeQueryContext(statement=statement, issued_at=time.time()))

            async with self._connections.provide_connection() as connection:
                started = time.perf_counter()
                result = await connection.execute(statement.text, statement.params)
                execution_time = time.perf_counter() - started

            if self.log_queries:
                self.query_log.append(
                    QueryLogEntry(
                        sql=statement.text,
                        params=statement.params,
                        execution_time=execution_time,
                        timestamp=time.time(),
                    )
                )

            await self.hooks.run(
                HookStage.AFTER_QUERY,
                AfterQueryContext(statement=statement, result=result, execution_time=execution_time),
            )

            if cache_key is not None:
                self.cache.put(cache_key, result, cache_ttl)
        except Exception as exc:
            await self.hooks.run_error_hooks(ErrorContext(statement=statement, error=exc))
            self.signals.emit(
                Signal.QUERY_ERROR, QueryErrorEvent(sql=statement.text, params=statement.params, error=str(exc))
            )
            msg = f"Query failed: {exc}"
            raise QueryExecutionError(msg, sql=statement.text, params=statement.params) from exc

        log_with_context(
            logger,
            logging.DEBUG,
            "Executed in %.6fs: %s",
            execution_time,
            statement.text,
            execution_time=execution_time,
            row_count=result.row_count,
        )
        self.signals.emit(
            Signal.QUERY_EXECUTED,
            QueryEvent(
                sql=statement.text,
                params=statement.params,
                execution_time=execution_time,
                row_count=result.row_count,
            ),
        )
        return result

    def clear_cache(self) -> int:
        removed = self.cache.clear()
        self.signals.emit(Signal.CACHE_CLEARED, CacheClearedEvent(entries_cleared=removed))
        return removed
