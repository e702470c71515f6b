"""Core statement, result, cache and hook primitives."""

from mysqlhelper.core.cache import CacheEntry, CacheKey, CacheStats, ResultCache, create_cache_key
from mysqlhelper.core.hooks import (
    AfterQueryContext,
    BeforeQueryContext,
    ErrorContext,
    HookCallback,
    HookPipeline,
    HookStage,
    MutationContext,
)
from mysqlhelper.core.query_log import QueryLog, QueryLogEntry
from mysqlhelper.core.result import (
    BatchInsertResult,
    BatchProgress,
    DeleteResult,
    IndexInfo,
    InsertResult,
    PaginatedResult,
    PaginationMeta,
    PoolStatus,
    QueryResult,
    UpdateResult,
)
from mysqlhelper.core.statement import Statement, count_placeholders, to_pyformat

__all__ = (
    "AfterQueryContext",
    "BatchInsertResult",
    "BatchProgress",
    "BeforeQueryContext",
    "CacheEntry",
    "CacheKey",
    "CacheStats",
    "DeleteResult",
    "ErrorContext",
    "HookCallback",
    "HookPipeline",
    "HookStage",
    "IndexInfo",
    "InsertResult",
    "MutationContext",
    "PaginatedResult",
    "PaginationMeta",
    "PoolStatus",
    "QueryLog",
    "QueryLogEntry",
    "QueryResult",
    "ResultCache",
    "Statement",
    "UpdateResult",
    "count_placeholders",
    "create_cache_key",
    "to_pyformat",
)
