"""mysqlhelper: async MySQL access with caching, hooks, transactions and batching."""

from mysqlhelper import adapters, builder, core, driver, exceptions, observability, utils
from mysqlhelper.__metadata__ import __version__
from mysqlhelper.builder import QueryBuilder
from mysqlhelper.config import MySQLConfig
from mysqlhelper.core.cache import CacheStats
from mysqlhelper.core.hooks import HookStage, MutationContext
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
from mysqlhelper.core.statement import Statement
from mysqlhelper.driver import Transaction, UpdateBatch
from mysqlhelper.exceptions import (
    ConnectionError,
    ImproperConfigurationError,
    InvalidHookStageError,
    MySQLHelperError,
    QueryExecutionError,
    SQLBuilderError,
    TransactionError,
    ValidationError,
)
from mysqlhelper.helper import MySQLHelper
from mysqlhelper.observability import Signal, SignalBus

__all__ = (
    "BatchInsertResult",
    "BatchProgress",
    "CacheStats",
    "ConnectionError",
    "DeleteResult",
    "HookStage",
    "ImproperConfigurationError",
    "IndexInfo",
    "InsertResult",
    "InvalidHookStageError",
    "MutationContext",
    "MySQLConfig",
    "MySQLHelper",
    "MySQLHelperError",
    "PaginatedResult",
    "PaginationMeta",
    "PoolStatus",
    "QueryBuilder",
    "QueryExecutionError",
    "QueryResult",
    "SQLBuilderError",
    "Signal",
    "SignalBus",
    "Statement",
    "Transaction",
    "TransactionError",
    "UpdateBatch",
    "ValidationError",
    "__version__",
    "adapters",
    "builder",
    "core",
    "driver",
    "exceptions",
    "observability",
    "utils",
)
