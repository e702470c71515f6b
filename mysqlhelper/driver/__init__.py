"""Connection management, statement execution, transactions and batches."""

from mysqlhelper.driver._batch import BatchCoordinator, ProgressCallback, UpdateBatch, chunked
from mysqlhelper.driver._connection import ConnectionManager
from mysqlhelper.driver._executor import QueryExecutor
from mysqlhelper.driver._transaction import Transaction, TransactionCoordinator, TransactionState

__all__ = (
    "BatchCoordinator",
    "ConnectionManager",
    "ProgressCallback",
    "QueryExecutor",
    "Transaction",
    "TransactionCoordinator",
    "TransactionState",
    "UpdateBatch",
    "chunked",
)
