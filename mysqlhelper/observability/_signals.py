"""Typed signal topics, payloads and the subscriber registry."""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from mysqlhelper.core.result import BatchProgress
from mysqlhelper.utils.logging import get_logger

__all__ = (
    "CacheClearedEvent",
    "CacheHitEvent",
    "ConnectionEvent",
    "ConnectionRetryEvent",
    "ConnectionTestEvent",
    "MaintenanceEvent",
    "MaintenanceOperation",
    "PoolEvent",
    "ProcedureCallEvent",
    "QueryErrorEvent",
    "QueryEvent",
    "Signal",
    "SignalBus",
    "SignalCallback",
    "TransactionEvent",
    "default_signal_logger",
)

logger = get_logger("observability")


class Signal(str, Enum):
    POOL_CREATED = "pool_created"
    POOL_CLOSED = "pool_closed"
    CONNECTION_ACQUIRED = "connection_acquired"
    CONNECTED = "connected"
    CONNECTION_CLOSED = "connection_closed"
    CONNECTION_RETRY = "connection_retry"
    CONNECTION_TEST = "connection_test"
    QUERY_EXECUTED = "query_executed"
    QUERY_ERROR = "query_error"
    CACHE_HIT = "cache_hit"
    CACHE_CLEARED = "cache_cleared"
    TRANSACTION_STARTED = "transaction_started"
    TRANSACTION_COMMITTED = "transaction_committed"
    TRANSACTION_ROLLED_BACK = "transaction_rolled_back"
    BATCH_PROGRESS = "batch_progress"
    PROCEDURE_CALLED = "procedure_called"
    MAINTENANCE_STARTED = "maintenance_started"
    MAINTENANCE_COMPLETED = "maintenance_completed"

    def __str__(self) -> str:
        return self.value


class MaintenanceOperation(str, Enum):
    CREATE_INDEX = "create_index"
    DROP_INDEX = "drop_index"
    CREATE_PROCEDURE = "create_procedure"
    DROP_PROCEDURE = "drop_procedure"
    ANALYZE_TABLE = "analyze_table"
    OPTIMIZE_TABLE = "optimize_table"
    TRUNCATE_TABLE = "truncate_table"


@dataclass(slots=True)
class PoolEvent:
    connection_limit: int


@dataclass(slots=True)
class ConnectionEvent:
    thread_id: Optional[int] = None


@dataclass(slots=True)
class ConnectionRetryEvent:
    attempt: int
    error: str


@dataclass(slots=True)
class ConnectionTestEvent:
    success: bool
    error: Optional[str] = None


@dataclass(slots=True)
class QueryEvent:
    sql: str
    params: tuple[Any, ...]
    execution_time: float
    row_count: int


@dataclass(slots=True)
class QueryErrorEvent:
    sql: str
    params: tuple[Any, ...]
    error: str


@dataclass(slots=True)
class CacheHitEvent:
    sql: str
    params: tuple[Any, ...]


@dataclass(slots=True)
class CacheClearedEvent:
    entries_cleared: int


@dataclass(slots=True)
class TransactionEvent:
    thread_id: Optional[int] = None
    error: Optional[str] = None


@dataclass(slots=True)
class ProcedureCallEvent:
    procedure_name: str
    params: tuple[Any, ...]


@dataclass(slots=True)
class MaintenanceEvent:
    """Emitted as a started/completed pair around index, procedure and table maintenance."""

    operation: MaintenanceOperation
    target: str
    table: Optional[str] = None
    details: Optional[dict[str, Any]] = None


SIGNAL_PAYLOADS: "Mapping[Signal, type[Any]]" = {
    Signal.POOL_CREATED: PoolEvent,
    Signal.POOL_CLOSED: PoolEvent,
    Signal.CONNECTION_ACQUIRED: ConnectionEvent,
    Signal.CONNECTED: ConnectionEvent,
    Signal.CONNECTION_CLOSED: ConnectionEvent,
    Signal.CONNECTION_RETRY: ConnectionRetryEvent,
    Signal.CONNECTION_TEST: ConnectionTestEvent,
    Signal.QUERY_EXECUTED: QueryEvent,
    Signal.QUERY_ERROR: QueryErrorEvent,
    Signal.CACHE_HIT: CacheHitEvent,
    Signal.CACHE_CLEARED: CacheClearedEvent,
    Signal.TRANSACTION_STARTED: TransactionEvent,
    Signal.TRANSACTION_COMMITTED: TransactionEvent,
    Signal.TRANSACTION_ROLLED_BACK: TransactionEvent,
    Signal.BATCH_PROGRESS: BatchProgress,
    Signal.PROCEDURE_CALLED: ProcedureCallEvent,
    Signal.MAINTENANCE_STARTED: MaintenanceEvent,
    Signal.MAINTENANCE_COMPLETED: MaintenanceEvent,
}

SignalCallback = Callable[[Signal, Any], None]


class SignalBus:
    """Synchronous publish/subscribe registry keyed by :class:`Signal`.

    Subscribers are called in subscription order with ``(signal, payload)``.
    Subscriber exceptions propagate to the emitting operation.
    """

    __slots__ = ("_subscribers",)

    def __init__(self) -> None:
        self._subscribers: dict[Signal, list[SignalCallback]] = {signal: [] for signal in Signal}

    def subscribe(self, signal: "Signal | str", callback: SignalCallback) -> SignalCallback:
        self._subscribers[Signal(signal)].append(callback)
        return callback

    def subscribe_all(self, callback: SignalCallback) -> SignalCallback:
        for signal in Signal:
            self._subscribers[signal].append(callback)
        return callback

    def unsubscribe(self, signal: "Signal | str", callback: SignalCallback) -> None:
        resolved = Signal(signal)
        self._subscribers[resolved] = [registered for registered in self._subscribers[resolved] if registered is not callback]

    def listener_count(self, signal: "Signal | str") -> int:
        return len(self._subscribers[Signal(signal)])

    def emit(self, signal: Signal, payload: Any) -> None:
        expected = SIGNAL_PAYLOADS[signal]
        if not isinstance(payload, expected):
            msg = f"Signal {signal} expects a {expected.__name__} payload, got {type(payload).__name__}"
            raise TypeError(msg)
        for callback in tuple(self._subscribers[signal]):
            callback(signal, payload)


def default_signal_logger(signal: Signal, payload: Any) -> None:
    """Log every signal at DEBUG level; subscribe with :meth:`SignalBus.subscribe_all`."""
    logger.debug("%s: %r", signal, payload)
