"""Signals emitted by the connection, query, transaction, batch and maintenance paths."""

from mysqlhelper.observability._signals import (
    SIGNAL_PAYLOADS,
    CacheClearedEvent,
    CacheHitEvent,
    ConnectionEvent,
    ConnectionRetryEvent,
    ConnectionTestEvent,
    MaintenanceEvent,
    MaintenanceOperation,
    PoolEvent,
    ProcedureCallEvent,
    QueryErrorEvent,
    QueryEvent,
    Signal,
    SignalBus,
    SignalCallback,
    TransactionEvent,
    default_signal_logger,
)

__all__ = (
    "SIGNAL_PAYLOADS",
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
