"""Unit tests for the signal bus."""

from typing import Any

import pytest

from mysqlhelper.core.result import BatchProgress
from mysqlhelper.observability import (
    SIGNAL_PAYLOADS,
    CacheClearedEvent,
    PoolEvent,
    Signal,
    SignalBus,
    default_signal_logger,
)


def test_every_signal_has_a_payload_type() -> None:
    assert set(SIGNAL_PAYLOADS) == set(Signal)


def test_subscribers_receive_signal_and_payload() -> None:
    bus = SignalBus()
    received: list[tuple[Signal, Any]] = []
    bus.subscribe(Signal.POOL_CREATED, lambda signal, payload: received.append((signal, payload)))

    payload = PoolEvent(connection_limit=5)
    bus.emit(Signal.POOL_CREATED, payload)

    assert received == [(Signal.POOL_CREATED, payload)]


def test_subscribe_by_name() -> None:
    bus = SignalBus()
    bus.subscribe("cache_cleared", lambda signal, payload: None)
    assert bus.listener_count(Signal.CACHE_CLEARED) == 1


def test_emit_checks_payload_type() -> None:
    bus = SignalBus()
    with pytest.raises(TypeError):
        bus.emit(Signal.BATCH_PROGRESS, CacheClearedEvent(entries_cleared=1))


def test_unsubscribe() -> None:
    bus = SignalBus()
    calls: list[int] = []

    def callback(signal: Signal, payload: Any) -> None:
        calls.append(1)

    bus.subscribe(Signal.BATCH_PROGRESS, callback)
    bus.unsubscribe(Signal.BATCH_PROGRESS, callback)
    bus.emit(Signal.BATCH_PROGRESS, BatchProgress(1, 1, 1, 1))

    assert calls == []


def test_subscriber_errors_propagate() -> None:
    bus = SignalBus()

    def failing(signal: Signal, payload: Any) -> None:
        raise RuntimeError("subscriber failed")

    bus.subscribe(Signal.CACHE_CLEARED, failing)
    with pytest.raises(RuntimeError):
        bus.emit(Signal.CACHE_CLEARED, CacheClearedEvent(entries_cleared=0))


def test_subscribe_all_with_default_logger(caplog: pytest.LogCaptureFixture) -> None:
    bus = SignalBus()
    bus.subscribe_all(default_signal_logger)
    assert all(bus.listener_count(signal) == 1 for signal in Signal)

    with caplog.at_level("DEBUG", logger="mysqlhelper"):
        bus.emit(Signal.CACHE_CLEARED, CacheClearedEvent(entries_cleared=3))

    assert any("cache_cleared" in record.getMessage() for record in caplog.records)


def test_batch_progress_percentage() -> None:
    assert BatchProgress(1, 4, 250, 1000).percentage == 25
    assert BatchProgress(0, 0, 0, 0).percentage == 100
