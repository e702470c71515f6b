"""Tests for the logging helpers."""

import io
import logging
import sys
from collections.abc import Iterator

import pytest

from mysqlhelper.utils.logging import (
    CorrelationIDFilter,
    StructuredFormatter,
    configure_logging,
    correlation_scope,
    get_correlation_id,
    get_logger,
    log_with_context,
    set_correlation_id,
)
from mysqlhelper.utils.serializers import from_json


@pytest.fixture
def restore_root_logger() -> Iterator[logging.Logger]:
    root = logging.getLogger("mysqlhelper")
    handlers, level, propagate = list(root.handlers), root.level, root.propagate
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    root.propagate = propagate


def _record(message: str = "hello %s", args: tuple = ("world",)) -> logging.LogRecord:
    return logging.LogRecord("mysqlhelper.test", logging.INFO, __file__, 10, message, args, None)


def test_get_logger_namespaces_names() -> None:
    assert get_logger().name == "mysqlhelper"
    assert get_logger("mysqlhelper").name == "mysqlhelper"
    assert get_logger("driver.executor").name == "mysqlhelper.driver.executor"
    assert get_logger("mysqlhelper.helper").name == "mysqlhelper.helper"
    assert get_logger("mysqlhelperx").name == "mysqlhelper.mysqlhelperx"


def test_get_logger_adds_filter_once() -> None:
    logger = get_logger("tests.filter")
    get_logger("tests.filter")
    assert sum(isinstance(f, CorrelationIDFilter) for f in logger.filters) == 1


def test_correlation_scope_nests_and_restores() -> None:
    assert get_correlation_id() is None
    with correlation_scope("outer"):
        with correlation_scope("inner") as inner:
            assert get_correlation_id() == inner
            record = _record()
            CorrelationIDFilter().filter(record)
            assert record.correlation_id == "inner"  # type: ignore[attr-defined]
        assert get_correlation_id() == "outer"
    assert get_correlation_id() is None


def test_set_correlation_id() -> None:
    set_correlation_id("req-1")
    try:
        assert get_correlation_id() == "req-1"
    finally:
        set_correlation_id(None)


def test_structured_formatter() -> None:
    record = _record()
    record.mysqlhelper_context = {"sql": "SELECT 1", "execution_time": 0.5}

    with correlation_scope("req-123"):
        entry = from_json(StructuredFormatter().format(record))

    assert entry["message"] == "hello world"
    assert entry["level"] == "INFO"
    assert entry["logger"] == "mysqlhelper.test"
    assert entry["line"] == 10
    assert entry["correlation_id"] == "req-123"
    assert entry["sql"] == "SELECT 1"
    assert entry["execution_time"] == 0.5


def test_structured_formatter_without_location_includes_exception() -> None:
    try:
        raise ValueError("broken")
    except ValueError:
        record = logging.LogRecord("mysqlhelper.test", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())

    entry = from_json(StructuredFormatter(include_location=False).format(record))

    assert "ValueError: broken" in entry["exception"]
    assert "line" not in entry
    assert "correlation_id" not in entry


def test_log_with_context(caplog: pytest.LogCaptureFixture) -> None:
    logger = get_logger("tests.context")

    with caplog.at_level(logging.INFO, logger="mysqlhelper"):
        log_with_context(logger, logging.INFO, "Executed %s", "SELECT 1", row_count=3)
        log_with_context(logger, logging.DEBUG, "hidden", row_count=0)

    assert [record.getMessage() for record in caplog.records] == ["Executed SELECT 1"]
    assert caplog.records[0].mysqlhelper_context == {"row_count": 3}  # type: ignore[attr-defined]


def test_configure_logging(restore_root_logger: logging.Logger, tmp_path) -> None:
    stream = io.StringIO()
    log_file = tmp_path / "mysqlhelper.log"

    logger = configure_logging("debug", structured=False, stream=stream, log_file=str(log_file))
    get_logger("tests.configured").info("pool ready")
    for handler in logger.handlers:
        handler.flush()

    assert logger is restore_root_logger
    assert logger.level == logging.DEBUG
    assert logger.propagate is False
    assert len(logger.handlers) == 2
    assert "INFO     mysqlhelper.tests.configured: pool ready" in stream.getvalue()
    lines = [from_json(line) for line in log_file.read_text().splitlines()]
    assert [line["message"] for line in lines] == ["Logging configured", "pool ready"]
    assert lines[0]["handlers"] == 2


def test_configure_logging_replaces_handlers(restore_root_logger: logging.Logger) -> None:
    extra = logging.NullHandler()

    configure_logging(stream=io.StringIO(), handlers=[extra])
    logger = configure_logging(logging.WARNING, stream=io.StringIO())

    assert extra not in logger.handlers
    assert len(logger.handlers) == 1
    assert logger.level == logging.WARNING
