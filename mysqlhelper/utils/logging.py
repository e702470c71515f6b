"""Logging helpers shared by every mysqlhelper component.

All loggers live under the ``mysqlhelper`` namespace. Records carry the
correlation ID of the current task, and :func:`log_with_context` attaches
structured fields (SQL text, timings, attempt counters) that the
:class:`StructuredFormatter` emits as JSON keys.
"""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any

from mysqlhelper.utils.serializers import to_json

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence
    from logging import LogRecord
    from typing import TextIO

__all__ = (
    "CorrelationIDFilter",
    "StructuredFormatter",
    "configure_logging",
    "correlation_id_var",
    "correlation_scope",
    "get_correlation_id",
    "get_logger",
    "log_with_context",
    "set_correlation_id",
)

ROOT_LOGGER_NAME = "mysqlhelper"
CONTEXT_ATTRIBUTE = "mysqlhelper_context"
TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

correlation_id_var: ContextVar[str | None] = ContextVar("mysqlhelper_correlation_id", default=None)


def set_correlation_id(correlation_id: str | None) -> None:
    correlation_id_var.set(correlation_id)


def get_correlation_id() -> str | None:
    return correlation_id_var.get()


@contextmanager
def correlation_scope(correlation_id: str) -> Iterator[str]:
    """Tag every record logged inside the block with ``correlation_id``.

    The previous value is restored on exit, so scopes nest.
    """
    token = correlation_id_var.set(correlation_id)
    try:
        yield correlation_id
    finally:
        correlation_id_var.reset(token)


class CorrelationIDFilter(logging.Filter):
    def filter(self, record: LogRecord) -> bool:
        correlation_id = get_correlation_id()
        if correlation_id is not None:
            record.correlation_id = correlation_id  # type: ignore[attr-defined]
        return True


class StructuredFormatter(logging.Formatter):
    """One JSON object per record.

    Args:
        include_location: Add ``module``, ``function`` and ``line`` keys.
    """

    def __init__(self, include_location: bool = True) -> None:
        super().__init__()
        self.include_location = include_location

    def format(self, record: LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self.include_location:
            entry.update(module=record.module, function=record.funcName, line=record.lineno)

        correlation_id = getattr(record, "correlation_id", None) or get_correlation_id()
        if correlation_id:
            entry["correlation_id"] = correlation_id

        context = getattr(record, CONTEXT_ATTRIBUTE, None)
        if context:
            entry.update(context)

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return to_json(entry)


def get_logger(name: str | None = None) -> logging.Logger:
    """Return ``mysqlhelper`` or a child of it; ``"driver"`` becomes ``"mysqlhelper.driver"``."""
    if name is None or name == ROOT_LOGGER_NAME:
        qualified = ROOT_LOGGER_NAME
    elif name.startswith(f"{ROOT_LOGGER_NAME}."):
        qualified = name
    else:
        qualified = f"{ROOT_LOGGER_NAME}.{name}"

    logger = logging.getLogger(qualified)
    if not any(isinstance(existing, CorrelationIDFilter) for existing in logger.filters):
        logger.addFilter(CorrelationIDFilter())
    return logger


def log_with_context(logger: logging.Logger, level: int, message: str, *args: Any, **fields: Any) -> None:
    """Log ``message % args`` with ``fields`` attached as structured keys.

    Nothing is built when ``level`` is disabled for ``logger``.
    """
    if logger.isEnabledFor(level):
        logger.log(level, message, *args, extra={CONTEXT_ATTRIBUTE: fields}, stacklevel=2)


def configure_logging(
    level: str | int = "INFO",
    *,
    structured: bool = True,
    stream: TextIO | None = None,
    log_file: str | None = None,
    handlers: Sequence[logging.Handler] = (),
) -> logging.Logger:
    """Install handlers on the ``mysqlhelper`` logger, replacing previous ones.

    Records stop propagating to the root logger once this has run.

    Args:
        level: Level name or number.
        structured: JSON lines on the console; plain text otherwise.
        stream: Console stream, ``sys.stderr`` by default.
        log_file: Also append JSON lines to this file.
        handlers: Extra handlers, attached as given.

    Returns:
        The configured ``mysqlhelper`` logger.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    console = logging.StreamHandler(stream or sys.stderr)
    console.setFormatter(StructuredFormatter() if structured else logging.Formatter(TEXT_FORMAT))
    logger.addHandler(console)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(StructuredFormatter())
        logger.addHandler(file_handler)

    for handler in handlers:
        logger.addHandler(handler)

    logger.propagate = False
    log_with_context(
        logger,
        logging.DEBUG,
        "Logging configured",
        structured=structured,
        handlers=len(logger.handlers),
    )
    return logger
