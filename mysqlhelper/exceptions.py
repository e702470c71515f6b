from collections.abc import Sequence
from typing import Any, Optional

__all__ = (
    "ConnectionError",
    "ImproperConfigurationError",
    "InvalidHookStageError",
    "MySQLHelperError",
    "QueryExecutionError",
    "SQLBuilderError",
    "TransactionError",
    "ValidationError",
)


class MySQLHelperError(Exception):
    """Base exception class from which all mysqlhelper exceptions inherit."""

    detail: str

    def __init__(self, *args: Any, detail: str = "") -> None:
        """Initialize ``MySQLHelperError``.

        Args:
            *args: args are converted to :class:`str` before passing to :class:`Exception`
            detail: detail of the exception.
        """
        str_args = [str(arg) for arg in args if arg]
        if not detail:
            if str_args:
                detail, *str_args = str_args
            elif hasattr(self, "detail"):
                detail = self.detail
        self.detail = detail
        super().__init__(*str_args)

    def __repr__(self) -> str:
        if self.detail:
            return f"{self.__class__.__name__} - {self.detail}"
        return self.__class__.__name__

    def __str__(self) -> str:
        return " ".join((*self.args, self.detail)).strip()


class ImproperConfigurationError(MySQLHelperError):
    """Raised when a configuration value is out of range or inconsistent."""


class ConnectionError(MySQLHelperError):  # noqa: A001
    """Raised when a connection could not be established after all retry attempts."""

    attempts: int

    def __init__(self, message: Optional[str] = None, attempts: int = 0) -> None:
        if message is None:
            message = "Unable to establish a database connection."
        super().__init__(message)
        self.attempts = attempts


class QueryExecutionError(MySQLHelperError):
    """Raised when a statement fails anywhere in the execution pipeline.

    The underlying driver (or hook) error is always available as ``__cause__``.
    """

    sql: str
    params: tuple[Any, ...]

    def __init__(self, message: str, sql: str = "", params: "Sequence[Any]" = ()) -> None:
        detail_message = message
        if sql:
            detail_message = f"{message}\nSQL: {sql}\nParameters: {list(params)!r}"
        super().__init__(detail=detail_message)
        self.sql = sql
        self.params = tuple(params)


class TransactionError(MySQLHelperError):
    """Raised when the work inside a transaction fails; the transaction has been rolled back."""


class ValidationError(MySQLHelperError):
    """Raised when input is rejected before any database round-trip."""


class InvalidHookStageError(MySQLHelperError):
    """Raised when a hook is registered for a stage that does not exist."""

    stage: str

    def __init__(self, stage: Any) -> None:
        super().__init__(f"Invalid hook stage: {stage!r}")
        self.stage = str(stage)


class SQLBuilderError(MySQLHelperError):
    """Issues building a SQL statement."""

    def __init__(self, message: Optional[str] = None) -> None:
        if message is None:
            message = "Issues building SQL statement."
        super().__init__(message)
