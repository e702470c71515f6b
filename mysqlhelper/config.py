"""Configuration for :class:`mysqlhelper.MySQLHelper`."""

import re
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from typing import Any

from mysqlhelper.exceptions import ImproperConfigurationError
from mysqlhelper.utils.logging import get_logger

__all__ = ("MySQLConfig",)

logger = get_logger("config")

_CAMEL_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")


@dataclass(slots=True)
class MySQLConfig:
    """Connection, pool, cache, retry and timestamp settings.

    Durations (``connect_timeout``, ``cache_ttl``, ``retry_delay``) are in seconds.
    """

    host: str = "localhost"
    port: int = 3306
    user: str = ""
    password: str = field(default="", repr=False)
    database: str = ""
    charset: str = "utf8mb4"
    connect_timeout: float = 10.0

    connection_limit: int = 10
    """Maximum number of pooled connections."""
    min_connections: int = 1
    """Connections opened eagerly when the pool is created."""
    wait_for_connections: bool = True
    """Wait for a free connection when the pool is exhausted instead of failing."""
    queue_limit: int = 0
    """Maximum number of callers waiting on an exhausted pool (0 means unbounded)."""

    cache: bool = False
    cache_ttl: float = 300.0
    log_queries: bool = False

    retry_attempts: int = 3
    retry_delay: float = 1.0

    timestamps: bool = True
    created_at_column: str = "created_at"
    updated_at_column: str = "updated_at"

    extras: dict[str, Any] = field(default_factory=dict)
    """Additional keyword arguments forwarded untouched to the driver."""

    def __post_init__(self) -> None:
        if self.connection_limit < 1:
            msg = f"connection_limit must be at least 1, got {self.connection_limit}"
            raise ImproperConfigurationError(msg)
        if self.min_connections < 0 or self.min_connections > self.connection_limit:
            msg = f"min_connections must be between 0 and connection_limit, got {self.min_connections}"
            raise ImproperConfigurationError(msg)
        if self.queue_limit < 0:
            msg = f"queue_limit must not be negative, got {self.queue_limit}"
            raise ImproperConfigurationError(msg)
        if self.cache_ttl <= 0:
            msg = f"cache_ttl must be positive, got {self.cache_ttl}"
            raise ImproperConfigurationError(msg)
        if self.retry_attempts < 1:
            msg = f"retry_attempts must be at least 1, got {self.retry_attempts}"
            raise ImproperConfigurationError(msg)
        if self.retry_delay < 0:
            msg = f"retry_delay must not be negative, got {self.retry_delay}"
            raise ImproperConfigurationError(msg)

    @classmethod
    def from_mapping(cls, mapping: "Mapping[str, Any]") -> "MySQLConfig":
        """Build a configuration from a loader-provided mapping.

        Keys that are not configuration fields are collected into ``extras``.

        Args:
            mapping: Flat mapping of option names to values.

        Returns:
            The configuration instance.

        Raises:
            ImproperConfigurationError: If a key is the camelCase spelling of a
                field (``cacheTTL``, ``connectionLimit``).
                Durations here are seconds.
        """
        known = {f.name for f in fields(cls)} - {"extras"}
        for key in mapping:
            snake = _CAMEL_BOUNDARY.sub(r"\1_\2", key).lower()
            if snake != key and snake in known:
                msg = f"Unknown option {key!r}, did you mean {snake!r}?"
                raise ImproperConfigurationError(msg)
        options = {key: value for key, value in mapping.items() if key in known}
        extras = dict(mapping.get("extras") or {})
        extras.update({key: value for key, value in mapping.items() if key not in known and key != "extras"})
        if extras:
            logger.debug("Forwarding extra driver options: %s", sorted(extras))
        return cls(**options, extras=extras)
