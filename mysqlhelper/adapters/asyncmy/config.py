"""Asyncmy connection and pool parameters derived from :class:`~mysqlhelper.config.MySQLConfig`."""

from typing import TYPE_CHECKING, Any, TypedDict

from typing_extensions import NotRequired

if TYPE_CHECKING:
    from mysqlhelper.config import MySQLConfig

__all__ = ("AsyncmyConnectionConfig", "AsyncmyPoolConfig", "build_connection_config", "build_pool_config")


class AsyncmyConnectionConfig(TypedDict, total=False):
    """Keyword arguments accepted by ``asyncmy.connect()``."""

    host: NotRequired[str]
    """Host where the database server is located."""

    user: NotRequired[str]
    """The username used to authenticate with the database."""

    password: NotRequired[str]
    """The password used to authenticate with the database."""

    database: NotRequired[str]
    """The database name to use."""

    port: NotRequired[int]
    """The TCP/IP port of the MySQL server."""

    charset: NotRequired[str]
    """The character set to use for the connection."""

    connect_timeout: NotRequired[float]
    """Timeout before throwing an error when connecting."""

    autocommit: NotRequired[bool]
    """If True, autocommit mode will be enabled."""

    init_command: NotRequired[str]
    """Initial SQL statement to execute once connected."""


class AsyncmyPoolConfig(AsyncmyConnectionConfig, total=False):
    """Keyword arguments accepted by ``asyncmy.create_pool()``."""

    minsize: NotRequired[int]
    """Minimum number of connections to keep in the pool."""

    maxsize: NotRequired[int]
    """Maximum number of connections allowed in the pool."""

    pool_recycle: NotRequired[int]
    """Number of seconds after which a connection is recycled."""


def build_connection_config(config: "MySQLConfig") -> AsyncmyConnectionConfig:
    """Translate the helper configuration into ``asyncmy.connect()`` arguments.

    Connections run in autocommit mode; transactions are opened explicitly.
    """
    params: dict[str, Any] = {
        "host": config.host,
        "port": config.port,
        "user": config.user,
        "password": config.password,
        "charset": config.charset,
        "connect_timeout": config.connect_timeout,
        "autocommit": True,
    }
    if config.database:
        params["database"] = config.database
    params.update(config.extras)
    return AsyncmyConnectionConfig(**params)  # type: ignore[typeddict-item]


def build_pool_config(config: "MySQLConfig") -> AsyncmyPoolConfig:
    pool_params: dict[str, Any] = dict(build_connection_config(config))
    pool_params["minsize"] = config.min_connections
    pool_params["maxsize"] = config.connection_limit
    return AsyncmyPoolConfig(**pool_params)  # type: ignore[typeddict-item]
