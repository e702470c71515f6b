from mysqlhelper.adapters.asyncmy.config import (
    AsyncmyConnectionConfig,
    AsyncmyPoolConfig,
    build_connection_config,
    build_pool_config,
)
from mysqlhelper.adapters.asyncmy.driver import (
    AsyncmyClient,
    AsyncmyConnection,
    AsyncmyCursor,
    AsyncmyPool,
    coerce_parameter,
)

__all__ = (
    "AsyncmyClient",
    "AsyncmyConnection",
    "AsyncmyConnectionConfig",
    "AsyncmyCursor",
    "AsyncmyPool",
    "AsyncmyPoolConfig",
    "build_connection_config",
    "build_pool_config",
    "coerce_parameter",
)
