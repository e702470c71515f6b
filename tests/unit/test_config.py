"""Unit tests for MySQLConfig and the asyncmy parameter builders."""

import pytest

from mysqlhelper.adapters.asyncmy import build_connection_config, build_pool_config
from mysqlhelper.config import MySQLConfig
from mysqlhelper.exceptions import ImproperConfigurationError


def test_defaults() -> None:
    config = MySQLConfig()
    assert config.host == "localhost"
    assert config.port == 3306
    assert config.connection_limit == 10
    assert config.wait_for_connections is True
    assert config.queue_limit == 0
    assert config.cache is False
    assert config.cache_ttl == 300.0
    assert config.retry_attempts == 3
    assert config.retry_delay == 1.0
    assert config.timestamps is True
    assert config.created_at_column == "created_at"
    assert config.updated_at_column == "updated_at"


def test_password_hidden_from_repr() -> None:
    assert "s3cret" not in repr(MySQLConfig(password="s3cret"))


@pytest.mark.parametrize(
    "options",
    [
        {"connection_limit": 0},
        {"min_connections": 20},
        {"queue_limit": -1},
        {"cache_ttl": 0},
        {"retry_attempts": 0},
        {"retry_delay": -0.5},
    ],
)
def test_invalid_values_rejected(options: dict) -> None:
    with pytest.raises(ImproperConfigurationError):
        MySQLConfig(**options)


def test_from_mapping_routes_unknown_keys_to_extras() -> None:
    config = MySQLConfig.from_mapping(
        {"host": "db", "user": "app", "cache": True, "init_command": "SET time_zone = '+00:00'", "extras": {"a": 1}}
    )
    assert config.host == "db"
    assert config.user == "app"
    assert config.cache is True
    assert config.extras == {"a": 1, "init_command": "SET time_zone = '+00:00'"}


@pytest.mark.parametrize(
    ("key", "suggestion"),
    [("connectionLimit", "connection_limit"), ("cacheTTL", "cache_ttl"), ("retryAttempts", "retry_attempts")],
)
def test_from_mapping_rejects_camel_case_field_names(key: str, suggestion: str) -> None:
    with pytest.raises(ImproperConfigurationError, match=suggestion):
        MySQLConfig.from_mapping({"host": "db", key: 5})


def test_connection_config_runs_in_autocommit() -> None:
    config = MySQLConfig(host="db", user="app", password="pw", database="shop", extras={"init_command": "SET x = 1"})
    params = build_connection_config(config)
    assert params["autocommit"] is True
    assert params["database"] == "shop"
    assert params["host"] == "db"
    assert params["init_command"] == "SET x = 1"


def test_connection_config_omits_empty_database() -> None:
    assert "database" not in build_connection_config(MySQLConfig())


def test_pool_config_sizes() -> None:
    params = build_pool_config(MySQLConfig(connection_limit=5, min_connections=2))
    assert params["maxsize"] == 5
    assert params["minsize"] == 2
    assert params["autocommit"] is True
