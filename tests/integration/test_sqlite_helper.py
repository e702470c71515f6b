"""End-to-end tests of MySQLHelper against an aiosqlite-backed client."""

from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any

import pytest

from mysqlhelper import MySQLConfig, MySQLHelper
from mysqlhelper.exceptions import ConnectionError, TransactionError, ValidationError
from mysqlhelper.observability import Signal
from tests.fixtures.sqlite_client import SqliteClient

pytestmark = [pytest.mark.anyio, pytest.mark.integration]

CREATE_USERS = """
CREATE TABLE users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    age INTEGER,
    created_at TEXT,
    updated_at TEXT
)
"""


@pytest.fixture
def database(tmp_path: Path) -> str:
    return str(tmp_path / "test.db")


@pytest.fixture
def client(database: str) -> SqliteClient:
    return SqliteClient(database)


@pytest.fixture
async def helper(client: SqliteClient) -> AsyncIterator[MySQLHelper]:
    async with MySQLHelper(MySQLConfig(database="test", connection_limit=4), client) as db:
        await db.query(CREATE_USERS, cache=False)
        yield db


async def _seed(helper: MySQLHelper, count: int) -> None:
    await helper.batch_insert("users", [{"name": f"user{index}", "age": 20 + index} for index in range(count)], 10)


async def test_crud_round_trip(helper: MySQLHelper) -> None:
    inserted = await helper.insert("users", {"name": "Ada", "age": 36})
    assert inserted.insert_id == 1
    assert inserted.affected_rows == 1

    row = await helper.find_by_id("users", inserted.insert_id)
    assert row is not None
    assert row["name"] == "Ada"
    assert row["created_at"] is not None
    assert row["created_at"] == row["updated_at"]

    updated = await helper.update("users", {"age": 37}, {"id": 1})
    assert updated.affected_rows == 1
    assert (await helper.find_one("users", {"name": "Ada"}))["age"] == 37  # type: ignore[index]

    deleted = await helper.delete("users", {"id": 1})
    assert deleted.affected_rows == 1
    assert await helper.exists("users") is False


async def test_aggregates(helper: MySQLHelper) -> None:
    await _seed(helper, 5)

    assert await helper.count("users") == 5
    assert await helper.sum("users", "age") == 20 + 21 + 22 + 23 + 24
    assert await helper.avg("users", "age") == 22
    assert await helper.min("users", "age") == 20
    assert await helper.max("users", "age", {"name": "user1"}) == 21
    assert await helper.sum("users", "age", {"name": "nobody"}) == 0


async def test_batch_insert_reports_progress(helper: MySQLHelper) -> None:
    progress: list[Any] = []
    helper.on(Signal.BATCH_PROGRESS, lambda signal, payload: progress.append(payload))

    result = await helper.batch_insert("users", [{"name": f"u{index}", "age": index} for index in range(25)], 10)

    assert result.total_batches == 3
    assert result.total_inserted == 25
    assert [event.items_processed for event in progress] == [10, 20, 25]
    assert await helper.count("users") == 25


async def test_paginate(helper: MySQLHelper) -> None:
    await _seed(helper, 25)

    page = await helper.paginate("users", page=2, per_page=10)

    assert [row["id"] for row in page.data] == list(range(15, 5, -1))
    assert page.pagination.total_items == 25
    assert page.pagination.total_pages == 3
    assert page.pagination.has_next_page is True
    assert page.pagination.has_prev_page is True

    last = await helper.paginate("users", page=3, per_page=10, order_by="id ASC")
    assert [row["id"] for row in last.data] == list(range(21, 26))
    assert last.pagination.has_next_page is False


async def test_query_builder(helper: MySQLHelper) -> None:
    await _seed(helper, 10)
    builder = helper.query_builder()

    rows = (
        await builder.table("users").select("name", "age").where("age", ">=", 25).order_by("age", "desc").limit(3).get()
    )
    assert [row["age"] for row in rows] == [29, 28, 27]

    assert await builder.table("users").where_in("name", ["user0", "user1"]).count() == 2
    assert await builder.table("users").where_between("age", 22, 24).count() == 3
    assert await builder.table("users").where_in("name", []).exists() is False

    page = await builder.table("users").where("age", "<", 28).order_by("id").paginate(page=2, per_page=3)
    assert [row["id"] for row in page.data] == [4, 5, 6]
    assert page.pagination.total_items == 8


async def test_transaction_commit(helper: MySQLHelper, client: SqliteClient) -> None:
    async with helper.transaction() as connection:
        await helper.transaction_query(connection, "INSERT INTO users (name, age) VALUES (?, ?)", ["Ada", 36])
        await helper.transaction_query(connection, "INSERT INTO users (name, age) VALUES (?, ?)", ["Bob", 41])

    assert await helper.count("users") == 2
    assert client.pool is not None
    assert client.pool.status().free_connections == client.pool.status().total_connections


async def test_transaction_rollback_is_atomic(helper: MySQLHelper) -> None:
    events: list[Signal] = []
    helper.on(Signal.TRANSACTION_ROLLED_BACK, lambda signal, payload: events.append(signal))

    async def transfer(connection: Any) -> None:
        await helper.transaction_query(connection, "INSERT INTO users (name, age) VALUES (?, ?)", ["Ada", 36])
        msg = "insufficient funds"
        raise ValueError(msg)

    with pytest.raises(TransactionError, match="insufficient funds"):
        await helper.with_transaction(transfer)

    assert await helper.count("users") == 0
    assert events == [Signal.TRANSACTION_ROLLED_BACK]


async def test_manual_transaction_handle(helper: MySQLHelper) -> None:
    transaction = await helper.begin_transaction()
    await transaction.execute("INSERT INTO users (name, age) VALUES (?, ?)", ["Ada", 36])
    await transaction.commit()

    assert await helper.count("users", {"name": "Ada"}) == 1


async def test_validation_errors_do_not_touch_the_database(helper: MySQLHelper) -> None:
    with pytest.raises(ValidationError):
        await helper.delete("users", {})
    with pytest.raises(ValidationError):
        await helper.batch_insert("users", [])
    assert helper.get_query_log() == []


async def test_connect_retries_until_success(database: str) -> None:
    client = SqliteClient(database, fail_connects=2)
    async with MySQLHelper(MySQLConfig(retry_attempts=3, retry_delay=0), client) as helper:
        await helper.connect()
        result = await helper.query("SELECT 1 AS one")

    assert client.connect_attempts == 3
    assert result.scalar("one") == 1
    assert client.pool is None
    assert client.standalone[0].closed is True


async def test_connect_gives_up_after_retry_attempts(database: str) -> None:
    client = SqliteClient(database, fail_connects=5)
    helper = MySQLHelper(MySQLConfig(retry_attempts=2, retry_delay=0), client)

    with pytest.raises(ConnectionError, match="after 2 attempts"):
        await helper.connect()
    assert client.connect_attempts == 2


async def test_query_log_and_cache(client: SqliteClient) -> None:
    async with MySQLHelper(MySQLConfig(cache=True, log_queries=True), client) as helper:
        await helper.query(CREATE_USERS, cache=False)
        await helper.insert("users", {"name": "Ada", "age": 36})

        first = await helper.select("users", where={"name": "Ada"})
        second = await helper.select("users", where={"name": "Ada"})

        assert first == second
        assert helper.cache_stats.hits == 1
        assert len(helper.get_query_log()) == 3
        assert helper.clear_cache() == 1
