"""Statement construction for the table-level CRUD and aggregate helpers.

Filters are given as mappings and rendered as ``column = ?`` predicates joined
with AND; a ``None`` value renders ``column IS NULL``.
"""

from collections.abc import Mapping, Sequence
from typing import Any, Literal, Optional, Union

from mysqlhelper.builder._mixins import placeholders, validate_non_negative
from mysqlhelper.core.statement import Statement
from mysqlhelper.exceptions import ValidationError

__all__ = (
    "AggregateFunction",
    "build_aggregate",
    "build_delete",
    "build_insert",
    "build_insert_many",
    "build_select",
    "build_update",
    "build_upsert",
    "render_filter",
)

AggregateFunction = Literal["COUNT", "SUM", "AVG", "MIN", "MAX"]

AGGREGATE_ALIASES: "Mapping[str, str]" = {
    "COUNT": "count",
    "SUM": "total",
    "AVG": "average",
    "MIN": "minimum",
    "MAX": "maximum",
}

Columns = Union[str, Sequence[str]]


def _column_list(columns: Columns) -> str:
    return columns if isinstance(columns, str) else ", ".join(columns)


def render_filter(where: "Optional[Mapping[str, Any]]") -> tuple[str, list[Any]]:
    """Render a filter mapping as a WHERE clause (with leading space) and its params."""
    if not where:
        return "", []
    conditions: list[str] = []
    params: list[Any] = []
    for column, value in where.items():
        if value is None:
            conditions.append(f"{column} IS NULL")
        else:
            conditions.append(f"{column} = ?")
            params.append(value)
    return " WHERE " + " AND ".join(conditions), params


def build_select(
    table: str,
    columns: Columns = "*",
    where: "Optional[Mapping[str, Any]]" = None,
    order_by: Optional[str] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
    group_by: Optional[str] = None,
    having: Optional[str] = None,
) -> Statement:
    where_sql, params = render_filter(where)
    sql = f"SELECT {_column_list(columns)} FROM {table}{where_sql}"
    if group_by:
        sql += f" GROUP BY {group_by}"
    if having:
        sql += f" HAVING {having}"
    if order_by:
        sql += f" ORDER BY {order_by}"
    if limit is not None:
        sql += f" LIMIT {validate_non_negative('limit', limit)}"
    if offset is not None:
        sql += f" OFFSET {validate_non_negative('offset', offset)}"
    return Statement.of(sql, params)


def build_insert(table: str, data: "Mapping[str, Any]") -> Statement:
    if not data:
        msg = f"Insert into {table} requires at least one column"
        raise ValidationError(msg)
    columns = list(data)
    sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders(len(columns))})"
    return Statement.of(sql, list(data.values()))


def build_insert_many(table: str, rows: "Sequence[Mapping[str, Any]]") -> Statement:
    """Build one multi-row INSERT; every row must carry exactly the first row's columns.

    Raises:
        ValidationError: If ``rows`` is empty or the rows' columns differ.
    """
    if not rows:
        msg = "Data array cannot be empty"
        raise ValidationError(msg)
    columns = list(rows[0])
    if not columns:
        msg = f"Insert into {table} requires at least one column"
        raise ValidationError(msg)
    expected = set(columns)
    params: list[Any] = []
    for index, row in enumerate(rows):
        if set(row) != expected:
            msg = f"Row {index} columns {sorted(row)} do not match {sorted(expected)}"
            raise ValidationError(msg)
        params.extend(row[column] for column in columns)
    group = f"({placeholders(len(columns))})"
    sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES {', '.join([group] * len(rows))}"
    return Statement.of(sql, params)


def build_upsert(
    table: str,
    data: "Mapping[str, Any]",
    update_fields: "Optional[Sequence[str]]" = None,
    exclude: "Sequence[str]" = (),
) -> Statement:
    """Build ``INSERT ... ON DUPLICATE KEY UPDATE``.

    Without ``update_fields`` every inserted column except those in ``exclude``
    is updated from the inserted values.
    """
    statement = build_insert(table, data)
    fields = list(update_fields) if update_fields else [column for column in data if column not in exclude]
    if not fields:
        msg = f"Upsert into {table} has no columns to update"
        raise ValidationError(msg)
    assignments = ", ".join(f"{field} = VALUES({field})" for field in fields)
    return Statement(f"{statement.text} ON DUPLICATE KEY UPDATE {assignments}", statement.params)


def build_update(table: str, data: "Mapping[str, Any]", where: "Mapping[str, Any]") -> Statement:
    """Build an UPDATE; refuses to run without a filter.

    Raises:
        ValidationError: If ``data`` or ``where`` is empty.
    """
    if not data:
        msg = f"Update of {table} requires at least one column"
        raise ValidationError(msg)
    if not where:
        msg = f"Update of {table} requires a WHERE condition"
        raise ValidationError(msg)
    where_sql, where_params = render_filter(where)
    set_clause = ", ".join(f"{column} = ?" for column in data)
    return Statement.of(f"UPDATE {table} SET {set_clause}{where_sql}", [*data.values(), *where_params])


def build_delete(table: str, where: "Mapping[str, Any]") -> Statement:
    if not where:
        msg = f"Delete from {table} requires a WHERE condition"
        raise ValidationError(msg)
    where_sql, params = render_filter(where)
    return Statement.of(f"DELETE FROM {table}{where_sql}", params)


def build_aggregate(
    function: AggregateFunction, table: str, column: str = "*", where: "Optional[Mapping[str, Any]]" = None
) -> tuple[Statement, str]:
    """Build ``SELECT <function>(column) AS <alias>``.

    Returns:
        The statement and the alias the value is selected under.
    """
    alias = AGGREGATE_ALIASES[function]
    where_sql, params = render_filter(where)
    return Statement.of(f"SELECT {function}({column}) AS {alias} FROM {table}{where_sql}", params), alias
