"""Statements for stored procedures, indexes, table maintenance and schema introspection."""

from collections.abc import Sequence
from typing import Any, Optional, Union

from mysqlhelper.builder._mixins import placeholders
from mysqlhelper.core.statement import Statement
from mysqlhelper.exceptions import SQLBuilderError

__all__ = (
    "INDEX_METHODS",
    "INDEX_PREFIXES",
    "build_analyze_table",
    "build_call_procedure",
    "build_create_index",
    "build_create_procedure",
    "build_describe_table",
    "build_drop_index",
    "build_drop_procedure",
    "build_index_exists",
    "build_list_indexes",
    "build_list_procedures",
    "build_optimize_table",
    "build_procedure_exists",
    "build_show_tables",
    "build_table_exists",
    "build_truncate_table",
)

INDEX_METHODS = frozenset({"BTREE", "HASH"})
INDEX_PREFIXES = frozenset({"FULLTEXT", "SPATIAL"})


def _schema_predicate(database: Optional[str]) -> tuple[str, list[Any]]:
    """Match the configured schema, or the connection's current one when unset."""
    if database:
        return "?", [database]
    return "DATABASE()", []


def build_call_procedure(name: str, params: "Sequence[Any]" = ()) -> Statement:
    return Statement.of(f"CALL {name}({placeholders(len(params))})", params)


def build_create_procedure(name: str, params: str, body: str) -> Statement:
    """``params`` is the raw parameter list, e.g. ``"IN user_id INT, OUT total INT"``."""
    return Statement(f"CREATE PROCEDURE {name}({params})\nBEGIN\n{body}\nEND")


def build_drop_procedure(name: str, if_exists: bool = True) -> Statement:
    return Statement(f"DROP PROCEDURE {'IF EXISTS ' if if_exists else ''}{name}")


def build_procedure_exists(database: Optional[str], name: str) -> Statement:
    schema, params = _schema_predicate(database)
    sql = (
        "SELECT COUNT(*) AS count FROM information_schema.ROUTINES "
        f"WHERE ROUTINE_SCHEMA = {schema} AND ROUTINE_NAME = ? AND ROUTINE_TYPE = 'PROCEDURE'"
    )
    return Statement.of(sql, [*params, name])


def build_list_procedures(database: Optional[str]) -> Statement:
    schema, params = _schema_predicate(database)
    sql = (
        "SELECT ROUTINE_NAME AS name, CREATED AS created, LAST_ALTERED AS modified "
        f"FROM information_schema.ROUTINES WHERE ROUTINE_SCHEMA = {schema} AND ROUTINE_TYPE = 'PROCEDURE' "
        "ORDER BY ROUTINE_NAME"
    )
    return Statement.of(sql, params)


def build_create_index(
    table: str,
    name: str,
    columns: "Union[str, Sequence[str]]",
    unique: bool = False,
    index_type: Optional[str] = None,
) -> Statement:
    """Build ``CREATE [UNIQUE|FULLTEXT|SPATIAL] INDEX``.

    Args:
        table: Indexed table.
        name: Index name.
        columns: One column expression or a sequence of them.
        unique: Create a UNIQUE index.
        index_type: ``BTREE`` or ``HASH`` (rendered as ``USING``), or
            ``FULLTEXT`` / ``SPATIAL`` (rendered as the index kind).

    Raises:
        SQLBuilderError: On an unknown index type, a UNIQUE FULLTEXT/SPATIAL
            combination, or an empty column list.
    """
    column_list = columns if isinstance(columns, str) else ", ".join(columns)
    if not column_list:
        msg = f"Index {name} requires at least one column"
        raise SQLBuilderError(msg)
    kind = "UNIQUE " if unique else ""
    using = ""
    if index_type:
        normalized = index_type.upper()
        if normalized in INDEX_PREFIXES:
            if unique:
                msg = f"A {normalized} index cannot be UNIQUE"
                raise SQLBuilderError(msg)
            kind = f"{normalized} "
        elif normalized in INDEX_METHODS:
            using = f" USING {normalized}"
        else:
            msg = f"Unsupported index type: {index_type!r}"
            raise SQLBuilderError(msg)
    return Statement(f"CREATE {kind}INDEX {name} ON {table} ({column_list}){using}")


def build_drop_index(table: str, name: str) -> Statement:
    return Statement(f"DROP INDEX {name} ON {table}")


def build_index_exists(database: Optional[str], table: str, name: str) -> Statement:
    schema, params = _schema_predicate(database)
    sql = (
        "SELECT COUNT(*) AS count FROM information_schema.STATISTICS "
        f"WHERE TABLE_SCHEMA = {schema} AND TABLE_NAME = ? AND INDEX_NAME = ?"
    )
    return Statement.of(sql, [*params, table, name])


def build_list_indexes(database: Optional[str], table: str) -> Statement:
    schema, params = _schema_predicate(database)
    sql = (
        "SELECT INDEX_NAME AS name, COLUMN_NAME AS column_name, NON_UNIQUE AS non_unique, "
        "INDEX_TYPE AS index_type, SEQ_IN_INDEX AS sequence "
        f"FROM information_schema.STATISTICS WHERE TABLE_SCHEMA = {schema} AND TABLE_NAME = ? "
        "ORDER BY INDEX_NAME, SEQ_IN_INDEX"
    )
    return Statement.of(sql, [*params, table])


def build_analyze_table(table: str) -> Statement:
    return Statement(f"ANALYZE TABLE {table}")


def build_optimize_table(table: str) -> Statement:
    return Statement(f"OPTIMIZE TABLE {table}")


def build_truncate_table(table: str) -> Statement:
    return Statement(f"TRUNCATE TABLE {table}")


def build_table_exists(table: str) -> Statement:
    return Statement.of("SHOW TABLES LIKE ?", [table])


def build_describe_table(table: str) -> Statement:
    return Statement(f"DESCRIBE {table}")


def build_show_tables() -> Statement:
    return Statement("SHOW TABLES")
