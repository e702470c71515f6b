"""SQL construction: the fluent SELECT builder and the statement helpers behind the facade."""

from mysqlhelper.builder._ddl import (
    build_analyze_table,
    build_call_procedure,
    build_create_index,
    build_create_procedure,
    build_describe_table,
    build_drop_index,
    build_drop_procedure,
    build_index_exists,
    build_list_indexes,
    build_list_procedures,
    build_optimize_table,
    build_procedure_exists,
    build_show_tables,
    build_table_exists,
    build_truncate_table,
)
from mysqlhelper.builder._dml import (
    AggregateFunction,
    build_aggregate,
    build_delete,
    build_insert,
    build_insert_many,
    build_select,
    build_update,
    build_upsert,
    render_filter,
)
from mysqlhelper.builder._mixins import JoinClauseMixin, OrderLimitClauseMixin, WhereClauseMixin
from mysqlhelper.builder._select import QueryBuilder

__all__ = (
    "AggregateFunction",
    "JoinClauseMixin",
    "OrderLimitClauseMixin",
    "QueryBuilder",
    "WhereClauseMixin",
    "build_aggregate",
    "build_analyze_table",
    "build_call_procedure",
    "build_create_index",
    "build_create_procedure",
    "build_delete",
    "build_describe_table",
    "build_drop_index",
    "build_drop_procedure",
    "build_index_exists",
    "build_insert",
    "build_insert_many",
    "build_list_indexes",
    "build_list_procedures",
    "build_optimize_table",
    "build_procedure_exists",
    "build_select",
    "build_show_tables",
    "build_table_exists",
    "build_truncate_table",
    "build_update",
    "build_upsert",
    "render_filter",
)
