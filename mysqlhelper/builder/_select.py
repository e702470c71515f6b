"""Fluent SELECT builder bound to a query executor."""

from typing import TYPE_CHECKING, Any, Optional

from typing_extensions import Self

from mysqlhelper.builder._mixins import JoinClauseMixin, OrderLimitClauseMixin, WhereClauseMixin
from mysqlhelper.core.result import PaginatedResult, PaginationMeta
from mysqlhelper.core.statement import Statement
from mysqlhelper.exceptions import SQLBuilderError, ValidationError

if TYPE_CHECKING:
    from mysqlhelper.core.result import Row
    from mysqlhelper.driver import QueryExecutor

__all__ = ("QueryBuilder",)

COUNT_COLUMN = "COUNT(*) AS count"


class QueryBuilder(WhereClauseMixin, JoinClauseMixin, OrderLimitClauseMixin):
    """Accumulates one SELECT intent and runs it through the executor.

    Every terminal operation (``get``, ``first``, ``count``, ``exists``,
    ``paginate``) resets the builder afterwards, whether it succeeded or not.
    Use :meth:`clone` to reuse a partially built query.

    Example:
        >>> rows = await (
        ...     helper.query_builder()
        ...     .table("users")
        ...     .where("age", ">", 18)
        ...     .where_in("status", ["active", "pending"])
        ...     .order_by("created_at", "DESC")
        ...     .limit(10)
        ...     .get()
        ... )
    """

    __slots__ = (
        "_columns",
        "_executor",
        "_group_by",
        "_having",
        "_having_params",
        "_joins",
        "_limit",
        "_offset",
        "_order_by",
        "_table",
        "_where_params",
        "_wheres",
    )

    def __init__(self, executor: "Optional[QueryExecutor]" = None) -> None:
        self._executor = executor
        self.reset()

    def reset(self) -> Self:
        """Return to the empty default intent: ``SELECT *`` with no clauses."""
        self._table = ""
        self._columns: list[str] = ["*"]
        self._wheres = []
        self._where_params = []
        self._joins = []
        self._order_by = []
        self._group_by = []
        self._having = None
        self._having_params = []
        self._limit = None
        self._offset = None
        return self

    def table(self, table: str) -> Self:
        self._table = table
        return self

    def select(self, *columns: str) -> Self:
        self._columns = list(columns) or ["*"]
        return self

    def _render(self, columns: "list[str]", *, with_ordering: bool = True) -> Statement:
        sql = f"SELECT {', '.join(columns)}"
        if self._table:
            sql += f" FROM {self._table}"
        sql += self._render_joins()
        sql += self._render_where()
        sql += self._render_grouping()
        if with_ordering:
            sql += self._render_ordering()
        return Statement.of(sql, [*self._where_params, *self._having_params])

    def to_sql(self) -> Statement:
        """Render the current intent without executing or resetting it."""
        return self._render(self._columns)

    def _count_statement(self) -> Statement:
        if self._group_by:
            inner = self._render(self._columns, with_ordering=False)
            return Statement(f"SELECT {COUNT_COLUMN} FROM ({inner.text}) AS grouped_rows", inner.params)
        return self._render([COUNT_COLUMN], with_ordering=False)

    def _require_executor(self) -> "QueryExecutor":
        if self._executor is None:
            msg = "QueryBuilder is not bound to an executor"
            raise SQLBuilderError(msg)
        return self._executor

    async def get(self) -> "list[Row]":
        """Execute and return every matching row."""
        try:
            statement = self.to_sql()
            result = await self._require_executor().execute(statement)
            return list(result)
        finally:
            self.reset()

    async def first(self) -> "Optional[Row]":
        """Execute with ``LIMIT 1`` and return the row, or ``None`` when nothing matched."""
        self._limit = 1
        rows = await self.get()
        return rows[0] if rows else None

    async def count(self) -> int:
        """Count matching rows; limit, offset and ordering are ignored."""
        try:
            result = await self._require_executor().execute(self._count_statement())
            return int(result.scalar("count") or 0)
        finally:
            self.reset()

    async def exists(self) -> bool:
        return await self.count() > 0

    async def paginate(self, page: int = 1, per_page: int = 15) -> PaginatedResult:
        """Fetch one page together with the pagination metadata.

        The count and the page query share the same joins and predicates.

        Raises:
            ValidationError: If ``page`` or ``per_page`` is below 1.
        """
        try:
            if page < 1 or per_page < 1:
                msg = f"page and per_page must be at least 1, got page={page} per_page={per_page}"
                raise ValidationError(msg)
            executor = self._require_executor()
            count_statement = self._count_statement()
            page_statement = self.limit(per_page).offset((page - 1) * per_page).to_sql()
            count_result = await executor.execute(count_statement)
            total_items = int(count_result.scalar("count") or 0)
            data = list(await executor.execute(page_statement))
        finally:
            self.reset()
        return PaginatedResult(data=data, pagination=PaginationMeta.build(page, per_page, total_items))

    def clone(self) -> "QueryBuilder":
        """Return an independent builder carrying copies of every clause."""
        cloned = QueryBuilder(self._executor)
        cloned._table = self._table
        cloned._columns = list(self._columns)
        cloned._wheres = list(self._wheres)
        cloned._where_params = list(self._where_params)
        cloned._joins = list(self._joins)
        cloned._order_by = list(self._order_by)
        cloned._group_by = list(self._group_by)
        cloned._having = self._having
        cloned._having_params = list(self._having_params)
        cloned._limit = self._limit
        cloned._offset = self._offset
        return cloned

    def __repr__(self) -> str:
        return f"QueryBuilder({self.to_sql().text!r})"
