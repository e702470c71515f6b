"""Clause mixins composing the fluent SELECT builder."""

from collections.abc import Sequence
from typing import Any, Literal, Optional

from mypy_extensions import trait
from typing_extensions import Self

from mysqlhelper.exceptions import SQLBuilderError

__all__ = ("JoinClauseMixin", "OrderLimitClauseMixin", "WhereClauseMixin")

Conjunction = Literal["AND", "OR"]

ORDER_DIRECTIONS = frozenset({"ASC", "DESC"})

# MySQL accepts OFFSET only after LIMIT; this is the documented "all rows" bound.
UNBOUNDED_LIMIT = 18446744073709551615


def placeholders(count: int) -> str:
    return ", ".join(["?"] * count)


def validate_non_negative(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        msg = f"{name} must be a non-negative integer, got {value!r}"
        raise SQLBuilderError(msg)
    return value


@trait
class WhereClauseMixin:
    """Predicates joined with AND unless added through :meth:`or_where`."""

    __slots__ = ()

    _wheres: "list[tuple[Conjunction, str]]"
    _where_params: "list[Any]"

    def _add_predicate(self, fragment: str, params: "Sequence[Any]" = (), conjunction: Conjunction = "AND") -> Self:
        self._wheres.append((conjunction, fragment))
        self._where_params.extend(params)
        return self

    def where(self, column: str, operator: Any, value: Any = ..., /) -> Self:
        """Add ``column <operator> ?``; called with two arguments the operator is ``=``."""
        if value is ...:
            operator, value = "=", operator
        return self._add_predicate(f"{column} {operator} ?", (value,))

    def or_where(self, column: str, operator: Any, value: Any = ..., /) -> Self:
        """Like :meth:`where` but joined with OR.

        As the first predicate it is emitted without a conjunction.
        """
        if value is ...:
            operator, value = "=", operator
        return self._add_predicate(f"{column} {operator} ?", (value,), conjunction="OR")

    def where_in(self, column: str, values: "Sequence[Any]") -> Self:
        if not values:
            return self._add_predicate("1 = 0")
        return self._add_predicate(f"{column} IN ({placeholders(len(values))})", values)

    def where_not_in(self, column: str, values: "Sequence[Any]") -> Self:
        if not values:
            return self._add_predicate("1 = 1")
        return self._add_predicate(f"{column} NOT IN ({placeholders(len(values))})", values)

    def where_between(self, column: str, low: Any, high: Any) -> Self:
        return self._add_predicate(f"{column} BETWEEN ? AND ?", (low, high))

    def where_not_between(self, column: str, low: Any, high: Any) -> Self:
        return self._add_predicate(f"{column} NOT BETWEEN ? AND ?", (low, high))

    def where_null(self, column: str) -> Self:
        return self._add_predicate(f"{column} IS NULL")

    def where_not_null(self, column: str) -> Self:
        return self._add_predicate(f"{column} IS NOT NULL")

    def where_like(self, column: str, pattern: str) -> Self:
        return self._add_predicate(f"{column} LIKE ?", (pattern,))

    def where_not_like(self, column: str, pattern: str) -> Self:
        return self._add_predicate(f"{column} NOT LIKE ?", (pattern,))

    def where_raw(self, condition: str, params: "Optional[Sequence[Any]]" = None) -> Self:
        """Add a raw condition; its ``?`` placeholders bind ``params`` in order."""
        return self._add_predicate(condition, params or ())

    def _render_where(self) -> str:
        if not self._wheres:
            return ""
        parts = [self._wheres[0][1]]
        parts.extend(f"{conjunction} {fragment}" for conjunction, fragment in self._wheres[1:])
        return " WHERE " + " ".join(parts)


@trait
class JoinClauseMixin:
    """Joins rendered in call order between the table and the predicates."""

    __slots__ = ()

    _joins: "list[str]"

    def join(self, table: str, left: str, operator: str, right: str) -> Self:
        self._joins.append(f"INNER JOIN {table} ON {left} {operator} {right}")
        return self

    def left_join(self, table: str, left: str, operator: str, right: str) -> Self:
        self._joins.append(f"LEFT JOIN {table} ON {left} {operator} {right}")
        return self

    def right_join(self, table: str, left: str, operator: str, right: str) -> Self:
        self._joins.append(f"RIGHT JOIN {table} ON {left} {operator} {right}")
        return self

    def cross_join(self, table: str) -> Self:
        self._joins.append(f"CROSS JOIN {table}")
        return self

    def _render_joins(self) -> str:
        return "".join(f" {join}" for join in self._joins)


@trait
class OrderLimitClauseMixin:
    """GROUP BY, HAVING, ORDER BY, LIMIT and OFFSET clauses."""

    __slots__ = ()

    _group_by: "list[str]"
    _having: "Optional[str]"
    _having_params: "list[Any]"
    _order_by: "list[str]"
    _limit: "Optional[int]"
    _offset: "Optional[int]"

    def group_by(self, *columns: str) -> Self:
        self._group_by.extend(columns)
        return self

    def having(self, condition: str, *params: Any) -> Self:
        """Set the HAVING condition, replacing any previous one."""
        self._having = condition
        self._having_params = list(params)
        return self

    def order_by(self, column: str, direction: str = "ASC") -> Self:
        normalized = direction.upper()
        if normalized not in ORDER_DIRECTIONS:
            msg = f"Invalid order direction: {direction!r}. Expected ASC or DESC"
            raise SQLBuilderError(msg)
        self._order_by.append(f"{column} {normalized}")
        return self

    def order_by_raw(self, expression: str) -> Self:
        self._order_by.append(expression)
        return self

    def limit(self, limit: int) -> Self:
        self._limit = validate_non_negative("limit", limit)
        return self

    def offset(self, offset: int) -> Self:
        self._offset = validate_non_negative("offset", offset)
        return self

    def _render_grouping(self) -> str:
        sql = ""
        if self._group_by:
            sql += " GROUP BY " + ", ".join(self._group_by)
        if self._having:
            sql += f" HAVING {self._having}"
        return sql

    def _render_ordering(self) -> str:
        sql = ""
        if self._order_by:
            sql += " ORDER BY " + ", ".join(self._order_by)
        if self._limit is not None:
            sql += f" LIMIT {self._limit}"
        elif self._offset is not None:
            sql += f" LIMIT {UNBOUNDED_LIMIT}"
        if self._offset is not None:
            sql += f" OFFSET {self._offset}"
        return sql
