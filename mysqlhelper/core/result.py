"""Result containers returned by the execution pipeline and the facade."""

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any, Optional, Union, overload

__all__ = (
    "BatchInsertResult",
    "BatchProgress",
    "DeleteResult",
    "IndexInfo",
    "InsertResult",
    "PaginatedResult",
    "PaginationMeta",
    "PoolStatus",
    "QueryResult",
    "UpdateResult",
)

Row = dict[str, Any]


class QueryResult(Sequence[Row]):
    """Rows and write metadata produced by one statement.

    Behaves as a read-only sequence of dict rows. Statements that do not return
    rows have an empty row list and carry ``affected_rows`` / ``last_insert_id``.
    """

    __slots__ = ("affected_rows", "column_names", "last_insert_id", "rows")

    def __init__(
        self,
        rows: Optional[list[Row]] = None,
        column_names: Optional[list[str]] = None,
        affected_rows: int = 0,
        last_insert_id: Optional[int] = None,
    ) -> None:
        self.rows: list[Row] = rows if rows is not None else []
        self.column_names: list[str] = column_names if column_names is not None else []
        self.affected_rows = affected_rows
        self.last_insert_id = last_insert_id

    @overload
    def __getitem__(self, index: int) -> Row: ...

    @overload
    def __getitem__(self, index: slice) -> list[Row]: ...

    def __getitem__(self, index: Union[int, slice]) -> Union[Row, list[Row]]:
        return self.rows[index]

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[Row]:
        return iter(self.rows)

    def __repr__(self) -> str:
        return (
            f"QueryResult(rows={len(self.rows)}, affected_rows={self.affected_rows}, "
            f"last_insert_id={self.last_insert_id!r})"
        )

    @property
    def row_count(self) -> int:
        """Number of rows returned, or rows affected for write statements."""
        return len(self.rows) if self.rows else self.affected_rows

    def first(self) -> Optional[Row]:
        return self.rows[0] if self.rows else None

    def scalar(self, column: str) -> Any:
        """Value of ``column`` in the first row, ``None`` when there is no row."""
        row = self.first()
        return row.get(column) if row is not None else None


@dataclass(slots=True)
class InsertResult:
    insert_id: Optional[int]
    affected_rows: int


@dataclass(slots=True)
class UpdateResult:
    affected_rows: int
    changed_rows: int


@dataclass(slots=True)
class DeleteResult:
    affected_rows: int


@dataclass(slots=True)
class BatchInsertResult:
    total_batches: int
    total_inserted: int
    results: list[InsertResult] = field(default_factory=list)


@dataclass(slots=True)
class BatchProgress:
    """Progress snapshot emitted after a chunk (or a window of chunks) completes."""

    current_chunk: int
    total_chunks: int
    items_processed: int
    total_items: int

    @property
    def percentage(self) -> int:
        if not self.total_items:
            return 100
        return round(self.items_processed / self.total_items * 100)


@dataclass(slots=True)
class PaginationMeta:
    current_page: int
    per_page: int
    total_items: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool

    @classmethod
    def build(cls, page: int, per_page: int, total_items: int) -> "PaginationMeta":
        total_pages = -(-total_items // per_page)
        return cls(
            current_page=page,
            per_page=per_page,
            total_items=total_items,
            total_pages=total_pages,
            has_next_page=page < total_pages,
            has_prev_page=page > 1,
        )


@dataclass(slots=True)
class PaginatedResult:
    data: list[Row]
    pagination: PaginationMeta


@dataclass(slots=True)
class PoolStatus:
    total_connections: int
    free_connections: int
    queued_requests: int
    connection_limit: int
    queue_limit: int


@dataclass(slots=True)
class IndexInfo:
    name: str
    columns: list[str]
    unique: bool
    index_type: str
