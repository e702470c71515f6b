"""In-memory log of executed statements."""

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

__all__ = ("QueryLog", "QueryLogEntry")


@dataclass(slots=True, frozen=True)
class QueryLogEntry:
    sql: str
    params: tuple[Any, ...]
    execution_time: float
    """Wall-clock execution time in seconds."""
    timestamp: float
    """Epoch seconds at which the statement completed."""


class QueryLog:
    """Append-only statement log, bounded only by explicit :meth:`clear` calls."""

    __slots__ = ("_entries",)

    def __init__(self) -> None:
        self._entries: list[QueryLogEntry] = []

    def append(self, entry: QueryLogEntry) -> None:
        self._entries.append(entry)

    def entries(self) -> list[QueryLogEntry]:
        return list(self._entries)

    def slow_queries(self, threshold: float = 1.0) -> list[QueryLogEntry]:
        """Entries whose execution time exceeded ``threshold`` seconds."""
        return [entry for entry in self._entries if entry.execution_time > threshold]

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[QueryLogEntry]:
        return iter(tuple(self._entries))
