"""Chunked bulk loading and bounded-concurrency processing."""

import asyncio
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Any, Optional, TypedDict, TypeVar

from mysqlhelper.core.result import BatchInsertResult, BatchProgress
from mysqlhelper.exceptions import ValidationError
from mysqlhelper.observability import Signal
from mysqlhelper.utils.logging import get_logger

if TYPE_CHECKING:
    from mysqlhelper.core.result import InsertResult, UpdateResult
    from mysqlhelper.observability import SignalBus

__all__ = ("BatchCoordinator", "ProgressCallback", "UpdateBatch", "chunked")

logger = get_logger("driver.batch")

T = TypeVar("T")
R = TypeVar("R")

InsertManyFunc = Callable[[str, Sequence[Mapping[str, Any]]], Awaitable["InsertResult"]]
UpdateFunc = Callable[[str, Mapping[str, Any], Mapping[str, Any]], Awaitable["UpdateResult"]]
ProgressCallback = Callable[[BatchProgress], Any]


class UpdateBatch(TypedDict):
    """One entry of :meth:`BatchCoordinator.batch_update`."""

    data: Mapping[str, Any]
    where: Mapping[str, Any]


def chunked(items: "Sequence[T]", size: int) -> "list[Sequence[T]]":
    """Split ``items`` into consecutive slices of at most ``size`` elements."""
    if size < 1:
        msg = f"Chunk size must be at least 1, got {size}"
        raise ValidationError(msg)
    return [items[start : start + size] for start in range(0, len(items), size)]


class BatchCoordinator:
    """Runs bulk inserts, updates and arbitrary chunk processors.

    Args:
        signals: Bus receiving ``BATCH_PROGRESS`` events.
        insert_many: Coroutine inserting one chunk as a multi-row ``INSERT``.
        update: Coroutine running one ``UPDATE`` from a data and a where mapping.
    """

    __slots__ = ("_insert_many", "_signals", "_update")

    def __init__(self, signals: "SignalBus", insert_many: InsertManyFunc, update: UpdateFunc) -> None:
        self._signals = signals
        self._insert_many = insert_many
        self._update = update

    def _report(self, progress: BatchProgress, on_progress: Optional[ProgressCallback] = None) -> None:
        logger.debug(
            "Batch progress %d/%d (%d/%d items)",
            progress.current_chunk,
            progress.total_chunks,
            progress.items_processed,
            progress.total_items,
        )
        if on_progress is not None:
            on_progress(progress)
        self._signals.emit(Signal.BATCH_PROGRESS, progress)

    async def batch_insert(
        self, table: str, rows: "Sequence[Mapping[str, Any]]", chunk_size: int = 100
    ) -> BatchInsertResult:
        """Insert ``rows`` in sequential chunks of ``chunk_size``.

        Raises:
            ValidationError: If ``rows`` is empty or ``chunk_size`` is below 1.
        """
        if not rows:
            msg = "Batch insert requires at least one row"
            raise ValidationError(msg)
        chunks = chunked(rows, chunk_size)
        result = BatchInsertResult(total_batches=len(chunks), total_inserted=len(rows))
        processed = 0
        for index, chunk in enumerate(chunks, start=1):
            result.results.append(await self._insert_many(table, chunk))
            processed += len(chunk)
            self._report(BatchProgress(index, len(chunks), processed, len(rows)))
        return result

    async def batch_update(
        self, table: str, updates: "Sequence[UpdateBatch]", chunk_size: int = 100
    ) -> "list[UpdateResult]":
        """Apply ``updates``; entries within a chunk run concurrently, chunks run in order."""
        chunks = chunked(updates, chunk_size)
        results: list[UpdateResult] = []
        processed = 0
        for index, chunk in enumerate(chunks, start=1):
            results.extend(
                await asyncio.gather(*(self._update(table, entry["data"], entry["where"]) for entry in chunk))
            )
            processed += len(chunk)
            self._report(BatchProgress(index, len(chunks), processed, len(updates)))
        return results

    async def batch_process(
        self,
        items: "Sequence[T]",
        processor: "Callable[[Sequence[T]], Awaitable[R]]",
        chunk_size: int = 100,
        concurrency: int = 5,
        on_progress: Optional[ProgressCallback] = None,
    ) -> "list[R]":
        """Feed ``items`` to ``processor`` chunk by chunk, at most ``concurrency`` chunks at a time.

        Progress is reported once per completed window. An exception raised by
        ``processor`` propagates and no further windows are started.

        Returns:
            The processor results in chunk order.
        """
        if concurrency < 1:
            msg = f"Concurrency must be at least 1, got {concurrency}"
            raise ValidationError(msg)
        chunks = chunked(items, chunk_size)
        results: list[R] = []
        processed = 0
        for start in range(0, len(chunks), concurrency):
            window = chunks[start : start + concurrency]
            results.extend(await asyncio.gather(*(processor(chunk) for chunk in window)))
            processed += sum(len(chunk) for chunk in window)
            self._report(BatchProgress(start + len(window), len(chunks), processed, len(items)), on_progress)
        return results
