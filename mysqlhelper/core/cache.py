"""Time-bounded result cache.

Each :class:`~mysqlhelper.driver.QueryExecutor` owns one :class:`ResultCache`.
Entries expire after their TTL and are evicted lazily on read, or all at once
through :meth:`ResultCache.clear`. Concurrent writers of the same key follow
last-write-wins.
"""

import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Final, Optional

from mysqlhelper.utils.logging import get_logger
from mysqlhelper.utils.serializers import to_json

if TYPE_CHECKING:
    from mysqlhelper.core.statement import Statement

__all__ = ("CacheEntry", "CacheKey", "CacheStats", "ResultCache", "create_cache_key")

DEFAULT_TTL_SECONDS: Final = 300.0

CacheKey = str

logger = get_logger("core.cache")


def create_cache_key(statement: "Statement") -> CacheKey:
    """Derive the deterministic cache key of a statement from its text and parameters.

    Each parameter is tagged with its type name, so values that share a JSON
    form (``Decimal("1.5")`` and ``"1.5"``) never share a key.
    """
    tagged = [(type(param).__qualname__, param) for param in statement.params]
    return f"{statement.text}:{to_json(tagged)}"


class CacheEntry:
    """A cached value and the monotonic time at which it stops being valid."""

    __slots__ = ("expires_at", "key", "value")

    def __init__(self, key: CacheKey, value: Any, expires_at: float) -> None:
        self.key = key
        self.value = value
        self.expires_at = expires_at

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at

    def __repr__(self) -> str:
        return f"CacheEntry(key={self.key!r}, expires_at={self.expires_at!r})"


class CacheStats:
    """Cache statistics tracking."""

    __slots__ = ("evictions", "hits", "misses")

    def __init__(self) -> None:
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate as percentage."""
        total = self.hits + self.misses
        return (self.hits / total * 100) if total > 0 else 0.0

    def reset(self) -> None:
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def __repr__(self) -> str:
        return f"CacheStats(hit_rate={self.hit_rate:.1f}%, hits={self.hits}, misses={self.misses}, evictions={self.evictions})"


class ResultCache:
    """Key to result map with per-entry time-to-live.

    Args:
        default_ttl: TTL in seconds applied when :meth:`put` gets no override.
        clock: Monotonic time source, replaceable in tests.
    """

    __slots__ = ("_clock", "_entries", "_stats", "default_ttl")

    def __init__(
        self, default_ttl: float = DEFAULT_TTL_SECONDS, clock: "Optional[Callable[[], float]]" = None
    ) -> None:
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._stats = CacheStats()
        self._clock = clock or time.monotonic
        self.default_ttl = default_ttl

    def get(self, key: CacheKey) -> Optional[Any]:
        """Return the cached value, or ``None`` on a miss or an expired entry."""
        entry = self._entries.get(key)
        if entry is None:
            self._stats.misses += 1
            return None
        if entry.is_expired(self._clock()):
            del self._entries[key]
            self._stats.misses += 1
            self._stats.evictions += 1
            return None
        self._stats.hits += 1
        return entry.value

    def put(self, key: CacheKey, value: Any, ttl: Optional[float] = None) -> CacheEntry:
        effective_ttl = self.default_ttl if ttl is None else ttl
        entry = CacheEntry(key, value, self._clock() + effective_ttl)
        self._entries[key] = entry
        return entry

    def delete(self, key: CacheKey) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> int:
        """Drop every entry and reset statistics.

        Returns:
            Number of entries removed.
        """
        removed = len(self._entries)
        self._entries.clear()
        self._stats.reset()
        logger.debug("Result cache cleared (%d entries)", removed)
        return removed

    @property
    def stats(self) -> CacheStats:
        return self._stats

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        entry = self._entries.get(key)  # type: ignore[call-overload]
        return entry is not None and not entry.is_expired(self._clock())
