"""
ResultCache - Async-compatible in-memory cache with TTL.

Features:
- Lazily expiring entries (checked on read, swept when the cache is full)
- Bounded size: the entry closest to expiry is evicted at capacity
- No sliding expiration: reads never extend an entry's lifetime
- Entries are replaced on write, never mutated in place
- Injectable clock for tests
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from loguru import logger

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CacheEntry:
    """A single cache entry."""

    value: Any
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        """Check if entry is past its TTL."""
        return now >= self.expires_at


@dataclass
class CacheStats:
    """Cache statistics."""

    hits: int = 0
    misses: int = 0
    expirations: int = 0
    writes: int = 0
    evictions: int = 0
    size: int = 0
    max_size: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "expirations": self.expirations,
            "writes": self.writes,
            "evictions": self.evictions,
            "size": self.size,
            "max_size": self.max_size,
            "hit_rate": f"{self.hit_rate:.2%}",
        }


class ResultCache:
    """
    Key/value cache with per-entry TTL.

    Usage:
        cache = ResultCache(default_ttl=timedelta(minutes=5), max_size=1000)

        record = await cache.get("analytics:user:42")
        if record is None:
            record = await build_record()
            await cache.put("analytics:user:42", record, ttl=timedelta(minutes=5))
    """

    def __init__(
        self,
        default_ttl: timedelta = timedelta(minutes=5),
        clock: Clock | None = None,
        max_size: int = 1000,
    ):
        self._entries: dict[str, CacheEntry] = {}
        self._default_ttl = default_ttl
        self._max_size = max_size
        self._clock = clock or utc_now
        self._lock = asyncio.Lock()
        self._stats = CacheStats()

    async def get(self, key: str) -> Any | None:
        """
        Get value from cache.

        Returns the cached value if present and unexpired, None otherwise.
        """
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._stats.misses += 1
                logger.debug(f"Cache MISS: {key}")
                return None

            if entry.is_expired(self._clock()):
                del self._entries[key]
                self._stats.expirations += 1
                self._stats.misses += 1
                logger.debug(f"Cache EXPIRED: {key}")
                return None

            self._stats.hits += 1
            logger.debug(f"Cache HIT: {key}")
            return entry.value

    async def put(self, key: str, value: Any, ttl: timedelta | None = None) -> None:
        """
        Store value under key, replacing any previous entry.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time to live (uses default if not specified)
        """
        ttl = ttl or self._default_ttl
        now = self._clock()
        entry = CacheEntry(value=value, expires_at=now + ttl)

        async with self._lock:
            if len(self._entries) >= self._max_size and key not in self._entries:
                self._remove_expired(now)
                if len(self._entries) >= self._max_size:
                    self._evict_soonest_expiring()

            self._entries[key] = entry
            self._stats.writes += 1
            logger.debug(f"Cache SET: {key} (TTL: {ttl.total_seconds():g}s)")

    async def cleanup_expired(self) -> int:
        """Remove all expired entries. Returns count of removed entries."""
        async with self._lock:
            return self._remove_expired(self._clock())

    def _remove_expired(self, now: datetime) -> int:
        expired_keys = [k for k, v in self._entries.items() if v.is_expired(now)]
        for key in expired_keys:
            del self._entries[key]

        if expired_keys:
            self._stats.expirations += len(expired_keys)
            logger.debug(f"Cache CLEANUP: {len(expired_keys)} expired entries removed")
        return len(expired_keys)

    def _evict_soonest_expiring(self) -> None:
        if not self._entries:
            return

        key = min(self._entries, key=lambda k: self._entries[k].expires_at)
        del self._entries[key]
        self._stats.evictions += 1
        logger.debug(f"Cache EVICT: {key}")

    def get_stats(self) -> CacheStats:
        """Get cache statistics."""
        self._stats.size = len(self._entries)
        self._stats.max_size = self._max_size
        return self._stats
