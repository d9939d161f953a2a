"""
Aggregator - Cached fan-out over downstream sources.

Per request:
    cache check -> hit: return cached record
                -> miss: fetch all sources concurrently, wait for all,
                   fold successful payloads into the record fields,
                   leave failed sources at their defaults, stamp,
                   cache, return

A failing source never fails the aggregation. The worst outcome is a
record with more fields at their defaults.
"""

import asyncio
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Awaitable, Callable, Sequence, TypeVar

from loguru import logger

from aggregator.models import AggregatedRecord
from aggregator.services.cache import Clock, ResultCache, utc_now
from aggregator.services.errors import CacheError
from aggregator.services.outcome import CallOutcome, Failure, Success

R = TypeVar("R", bound=AggregatedRecord)


@dataclass(frozen=True)
class SourceFetch:
    """One contribution to an aggregated record."""

    name: str
    fetch: Callable[[], Awaitable[CallOutcome]]
    fold: Callable[[Any], dict[str, Any]]  # payload -> record fields


class Aggregator:
    """
    Generic cache-aside aggregation engine.

    Usage:
        aggregator = Aggregator(ResultCache())
        record = await aggregator.aggregate(
            key="analytics:global",
            record_type=GlobalAnalytics,
            sources=[
                SourceFetch("content", fetch_posts, lambda posts: {...}),
            ],
            ttl=timedelta(minutes=10),
        )
    """

    def __init__(self, cache: ResultCache, clock: Clock | None = None):
        self._cache = cache
        self._clock = clock or utc_now
        # Fills outlive the request that started them
        self._fills: set[asyncio.Task[Any]] = set()

    @property
    def cache(self) -> ResultCache:
        return self._cache

    async def aggregate(
        self,
        key: str,
        record_type: type[R],
        sources: Sequence[SourceFetch],
        ttl: timedelta,
        base_fields: dict[str, Any] | None = None,
        cache_if: Callable[[R], bool] | None = None,
    ) -> R:
        """
        Return the cached record for key, or build, cache and return a new one.

        Args:
            key: Cache key for this subject
            record_type: Record class; fields missing from base_fields and
                from successful folds take the class defaults
            sources: Contributions to fetch concurrently
            ttl: Lifetime of the cached record
            base_fields: Fields known before fetching (e.g. the subject id)
            cache_if: Optional predicate; the record is only cached if it
                returns True
        """
        cached = await self._cache_get(key)
        if cached is not None:
            logger.info(f"Cache hit for {key}")
            return cached

        logger.info(f"Cache miss for {key}, aggregating {len(sources)} sources")

        fill = asyncio.create_task(
            self._fill(key, record_type, sources, ttl, base_fields or {}, cache_if)
        )
        self._fills.add(fill)
        fill.add_done_callback(self._fills.discard)

        return await asyncio.shield(fill)

    async def _fill(
        self,
        key: str,
        record_type: type[R],
        sources: Sequence[SourceFetch],
        ttl: timedelta,
        base_fields: dict[str, Any],
        cache_if: Callable[[R], bool] | None,
    ) -> R:
        results = await asyncio.gather(
            *(source.fetch() for source in sources), return_exceptions=True
        )

        fields = dict(base_fields)
        degraded: list[str] = []
        for source, result in zip(sources, results):
            if isinstance(result, Success):
                try:
                    fields.update(source.fold(result.payload))
                except Exception as e:
                    degraded.append(source.name)
                    logger.opt(exception=e).error(
                        f"Source {source.name} returned an unusable payload for {key}"
                    )
            elif isinstance(result, Failure):
                degraded.append(source.name)
                logger.warning(
                    f"Source {source.name} unavailable for {key}: {result.reason}"
                )
            else:
                degraded.append(source.name)
                logger.opt(exception=result).error(
                    f"Source {source.name} raised while aggregating {key}"
                )

        fields["last_updated"] = self._clock()
        record = record_type(**fields)

        if cache_if is None or cache_if(record):
            await self._cache_put(key, record, ttl)

        if degraded:
            logger.info(f"Aggregated {key} with defaults for: {', '.join(degraded)}")
        else:
            logger.info(f"Aggregated {key} from {len(sources)} sources")
        return record

    async def _cache_get(self, key: str) -> Any | None:
        try:
            return await self._cache.get(key)
        except CacheError as e:
            logger.warning(f"Cache unavailable reading {key}, aggregating live: {e}")
            return None

    async def _cache_put(self, key: str, record: AggregatedRecord, ttl: timedelta) -> None:
        try:
            await self._cache.put(key, record, ttl)
        except CacheError as e:
            logger.warning(f"Cache unavailable writing {key}, result not cached: {e}")

    async def wait_for_fills(self) -> None:
        """Wait for in-flight fills to finish (used on shutdown)."""
        if self._fills:
            await asyncio.gather(*self._fills, return_exceptions=True)
