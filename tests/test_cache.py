import asyncio
from datetime import timedelta

import pytest

from aggregator.services.cache import ResultCache
from tests.conftest import ManualClock


@pytest.fixture
def cache(clock) -> ResultCache:
    return ResultCache(default_ttl=timedelta(minutes=5), clock=clock)


@pytest.mark.asyncio
async def test_missing_key_is_a_miss(cache):
    assert await cache.get("analytics:user:1") is None
    assert cache.get_stats().misses == 1


@pytest.mark.asyncio
async def test_value_is_served_within_ttl(cache, clock):
    await cache.put("analytics:global", {"totalPosts": 3}, ttl=timedelta(minutes=10))

    clock.advance(599)

    assert await cache.get("analytics:global") == {"totalPosts": 3}


@pytest.mark.asyncio
async def test_entry_expires_at_ttl(cache, clock):
    await cache.put("k", "v", ttl=timedelta(seconds=60))

    clock.advance(60)

    assert await cache.get("k") is None
    stats = cache.get_stats()
    assert stats.expirations == 1
    assert stats.size == 0


@pytest.mark.asyncio
async def test_reads_do_not_extend_ttl(cache, clock):
    await cache.put("k", "v", ttl=timedelta(seconds=300))

    clock.advance(200)
    assert await cache.get("k") == "v"
    clock.advance(101)

    assert await cache.get("k") is None


@pytest.mark.asyncio
async def test_default_ttl_applies(cache, clock):
    await cache.put("k", "v")

    clock.advance(299)
    assert await cache.get("k") == "v"
    clock.advance(1)
    assert await cache.get("k") is None


@pytest.mark.asyncio
async def test_put_replaces_entry_and_resets_expiry(cache, clock):
    await cache.put("k", "old", ttl=timedelta(seconds=60))
    clock.advance(50)
    await cache.put("k", "new", ttl=timedelta(seconds=60))
    clock.advance(50)

    assert await cache.get("k") == "new"


@pytest.mark.asyncio
async def test_stats_track_hits_and_misses(cache):
    await cache.put("k", 1)
    await cache.get("k")
    await cache.get("k")
    await cache.get("other")

    stats = cache.get_stats().to_dict()
    assert stats["hits"] == 2
    assert stats["misses"] == 1
    assert stats["writes"] == 1
    assert stats["size"] == 1
    assert stats["hit_rate"] == "66.67%"


@pytest.mark.asyncio
async def test_concurrent_writers_leave_one_complete_value():
    cache = ResultCache(clock=ManualClock())

    await asyncio.gather(*(cache.put("k", {"writer": n}) for n in range(20)))

    value = await cache.get("k")
    assert value in [{"writer": n} for n in range(20)]
    assert cache.get_stats().size == 1


@pytest.mark.asyncio
async def test_expired_unread_entries_are_swept_when_full(clock):
    cache = ResultCache(clock=clock, max_size=2)
    await cache.put("analytics:user:1", "a", ttl=timedelta(seconds=60))
    await cache.put("analytics:user:2", "b", ttl=timedelta(seconds=600))

    clock.advance(61)
    await cache.put("analytics:user:3", "c")

    stats = cache.get_stats()
    assert stats.size == 2
    assert stats.expirations == 1
    assert stats.evictions == 0
    assert await cache.get("analytics:user:2") == "b"


@pytest.mark.asyncio
async def test_full_cache_evicts_entry_closest_to_expiry(clock):
    cache = ResultCache(clock=clock, max_size=2)
    await cache.put("analytics:global", "g", ttl=timedelta(seconds=600))
    await cache.put("analytics:user:1", "a", ttl=timedelta(seconds=300))

    await cache.put("feed:1", "f", ttl=timedelta(seconds=300))

    assert await cache.get("analytics:user:1") is None
    assert await cache.get("analytics:global") == "g"
    assert await cache.get("feed:1") == "f"
    stats = cache.get_stats().to_dict()
    assert stats["evictions"] == 1
    assert stats["size"] == 2
    assert stats["max_size"] == 2


@pytest.mark.asyncio
async def test_replacing_a_key_in_a_full_cache_evicts_nothing(clock):
    cache = ResultCache(clock=clock, max_size=1)
    await cache.put("k", "old")
    await cache.put("k", "new")

    assert await cache.get("k") == "new"
    assert cache.get_stats().evictions == 0


@pytest.mark.asyncio
async def test_cleanup_expired_removes_unread_entries(cache, clock):
    await cache.put("short", 1, ttl=timedelta(seconds=10))
    await cache.put("long", 2, ttl=timedelta(seconds=100))

    clock.advance(10)

    assert await cache.cleanup_expired() == 1
    assert cache.get_stats().size == 1
