"""TTL Cache: expiry, FIFO eviction and the async with_cache helper."""

from hive.core.ttl_cache import MemoryCache, with_cache


class _Clock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_entries_expire_after_ttl():
    clock = _Clock()
    cache = MemoryCache(clock=clock)
    cache.set("k", "v", 10)
    assert cache.get("k") == "v"
    clock.now = 11
    assert cache.get("k") is None
    assert len(cache) == 0


def test_fifo_eviction_respects_max_size():
    cache = MemoryCache(max_size=2)
    cache.set("a", 1, 60)
    cache.set("b", 2, 60)
    cache.set("a", 10, 60)
    cache.set("c", 3, 60)
    assert cache.get("a") is None
    assert cache.get("b") == 2
    assert cache.get("c") == 3
    assert len(cache) == 2


def test_drain_returns_expired_and_live_values():
    clock = _Clock()
    cache = MemoryCache(max_size=5, clock=clock)
    cache.set("old", "a", ttl_seconds=1)
    cache.set("new", "b", ttl_seconds=100)
    clock.now = 10

    assert cache.drain() == ["a", "b"]
    assert len(cache) == 0
    assert cache.get("new") is None


async def test_with_cache_calls_factory_once():
    cache = MemoryCache()
    calls = []

    async def factory():
        calls.append(1)
        return {"total": 3}

    assert await with_cache(cache, "stats", 30, factory) == {"total": 3}
    assert await with_cache(cache, "stats", 30, factory) == {"total": 3}
    assert len(calls) == 1


async def test_with_cache_does_not_store_none():
    cache = MemoryCache()

    async def factory():
        return None

    assert await with_cache(cache, "missing", 30, factory) is None
    assert len(cache) == 0
