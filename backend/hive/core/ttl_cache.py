"""TTL Cache: bounded in-process cache with per-entry expiry.

Invariants:
    - len(cache) <= max_size at all times
    - Expired entries are never returned (evicted lazily on read)
    - Eviction is FIFO by insertion order; overwriting a key keeps its slot
    - with_cache never stores None

Design Decisions:
    - Plain dict as the store: Python dicts preserve insertion order, so the first
      key is the oldest entry
    - Clock injected as a callable: tests advance time without sleeping
"""

import time
from collections.abc import Awaitable, Callable
from typing import Any


class CacheTTL:
    """TTL presets in seconds."""
    SHORT = 30
    MEDIUM = 300
    LONG = 1800
    HOUR = 3600


class MemoryCache:
    """Process-local key/value cache with expiry and FIFO eviction."""

    def __init__(
        self, max_size: int = 100, clock: Callable[[], float] = time.monotonic,
    ):
        self.max_size = max_size
        self._clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() > expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        if key not in self._entries and len(self._entries) >= self.max_size:
            oldest = next(iter(self._entries))
            del self._entries[oldest]
        self._entries[key] = (value, self._clock() + ttl_seconds)

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def drain(self) -> list[Any]:
        """Remove every entry, expired or not, and return the stored values."""
        values = [value for value, _ in self._entries.values()]
        self._entries.clear()
        return values

    def __len__(self) -> int:
        return len(self._entries)


async def with_cache(
    cache: MemoryCache,
    key: str,
    ttl_seconds: float,
    factory: Callable[[], Awaitable[Any]],
) -> Any:
    """Return the cached value for key, or await factory() and cache its result."""
    cached = cache.get(key)
    if cached is not None:
        return cached
    value = await factory()
    if value is not None:
        cache.set(key, value, ttl_seconds)
    return value
