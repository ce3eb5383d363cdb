"""
In-memory TTL cache for slow-changing aggregator resources
"""

import asyncio
import logging
import time
import warnings
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Generic, Hashable, Optional, TypeVar

from ..errors import GatewayError, StaleCacheServed

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """A cached value and the monotonic time it was fetched"""
    value: T
    fetched_at: float

    def age(self, now: float) -> float:
        return now - self.fetched_at

    def is_fresh(self, ttl: float, now: float) -> bool:
        return self.age(now) < ttl


class TTLCache:
    """
    Keyed cache whose entries expire after a fixed TTL

    Entries are replaced whole, never mutated. Refreshes for one key are
    serialized by a per-key lock, so concurrent misses trigger a single load
    and a failed or cancelled load leaves the previous entry in place.

    Usage:
        cache = TTLCache(ttl=300.0)
        tokens = await cache.get_or_load(("tokens", 1), fetch_tokens)
    """

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic):
        """
        Args:
            ttl: Seconds an entry stays fresh
            clock: Monotonic clock
        """
        self._ttl = ttl
        self._clock = clock
        self._entries: Dict[Hashable, CacheEntry] = {}
        self._locks: Dict[Hashable, asyncio.Lock] = {}

    @property
    def ttl(self) -> float:
        return self._ttl

    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def entry(self, key: Hashable) -> Optional[CacheEntry]:
        """Get the raw entry for a key, fresh or stale"""
        return self._entries.get(key)

    def get(self, key: Hashable) -> Optional[T]:
        """Get a value only if its entry is still fresh"""
        entry = self._entries.get(key)
        if entry is not None and entry.is_fresh(self._ttl, self._clock()):
            return entry.value
        return None

    def set(self, key: Hashable, value: T) -> CacheEntry:
        entry = CacheEntry(value=value, fetched_at=self._clock())
        self._entries[key] = entry
        return entry

    def invalidate(self, key: Optional[Hashable] = None) -> None:
        """Drop one entry, or every entry when key is None"""
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    async def get_or_load(
        self,
        key: Hashable,
        loader: Callable[[], Awaitable[T]],
        serve_stale_on_error: bool = False,
    ) -> T:
        """
        Return the fresh value for key, loading it on miss or expiry

        Args:
            key: Cache key
            loader: Coroutine factory producing the new value
            serve_stale_on_error: Return an expired entry if the load fails
                with a GatewayError (emits StaleCacheServed)

        Raises:
            GatewayError: The loader's error, when no stale value is served
        """
        value = self.get(key)
        if value is not None:
            logger.debug(f"Cache hit: {key!r}")
            return value

        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            # Another task may have refreshed while this one waited
            value = self.get(key)
            if value is not None:
                return value

            stale = self._entries.get(key)
            logger.debug(f"Cache {'expired' if stale else 'miss'}: {key!r}")
            try:
                value = await loader()
            except GatewayError as e:
                if serve_stale_on_error and stale is not None:
                    age = stale.age(self._clock())
                    logger.warning(f"Refresh of {key!r} failed, serving stale entry ({age:.1f}s old): {e}")
                    warnings.warn(StaleCacheServed(key, age, e), stacklevel=2)
                    return stale.value
                raise

            self.set(key, value)
            return value
