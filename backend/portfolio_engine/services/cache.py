# backend/portfolio_engine/services/cache.py
"""
In-memory caches.

- BoundedLRUCache: memoization of engine results (ValuationService)
- TTLCache: freshness-aware cache for the fetch collaborators, with
  stale fallback on fetch failure and per-key request coalescing

Both are thread-safe.
"""

import logging
import threading
import time
import weakref
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Generic, Hashable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BoundedLRUCache:
    """
    Thread-safe bounded LRU cache.

    Evicts least-recently-used entries when capacity is reached.
    """

    def __init__(self, maxsize: int = 64) -> None:
        self._maxsize = maxsize
        self._cache: OrderedDict = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Any:
        """Get item from cache, marking it most recently used. None if absent."""
        with self._lock:
            if key in self._cache:
                self._cache.move_to_end(key)
                return self._cache[key]
            return None

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            if key in self._cache:
                self._cache.move_to_end(key)
            elif len(self._cache) >= self._maxsize:
                self._cache.popitem(last=False)
            self._cache[key] = value

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._cache


@dataclass
class CacheEntry(Generic[T]):
    value: T
    stored_at: float

    def age(self, now: float) -> float:
        return now - self.stored_at


class TTLCache(Generic[T]):
    """
    Freshness-aware cache for upstream fetches.

    get_or_fetch() semantics:
        - fresh entry (age < ttl): returned without fetching
        - otherwise fetch; success replaces the entry
        - fetch raised and any entry exists: the stale entry is returned
        - fetch raised and nothing is cached: the exception propagates

    Concurrent callers for the same key wait on one per-key lock, so only
    the first performs the fetch; the others find the fresh entry it stored.

    Example:
        cache: TTLCache[BenchmarkData] = TTLCache()
        data = cache.get_or_fetch("^GSPC:1Y", 86400, lambda: provider.fetch("^GSPC"))
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._entries: dict[str, CacheEntry[T]] = {}
        # A key's lock lives only while some caller holds or waits on it
        self._key_locks: weakref.WeakValueDictionary[str, threading.Lock] = weakref.WeakValueDictionary()
        self._lock = threading.Lock()
        self._clock = clock

    def _key_lock(self, key: str) -> threading.Lock:
        with self._lock:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = self._key_locks[key] = threading.Lock()
            return lock

    def peek(self, key: str) -> CacheEntry[T] | None:
        """Entry for key regardless of age."""
        with self._lock:
            return self._entries.get(key)

    def get_fresh(self, key: str, ttl_seconds: float) -> T | None:
        entry = self.peek(key)
        if entry is not None and entry.age(self._clock()) < ttl_seconds:
            return entry.value
        return None

    def put(self, key: str, value: T) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(value=value, stored_at=self._clock())

    def invalidate(self, key: str | None = None) -> None:
        """Drop one key, or everything when key is None."""
        with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)

    def get_or_fetch(
            self,
            key: str,
            ttl_seconds: float,
            fetch: Callable[[], T],
            force_refresh: bool = False,
    ) -> T:
        """
        Cached value for key, fetching when it is missing or stale.

        Raises:
            Exception: Whatever fetch raised, only when no entry exists
        """
        if not force_refresh:
            fresh = self.get_fresh(key, ttl_seconds)
            if fresh is not None:
                logger.debug(f"Cache hit for {key}")
                return fresh

        with self._key_lock(key):
            # Another caller may have refreshed the key while we waited
            if not force_refresh:
                fresh = self.get_fresh(key, ttl_seconds)
                if fresh is not None:
                    return fresh

            try:
                value = fetch()
            except Exception as e:
                stale = self.peek(key)
                if stale is None:
                    raise
                logger.warning(
                    f"Fetch for {key} failed ({e}); serving cached value "
                    f"aged {stale.age(self._clock()):.0f}s"
                )
                return stale.value

            self.put(key, value)
            return value

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
