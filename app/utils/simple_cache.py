"""In-memory TTL cache used to avoid repeated upstream lookups.

Minimal dependencies, thread-safe, and easy to swap for Redis while keeping
the same interface and behaviors. Expiry is lazy: ``get`` never returns an
expired value, and expired entries are physically removed either inline after
writes or by an explicit ``evict_expired`` call (e.g. from a timer task).
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)


CachedPayload = dict[str, Any]


@dataclass
class CacheItem:
    """Container for cached values with expiration metadata."""

    value: CachedPayload
    expires_at: float

    def is_live(self, now: float) -> bool:
        return now < self.expires_at


class SimpleTTLCache:
    """Thread-safe, in-memory TTL cache with LRU eviction.

    Attributes:
        ttl_seconds: Time-to-live applied to all entries.
        max_entries: Maximum number of cached items (None for unlimited).
        evict_on_write: Purge expired entries after every ``set``.
    """

    def __init__(
        self,
        ttl_seconds: float = 300,
        max_entries: int | None = 10000,
        *,
        evict_on_write: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be >= 1 or None")

        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._evict_on_write = evict_on_write
        self._clock = clock
        self._store: OrderedDict[str, CacheItem] = OrderedDict()
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"SimpleTTLCache(ttl_seconds={self._ttl}, max_entries={self._max_entries}, "
            f"size={len(self._store)}, hits={self._hits}, misses={self._misses}, "
            f"evictions={self._evictions})"
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def get(self, key: str, *, now: float | None = None) -> CachedPayload | None:
        """Retrieve a cached value if it exists and is not expired.

        Args:
            key: Cache key.
            now: Current instant in seconds; the cache's clock when omitted.

        Returns:
            Cached value or None if not found/expired.
        """

        if now is None:
            now = self._clock()

        with self._lock:
            item = self._store.get(key)
            if item is None:
                self._misses += 1
                logger.debug("cache.miss", extra={"cache_key_len": len(key), "reason": "not_found"})
                return None

            if not item.is_live(now):
                self._evict_single_locked(key)
                self._misses += 1
                logger.debug("cache.miss", extra={"cache_key_len": len(key), "reason": "expired"})
                return None

            self._hits += 1
            self._store.move_to_end(key)  # mark as recently used
            return item.value

    def set(self, key: str, value: CachedPayload, *, now: float | None = None) -> None:
        """Store a value with ``expires_at = now + ttl``, evicting as needed.

        Args:
            key: Cache key.
            value: Upstream payload to store.
            now: Insertion instant in seconds; the cache's clock when omitted.
        """

        if now is None:
            now = self._clock()

        with self._lock:
            self._store[key] = CacheItem(value=value, expires_at=now + self._ttl)
            self._store.move_to_end(key)
            if self._evict_on_write:
                self._evict_expired_locked(now)
            self._evict_if_over_capacity_locked()

            logger.debug(
                "cache.set",
                extra={"size": len(self._store), "ttl_s": self._ttl},
            )

    put = set

    def evict_expired(self, now: float | None = None) -> int:
        """Remove every entry with ``expires_at <= now``.

        Returns:
            Number of entries removed.
        """

        if now is None:
            now = self._clock()

        with self._lock:
            return self._evict_expired_locked(now)

    def clear(self) -> None:
        """Remove all cached entries and reset counters."""

        with self._lock:
            self._store.clear()
            self._hits = 0
            self._misses = 0
            self._evictions = 0

    def stats(self) -> dict[str, int | float | None]:
        """Return lightweight cache metrics without exposing values."""

        with self._lock:
            return {
                "ttl_seconds": self._ttl,
                "max_entries": self._max_entries,
                "entries": len(self._store),
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
            }

    def _evict_single_locked(self, key: str) -> None:
        if self._store.pop(key, None) is not None:
            self._evictions += 1

    def _evict_expired_locked(self, now: float) -> int:
        expired_keys = [k for k, item in self._store.items() if not item.is_live(now)]
        for key in expired_keys:
            self._evict_single_locked(key)
        return len(expired_keys)

    def _evict_if_over_capacity_locked(self) -> None:
        if self._max_entries is None:
            return

        while len(self._store) > self._max_entries:
            # popitem(last=False) removes the least recently used entry
            self._store.popitem(last=False)
            self._evictions += 1


def build_cache_key(number: str, *, prefix: str = "") -> str:
    """Build the cache key for a validated phone number.

    Args:
        number: Validated digit string.
        prefix: Optional namespace (e.g. ``"number:"``) configured per deployment.

    Returns:
        The key used in ``SimpleTTLCache``.
    """

    return f"{prefix}{number}"
