"""In-memory TTL cache used to avoid repeated upstream API calls.

Designed for a single server process: minimal dependencies, thread-safe, and
easy to swap for Redis while keeping the same interface and behaviors. Unlike
a fixed-TTL cache, every ``set`` carries its own lifetime so identity lookups
can outlive volatile stats.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Mapping

logger = logging.getLogger(__name__)


@dataclass
class CacheItem:
    """Container for cached values with expiration metadata."""

    key: str
    value: Any
    stored_at: float
    ttl: float

    @property
    def expires_at(self) -> float:
        return self.stored_at + self.ttl


class SimpleTTLCache:
    """Thread-safe, in-memory cache with per-entry TTL and optional LRU eviction.

    Attributes:
        default_ttl_seconds: TTL applied when ``set`` is called without one.
        max_entries: Maximum number of cached items (None for unlimited).
    """

    def __init__(self, default_ttl_seconds: float = 300, max_entries: int | None = 1024) -> None:
        if default_ttl_seconds <= 0:
            raise ValueError("default_ttl_seconds must be > 0")
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be >= 1 or None")

        self._default_ttl = default_ttl_seconds
        self._max_entries = max_entries
        self._store: OrderedDict[str, CacheItem] = OrderedDict()
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"SimpleTTLCache(default_ttl_seconds={self._default_ttl}, "
            f"max_entries={self._max_entries}, size={len(self._store)}, "
            f"hits={self._hits}, misses={self._misses}, evictions={self._evictions})"
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def get(self, key: str) -> Any | None:
        """Retrieve a cached value if it exists and is not expired.

        Args:
            key: Cache key.

        Returns:
            Cached value or None if not found/expired.
        """

        with self._lock:
            item = self._store.get(key)
            if not item:
                self._misses += 1
                logger.debug(
                    "cache.miss",
                    extra={
                        "cache_key": key[:64],
                        "reason": "not_found",
                    },
                )
                return None

            if self._is_expired(item):
                self._evict_single(key)
                self._misses += 1
                logger.debug(
                    "cache.miss",
                    extra={
                        "cache_key": key[:64],
                        "reason": "expired",
                    },
                )
                return None

            self._hits += 1
            self._store.move_to_end(key)  # mark as recently used
            logger.debug(
                "cache.hit",
                extra={
                    "cache_key": key[:64],
                },
            )
            return item.value

    def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        """Store a value with its own TTL, evicting as needed.

        Args:
            key: Cache key.
            value: Value to store (usually a decoded upstream payload).
            ttl_seconds: Lifetime of this entry; defaults to the cache default.

        Raises:
            ValueError: If ttl_seconds is not positive.
        """

        ttl = self._default_ttl if ttl_seconds is None else ttl_seconds
        if ttl <= 0:
            raise ValueError("ttl_seconds must be > 0")

        with self._lock:
            self._evict_expired_locked()
            self._store[key] = CacheItem(key=key, value=value, stored_at=time.time(), ttl=ttl)
            self._store.move_to_end(key)
            self._evict_if_over_capacity_locked()

            logger.debug(
                "cache.set",
                extra={
                    "cache_key": key[:64],
                    "size": len(self._store),
                    "ttl_s": ttl,
                },
            )

    def delete(self, key: str) -> bool:
        """Remove a single entry. Returns True if it was present."""

        with self._lock:
            return self._store.pop(key, None) is not None

    def clear(self) -> None:
        """Remove all cached entries and reset counters."""

        with self._lock:
            self._store.clear()
            self._hits = 0
            self._misses = 0
            self._evictions = 0

    def sweep(self) -> int:
        """Drop every expired entry now. Returns the number removed."""

        with self._lock:
            before = self._evictions
            self._evict_expired_locked()
            return self._evictions - before

    def stats(self) -> dict[str, int | float | None]:
        """Return lightweight cache metrics without exposing values."""

        with self._lock:
            return {
                "default_ttl_seconds": self._default_ttl,
                "max_entries": self._max_entries,
                "entries": len(self._store),
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
            }

    def _evict_single(self, key: str) -> None:
        if key in self._store:
            self._store.pop(key, None)
            self._evictions += 1

    def _evict_expired_locked(self) -> None:
        now = time.time()
        expired_keys = [k for k, item in self._store.items() if now > item.expires_at]
        for key in expired_keys:
            self._evict_single(key)

    def _evict_if_over_capacity_locked(self) -> None:
        if self._max_entries is None:
            return

        while len(self._store) > self._max_entries:
            # popitem(last=False) removes the least recently used entry
            self._store.popitem(last=False)
            self._evictions += 1

    def _is_expired(self, item: CacheItem) -> bool:
        return time.time() > item.expires_at


def build_cache_key(endpoint_id: str, params: Mapping[str, Any] | None = None) -> str:
    """Build a stable cache key from an endpoint id and its query params.

    Params are sorted by name and ``None`` values are dropped, so an omitted
    optional parameter and an explicit ``None`` share the same entry.

    Args:
        endpoint_id: Stable endpoint identifier (e.g. ``character.basic``).
        params: Query parameters sent upstream.

    Returns:
        Key of the form ``endpoint_id?a=1&b=2``.
    """

    pairs = sorted((str(k), str(v)) for k, v in (params or {}).items() if v is not None)
    query = "&".join(f"{k}={v}" for k, v in pairs)
    return f"{endpoint_id}?{query}"
