"""Thread-safe in-memory TTL cache.

Used by the query service to hold live delay boards per station so that a
burst of queries about the same origin hits the upstream source once per
TTL period.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, Optional, Tuple, TypeVar

T = TypeVar("T")

NO_EXPIRY = float("inf")


@dataclass
class InMemoryCache(Generic[T]):
    """In-memory cache with per-entry expiry.

    Implements CachePort.

    Attributes:
        default_ttl_seconds: Lifetime of entries set without a ttl (None = forever)
        max_size: Entry limit, oldest entry evicted first (None = unlimited)
        name: Cache name, used as the logger suffix
        clock: Monotonic time source in seconds

    Example:
        boards = InMemoryCache[dict](name="live_delays", default_ttl_seconds=120)
        delays = boards.get_or_compute("1000", lambda: fetch_board("1000"))
    """

    default_ttl_seconds: Optional[float] = None
    max_size: Optional[int] = None
    name: str = "cache"
    clock: Callable[[], float] = time.monotonic

    _store: Dict[str, Tuple[Any, float]] = field(default_factory=dict, repr=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)
    _logger: logging.Logger = field(init=False, repr=False)

    _hits: int = field(default=0, repr=False)
    _misses: int = field(default=0, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(f"tra_query.cache.{self.name}")

    def _lookup(self, key: str) -> Tuple[bool, Optional[T]]:
        with self._lock:
            entry = self._store.get(key)
            if entry is not None and self.clock() >= entry[1]:
                del self._store[key]
                self._logger.debug("Cache entry expired", extra={"key": key})
                entry = None

            if entry is None:
                self._misses += 1
                return False, None
            self._hits += 1
            return True, entry[0]

    def get(self, key: str) -> Optional[T]:
        """Return the live value for ``key``, or None when absent or expired."""
        return self._lookup(key)[1]

    def set(self, key: str, value: T, ttl: Optional[float] = None) -> None:
        """Store a value.

        Args:
            key: The cache key.
            value: The value to cache.
            ttl: Lifetime in seconds for this entry; the default when None.
        """
        lifetime = self.default_ttl_seconds if ttl is None else ttl
        expiry = NO_EXPIRY if lifetime is None else self.clock() + lifetime
        with self._lock:
            if (
                self.max_size is not None
                and key not in self._store
                and len(self._store) >= self.max_size
            ):
                evicted = next(iter(self._store))
                del self._store[evicted]
                self._logger.debug(
                    "Cache evicted entry",
                    extra={"key": evicted, "reason": "max_size"},
                )
            self._store[key] = (value, expiry)
        self._logger.debug("Cache entry set", extra={"key": key, "ttl": lifetime})

    def get_or_compute(self, key: str, compute_fn: Callable[[], T]) -> T:
        """Return the cached value or compute, store and return it.

        Falsy values (an empty delay board, say) are cached like any other.
        The compute function runs outside the lock.
        """
        found, value = self._lookup(key)
        if found:
            return value  # type: ignore[return-value]

        self._logger.debug("Cache miss, computing", extra={"key": key})
        computed = compute_fn()
        self.set(key, computed)
        return computed

    def invalidate(self, key: str) -> bool:
        with self._lock:
            removed = self._store.pop(key, None) is not None
        if removed:
            self._logger.debug("Cache entry invalidated", extra={"key": key})
        return removed

    def clear(self) -> int:
        """Drop every entry and reset statistics; returns the entry count."""
        with self._lock:
            count = len(self._store)
            self._store.clear()
            self._hits = 0
            self._misses = 0
        self._logger.info("Cache cleared", extra={"entries_cleared": count})
        return count

    def size(self) -> int:
        with self._lock:
            return len(self._store)

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            total = self._hits + self._misses
            return {
                "size": len(self._store),
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate_percent": round(self._hits / total * 100, 1) if total else 0.0,
            }
