"""No-op cache for tests and for disabling live-board caching.

Every lookup misses, so each query reaches the timetable source and
tests never see state left behind by an earlier one.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass
class NullCache(Generic[T]):
    """CachePort implementation that stores nothing."""

    name: str = "null"

    def get(self, key: str) -> Optional[T]:
        return None

    def set(self, key: str, value: T, ttl: Optional[float] = None) -> None:
        pass

    def get_or_compute(self, key: str, compute_fn: Callable[[], T]) -> T:
        """Always calls ``compute_fn``; its result is not kept."""
        return compute_fn()

    def invalidate(self, key: str) -> bool:
        return False

    def clear(self) -> int:
        return 0
