"""
In-memory TTL cache shared by the trail and wishlist services.

Staleness is checked lazily on read; there is no background sweep and no
capacity bound. Not thread-safe: each instance belongs to exactly one
service running on one event loop.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Hashable, Optional, TypeVar

import structlog

logger = structlog.get_logger(__name__)

V = TypeVar("V")

DEFAULT_TTL_SECONDS = 300.0


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    value: V
    stored_at: float

    def is_fresh(self, now: float, ttl_seconds: float) -> bool:
        return now - self.stored_at <= ttl_seconds


class TTLCache:
    """Key/value store whose entries read as a miss once older than ``ttl_seconds``."""

    def __init__(self, ttl_seconds: float = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.monotonic, name: str = "cache"):
        if ttl_seconds < 0:
            raise ValueError("ttl_seconds must be non-negative")
        self.ttl_seconds = ttl_seconds
        self.name = name
        self._clock = clock
        self._store: Dict[Hashable, CacheEntry[Any]] = {}

    def get(self, key: Hashable) -> Optional[Any]:
        """Return the stored value, or None on a miss (absent or stale)."""
        entry = self._store.get(key)
        if entry is None:
            return None
        if not entry.is_fresh(self._clock(), self.ttl_seconds):
            del self._store[key]
            logger.debug("cache_expired", cache=self.name, key=str(key))
            return None
        return entry.value

    def put(self, key: Hashable, value: Any) -> None:
        self._store[key] = CacheEntry(value=value, stored_at=self._clock())

    def invalidate(self, key: Hashable) -> None:
        self._store.pop(key, None)

    def clear(self) -> None:
        self._store.clear()

    def __contains__(self, key: Hashable) -> bool:
        return key in self._store

    def __len__(self) -> int:
        return len(self._store)
