"""In-memory TTL cache for catalog lookups.

Entries expire lazily: an expired entry is evicted by the read that finds it.
There is no size bound; the keyspace is one entry per artist, track or label.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from ..domain.value_objects import normalize_key

logger = logging.getLogger(__name__)


class _CacheMiss:
    """Sentinel distinguishing "no entry" from a cached ``None``."""

    _instance: Optional[_CacheMiss] = None

    def __new__(cls) -> _CacheMiss:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "CACHE_MISS"


CACHE_MISS = _CacheMiss()


@dataclass
class CacheEntry:
    """A cached value and the instant it stops being valid."""
    key: str
    value: Any
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


def make_cache_key(kind: str, *args: Any) -> str:
    """Deterministic key from an operation kind and its arguments."""
    parts = [kind]
    for arg in args:
        parts.append("" if arg is None else normalize_key(str(arg)))
    return ":".join(parts)


class TTLCache:
    """Key/value store where every entry carries its own expiry."""

    def __init__(
        self,
        default_ttl: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the cache.

        Args:
            default_ttl: Seconds an entry lives when ``set`` gets no ttl
            clock: Monotonic time source, injectable for tests
        """
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._generation = 0

    @property
    def generation(self) -> int:
        """Incremented by every ``clear``; lets in-flight fetches detect one."""
        return self._generation

    def get(self, key: str) -> Any:
        """Return the cached value, or ``CACHE_MISS`` if absent or expired."""
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return CACHE_MISS

        if entry.is_expired(self._clock()):
            del self._entries[key]
            self._misses += 1
            logger.debug(f"Cache entry expired: {key}")
            return CACHE_MISS

        self._hits += 1
        return entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store a value, replacing any previous entry and its expiry."""
        if ttl is None:
            ttl = self.default_ttl
        self._entries[key] = CacheEntry(key, value, self._clock() + ttl)

    def invalidate(self, key: str) -> None:
        """Drop a single entry."""
        self._entries.pop(key, None)

    def clear(self) -> None:
        """Clear all cache entries."""
        count = len(self._entries)
        self._entries.clear()
        self._generation += 1
        logger.debug(f"Cleared {count} cache entries")

    def cleanup_expired(self) -> int:
        """Remove expired entries from cache.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        now = self._clock()
        expired = sum(1 for entry in self._entries.values() if entry.is_expired(now))
        return {
            'total_entries': len(self._entries),
            'valid_entries': len(self._entries) - expired,
            'expired_entries': expired,
            'hits': self._hits,
            'misses': self._misses,
        }

    def __contains__(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and not entry.is_expired(self._clock())

    def __len__(self) -> int:
        return len(self._entries)
