"""
In-memory TTL cache for upstream API responses.

Entries expire lazily: nothing sweeps the store in the background, an
expired entry is dropped the first time it is read after its deadline.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

DEFAULT_TTL_SECONDS = 5 * 60


@dataclass
class CacheEntry:
    """A cached value and the clock reading after which it is stale."""

    value: Any
    expires_at: float


class TTLCache:
    """
    Unbounded key-value store with per-entry time-to-live.

    Not safe to share across threads; all access is expected to happen
    on a single event loop.
    """

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the cache.

        Args:
            default_ttl: TTL in seconds used when set() is called without one
            clock: Monotonic time source, injectable for tests
        """
        self.default_ttl = default_ttl
        self._clock = clock
        self._storage: Dict[str, CacheEntry] = {}

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store value under key, replacing any existing entry."""
        if ttl is None:
            ttl = self.default_ttl
        self._storage[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)

    def get(self, key: str) -> Optional[Any]:
        """
        Return the cached value, or None if missing or expired.

        An expired entry is removed as a side effect.
        """
        entry = self._storage.get(key)
        if entry is None:
            return None

        if self._clock() > entry.expires_at:
            del self._storage[key]
            return None

        return entry.value

    def delete(self, key: str) -> None:
        self._storage.pop(key, None)

    def clear(self) -> None:
        self._storage.clear()

    def has(self, key: str) -> bool:
        """True if get() would return a value. May evict."""
        return self.get(key) is not None

    def stats(self) -> Dict[str, int]:
        """Count entries, split into still-valid and expired-but-unread."""
        now = self._clock()
        expired = sum(1 for entry in self._storage.values() if now > entry.expires_at)
        return {
            "total": len(self._storage),
            "valid": len(self._storage) - expired,
            "expired": expired,
        }

    def __len__(self) -> int:
        return len(self._storage)
