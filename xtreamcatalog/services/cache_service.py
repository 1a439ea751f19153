"""Cache service — bounded in-memory TTL cache with single-flight loading.

One instance holds catalog snapshots keyed by backend + account, a second
one holds per-series episode lists.  Entries expire lazily on read; when the
capacity bound is exceeded the entry inserted first is evicted (insertion
order, not access order, so a hot key can still be evicted).
"""
from __future__ import annotations

import asyncio
import hashlib
import logging
import time
from collections import OrderedDict
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


def cache_key(url: str, username: str) -> str:
    """Content-addressed key for a backend URL + account."""
    raw = f"{url.strip().rstrip('/')}{username}"
    return hashlib.md5(raw.encode("utf-8")).hexdigest()


class CacheService:
    """TTL cache with a capacity bound and at-most-one load per key."""

    def __init__(
        self,
        ttl: float = 1800,
        max_entries: int = 100,
        clock: Callable[[], float] = time.monotonic,
        name: str = "catalog",
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.ttl = ttl
        self.max_entries = max_entries
        self.name = name
        self._clock = clock
        self._entries: OrderedDict[str, tuple[Any, float]] = OrderedDict()
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiting: dict[str, int] = {}

    # ------------------------------------------------------------------
    # Basic access
    # ------------------------------------------------------------------

    def get(self, key: str, ttl: Optional[float] = None) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, inserted_at = entry
        max_age = self.ttl if ttl is None else ttl
        if self._clock() - inserted_at < max_age:
            return value
        del self._entries[key]
        logger.debug(f"[{self.name}] entry {key[:10]} expired")
        return None

    def set(self, key: str, value: Any) -> None:
        # Overwrite counts as a fresh insertion
        self._entries.pop(key, None)
        self._entries[key] = (value, self._clock())
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"[{self.name}] evicted {evicted[:10]} (capacity {self.max_entries})")

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()
        logger.info(f"[{self.name}] cache cleared")

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def keys(self) -> list[str]:
        return list(self._entries.keys())

    # ------------------------------------------------------------------
    # Single-flight loading
    # ------------------------------------------------------------------

    async def get_or_load(
        self,
        key: str,
        loader: Callable[[], Awaitable[Any]],
        ttl: Optional[float] = None,
    ) -> Any:
        """Return the cached value or run *loader* once for concurrent misses.

        Late arrivals wait on the per-key lock and then read what the first
        caller stored.  Loader exceptions propagate and nothing is cached.
        """
        value = self.get(key, ttl)
        if value is not None:
            logger.debug(f"[{self.name}] hit {key[:10]}")
            return value

        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiting[key] = self._waiting.get(key, 0) + 1
        try:
            async with lock:
                value = self.get(key, ttl)
                if value is not None:
                    logger.debug(f"[{self.name}] hit {key[:10]} after waiting on in-flight load")
                    return value
                logger.debug(f"[{self.name}] miss {key[:10]}, loading")
                value = await loader()
                self.set(key, value)
                return value
        finally:
            self._waiting[key] -= 1
            if not self._waiting[key]:
                del self._waiting[key]
                self._locks.pop(key, None)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def stats(self) -> dict:
        now = self._clock()
        return {
            "name": self.name,
            "entries": len(self._entries),
            "max_entries": self.max_entries,
            "ttl_seconds": self.ttl,
            "in_flight": sum(1 for lock in self._locks.values() if lock.locked()),
            "ages": {key: round(now - inserted_at, 1) for key, (_, inserted_at) in self._entries.items()},
        }
