"""In-memory result cache with a fixed TTL and a size bound.

Usage::

    cache = Cache(ttl_seconds=1800, max_size=100)
    cache.put(str(url), result)
    hit = cache.get(str(url))      # None on a miss or an expired entry

Eviction is **insertion order, not LRU**.  When the cache grows past
``max_size`` the entry that was inserted (or last overwritten) longest ago is
dropped, however often it has been read since.  A popular key can therefore
be evicted while a one-off key inserted later survives.  Swapping in a
recency-aware policy only needs ``get`` to move the key to the end of the
ordering; callers do not change.
"""

from __future__ import annotations

import time
from collections import OrderedDict
from typing import Any, Callable, Optional

import structlog

from ird_proxy.scraper.models import CacheEntry, ExtractionResult

logger = structlog.get_logger(__name__)


class Cache:
    """Process-lifetime mapping of normalized URL → :class:`ExtractionResult`.

    Args:
        ttl_seconds: Age after which an entry is stale.  Shared by all entries.
        max_size: Maximum number of entries kept after any ``put``.
        clock: Monotonic seconds source; injectable so tests can advance time.
    """

    def __init__(
        self,
        ttl_seconds: float = 1800.0,
        max_size: int = 100,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        # Non-mutating: does not apply lazy expiry.
        return key in self._entries

    def _expired(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.created_at > self.ttl_seconds

    def get_entry(self, key: str) -> Optional[CacheEntry]:
        """Return the live entry for *key*, deleting it first if expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._expired(entry):
            del self._entries[key]
            logger.debug("cache_expired", key=key)
            return None
        return entry

    def get(self, key: str) -> Optional[ExtractionResult]:
        entry = self.get_entry(key)
        return entry.value if entry is not None else None

    def put(self, key: str, value: ExtractionResult) -> None:
        """Insert or replace *key*, then evict oldest-inserted entries over the bound."""
        self._entries.pop(key, None)
        self._entries[key] = CacheEntry(key=key, value=value, created_at=self._clock())
        while len(self._entries) > self.max_size:
            evicted, _ = self._entries.popitem(last=False)
            logger.info("cache_evicted", key=evicted, size=len(self._entries))

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> int:
        """Drop every entry and return how many there were."""
        count = len(self._entries)
        self._entries.clear()
        return count

    def keys(self) -> list[str]:
        """Keys in eviction order (oldest first)."""
        return list(self._entries)

    def stats(self) -> dict[str, Any]:
        return {
            "size": len(self._entries),
            "max_size": self.max_size,
            "ttl_seconds": self.ttl_seconds,
            "keys": self.keys(),
        }
