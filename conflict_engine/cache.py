"""Injectable key/value caches with TTL expiry.

Every cache-using component receives a :class:`CacheStore` in its
constructor.  :class:`InMemoryCache` backs tests and single-process runs;
:class:`MongoCache` shares entries across processes through a MongoDB
collection.  Writers upsert, so concurrent population of the same key is
safe: the later write wins.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional, Protocol, Tuple

from pymongo.collection import Collection

logger = logging.getLogger(__name__)


class CacheStore(Protocol):
    """Minimal get/set/delete contract shared by every cache backend."""

    def get(self, key: str) -> Optional[Any]:
        ...

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class InMemoryCache:
    """Thread-safe bounded cache with per-entry TTL.

    Parameters
    ----------
    max_entries
        Upper bound on stored entries.  On overflow the oldest entry is
        evicted; with ``lru=True`` a read refreshes an entry's position so
        the least-recently-*used* entry goes first instead.
    default_ttl
        TTL applied when :meth:`set` is called without one.  ``None`` means
        entries never expire.
    clock
        Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        max_entries: int = 1000,
        default_ttl: Optional[float] = None,
        *,
        lru: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self.default_ttl = default_ttl
        self._lru = lru
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[Any, Optional[float]]]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            value, expires_at = entry
            if expires_at is not None and expires_at <= self._clock():
                del self._entries[key]
                self.misses += 1
                return None
            if self._lru:
                self._entries.move_to_end(key)
            self.hits += 1
            return value

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        ttl = ttl_seconds if ttl_seconds is not None else self.default_ttl
        expires_at = self._clock() + ttl if ttl is not None else None
        with self._lock:
            # a refresh counts as the newest write
            self._entries.pop(key, None)
            self._entries[key] = (value, expires_at)
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Cache full – evicted %s", evicted)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0


class MongoCache:
    """Cache entries persisted as ``{_id, value, expires_at}`` documents.

    Expired documents are treated as misses on read.  A TTL index on
    ``expires_at`` (created by :meth:`ensure_indexes`) lets MongoDB reclaim
    them in the background.
    """

    def __init__(
        self,
        collection: Collection,
        default_ttl: Optional[float] = None,
        *,
        timeout_ms: int = 5000,
    ) -> None:
        self._collection = collection
        self.default_ttl = default_ttl
        self._timeout_ms = timeout_ms

    def ensure_indexes(self) -> None:
        self._collection.create_index("expires_at", expireAfterSeconds=0)

    def get(self, key: str) -> Optional[Any]:
        doc = self._collection.find_one({"_id": key}, max_time_ms=self._timeout_ms)
        if doc is None:
            return None
        expires_at = doc.get("expires_at")
        if expires_at is not None:
            if expires_at.tzinfo is None:
                expires_at = expires_at.replace(tzinfo=timezone.utc)
            if expires_at <= datetime.now(timezone.utc):
                return None
        return doc.get("value")

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        ttl = ttl_seconds if ttl_seconds is not None else self.default_ttl
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=ttl) if ttl is not None else None
        self._collection.update_one(
            {"_id": key},
            {"$set": {"value": value, "expires_at": expires_at}},
            upsert=True,
        )

    def delete(self, key: str) -> None:
        self._collection.delete_one({"_id": key})


__all__ = ["CacheStore", "InMemoryCache", "MongoCache"]
