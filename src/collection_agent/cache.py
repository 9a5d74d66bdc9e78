"""In-memory TTL caches for collection metadata.

Four namespaces sit in front of the filesystem-bound operations: request
lists, discovery results, environment lists and raw file content. Entries
expire lazily: an expired entry is dropped when it is read, and ``size()``
and ``stats()`` sweep expired entries as a side effect.

Writers to the same key race; the last write wins. Every cached value can
be recomputed from disk, so a stale overwrite heals on the next expiry.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

from pydantic import BaseModel

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TTL = 300.0


@dataclass
class CacheEntry(Generic[T]):
    data: T
    inserted_at: float
    hit_count: int = 0


class CacheStats(BaseModel):
    size: int
    total_hits: int
    keys: list[str]


class TtlCache(Generic[T]):
    """A ``key -> value`` store whose entries expire ``ttl`` seconds after insertion."""

    def __init__(self, ttl: float = DEFAULT_TTL, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry[T]] = {}

    def _expired(self, entry: CacheEntry[T], now: float) -> bool:
        return now - entry.inserted_at > self.ttl

    def get(self, key: str) -> T | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._expired(entry, self._clock()):
            self._entries.pop(key, None)
            return None
        entry.hit_count += 1
        return entry.data

    def set(self, key: str, value: T) -> None:
        self._entries[key] = CacheEntry(data=value, inserted_at=self._clock())

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def size(self) -> int:
        self._sweep()
        return len(self._entries)

    def stats(self) -> CacheStats:
        self._sweep()
        entries = list(self._entries.items())
        return CacheStats(
            size=len(entries),
            total_hits=sum(entry.hit_count for _, entry in entries),
            keys=[key for key, _ in entries],
        )

    def _sweep(self) -> None:
        now = self._clock()
        # Iterate over a snapshot; other callers may write concurrently.
        for key, entry in list(self._entries.items()):
            if self._expired(entry, now):
                self._entries.pop(key, None)


class CollectionCache:
    """The four cache namespaces used by collection operations.

    Discovery results live twice as long as the base TTL, file content half
    as long. When ``enabled`` is False every lookup misses and writes are
    dropped, so callers always recompute from disk.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL,
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.enabled = enabled
        self.requests: TtlCache = TtlCache(ttl, clock)
        self.discovery: TtlCache = TtlCache(ttl * 2, clock)
        self.environments: TtlCache = TtlCache(ttl, clock)
        self.files: TtlCache = TtlCache(ttl / 2, clock)

    def namespaces(self) -> dict[str, TtlCache]:
        return {
            "requests": self.requests,
            "discovery": self.discovery,
            "environments": self.environments,
            "files": self.files,
        }

    def lookup(self, namespace: TtlCache[T], key: str) -> T | None:
        if not self.enabled:
            return None
        value = namespace.get(key)
        if value is not None:
            logger.debug("Cache hit: %s", key)
        return value

    def store(self, namespace: TtlCache[T], key: str, value: T) -> None:
        if self.enabled:
            namespace.set(key, value)

    def invalidate(self, collection_path: str) -> None:
        """Forget the request and environment lists of one collection."""
        self.requests.delete(collection_path)
        self.environments.delete(collection_path)

    def clear(self) -> None:
        for cache in self.namespaces().values():
            cache.clear()

    def stats(self) -> dict[str, CacheStats]:
        return {name: cache.stats() for name, cache in self.namespaces().items()}
