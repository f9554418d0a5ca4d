"""
Response cache storage.

Entries expire lazily: freshness is checked when a key is read, and nothing
sweeps expired entries in the background. An entry that is never read again
and never invalidated stays in memory until a tag invalidation or a global
clear removes it.
"""

import abc
import copy
import time
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, DefaultDict, Dict, Iterable, List, Optional, Set

from shared.logging import get_logger


@dataclass
class CacheEntry:
    """A cached handler result."""

    key: str
    payload: Any
    expires_at: float

    def is_fresh(self, now: float) -> bool:
        return now < self.expires_at


class TagIndex:
    """Tag -> keys populated while that tag was declared.

    The index only answers "what to evict"; it is never consulted for
    expiry, so it may still list keys whose entries already expired.
    """

    def __init__(self):
        self._keys: DefaultDict[str, Set[str]] = defaultdict(set)

    def register(self, key: str, tags: Iterable[str]) -> None:
        for tag in tags:
            self._keys[tag].add(key)

    def keys_for(self, tag: str) -> Set[str]:
        return set(self._keys.get(tag, ()))

    def pop(self, tag: str) -> Set[str]:
        """Return the tag's keys and empty its key set."""
        keys = self._keys.get(tag)
        if not keys:
            return set()
        self._keys[tag] = set()
        return keys

    def clear(self) -> None:
        for tag in self._keys:
            self._keys[tag] = set()

    def counts(self) -> Dict[str, int]:
        return {tag: len(keys) for tag, keys in self._keys.items()}


class CacheStore(abc.ABC):
    """Contract shared by every response cache backend."""

    @abc.abstractmethod
    def lookup(self, key: str) -> Optional[CacheEntry]:
        """Return the fresh entry for ``key`` or ``None`` on a miss."""

    @abc.abstractmethod
    def store(self, key: str, payload: Any, duration_seconds: float, tags: Iterable[str] = ()) -> CacheEntry:
        """Insert or overwrite ``key`` and register it under ``tags``."""

    @abc.abstractmethod
    def evict_by_tag(self, tag: str) -> int:
        """Drop every entry registered under ``tag``; return how many were dropped."""

    @abc.abstractmethod
    def clear_all(self) -> int:
        """Drop every entry and empty every tag; return how many entries were dropped."""

    @abc.abstractmethod
    def stats(self) -> Dict[str, Any]:
        """Describe the store's current contents."""


class MemoryCacheStore(CacheStore):
    """In-process cache store.

    Not shared between processes: each worker holds its own entries and
    only sees its own invalidations.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._tags = TagIndex()
        self._hits = 0
        self._misses = 0
        self.logger = get_logger("storefront.cache_store")

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def lookup(self, key: str) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None

        if not entry.is_fresh(self._clock()):
            del self._entries[key]
            self._misses += 1
            self.logger.debug("Cache entry expired", key=key)
            return None

        self._hits += 1
        return CacheEntry(key=entry.key, payload=copy.deepcopy(entry.payload), expires_at=entry.expires_at)

    def store(self, key: str, payload: Any, duration_seconds: float, tags: Iterable[str] = ()) -> CacheEntry:
        entry = CacheEntry(
            key=key,
            payload=copy.deepcopy(payload),
            expires_at=self._clock() + duration_seconds,
        )
        self._entries[key] = entry
        self._tags.register(key, tags)
        return entry

    def evict_by_tag(self, tag: str) -> int:
        evicted = 0
        for key in self._tags.pop(tag):
            if self._entries.pop(key, None) is not None:
                evicted += 1
        return evicted

    def clear_all(self) -> int:
        evicted = len(self._entries)
        self._entries.clear()
        self._tags.clear()
        return evicted

    def keys_for_tag(self, tag: str) -> List[str]:
        return sorted(self._tags.keys_for(tag))

    def stats(self) -> Dict[str, Any]:
        now = self._clock()
        fresh = sum(1 for entry in self._entries.values() if entry.is_fresh(now))
        lookups = self._hits + self._misses
        return {
            "backend": "memory",
            "entries": len(self._entries),
            "fresh_entries": fresh,
            "tags": self._tags.counts(),
            "hits": self._hits,
            "misses": self._misses,
            "hit_ratio": round(self._hits / lookups, 4) if lookups else 0.0,
        }
