"""In-process TTL cache for generated attribute sets."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass

logger = logging.getLogger(__name__)

CACHE_KEY_PREFIX = "category-attributes"
MAX_KEY_NAME_CHARS = 200


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """Cached attributes with their absolute expiry on the cache clock."""

    key: str
    value: tuple[str, ...]
    expires_at: float


@dataclass(frozen=True, slots=True)
class CacheStats:
    """Lookup counters since construction or the last clear."""

    entries: int
    hits: int
    misses: int
    evictions: int


def sanitize_name(name: str) -> str:
    """Trim, collapse line endings to single spaces, truncate to 200 chars."""

    collapsed = name.strip().replace("\r\n", " ").replace("\r", " ").replace("\n", " ")
    return collapsed[:MAX_KEY_NAME_CHARS]


def build_cache_key(entity_id: int, entity_name: str) -> str:
    return f"{CACHE_KEY_PREFIX}:{entity_id}:{sanitize_name(entity_name)}"


class ResultCache:
    """Thread-safe mapping from cache key to attributes with lazy expiry.

    One lock guards the entry map. Values are immutable tuples, so a reader
    observes either the previous entry or the complete new one.
    """

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, key: str) -> tuple[str, ...] | None:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            if entry.expires_at <= now:
                del self._entries[key]
                self._evictions += 1
                self._misses += 1
                logger.debug("Cache entry expired: %s", key)
                return None
            self._hits += 1
            return entry.value

    def set(self, key: str, attributes: Sequence[str], ttl_seconds: float) -> None:
        if ttl_seconds <= 0:
            return
        entry = CacheEntry(
            key=key,
            value=tuple(attributes),
            expires_at=self._clock() + ttl_seconds,
        )
        with self._lock:
            self._entries[key] = entry

    def purge_expired(self) -> int:
        """Drop every expired entry; return how many were removed."""

        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
            for key in expired:
                del self._entries[key]
            self._evictions += len(expired)
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0
            self._evictions = 0

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                entries=len(self._entries),
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
