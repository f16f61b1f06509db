"""
Result cache for orchestration envelopes.

Two interchangeable backends behind the ResultCache interface:
1. MemoryResultCache - process-local dict guarded by a lock (default)
2. DiskResultCache - diskcache store that survives restarts

Both apply a per-entry TTL, evict the oldest-inserted entry when full and
count accesses. Eviction is insertion order, not recency of reads.
"""

import threading
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Dict, Optional

import diskcache
import structlog

from medsearch.models.cache import CacheBackend, CacheConfig, CacheEntry, CacheStats
from medsearch.models.search import OrchestrationResult
from medsearch.observability.metrics import CACHE_ENTRIES, CACHE_OPERATIONS

logger = structlog.get_logger()

Clock = Callable[[], float]


class ResultCache(ABC):
    """Key-addressed store of previous orchestration results"""

    # Whether a full sweep is cheap enough to run before every lookup
    sweep_on_read: bool = True

    def __init__(self, max_entries: int, clock: Optional[Clock] = None):
        self.max_entries = max_entries
        self._clock = clock or time.time
        self._stats_lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._sets = 0
        self._evictions = 0
        self._expirations = 0

    @abstractmethod
    def get(self, key: str) -> Optional[OrchestrationResult]:
        """Return the cached result marked as a cache hit, or None on miss.

        Entries older than their TTL are removed and reported as a miss.
        """
        pass

    @abstractmethod
    def set(self, key: str, value: OrchestrationResult, ttl_seconds: float) -> None:
        """Store a result, evicting the oldest-inserted entry when full."""
        pass

    @abstractmethod
    def peek(self, key: str) -> Optional[CacheEntry]:
        """Return the raw entry without touching its access counter."""
        pass

    @abstractmethod
    def sweep_expired(self) -> int:
        """Remove every expired entry and return how many were removed."""
        pass

    @abstractmethod
    def clear(self) -> None:
        pass

    @abstractmethod
    def __len__(self) -> int:
        pass

    def get_stats(self) -> CacheStats:
        with self._stats_lock:
            return CacheStats(
                entries=len(self),
                max_entries=self.max_entries,
                hits=self._hits,
                misses=self._misses,
                sets=self._sets,
                evictions=self._evictions,
                expirations=self._expirations,
            )

    # ==================== Bookkeeping ====================

    def _record(self, operation: str, count: int = 1) -> None:
        with self._stats_lock:
            if operation == "hit":
                self._hits += count
            elif operation == "miss":
                self._misses += count
            elif operation == "set":
                self._sets += count
            elif operation == "evict":
                self._evictions += count
            elif operation == "expire":
                self._expirations += count
        CACHE_OPERATIONS.labels(operation=operation).inc(count)

    @staticmethod
    def _as_hit(key: str, payload: OrchestrationResult) -> OrchestrationResult:
        return payload.model_copy(
            update={"cache_hit": True, "cache_key": key}, deep=True
        )


class MemoryResultCache(ResultCache):
    """
    In-memory result cache.

    Python dicts keep insertion order, so the first key is always the
    oldest insert. Overwriting a key keeps its position.
    """

    def __init__(self, max_entries: int = 1000, clock: Optional[Clock] = None):
        super().__init__(max_entries=max_entries, clock=clock)
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[OrchestrationResult]:
        now = self._clock()

        with self._lock:
            entry = self._entries.get(key)

            if entry is None:
                expired = False
            elif entry.is_expired(now):
                del self._entries[key]
                expired = True
                entry = None
            else:
                expired = False
                entry.access_count += 1
                access_count = entry.access_count
                age = entry.age(now)
                payload = entry.payload

        if entry is None:
            if expired:
                self._record("expire")
                CACHE_ENTRIES.set(len(self))
                logger.debug("cache_entry_expired", cache_key=key[:16])
            self._record("miss")
            logger.debug("cache_miss", cache_key=key[:16])
            return None

        self._record("hit")
        logger.info(
            "cache_hit",
            cache_key=key[:16],
            access_count=access_count,
            age_seconds=round(age, 1),
        )
        return self._as_hit(key, payload)

    def set(self, key: str, value: OrchestrationResult, ttl_seconds: float) -> None:
        entry = CacheEntry(
            key=key,
            payload=value.model_copy(deep=True),
            created_at=self._clock(),
            ttl_seconds=ttl_seconds,
        )
        evicted_key = None

        with self._lock:
            if key not in self._entries and len(self._entries) >= self.max_entries:
                evicted_key = next(iter(self._entries))
                del self._entries[evicted_key]
            self._entries[key] = entry
            size = len(self._entries)

        if evicted_key is not None:
            self._record("evict")
            logger.debug("cache_evicted", cache_key=evicted_key[:16])

        self._record("set")
        CACHE_ENTRIES.set(size)
        logger.info(
            "result_cached",
            cache_key=key[:16],
            result_count=len(value.results),
            ttl_seconds=ttl_seconds,
        )

    def peek(self, key: str) -> Optional[CacheEntry]:
        with self._lock:
            entry = self._entries.get(key)
            return entry.model_copy(deep=True) if entry else None

    def sweep_expired(self) -> int:
        now = self._clock()

        with self._lock:
            expired_keys = [k for k, e in self._entries.items() if e.is_expired(now)]
            for k in expired_keys:
                del self._entries[k]
            remaining = len(self._entries)

        if expired_keys:
            self._record("expire", len(expired_keys))
            CACHE_ENTRIES.set(remaining)
            logger.info(
                "cache_cleanup",
                cleared_count=len(expired_keys),
                remaining_count=remaining,
            )
        return len(expired_keys)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        CACHE_ENTRIES.set(0)
        logger.info("cache_cleared")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class DiskResultCache(ResultCache):
    """
    Disk-backed result cache.

    Uses diskcache with the least-recently-stored policy. TTLs are checked
    against the entry's own timestamp so both backends share one clock. The
    entry count bound is enforced here by deleting the oldest stored row
    before inserting a new key.
    """

    # A sweep reads every row; expiry is left to get() and the scheduled sweep
    sweep_on_read = False

    def __init__(
        self,
        cache_dir: str,
        max_entries: int = 1000,
        clock: Optional[Clock] = None,
    ):
        super().__init__(max_entries=max_entries, clock=clock)
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self._cache = diskcache.Cache(
            str(self.cache_dir), eviction_policy="least-recently-stored"
        )

        logger.info(
            "disk_cache_initialized",
            cache_dir=str(self.cache_dir),
            max_entries=max_entries,
        )

    def get(self, key: str) -> Optional[OrchestrationResult]:
        now = self._clock()

        with self._cache.transact():
            data = self._cache.get(key)
            entry = CacheEntry.model_validate(data) if data is not None else None

            if entry is not None and entry.is_expired(now):
                self._cache.delete(key)
                self._record("expire")
                entry = None
            elif entry is not None:
                entry.access_count += 1
                self._cache.set(key, entry.model_dump(mode="json"))

        if entry is None:
            self._record("miss")
            logger.debug("cache_miss", cache_key=key[:16])
            return None

        self._record("hit")
        logger.info(
            "cache_hit",
            cache_key=key[:16],
            access_count=entry.access_count,
            age_seconds=round(entry.age(now), 1),
        )
        return self._as_hit(key, entry.payload)

    def set(self, key: str, value: OrchestrationResult, ttl_seconds: float) -> None:
        entry = CacheEntry(
            key=key,
            payload=value,
            created_at=self._clock(),
            ttl_seconds=ttl_seconds,
        )
        evicted_key = None

        with self._cache.transact():
            if key not in self._cache and len(self._cache) >= self.max_entries:
                try:
                    evicted_key, _ = self._cache.peekitem(last=False)
                    self._cache.delete(evicted_key)
                except KeyError:
                    evicted_key = None
            self._cache.set(key, entry.model_dump(mode="json"))
            size = len(self._cache)

        if evicted_key is not None:
            self._record("evict")
            logger.debug("cache_evicted", cache_key=str(evicted_key)[:16])

        self._record("set")
        CACHE_ENTRIES.set(size)
        logger.info(
            "result_cached",
            cache_key=key[:16],
            result_count=len(value.results),
            ttl_seconds=ttl_seconds,
        )

    def peek(self, key: str) -> Optional[CacheEntry]:
        data = self._cache.get(key)
        return CacheEntry.model_validate(data) if data is not None else None

    def sweep_expired(self) -> int:
        now = self._clock()
        removed = 0

        with self._cache.transact():
            for key in list(self._cache.iterkeys()):
                data = self._cache.get(key)
                if data is None:
                    continue
                if CacheEntry.model_validate(data).is_expired(now):
                    self._cache.delete(key)
                    removed += 1

        if removed:
            self._record("expire", removed)
            CACHE_ENTRIES.set(len(self._cache))
            logger.info(
                "cache_cleanup",
                cleared_count=removed,
                remaining_count=len(self._cache),
            )
        return removed

    def clear(self) -> None:
        self._cache.clear()
        CACHE_ENTRIES.set(0)
        logger.info("cache_cleared")

    def close(self) -> None:
        self._cache.close()

    def __len__(self) -> int:
        return len(self._cache)


def create_result_cache(
    config: CacheConfig, clock: Optional[Clock] = None
) -> Optional[ResultCache]:
    """
    Build the configured cache backend.

    Returns:
        A ResultCache, or None when caching is disabled
    """
    if not config.enabled:
        logger.info("cache_disabled")
        return None

    if config.backend == CacheBackend.DISK:
        return DiskResultCache(
            cache_dir=config.cache_dir,
            max_entries=config.max_entries,
            clock=clock,
        )

    return MemoryResultCache(max_entries=config.max_entries, clock=clock)
