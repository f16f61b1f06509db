"""
Data models for the result cache.

Defines cache configuration, entries and statistics.
"""

import time
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from medsearch.models.search import OrchestrationResult


class CacheBackend(str, Enum):
    MEMORY = "memory"
    DISK = "disk"


class CacheConfig(BaseModel):
    """Cache configuration"""

    model_config = ConfigDict(protected_namespaces=())

    enabled: bool = True
    backend: CacheBackend = CacheBackend.MEMORY
    cache_dir: str = "./cache/search"

    # Maximum number of cached queries
    max_entries: int = Field(1000, ge=1)

    # TTL settings (seconds)
    default_ttl_seconds: int = Field(30 * 60, ge=1)
    time_sensitive_ttl_seconds: int = Field(10 * 60, ge=1)
    short_recency_ttl_seconds: int = Field(15 * 60, ge=1)
    month_recency_ttl_seconds: int = Field(60 * 60, ge=1)
    stable_knowledge_ttl_seconds: int = Field(2 * 60 * 60, ge=1)

    # Background sweep of expired entries (API server only)
    sweep_interval_seconds: int = Field(300, ge=1)


class CacheEntry(BaseModel):
    """One cached orchestration result"""

    key: str
    payload: OrchestrationResult
    created_at: float = Field(default_factory=time.time)
    ttl_seconds: float = Field(..., gt=0)
    access_count: int = Field(1, ge=0)

    def age(self, now: float) -> float:
        return now - self.created_at

    def is_expired(self, now: float) -> bool:
        return self.age(now) > self.ttl_seconds


class CacheStats(BaseModel):
    """Cache statistics"""

    model_config = ConfigDict(protected_namespaces=())

    entries: int = 0
    max_entries: int = 0
    hits: int = 0
    misses: int = 0
    sets: int = 0
    evictions: int = 0
    expirations: int = 0

    last_updated: datetime = Field(default_factory=datetime.now)

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate"""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total
