"""
Cache key derivation and content-aware TTL selection.

Results for time-sensitive queries go stale quickly, while queries about
established clinical knowledge can be reused for hours. The TTL is picked
from the query text and the recency filter before the entry is stored.
"""

import base64
import hashlib
import json
from typing import Optional

from medsearch.models.cache import CacheConfig
from medsearch.models.search import Recency, SearchFilters

CACHE_KEY_PREFIX = "search:"

TIME_SENSITIVE_KEYWORDS = (
    "breaking",
    "news",
    "urgent",
    "alert",
    "outbreak",
    "emergency",
    "latest",
    "recent",
    "current",
    "today",
    "this week",
)

STABLE_KNOWLEDGE_KEYWORDS = (
    "anatomy",
    "physiology",
    "pathophysiology",
    "pharmacology",
    "diagnosis",
    "treatment",
    "guidelines",
    "protocol",
)


def normalize_query(query: str) -> str:
    return query.lower().strip()


def generate_cache_key(query: str, filters: Optional[SearchFilters] = None) -> str:
    """
    Generate cache key for query + filters.

    Filters are serialized with sorted keys so field order never changes
    the key.

    Args:
        query: Search query
        filters: Request filters (None is treated as defaults)

    Returns:
        Opaque key of the form ``search:<urlsafe base64 sha256>``
    """
    canonical_filters = (filters or SearchFilters()).canonical()
    filter_string = json.dumps(canonical_filters, sort_keys=True, separators=(",", ":"))
    content = f"{normalize_query(query)}:{filter_string}"

    digest = hashlib.sha256(content.encode("utf-8")).digest()
    encoded = base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")
    return f"{CACHE_KEY_PREFIX}{encoded}"


def determine_cache_ttl(
    query: str,
    filters: Optional[SearchFilters] = None,
    config: Optional[CacheConfig] = None,
) -> int:
    """
    Pick the TTL (seconds) for a result set.

    Rules are checked in order: time-sensitive terms, short recency
    filter, month recency filter, stable-knowledge terms, default.

    Args:
        query: Search query
        filters: Request filters
        config: Cache configuration holding the TTL buckets

    Returns:
        TTL in seconds
    """
    config = config or CacheConfig()
    query_lower = normalize_query(query)
    recency = filters.recency if filters else None

    if any(keyword in query_lower for keyword in TIME_SENSITIVE_KEYWORDS):
        return config.time_sensitive_ttl_seconds

    if recency in (Recency.PAST_DAY, Recency.PAST_WEEK):
        return config.short_recency_ttl_seconds

    if recency == Recency.PAST_MONTH:
        return config.month_recency_ttl_seconds

    if any(keyword in query_lower for keyword in STABLE_KNOWLEDGE_KEYWORDS):
        return config.stable_knowledge_ttl_seconds

    return config.default_ttl_seconds
