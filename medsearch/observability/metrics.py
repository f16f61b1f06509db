"""Prometheus metrics definitions for the search engine.

Defines counters, gauges and histograms for monitoring:
- Search throughput and latency by outcome
- Provider call success rate and latency
- Cache effectiveness and size

Usage:
    from medsearch.observability.metrics import (
        SEARCHES_TOTAL,
        PROVIDER_REQUESTS,
    )

    SEARCHES_TOTAL.labels(outcome="cache_hit").inc()
    PROVIDER_REQUESTS.labels(provider="brave", status="success").inc()

Metrics are exposed via the /metrics endpoint of the API server.
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

# Custom registry to avoid conflicts with the default registry
REGISTRY = CollectorRegistry(auto_describe=True)

# =============================================================================
# COUNTERS
# =============================================================================

SEARCHES_TOTAL = Counter(
    name="medsearch_searches_total",
    documentation="Total number of search requests",
    labelnames=["outcome"],  # cache_hit, completed, empty, rejected
    registry=REGISTRY,
)

PROVIDER_REQUESTS = Counter(
    name="medsearch_provider_requests_total",
    documentation="Total provider calls",
    labelnames=["provider", "status"],  # brave/exa/perplexity, success/failed/timeout
    registry=REGISTRY,
)

CACHE_OPERATIONS = Counter(
    name="medsearch_cache_operations_total",
    documentation="Total cache operations",
    labelnames=["operation"],  # hit, miss, set, evict, expire
    registry=REGISTRY,
)

DUPLICATES_REMOVED = Counter(
    name="medsearch_duplicates_removed_total",
    documentation="Total results dropped by URL deduplication",
    registry=REGISTRY,
)

ANALYTICS_FAILURES = Counter(
    name="medsearch_analytics_failures_total",
    documentation="Analytics records that could not be delivered",
    registry=REGISTRY,
)

# =============================================================================
# GAUGES
# =============================================================================

CACHE_ENTRIES = Gauge(
    name="medsearch_cache_entries",
    documentation="Number of entries currently held by the result cache",
    registry=REGISTRY,
)

# =============================================================================
# HISTOGRAMS
# =============================================================================

SEARCH_DURATION = Histogram(
    name="medsearch_search_duration_seconds",
    documentation="End-to-end search duration in seconds",
    labelnames=["cache_hit"],  # true, false
    buckets=(0.01, 0.1, 0.5, 1, 2, 5, 10, 20, 30, 60, float("inf")),
    registry=REGISTRY,
)

PROVIDER_REQUEST_DURATION = Histogram(
    name="medsearch_provider_request_duration_seconds",
    documentation="Provider call duration in seconds",
    labelnames=["provider"],
    buckets=(0.1, 0.5, 1, 2, 5, 10, 15, 20, 30, float("inf")),
    registry=REGISTRY,
)

RESULTS_RETURNED = Histogram(
    name="medsearch_results_returned",
    documentation="Number of results returned per search page",
    buckets=(0, 1, 5, 10, 20, 50, 100, float("inf")),
    registry=REGISTRY,
)


def get_metrics_text() -> bytes:
    """Generate Prometheus metrics in text exposition format."""
    return generate_latest(REGISTRY)


def get_metrics_content_type() -> str:
    """Get the content type for a Prometheus metrics response."""
    return CONTENT_TYPE_LATEST
