"""Observability module: correlation IDs, structured logging and metrics.

Usage:
    from medsearch.observability import (
        correlation_id_context,
        get_logger,
        SEARCHES_TOTAL,
    )

    with correlation_id_context():
        get_logger("api").info("search_received")
        SEARCHES_TOTAL.labels(outcome="completed").inc()
"""

from medsearch.observability.context import (
    set_correlation_id,
    get_correlation_id,
    clear_correlation_id,
    correlation_id_context,
)
from medsearch.observability.logging import (
    get_logger,
    configure_logging,
    add_correlation_id_processor,
    bind_context,
    clear_context,
)
from medsearch.observability.metrics import (
    SEARCHES_TOTAL,
    PROVIDER_REQUESTS,
    CACHE_OPERATIONS,
    DUPLICATES_REMOVED,
    ANALYTICS_FAILURES,
    CACHE_ENTRIES,
    SEARCH_DURATION,
    PROVIDER_REQUEST_DURATION,
    RESULTS_RETURNED,
    get_metrics_text,
    get_metrics_content_type,
)

__all__ = [
    # Context
    "set_correlation_id",
    "get_correlation_id",
    "clear_correlation_id",
    "correlation_id_context",
    # Logging
    "get_logger",
    "configure_logging",
    "add_correlation_id_processor",
    "bind_context",
    "clear_context",
    # Metrics
    "SEARCHES_TOTAL",
    "PROVIDER_REQUESTS",
    "CACHE_OPERATIONS",
    "DUPLICATES_REMOVED",
    "ANALYTICS_FAILURES",
    "CACHE_ENTRIES",
    "SEARCH_DURATION",
    "PROVIDER_REQUEST_DURATION",
    "RESULTS_RETURNED",
    "get_metrics_text",
    "get_metrics_content_type",
]
