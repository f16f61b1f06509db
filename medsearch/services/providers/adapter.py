"""Bounded-time provider calls that never raise.

Every provider call runs in its own cancellation scope: when the timeout
elapses the call is cancelled and a failed ProviderResponse is produced.
Errors are data here, not control flow.
"""

import asyncio
import time

import structlog

from medsearch.models.provider import ProviderSpec
from medsearch.models.search import ProviderResponse, SearchRequest
from medsearch.observability.metrics import PROVIDER_REQUEST_DURATION, PROVIDER_REQUESTS
from medsearch.services.providers.base import ProviderClient
from medsearch.utils.exceptions import ProviderTimeoutError

logger = structlog.get_logger()


async def call_provider(
    client: ProviderClient,
    spec: ProviderSpec,
    request: SearchRequest,
) -> ProviderResponse:
    """Call one provider within its timeout budget.

    Args:
        client: Backend client.
        spec: Provider configuration holding the timeout.
        request: Search request forwarded to the backend.

    Returns:
        Successful or failed ProviderResponse. Elapsed time is always set.
    """
    start_time = time.monotonic()

    try:
        payload = await asyncio.wait_for(
            client.search(request), timeout=spec.timeout_seconds
        )
    except asyncio.TimeoutError:
        elapsed_ms = _elapsed_ms(start_time)
        error = str(ProviderTimeoutError(spec.name, spec.timeout_seconds))
        logger.warning(
            "provider_timeout",
            provider=spec.name,
            timeout=spec.timeout_seconds,
            elapsed_ms=elapsed_ms,
        )
        _observe(spec.name, "timeout", elapsed_ms)
        return ProviderResponse(
            provider=spec.name,
            success=False,
            search_time_ms=elapsed_ms,
            error=error,
        )
    except Exception as e:
        elapsed_ms = _elapsed_ms(start_time)
        logger.warning(
            "provider_call_failed",
            provider=spec.name,
            error=str(e),
            error_type=type(e).__name__,
            elapsed_ms=elapsed_ms,
        )
        _observe(spec.name, "failed", elapsed_ms)
        return ProviderResponse(
            provider=spec.name,
            success=False,
            search_time_ms=elapsed_ms,
            error=str(e) or type(e).__name__,
        )

    elapsed_ms = _elapsed_ms(start_time)

    try:
        response = ProviderResponse(
            provider=spec.name,
            success=True,
            results=payload.results,
            total_count=max(payload.total_count, 0),
            search_time_ms=elapsed_ms,
            metadata=payload.metadata or None,
        )
    except Exception as e:
        logger.warning(
            "provider_payload_invalid",
            provider=spec.name,
            error=str(e),
            error_type=type(e).__name__,
            elapsed_ms=elapsed_ms,
        )
        _observe(spec.name, "failed", elapsed_ms)
        return ProviderResponse(
            provider=spec.name,
            success=False,
            search_time_ms=elapsed_ms,
            error=f"malformed payload: {type(e).__name__}",
        )

    _observe(spec.name, "success", elapsed_ms)
    logger.info(
        "provider_call_succeeded",
        provider=spec.name,
        result_count=len(response.results),
        elapsed_ms=elapsed_ms,
    )
    return response


def _elapsed_ms(start_time: float) -> int:
    return int((time.monotonic() - start_time) * 1000)


def _observe(provider: str, status: str, elapsed_ms: int) -> None:
    PROVIDER_REQUESTS.labels(provider=provider, status=status).inc()
    PROVIDER_REQUEST_DURATION.labels(provider=provider).observe(elapsed_ms / 1000)
