"""Search orchestration facade.

Single entry point tying the components together:

    CACHE_CHECK -> DISPATCHING -> AGGREGATING -> FILTERING -> CACHING -> DONE

with FAILED reachable from CACHE_CHECK (invalid request) and DISPATCHING
(no usable providers). A cache hit goes straight from CACHE_CHECK to DONE.

Usage:
    orchestrator = build_orchestrator(config)
    result = await orchestrator.search({"q": "hypertension guidelines"})
"""

import time
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

import structlog
from pydantic import ValidationError

from medsearch.models.cache import CacheConfig
from medsearch.models.search import (
    OrchestrationResult,
    ProviderResponse,
    SearchRecord,
    SearchRequest,
    SearchResult,
)
from medsearch.observability.context import correlation_id_context
from medsearch.observability.metrics import (
    ANALYTICS_FAILURES,
    RESULTS_RETURNED,
    SEARCH_DURATION,
    SEARCHES_TOTAL,
)
from medsearch.services.aggregator import Aggregator
from medsearch.services.analytics import AnalyticsSink, NullAnalyticsSink
from medsearch.services.cache_policy import determine_cache_ttl, generate_cache_key
from medsearch.services.cache_service import ResultCache
from medsearch.services.dispatcher import Dispatcher
from medsearch.services.filter_service import FilterService
from medsearch.utils.exceptions import InvalidRequestError, NoProvidersAvailableError

logger = structlog.get_logger()


class OrchestrationState(str, Enum):
    CACHE_CHECK = "cache_check"
    DISPATCHING = "dispatching"
    AGGREGATING = "aggregating"
    FILTERING = "filtering"
    CACHING = "caching"
    DONE = "done"
    FAILED = "failed"


TransitionHook = Callable[[OrchestrationState], None]


class SearchOrchestrator:
    """Runs one search request end to end.

    The result cache is the only shared mutable state; everything else is
    either immutable configuration or per-call.
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        aggregator: Optional[Aggregator] = None,
        filter_service: Optional[FilterService] = None,
        cache: Optional[ResultCache] = None,
        cache_config: Optional[CacheConfig] = None,
        analytics: Optional[AnalyticsSink] = None,
        on_transition: Optional[TransitionHook] = None,
    ):
        """Initialize the orchestrator.

        Args:
            dispatcher: Provider dispatcher.
            aggregator: Merge/dedupe/rank step (default: no enrichment).
            filter_service: Filter and pagination step.
            cache: Result cache (None disables caching).
            cache_config: TTL buckets for the cache policy.
            analytics: Search history sink (default: discard).
            on_transition: Optional hook called on every state change.
        """
        self.dispatcher = dispatcher
        self.aggregator = aggregator or Aggregator()
        self.filter_service = filter_service or FilterService()
        self.cache = cache
        self.cache_config = cache_config or CacheConfig()
        self.analytics = analytics or NullAnalyticsSink()
        self._on_transition = on_transition

    async def search(
        self, request: Union[SearchRequest, Dict[str, Any]]
    ) -> OrchestrationResult:
        """Execute a search.

        Args:
            request: SearchRequest or its JSON body (``q``, ``providers``,
                ``parallel``, ``aggregateResults``, ``filters``).

        Returns:
            OrchestrationResult; ``results`` is empty when every provider
            failed or returned nothing.

        Raises:
            InvalidRequestError: If the query or filters are invalid.
            NoProvidersAvailableError: If no enabled provider matches.
        """
        with correlation_id_context():
            start_time = time.monotonic()
            self._enter(OrchestrationState.CACHE_CHECK)

            try:
                search_request = self._validate(request)
            except InvalidRequestError as e:
                self._enter(OrchestrationState.FAILED)
                SEARCHES_TOTAL.labels(outcome="rejected").inc()
                logger.warning("search_rejected", reason=str(e))
                raise

            result = self._check_cache(search_request)
            if result is not None:
                self._enter(OrchestrationState.DONE)
                self._observe(result, "cache_hit", start_time)
                await self._record_analytics(result)
                return result

            result = await self._run_search(search_request, start_time)

            self._enter(OrchestrationState.DONE)
            outcome = "completed" if result.results else "empty"
            self._observe(result, outcome, start_time)
            await self._record_analytics(result)

            logger.info(
                "search_completed",
                result_count=len(result.results),
                providers_used=[p.provider for p in result.providers if p.success],
                duplicates_removed=result.duplicates_removed,
                best_provider=result.best_provider,
                total_time_ms=result.total_search_time_ms,
                cache_key=(result.cache_key or "")[:16],
            )
            return result

    def _check_cache(self, request: SearchRequest) -> Optional[OrchestrationResult]:
        if self.cache is None:
            return None

        if self.cache.sweep_on_read:
            self.cache.sweep_expired()
        cache_key = generate_cache_key(request.q, request.filters)
        cached = self.cache.get(cache_key)
        if cached is None:
            return None

        # Cached payload holds the full ranked set; cut the requested page
        page = self.filter_service.apply(cached.results, request.filters)
        logger.info(
            "search_cache_hit",
            query=request.q[:100],
            cache_key=cache_key[:16],
            result_count=len(page),
        )
        return cached.model_copy(
            update={"results": page, "aggregated_count": len(page)}
        )

    async def _run_search(
        self, request: SearchRequest, start_time: float
    ) -> OrchestrationResult:
        cache_key = generate_cache_key(request.q, request.filters)

        logger.info(
            "search_started",
            query=request.q[:100],
            providers=request.providers,
            parallel=request.parallel,
            aggregate_results=request.aggregate_results,
            cache_key=cache_key[:16],
        )

        self._enter(OrchestrationState.DISPATCHING)
        try:
            providers = self.dispatcher.select_providers(request)
        except NoProvidersAvailableError:
            self._enter(OrchestrationState.FAILED)
            SEARCHES_TOTAL.labels(outcome="rejected").inc()
            raise

        responses = await self.dispatcher.run(request, providers)

        self._enter(OrchestrationState.AGGREGATING)
        ranked, duplicates_removed = await self._aggregate(request, responses)
        best_provider = self.aggregator.select_best(responses)

        self._enter(OrchestrationState.FILTERING)
        page = self.filter_service.apply(ranked, request.filters)

        total_ms = int((time.monotonic() - start_time) * 1000)
        result = OrchestrationResult(
            results=page,
            providers=responses,
            aggregated_count=len(page),
            total_search_time_ms=total_ms,
            query=request.q,
            duplicates_removed=duplicates_removed,
            best_provider=best_provider,
            cache_hit=False,
            cache_key=cache_key,
        )

        if ranked:
            self._enter(OrchestrationState.CACHING)
            self._store(request, cache_key, result.model_copy(update={"results": ranked}))
        else:
            logger.warning(
                "aggregation_empty",
                query=request.q[:100],
                failed_providers=[r.provider for r in responses if not r.success],
            )

        return result

    async def _aggregate(
        self, request: SearchRequest, responses: List[ProviderResponse]
    ) -> tuple[List[SearchResult], int]:
        if request.aggregate_results:
            return await self.aggregator.aggregate(responses, request.q)

        results = await self.aggregator.from_best_provider(responses, request.q)
        return results, 0

    def _store(
        self, request: SearchRequest, cache_key: str, payload: OrchestrationResult
    ) -> None:
        if self.cache is None:
            return

        ttl = determine_cache_ttl(request.q, request.filters, self.cache_config)
        self.cache.set(cache_key, payload, ttl)

    async def _record_analytics(self, result: OrchestrationResult) -> None:
        """Emit the analytics record; failures never fail the search."""
        try:
            await self.analytics.record(SearchRecord.from_result(result))
        except Exception as e:
            ANALYTICS_FAILURES.inc()
            logger.error(
                "analytics_record_failed",
                error=str(e),
                error_type=type(e).__name__,
            )

    @staticmethod
    def _validate(request: Union[SearchRequest, Dict[str, Any]]) -> SearchRequest:
        if isinstance(request, SearchRequest):
            return request

        if not isinstance(request, dict):
            raise InvalidRequestError("Search request must be a JSON object")

        try:
            return SearchRequest.model_validate(request)
        except ValidationError as e:
            messages = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in e.errors()
            )
            raise InvalidRequestError(f"Invalid search request: {messages}")

    def _enter(self, state: OrchestrationState) -> None:
        logger.debug("orchestration_state", state=state.value)
        if self._on_transition is not None:
            self._on_transition(state)

    @staticmethod
    def _observe(result: OrchestrationResult, outcome: str, start_time: float) -> None:
        SEARCHES_TOTAL.labels(outcome=outcome).inc()
        SEARCH_DURATION.labels(cache_hit=str(result.cache_hit).lower()).observe(
            time.monotonic() - start_time
        )
        RESULTS_RETURNED.observe(len(result.results))
