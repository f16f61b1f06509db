"""
Result aggregation service.

Merges provider responses into one ranked list:
1. Concatenate results of successful providers in invocation order
2. Drop later results whose canonical URL was already seen
3. Apply the optional enrichment step
4. Stable sort by relevance score (descending)

Also picks the best-performing provider for reporting.
"""

from typing import List, Optional, Tuple

import structlog

from medsearch.models.provider import ProviderScore
from medsearch.models.search import ProviderResponse, SearchResult
from medsearch.observability.metrics import DUPLICATES_REMOVED
from medsearch.services.enrichment import PassthroughEnricher, ResultEnricher
from medsearch.utils.exceptions import EnrichmentError
from medsearch.utils.url import normalize_url

logger = structlog.get_logger()

# Best-provider score components
MAX_BREADTH_POINTS = 40.0
POINTS_PER_RESULT = 4.0
MAX_SPEED_POINTS = 30.0
MAX_QUALITY_POINTS = 30.0


class Aggregator:
    """
    Merge, deduplicate, enrich and rank provider results.

    Holds no cross-request state; the enricher is an injected strategy.
    """

    def __init__(self, enricher: Optional[ResultEnricher] = None):
        """
        Initialize aggregator.

        Args:
            enricher: Classification strategy (passthrough if None)
        """
        self.enricher = enricher or PassthroughEnricher()

    def merge(
        self, responses: List[ProviderResponse]
    ) -> Tuple[List[SearchResult], int]:
        """
        Concatenate successful results and drop duplicate URLs.

        Args:
            responses: Provider responses in invocation order

        Returns:
            Tuple of (unique results in merge order, duplicates removed)
        """
        seen = set()
        unique_results: List[SearchResult] = []
        duplicates = 0

        for response in responses:
            if not response.success:
                continue

            for result in response.results:
                key = normalize_url(result.url)
                if key in seen:
                    duplicates += 1
                    continue
                seen.add(key)
                unique_results.append(result)

        if duplicates:
            DUPLICATES_REMOVED.inc(duplicates)

        logger.debug(
            "results_merged",
            unique=len(unique_results),
            duplicates_removed=duplicates,
        )

        return unique_results, duplicates

    @staticmethod
    def rank(results: List[SearchResult]) -> List[SearchResult]:
        """
        Sort by relevance score, highest first.

        sorted() is stable, so ties keep merge order.
        """
        return sorted(results, key=lambda r: r.relevance_score, reverse=True)

    async def enrich(
        self, results: List[SearchResult], query: str
    ) -> List[SearchResult]:
        """
        Run the enrichment step, falling back to the input on failure.
        """
        try:
            return await self.enricher.enrich(results, query)
        except EnrichmentError as e:
            logger.warning(
                "enrichment_failed",
                error=str(e),
                result_count=len(results),
            )
            return results

    async def aggregate(
        self, responses: List[ProviderResponse], query: str
    ) -> Tuple[List[SearchResult], int]:
        """
        Merge, enrich and rank results from all providers.

        Args:
            responses: Provider responses in invocation order
            query: Original query (passed to the enricher)

        Returns:
            Tuple of (ranked results, duplicates removed)
        """
        merged, duplicates = self.merge(responses)
        enriched = await self.enrich(merged, query)
        return self.rank(enriched), duplicates

    async def from_best_provider(
        self, responses: List[ProviderResponse], query: str
    ) -> List[SearchResult]:
        """
        Use only the best provider's results (non-aggregated mode).

        Returns:
            Ranked results of the best provider, empty if none is eligible
        """
        best = self.select_best(responses)
        if best is None:
            return []

        best_response = next(r for r in responses if r.provider == best)
        enriched = await self.enrich(list(best_response.results), query)
        return self.rank(enriched)

    def score_provider(self, response: ProviderResponse) -> ProviderScore:
        """
        Calculate the composite score of one provider response.

        - Breadth: 4 points per result, capped at 40
        - Speed: 30 minus elapsed seconds, floored at 0
        - Quality: average relevance times 30
        """
        count = len(response.results)
        avg_relevance = (
            sum(r.relevance_score for r in response.results) / count if count else 0.0
        )

        return ProviderScore(
            provider=response.provider,
            breadth_score=min(count * POINTS_PER_RESULT, MAX_BREADTH_POINTS),
            speed_score=max(0.0, MAX_SPEED_POINTS - response.search_time_seconds),
            quality_score=avg_relevance * MAX_QUALITY_POINTS,
        )

    def select_best(self, responses: List[ProviderResponse]) -> Optional[str]:
        """
        Pick the provider with the highest composite score.

        Only successful responses with at least one result are eligible.
        Ties go to the earlier response.

        Returns:
            Provider name, or None if no provider is eligible
        """
        scores = [
            self.score_provider(r) for r in responses if r.success and r.results
        ]
        if not scores:
            return None

        best = max(scores, key=lambda s: s.total_score)

        logger.debug(
            "best_provider_selected",
            provider=best.provider,
            score=round(best.total_score, 2),
            candidates=len(scores),
        )

        return best.provider
