"""Optional result enrichment by an external classification service.

The aggregator holds one ResultEnricher. Without a configured service it
uses PassthroughEnricher, which leaves provider-native scores untouched.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import aiohttp
import structlog

from medsearch.models.search import SearchResult
from medsearch.utils.exceptions import EnrichmentError

logger = structlog.get_logger()


class ResultEnricher(ABC):
    """Annotates deduplicated results with classification data"""

    @abstractmethod
    async def enrich(self, results: List[SearchResult], query: str) -> List[SearchResult]:
        """Return the same results annotated with classification fields

        Args:
            results: Deduplicated results
            query: Original query text

        Returns:
            Annotated results in the same order

        Raises:
            EnrichmentError: If the classification service fails
        """
        pass


class PassthroughEnricher(ResultEnricher):
    """No-op enricher used when no classification service is configured"""

    async def enrich(self, results: List[SearchResult], query: str) -> List[SearchResult]:
        return results


class HttpClassificationEnricher(ResultEnricher):
    """Classify results through an HTTP classification service

    Request: ``{"query": str, "results": [SearchResult...]}``
    Response: ``{"results": [{"id", "evidenceLevel", "contentType",
    "specialty", "confidence"}]}``

    The returned confidence supersedes the provider relevance score.
    """

    def __init__(
        self,
        url: str,
        api_key: Optional[str] = None,
        timeout_seconds: float = 10.0,
    ):
        self.url = url
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds

    async def enrich(self, results: List[SearchResult], query: str) -> List[SearchResult]:
        if not results:
            return results

        body = {
            "query": query,
            "results": [r.model_dump(by_alias=True, mode="json") for r in results],
        }
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self.url,
                    json=body,
                    headers=headers,
                    timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
                ) as response:
                    if response.status != 200:
                        raise EnrichmentError(
                            f"Classification service returned {response.status}"
                        )
                    data = await response.json(content_type=None)
        except aiohttp.ClientError as e:
            raise EnrichmentError(f"Classification request failed: {e}")
        except asyncio.TimeoutError:
            raise EnrichmentError("Classification request timed out")
        except ValueError as e:
            raise EnrichmentError(f"Classification service returned malformed JSON: {e}")

        if not isinstance(data, dict) or not isinstance(data.get("results"), list):
            raise EnrichmentError("Classification payload has no results list")

        annotations = {
            str(item["id"]): item
            for item in data["results"]
            if isinstance(item, dict) and item.get("id") is not None
        }

        logger.info(
            "results_classified",
            result_count=len(results),
            classified=len(annotations),
            query=query[:50],
        )

        return [self._apply(r, annotations.get(r.id)) for r in results]

    @staticmethod
    def _apply(result: SearchResult, annotation: Optional[Dict[str, Any]]) -> SearchResult:
        if not annotation:
            return result

        update: Dict[str, Any] = {}
        for field_name, key in (
            ("evidence_level", "evidenceLevel"),
            ("content_type", "contentType"),
            ("specialty", "specialty"),
        ):
            if annotation.get(key):
                update[field_name] = annotation[key]

        confidence = annotation.get("confidence")
        if isinstance(confidence, (int, float)):
            confidence = min(max(float(confidence), 0.0), 1.0)
            update["classification_confidence"] = confidence
            update["relevance_score"] = confidence

        return result.model_copy(update=update)
