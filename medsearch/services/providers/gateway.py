import json
from typing import Any, Dict, List, Optional

import aiohttp
import structlog

from medsearch.models.provider import ProviderSpec
from medsearch.models.search import SearchRequest, SearchResult
from medsearch.services.providers.base import ProviderClient, ProviderPayload
from medsearch.utils.exceptions import ProviderError
from medsearch.utils.url import extract_domain

logger = structlog.get_logger()

# Payload keys copied into ProviderResponse.metadata when present
METADATA_KEYS = ("model", "usage", "autopromptUsed", "queryAltered")


class GatewayProviderClient(ProviderClient):
    """Search a backend through its search gateway

    Each backend sits behind a gateway that accepts ``{"q", "filters"}`` and
    answers ``{"results": [...], "totalCount": n, ...}``. Backend-specific
    wire formats stay inside the gateway.
    """

    def __init__(
        self,
        spec: ProviderSpec,
        base_url: str,
        api_key: Optional[str] = None,
    ):
        self.spec = spec
        self.api_key = api_key
        self.url = spec.endpoint or f"{base_url.rstrip('/')}/search-{spec.name}"

    @property
    def name(self) -> str:
        """Provider name"""
        return self.spec.name

    async def search(self, request: SearchRequest) -> ProviderPayload:
        """Search the backend for the request"""
        body = self._build_request_body(request)

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self.url,
                    json=body,
                    headers=self._build_headers(),
                ) as response:

                    if response.status < 200 or response.status >= 300:
                        text = await response.text()
                        logger.error(
                            "provider_http_error",
                            provider=self.name,
                            status=response.status,
                            body=text[:200],
                        )
                        raise ProviderError(
                            f"Provider {self.name} returned {response.status}",
                            provider=self.name,
                        )

                    try:
                        data = await response.json(content_type=None)
                    except (json.JSONDecodeError, aiohttp.ContentTypeError) as e:
                        raise ProviderError(
                            f"Provider {self.name} returned malformed JSON: {e}",
                            provider=self.name,
                        )

        except aiohttp.ClientError as e:
            raise ProviderError(
                f"Provider {self.name} request failed: {e}", provider=self.name
            )

        payload = self._parse_response(data)

        logger.debug(
            "provider_results_parsed",
            provider=self.name,
            count=len(payload.results),
            total_count=payload.total_count,
        )

        return payload

    def _build_request_body(self, request: SearchRequest) -> Dict[str, Any]:
        """Convert request to gateway body"""
        return {
            "q": request.q,
            "filters": request.filters.model_dump(
                by_alias=True, exclude_none=True, mode="json"
            ),
        }

    def _build_headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _parse_response(self, data: Any) -> ProviderPayload:
        """Parse gateway payload into a ProviderPayload"""
        if not isinstance(data, dict):
            raise ProviderError(
                f"Provider {self.name} returned malformed payload: expected object",
                provider=self.name,
            )

        raw_results = data.get("results") or []
        if not isinstance(raw_results, list):
            raise ProviderError(
                f"Provider {self.name} returned malformed payload: results is not a list",
                provider=self.name,
            )

        results = self._parse_results(raw_results)

        total_count = data.get("totalCount")
        if not isinstance(total_count, int) or total_count < 0:
            total_count = len(results)

        metadata = {k: data[k] for k in METADATA_KEYS if data.get(k) is not None}

        return ProviderPayload(
            results=results, total_count=total_count, metadata=metadata
        )

    def _parse_results(self, raw_results: List[Any]) -> List[SearchResult]:
        results = []
        for index, item in enumerate(raw_results):
            try:
                if not isinstance(item, dict):
                    raise ValueError("result is not an object")

                url = item.get("url")
                if not url:
                    raise ValueError("result has no url")

                score = item.get("relevanceScore", item.get("relevance_score", 0.0))
                try:
                    score = min(max(float(score), 0.0), 1.0)
                except (TypeError, ValueError):
                    score = 0.0

                result = SearchResult(
                    id=str(item.get("id") or f"{self.name}-{index}"),
                    title=item.get("title") or "Untitled",
                    url=url,
                    snippet=item.get("snippet") or "",
                    source=item.get("source") or extract_domain(url),
                    provider=item.get("provider") or self.name,
                    relevance_score=score,
                    evidence_level=item.get("evidenceLevel"),
                    content_type=item.get("contentType"),
                    specialty=item.get("specialty"),
                    publication_date=item.get("publicationDate"),
                )
                results.append(result)
            except Exception as e:
                logger.warning(
                    "result_parsing_failed",
                    provider=self.name,
                    index=index,
                    error=str(e),
                )
                continue

        return results
