"""Fire-and-forget search history sink.

After every search the orchestrator emits a SearchRecord. Delivery is best
effort: a failing sink is logged and counted, never surfaced to the caller.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional

import aiohttp
import structlog

from medsearch.models.search import SearchRecord

logger = structlog.get_logger()


class AnalyticsSink(ABC):
    """Destination for search records"""

    @abstractmethod
    async def record(self, record: SearchRecord) -> None:
        """Persist a search record. May raise; callers absorb errors."""
        pass


class NullAnalyticsSink(AnalyticsSink):
    """Discards records (analytics disabled)"""

    async def record(self, record: SearchRecord) -> None:
        return None


class HttpAnalyticsSink(AnalyticsSink):
    """POST search records to a REST endpoint (e.g. a search_history table)"""

    def __init__(
        self,
        url: str,
        api_key: Optional[str] = None,
        timeout_seconds: float = 5.0,
    ):
        self.url = url
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds

    def _build_headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
            headers["apikey"] = self.api_key
        return headers

    async def record(self, record: SearchRecord) -> None:
        async with aiohttp.ClientSession() as session:
            async with session.post(
                self.url,
                json=record.model_dump(mode="json"),
                headers=self._build_headers(),
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            ) as response:
                if response.status >= 300:
                    logger.error(
                        "search_history_store_failed",
                        status=response.status,
                        cache_key=(record.cache_key or "")[:16],
                    )
