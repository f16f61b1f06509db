from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List

from medsearch.models.search import SearchRequest, SearchResult


@dataclass
class ProviderPayload:
    """Provider output translated into the common result shape"""

    results: List[SearchResult] = field(default_factory=list)
    total_count: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)


class ProviderClient(ABC):
    """Abstract base class for search backends

    Each backend owns its wire format; implementations translate it into
    SearchResult objects. Implementations may raise on any failure: the
    adapter in ``providers.adapter`` turns errors and timeouts into failed
    ProviderResponse records.
    """

    @abstractmethod
    async def search(self, request: SearchRequest) -> ProviderPayload:
        """Search the backend for the request's query and filters

        Args:
            request: Validated search request

        Returns:
            ProviderPayload with normalized results

        Raises:
            ProviderError: If the backend call or payload is invalid
        """
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name matching its ProviderSpec"""
        pass
