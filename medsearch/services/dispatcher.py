"""Provider dispatch: parallel fan-out/fan-in or sequential with early stop."""

import asyncio
from typing import Dict, List, Optional

import structlog

from medsearch.models.provider import ProviderSpec
from medsearch.models.search import ProviderResponse, SearchRequest
from medsearch.services.providers.adapter import call_provider
from medsearch.services.providers.base import ProviderClient
from medsearch.utils.exceptions import NoProvidersAvailableError

logger = structlog.get_logger()

EARLY_STOP_MIN_RESULTS = 5


class Dispatcher:
    """Run provider calls for a request.

    Stateless per call: holds only the immutable provider specs and the
    clients registered for them.

    - Parallel mode waits for every provider; a slow or failing provider
      never cancels its siblings.
    - Sequential mode walks providers by ascending priority and stops at
      the first successful response with enough results.
    """

    def __init__(
        self,
        specs: List[ProviderSpec],
        clients: Dict[str, ProviderClient],
        early_stop_min_results: int = EARLY_STOP_MIN_RESULTS,
    ):
        """Initialize dispatcher.

        Args:
            specs: Provider configuration.
            clients: Provider clients keyed by provider name.
            early_stop_min_results: Sequential mode stop threshold.
        """
        self.specs = list(specs)
        self.clients = dict(clients)
        self.early_stop_min_results = early_stop_min_results

    def select_providers(self, request: SearchRequest) -> List[ProviderSpec]:
        """Resolve the providers for a request, lowest priority value first.

        Raises:
            NoProvidersAvailableError: If nothing is left after filtering.
        """
        selected = [s for s in self.specs if s.enabled]

        if request.providers:
            requested = set(request.providers)
            selected = [s for s in selected if s.name in requested]

        missing_clients = [s.name for s in selected if s.name not in self.clients]
        if missing_clients:
            logger.warning("provider_client_missing", providers=missing_clients)
            selected = [s for s in selected if s.name in self.clients]

        # Stable sort keeps configuration order among equal priorities
        selected.sort(key=lambda s: s.priority)

        if not selected:
            logger.error(
                "no_providers_available",
                requested=request.providers,
                configured=[s.name for s in self.specs],
            )
            raise NoProvidersAvailableError(
                "No search providers available", requested=request.providers
            )

        return selected

    async def run(
        self,
        request: SearchRequest,
        providers: Optional[List[ProviderSpec]] = None,
    ) -> List[ProviderResponse]:
        """Dispatch the request and collect one response per invoked provider.

        Args:
            request: Search request.
            providers: Pre-selected providers (selected from the request if None).

        Returns:
            Responses in invocation order.
        """
        if providers is None:
            providers = self.select_providers(request)

        if request.parallel and len(providers) > 1:
            return await self.run_parallel(request, providers)
        return await self.run_sequential(request, providers)

    async def run_parallel(
        self, request: SearchRequest, providers: List[ProviderSpec]
    ) -> List[ProviderResponse]:
        logger.info(
            "parallel_search_started",
            providers=[p.name for p in providers],
            query=request.q[:100],
        )

        tasks = [
            call_provider(self.clients[spec.name], spec, request) for spec in providers
        ]
        # call_provider never raises, so gather returns one response per task
        responses = await asyncio.gather(*tasks)
        return list(responses)

    async def run_sequential(
        self, request: SearchRequest, providers: List[ProviderSpec]
    ) -> List[ProviderResponse]:
        logger.info(
            "sequential_search_started",
            providers=[p.name for p in providers],
            query=request.q[:100],
        )

        responses: List[ProviderResponse] = []

        for spec in providers:
            response = await call_provider(self.clients[spec.name], spec, request)
            responses.append(response)

            if response.success and len(response.results) >= self.early_stop_min_results:
                logger.info(
                    "sequential_search_early_termination",
                    provider=spec.name,
                    result_count=len(response.results),
                    skipped=len(providers) - len(responses),
                )
                break

        return responses
