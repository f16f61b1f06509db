"""Wire an orchestrator from configuration."""

from typing import Dict, Optional

import structlog

from medsearch.models.config import OrchestratorConfig
from medsearch.orchestration.orchestrator import SearchOrchestrator
from medsearch.services.aggregator import Aggregator
from medsearch.services.analytics import (
    AnalyticsSink,
    HttpAnalyticsSink,
    NullAnalyticsSink,
)
from medsearch.services.cache_service import ResultCache, create_result_cache
from medsearch.services.dispatcher import Dispatcher
from medsearch.services.enrichment import (
    HttpClassificationEnricher,
    PassthroughEnricher,
    ResultEnricher,
)
from medsearch.services.filter_service import FilterService
from medsearch.services.providers.base import ProviderClient
from medsearch.services.providers.gateway import GatewayProviderClient

logger = structlog.get_logger()


def build_provider_clients(config: OrchestratorConfig) -> Dict[str, ProviderClient]:
    """Create one gateway client per configured provider."""
    return {
        spec.name: GatewayProviderClient(
            spec=spec,
            base_url=config.gateway.base_url,
            api_key=config.gateway.api_key,
        )
        for spec in config.providers
    }


def build_enricher(config: OrchestratorConfig) -> ResultEnricher:
    settings = config.enrichment
    if settings.enabled and settings.url:
        return HttpClassificationEnricher(
            url=settings.url,
            api_key=settings.api_key,
            timeout_seconds=settings.timeout_seconds,
        )
    if settings.enabled:
        logger.warning("enrichment_disabled", reason="missing_url")
    return PassthroughEnricher()


def build_analytics_sink(config: OrchestratorConfig) -> AnalyticsSink:
    settings = config.analytics
    if settings.enabled and settings.url:
        return HttpAnalyticsSink(
            url=settings.url,
            api_key=settings.api_key,
            timeout_seconds=settings.timeout_seconds,
        )
    if settings.enabled:
        logger.warning("analytics_disabled", reason="missing_url")
    return NullAnalyticsSink()


def build_orchestrator(
    config: OrchestratorConfig,
    clients: Optional[Dict[str, ProviderClient]] = None,
    cache: Optional[ResultCache] = None,
) -> SearchOrchestrator:
    """Build a SearchOrchestrator from configuration.

    Args:
        config: Validated configuration.
        clients: Provider clients overriding the gateway clients.
        cache: Result cache overriding the configured backend.

    Returns:
        Ready-to-use orchestrator.
    """
    dispatcher = Dispatcher(
        specs=config.providers,
        clients=clients if clients is not None else build_provider_clients(config),
        early_stop_min_results=config.search.early_stop_min_results,
    )

    orchestrator = SearchOrchestrator(
        dispatcher=dispatcher,
        aggregator=Aggregator(enricher=build_enricher(config)),
        filter_service=FilterService(),
        cache=cache if cache is not None else create_result_cache(config.cache),
        cache_config=config.cache,
        analytics=build_analytics_sink(config),
    )

    logger.info(
        "orchestrator_initialized",
        providers=[p.name for p in config.enabled_providers],
        cache_enabled=orchestrator.cache is not None,
        enrichment=type(orchestrator.aggregator.enricher).__name__,
    )

    return orchestrator
