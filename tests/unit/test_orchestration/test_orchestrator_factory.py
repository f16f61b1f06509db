"""Tests for wiring an orchestrator from configuration."""

from medsearch.models.config import OrchestratorConfig
from medsearch.orchestration import (
    build_analytics_sink,
    build_enricher,
    build_orchestrator,
    build_provider_clients,
)
from medsearch.services.analytics import HttpAnalyticsSink, NullAnalyticsSink
from medsearch.services.cache_service import MemoryResultCache
from medsearch.services.enrichment import HttpClassificationEnricher, PassthroughEnricher
from medsearch.services.providers.gateway import GatewayProviderClient


def test_build_provider_clients():
    config = OrchestratorConfig(
        gateway={"base_url": "https://gw.example.com/fn", "api_key": "k"},
        providers=[{"name": "brave"}, {"name": "exa", "endpoint": "https://exa.internal/s"}],
    )

    clients = build_provider_clients(config)

    assert set(clients) == {"brave", "exa"}
    assert all(isinstance(c, GatewayProviderClient) for c in clients.values())
    assert clients["brave"].url == "https://gw.example.com/fn/search-brave"
    assert clients["brave"].api_key == "k"
    assert clients["exa"].url == "https://exa.internal/s"


class TestBuildEnricher:
    def test_disabled(self):
        assert isinstance(build_enricher(OrchestratorConfig()), PassthroughEnricher)

    def test_enabled_without_url(self):
        config = OrchestratorConfig(enrichment={"enabled": True})
        assert isinstance(build_enricher(config), PassthroughEnricher)

    def test_enabled(self):
        config = OrchestratorConfig(
            enrichment={"enabled": True, "url": "https://classify.example.com", "timeout_seconds": 3}
        )
        enricher = build_enricher(config)
        assert isinstance(enricher, HttpClassificationEnricher)
        assert enricher.timeout_seconds == 3


class TestBuildAnalyticsSink:
    def test_disabled(self):
        assert isinstance(build_analytics_sink(OrchestratorConfig()), NullAnalyticsSink)

    def test_enabled(self):
        config = OrchestratorConfig(
            analytics={"enabled": True, "url": "https://db.example.com/history", "api_key": "a"}
        )
        sink = build_analytics_sink(config)
        assert isinstance(sink, HttpAnalyticsSink)
        assert sink.api_key == "a"


class TestBuildOrchestrator:
    def test_defaults(self):
        orchestrator = build_orchestrator(OrchestratorConfig())

        assert set(orchestrator.dispatcher.clients) == {"brave", "exa", "perplexity"}
        assert isinstance(orchestrator.cache, MemoryResultCache)
        assert orchestrator.cache.max_entries == 1000
        assert isinstance(orchestrator.analytics, NullAnalyticsSink)

    def test_cache_disabled(self):
        orchestrator = build_orchestrator(OrchestratorConfig(cache={"enabled": False}))
        assert orchestrator.cache is None

    def test_overrides(self):
        cache = MemoryResultCache(max_entries=5)
        clients = {"brave": object()}

        orchestrator = build_orchestrator(OrchestratorConfig(), clients=clients, cache=cache)

        assert orchestrator.cache is cache
        assert orchestrator.dispatcher.clients == clients

    def test_early_stop_threshold(self):
        config = OrchestratorConfig(search={"early_stop_min_results": 8})
        assert build_orchestrator(config).dispatcher.early_stop_min_results == 8
