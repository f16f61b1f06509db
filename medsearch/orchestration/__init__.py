"""Orchestration module: the search facade and its wiring."""

from medsearch.orchestration.orchestrator import OrchestrationState, SearchOrchestrator
from medsearch.orchestration.factory import (
    build_analytics_sink,
    build_enricher,
    build_orchestrator,
    build_provider_clients,
)

__all__ = [
    "OrchestrationState",
    "SearchOrchestrator",
    "build_orchestrator",
    "build_provider_clients",
    "build_enricher",
    "build_analytics_sink",
]
