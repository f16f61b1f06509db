"""Custom exceptions for the search orchestration engine

This module defines the exception hierarchy for a search request:
- Request-level rejections surfaced to the caller (invalid request, no providers)
- Provider-level failures that are absorbed into ProviderResponse records
- Enrichment and configuration errors

All exceptions inherit from OrchestratorError to allow catching every
engine-related error in a single except block when needed.
"""


class OrchestratorError(Exception):
    """Base exception for all orchestration errors

    Use this to catch any error raised by the engine:
    ```python
    try:
        result = await orchestrator.search(request)
    except OrchestratorError as e:
        logger.error("search_failed", error=str(e))
    ```
    """

    pass


class InvalidRequestError(OrchestratorError):
    """Search request rejected before any provider was contacted

    Raised when:
    - Query is missing, empty or only whitespace
    - Filters fail validation (e.g. negative offset)
    """

    pass


class NoProvidersAvailableError(OrchestratorError):
    """No enabled provider matches the request

    Raised when:
    - Every configured provider is disabled
    - The request restricts providers to names that are not enabled
    - No client is registered for the remaining providers
    """

    def __init__(self, message: str, requested: list[str] | None = None) -> None:
        super().__init__(message)
        self.requested = requested or []


class ProviderError(OrchestratorError):
    """A single provider call failed

    Raised inside provider clients when:
    - Backend returns a non-2xx status
    - Network or connection errors occur
    - Payload is not valid JSON or has an unexpected shape

    Never reaches callers of the orchestrator: the adapter converts it into
    a failed ProviderResponse.
    """

    def __init__(self, message: str, provider: str | None = None) -> None:
        super().__init__(message)
        self.provider = provider


class ProviderTimeoutError(ProviderError):
    """Provider did not answer within its timeout budget."""

    def __init__(self, provider: str, timeout_seconds: float) -> None:
        super().__init__(
            f"Provider {provider} timed out after {timeout_seconds:g}s",
            provider=provider,
        )
        self.timeout_seconds = timeout_seconds


class EnrichmentError(OrchestratorError):
    """External classification service failed

    Absorbed by the aggregator, which falls back to provider-native
    relevance scores.
    """

    pass


class ConfigValidationError(OrchestratorError):
    """Configuration validation failed"""

    pass
