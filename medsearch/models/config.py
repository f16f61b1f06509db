from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from medsearch.models.cache import CacheConfig
from medsearch.models.provider import ProviderSpec, default_provider_specs
from medsearch.models.search import DEFAULT_RESULT_LIMIT, MAX_RESULT_LIMIT


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class GatewaySettings(BaseModel):
    """Where provider search gateways live"""

    base_url: str = Field(
        "http://localhost:8888/.netlify/functions",
        description="Provider gateways are reached at {base_url}/search-{name}",
    )
    api_key: Optional[str] = Field(None, description="Bearer token for gateways")

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class SearchSettings(BaseModel):
    """Result window defaults"""

    default_limit: int = Field(DEFAULT_RESULT_LIMIT, ge=1, le=MAX_RESULT_LIMIT)
    # Sequential mode stops once a provider returns at least this many results
    early_stop_min_results: int = Field(5, ge=1)


class EnrichmentSettings(BaseModel):
    """External classification service"""

    enabled: bool = False
    url: Optional[str] = None
    api_key: Optional[str] = None
    timeout_seconds: float = Field(10.0, gt=0, le=120)


class AnalyticsSettings(BaseModel):
    """Fire-and-forget search history sink"""

    enabled: bool = False
    url: Optional[str] = None
    api_key: Optional[str] = None
    timeout_seconds: float = Field(5.0, gt=0, le=60)


class LoggingSettings(BaseModel):
    level: LogLevel = LogLevel.INFO
    json_output: bool = True


class OrchestratorConfig(BaseModel):
    """Root configuration model"""

    providers: List[ProviderSpec] = Field(default_factory=default_provider_specs)
    gateway: GatewaySettings = Field(default_factory=GatewaySettings)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    search: SearchSettings = Field(default_factory=SearchSettings)
    enrichment: EnrichmentSettings = Field(default_factory=EnrichmentSettings)
    analytics: AnalyticsSettings = Field(default_factory=AnalyticsSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @field_validator("providers")
    @classmethod
    def validate_unique_names(cls, v: List[ProviderSpec]) -> List[ProviderSpec]:
        names = [p.name for p in v]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate provider names: {', '.join(duplicates)}")
        return v

    @property
    def enabled_providers(self) -> List[ProviderSpec]:
        return [p for p in self.providers if p.enabled]
