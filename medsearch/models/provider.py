"""Provider configuration and scoring models."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ProviderSpec(BaseModel):
    """Static configuration of one search backend. Loaded once, never mutated."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, pattern=r"^[a-z0-9_-]+$")
    enabled: bool = True
    priority: int = Field(1, ge=0, description="Lower is tried first in sequential mode")
    timeout_seconds: float = Field(10.0, gt=0, le=120)
    endpoint: Optional[str] = Field(
        None, description="Full URL override for the provider's search gateway"
    )


def default_provider_specs() -> List[ProviderSpec]:
    """Providers of the reference deployment."""
    return [
        ProviderSpec(name="brave", priority=1, timeout_seconds=10.0),
        ProviderSpec(name="exa", priority=2, timeout_seconds=15.0),
        # AI answer engine needs more time
        ProviderSpec(name="perplexity", priority=3, timeout_seconds=20.0),
    ]


class ProviderScore(BaseModel):
    """Breakdown of the composite score used to pick the best provider."""

    provider: str
    breadth_score: float = Field(0.0, ge=0.0, le=40.0)
    speed_score: float = Field(0.0, ge=0.0, le=30.0)
    quality_score: float = Field(0.0, ge=0.0, le=30.0)

    @property
    def total_score(self) -> float:
        return self.breadth_score + self.speed_score + self.quality_score
