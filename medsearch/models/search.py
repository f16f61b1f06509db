"""Search request, result and envelope models.

Field aliases follow the caller-facing JSON contract (camelCase); Python
attributes are snake_case. Both spellings are accepted on input.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Stored analytics records keep at most this much of the query
MAX_QUERY_LENGTH = 500
DEFAULT_RESULT_LIMIT = 20
MAX_RESULT_LIMIT = 100


class Recency(str, Enum):
    PAST_DAY = "pastDay"
    PAST_WEEK = "pastWeek"
    PAST_MONTH = "pastMonth"
    PAST_YEAR = "pastYear"


class SearchFilters(BaseModel):
    """User-specified filters and pagination window"""

    model_config = ConfigDict(populate_by_name=True)

    specialty: Optional[str] = None
    evidence_level: List[str] = Field(default_factory=list, alias="evidenceLevel")
    content_type: List[str] = Field(default_factory=list, alias="contentType")
    recency: Optional[Recency] = None
    limit: int = DEFAULT_RESULT_LIMIT
    offset: int = Field(0, ge=0)

    @field_validator("evidence_level", "content_type", mode="before")
    @classmethod
    def coerce_list(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return v

    @field_validator("specialty", mode="before")
    @classmethod
    def blank_specialty_is_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("limit")
    @classmethod
    def clamp_limit(cls, v: int) -> int:
        # 0 or negative falls back to the default page size
        if v <= 0:
            return DEFAULT_RESULT_LIMIT
        return min(v, MAX_RESULT_LIMIT)

    def canonical(self) -> Dict[str, Any]:
        """Stable, alias-keyed representation used for cache keys."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class SearchRequest(BaseModel):
    """A free-text query plus provider selection, strategy and filters"""

    model_config = ConfigDict(populate_by_name=True)

    q: str
    providers: Optional[List[str]] = None
    parallel: bool = True
    aggregate_results: bool = Field(True, alias="aggregateResults")
    filters: SearchFilters = Field(default_factory=SearchFilters)

    @field_validator("q")
    @classmethod
    def validate_query(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Search query is required")
        return v.strip()

    @field_validator("filters", mode="before")
    @classmethod
    def none_filters(cls, v: Any) -> Any:
        return {} if v is None else v


class SearchResult(BaseModel):
    """A single item returned by a provider"""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    url: str
    snippet: str = ""
    source: str = ""
    provider: str
    relevance_score: float = Field(0.0, ge=0.0, le=1.0, alias="relevanceScore")

    # Classification (provider-native or from enrichment)
    evidence_level: Optional[str] = Field(None, alias="evidenceLevel")
    content_type: Optional[str] = Field(None, alias="contentType")
    specialty: Optional[str] = None
    publication_date: Optional[str] = Field(None, alias="publicationDate")
    classification_confidence: Optional[float] = Field(
        None, ge=0.0, le=1.0, alias="classificationConfidence"
    )


class ProviderResponse(BaseModel):
    """Outcome of one provider call. Never mutated after creation."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    provider: str
    success: bool
    results: List[SearchResult] = Field(default_factory=list)
    total_count: int = Field(0, ge=0, alias="totalCount")
    search_time_ms: int = Field(0, ge=0, alias="searchTime")
    error: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @property
    def search_time_seconds(self) -> float:
        return self.search_time_ms / 1000


class OrchestrationResult(BaseModel):
    """Envelope returned to the caller and stored in the result cache"""

    model_config = ConfigDict(populate_by_name=True)

    results: List[SearchResult] = Field(default_factory=list)
    providers: List[ProviderResponse] = Field(default_factory=list)
    aggregated_count: int = Field(0, ge=0, alias="aggregatedCount")
    total_search_time_ms: int = Field(0, ge=0, alias="totalSearchTime")
    query: str = ""
    duplicates_removed: int = Field(0, ge=0, alias="duplicatesRemoved")
    best_provider: Optional[str] = Field(None, alias="bestProvider")
    cache_hit: bool = Field(False, alias="cacheHit")
    cache_key: Optional[str] = Field(None, alias="cacheKey")

    def to_response(self) -> Dict[str, Any]:
        """JSON-ready envelope using the wire field names."""
        return self.model_dump(by_alias=True, mode="json")


class SearchRecord(BaseModel):
    """Analytics record emitted after every search"""

    query: str = Field(..., max_length=MAX_QUERY_LENGTH)
    providers_used: List[str] = Field(default_factory=list)
    result_count: int = Field(0, ge=0)
    search_time_ms: int = Field(0, ge=0)
    cache_hit: bool = False
    cache_key: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_result(cls, result: OrchestrationResult) -> "SearchRecord":
        return cls(
            query=result.query[:MAX_QUERY_LENGTH],
            providers_used=[p.provider for p in result.providers if p.success],
            result_count=len(result.results),
            search_time_ms=result.total_search_time_ms,
            cache_hit=result.cache_hit,
            cache_key=result.cache_key,
        )
