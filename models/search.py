"""
Search - inbound query, parsed query, and resolution results.
"""

from typing import Optional
from pydantic import BaseModel, Field, field_validator

from .base import BaseEntity
from .profile import ProfileRecord

MIN_QUERY_LENGTH = 2
MAX_QUERY_LENGTH = 100


class SearchRequest(BaseModel):
    """Body of a search call. Messages are shown to the caller as-is."""
    query: str

    @field_validator("query", mode="before")
    @classmethod
    def check_query(cls, value):
        if not value or not isinstance(value, str):
            raise ValueError("Query is required")
        if len(value) < MIN_QUERY_LENGTH:
            raise ValueError(f"Query must be at least {MIN_QUERY_LENGTH} characters")
        if len(value) > MAX_QUERY_LENGTH:
            raise ValueError(f"Query must be at most {MAX_QUERY_LENGTH} characters")
        return value


class ParsedSearchQuery(BaseEntity):
    """Structured form of a natural-language search query."""
    count: int = Field(default=10, ge=1, le=50)
    role: str = ""
    location: Optional[str] = None
    country_code: Optional[str] = None  # ISO-3166 alpha-2, only for places
    keywords: list[str] = Field(default_factory=list)
    google_query: str

    @field_validator("country_code", mode="before")
    @classmethod
    def check_country_code(cls, value):
        if value in (None, ""):
            return None
        if not isinstance(value, str) or len(value.strip()) != 2:
            raise ValueError("country_code must be a 2-letter ISO code")
        return value.strip().upper()


class ResolutionResult(BaseEntity):
    """Outcome of one cache-aside resolution."""
    profiles: list[ProfileRecord] = Field(default_factory=list)
    cached: int = 0
    fetched: int = 0
    requested: int = 0  # distinct identifiers after normalization
    dropped: int = 0  # duplicates and unusable references
    fetch_error: Optional[str] = None

    @property
    def count(self) -> int:
        return len(self.profiles)


class SearchResponse(BaseEntity):
    """What the search endpoint returns."""
    success: bool = True
    count: int = 0
    profiles: list[ProfileRecord] = Field(default_factory=list)
    cached: int = 0
    fetched: int = 0

    @classmethod
    def from_resolution(cls, result: ResolutionResult) -> "SearchResponse":
        return cls(
            count=result.count,
            profiles=result.profiles,
            cached=result.cached,
            fetched=result.fetched,
        )
