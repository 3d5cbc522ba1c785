"""
Domain models - single source of truth for all entities.

Design principles:
- Every entity defined once
- Validation at the boundary
- Backend-agnostic (repository handles persistence)
"""

from .base import BaseEntity, utcnow
from .profile import (
    ProfileRecord,
    normalize_identifier,
    is_profile_url,
    clean_profile_url,
    canonical_profile_url,
)
from .search import SearchRequest, ParsedSearchQuery, ResolutionResult, SearchResponse
from .research import (
    ResearchJob,
    ResearchStatus,
    ResearchResult,
    ResearchSource,
    ResearchRequest,
    InvalidTransitionError,
    new_job_id,
)
from .worker import WorkerStats

__all__ = [
    # Base
    "BaseEntity",
    "utcnow",
    # Profile
    "ProfileRecord",
    "normalize_identifier",
    "is_profile_url",
    "clean_profile_url",
    "canonical_profile_url",
    # Search
    "SearchRequest",
    "ParsedSearchQuery",
    "ResolutionResult",
    "SearchResponse",
    # Research
    "ResearchJob",
    "ResearchStatus",
    "ResearchResult",
    "ResearchSource",
    "ResearchRequest",
    "InvalidTransitionError",
    "new_job_id",
    # Worker
    "WorkerStats",
]
