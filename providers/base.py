"""
Provider base - interfaces for every external collaborator.

Each provider must:
1. Raise a ProviderError subclass for any upstream failure
2. Never write to the cache store (the services own persistence)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Optional

from models import ParsedSearchQuery, ProfileRecord, ResearchSource


class ProviderError(Exception):
    """Base exception for upstream provider failures."""
    pass


class ProviderAuthError(ProviderError):
    """Credentials missing or rejected."""

    def __init__(self, message: str = "Provider credentials missing"):
        super().__init__(message)
        self.message = message


class ProviderTimeoutError(ProviderError):
    """Upstream took too long."""

    def __init__(self, provider: str, timeout_seconds: float):
        self.provider = provider
        self.timeout_seconds = timeout_seconds
        super().__init__(f"{provider} timed out after {timeout_seconds}s")


class ProviderResponseError(ProviderError):
    """Upstream answered with an error status or an unreadable body."""

    def __init__(self, provider: str, status_code: Optional[int], detail: str):
        self.provider = provider
        self.status_code = status_code
        self.detail = detail
        prefix = f"{provider} error {status_code}" if status_code else f"{provider} error"
        super().__init__(f"{prefix}: {detail}")


class QueryParseError(ProviderError):
    """The query couldn't be turned into a structured search."""
    pass


class WorkflowError(ProviderError):
    """A research workflow step failed unrecoverably."""
    pass


ProgressCallback = Callable[..., None]


@dataclass
class WorkflowOutcome:
    """What a research workflow hands back on success."""
    report: str
    sources: list[ResearchSource] = field(default_factory=list)
    metadata: dict = field(default_factory=dict)


class QueryParser(ABC):
    """Natural-language query -> structured query."""

    @abstractmethod
    def parse(self, query: str) -> ParsedSearchQuery:
        pass


class SearchProvider(ABC):
    """Structured query -> ordered candidate profile references."""

    @abstractmethod
    def find_profiles(self, google_query: str, max_results: int = 10,
                      country_code: Optional[str] = None) -> list[str]:
        pass


class FetchProvider(ABC):
    """Raw references -> full profile records (may return fewer than asked)."""

    @abstractmethod
    def fetch_batch(self, references: list[str]) -> list[ProfileRecord]:
        pass


class ResearchWorkflow(ABC):
    """
    Opaque multi-step enrichment for one subject.

    on_progress, when given, is called with keyword counters as steps
    finish (e.g. current_step="web_search", steps_executed=2). reference is
    the profile URL the caller gave; without one the canonical URL for
    identifier is used.
    """

    @abstractmethod
    def run(self, identifier: str, subject_name: str,
            on_progress: Optional[ProgressCallback] = None,
            reference: Optional[str] = None) -> WorkflowOutcome:
        pass
