"""
External collaborators - query parsing, candidate search, profile fetch,
and the deep-research workflow.
"""

from .base import (
    QueryParser,
    SearchProvider,
    FetchProvider,
    ResearchWorkflow,
    WorkflowOutcome,
    ProviderError,
    ProviderAuthError,
    ProviderResponseError,
    ProviderTimeoutError,
    QueryParseError,
    WorkflowError,
)

__all__ = [
    "QueryParser",
    "SearchProvider",
    "FetchProvider",
    "ResearchWorkflow",
    "WorkflowOutcome",
    "ProviderError",
    "ProviderAuthError",
    "ProviderResponseError",
    "ProviderTimeoutError",
    "QueryParseError",
    "WorkflowError",
]
