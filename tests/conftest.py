"""
Root test configuration.

Test organization:
- unit/        Fast, isolated, no I/O, stubbed collaborators
- integration/ Component boundaries, real I/O to temp locations

Run specific levels:
    pytest tests/unit -v           # Fast feedback loop
    pytest tests/integration -v    # Before commit
    pytest tests -v                # Everything
"""

import sys
import threading
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from models import ParsedSearchQuery, ProfileRecord, canonical_profile_url, normalize_identifier
from providers.base import (
    FetchProvider,
    QueryParser,
    ResearchWorkflow,
    SearchProvider,
    WorkflowOutcome,
)
from repositories import MemoryRepository


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Fast isolated tests")
    config.addinivalue_line("markers", "integration: Component boundary tests")
    config.addinivalue_line("markers", "slow: Tests that take > 1s")


def make_record(identifier: str, **fields) -> ProfileRecord:
    fields.setdefault("name", identifier.title())
    return ProfileRecord(identifier=identifier, url=canonical_profile_url(identifier), **fields)


class StubFetchProvider(FetchProvider):
    """
    Returns a record for every reference it knows about.

    calls holds one list of references per fetch_batch call.
    """

    def __init__(self, known=None, error: Exception = None, extra=None):
        self.known = set(known or [])
        self.error = error
        self.extra = list(extra or [])
        self.calls: list[list[str]] = []
        self.gate = None  # threading.Event; fetch blocks until set

    def fetch_batch(self, references):
        self.calls.append(list(references))
        if self.gate is not None:
            self.gate.wait(5)
        if self.error is not None:
            raise self.error
        records = []
        for ref in references:
            identifier = normalize_identifier(ref)
            if identifier in self.known:
                records.append(make_record(identifier))
        return records + [make_record(i) for i in self.extra]


class ScriptedWorkflow(ResearchWorkflow):
    """Returns a fixed outcome or raises a fixed error."""

    def __init__(self, report="Report body", error: Exception = None, progress=None):
        self.report = report
        self.error = error
        self.progress = progress or []  # list of (step, counters) to emit
        self.calls = []
        self.references = []
        self.started = threading.Event()
        self.release = None  # threading.Event; run blocks until set

    def run(self, identifier, subject_name, on_progress=None, reference=None):
        self.calls.append((identifier, subject_name))
        self.references.append(reference)
        self.started.set()
        if self.release is not None:
            self.release.wait(5)
        for step, counters in self.progress:
            if on_progress:
                on_progress(current_step=step, **counters)
        if self.error is not None:
            raise self.error
        return WorkflowOutcome(
            report=self.report,
            sources=[{"url": "https://example.com/a", "summary": "About the subject"}],
            metadata={"steps_executed": 4},
        )


class StubParser(QueryParser):

    def __init__(self, error: Exception = None, country_code=None):
        self.error = error
        self.country_code = country_code
        self.calls = []

    def parse(self, query):
        self.calls.append(query)
        if self.error is not None:
            raise self.error
        return ParsedSearchQuery(
            role=query,
            google_query=f'site:linkedin.com/in "{query}"',
            country_code=self.country_code,
        )


class StubSearchProvider(SearchProvider):

    def __init__(self, urls=None, error: Exception = None):
        self.urls = list(urls or [])
        self.error = error
        self.calls = []

    def find_profiles(self, google_query, max_results=10, country_code=None):
        self.calls.append((google_query, max_results, country_code))
        if self.error is not None:
            raise self.error
        return self.urls[:max_results]


@pytest.fixture
def record_factory():
    return make_record


@pytest.fixture
def memory_repo():
    return MemoryRepository()


@pytest.fixture
def fetch_provider():
    return StubFetchProvider()


@pytest.fixture
def workflow():
    return ScriptedWorkflow()


@pytest.fixture
def stub_parser():
    return StubParser()


@pytest.fixture
def stub_search():
    return StubSearchProvider()
