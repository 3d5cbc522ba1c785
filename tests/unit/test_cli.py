"""Unit tests for the research command."""

from argparse import Namespace

import pytest

from app import Services
from cli import cmd_research
from config import Settings
from models import ResearchStatus
from services import ResearchStateMachine


@pytest.fixture
def services(memory_repo, workflow):
    return Services(
        settings=Settings(store_backend="memory"),
        repository=memory_repo,
        search=None,
        research=ResearchStateMachine(memory_repo.jobs, workflow),
    )


def research_args(url, name="Alice", wait=False):
    return Namespace(url=url, name=name, wait=wait)


class TestResearchCommand:

    def test_queues_without_running(self, services, workflow, memory_repo):
        assert cmd_research(services, research_args("https://www.linkedin.com/in/alice")) == 0

        [job] = memory_repo.jobs.list()
        assert job.status == ResearchStatus.QUEUED
        assert workflow.calls == []

    def test_wait_runs_only_the_new_job(self, services, workflow, memory_repo):
        other = services.research.create("bob", "Bob")

        cmd_research(services, research_args("https://uk.linkedin.com/in/alice?trk=x", wait=True))

        assert workflow.calls == [("alice", "Alice")]
        assert workflow.references == ["https://uk.linkedin.com/in/alice?trk=x"]
        assert services.research.get(other).status == ResearchStatus.QUEUED
        assert services.pool is None

    def test_partial_url_falls_back_to_canonical_reference(self, services, workflow):
        cmd_research(services, research_args("/in/alice", wait=True))
        assert workflow.references == ["https://www.linkedin.com/in/alice"]

    def test_rejects_non_profile_url(self, services, memory_repo):
        assert cmd_research(services, research_args("https://example.com/about")) == 2
        assert memory_repo.jobs.list() == []
