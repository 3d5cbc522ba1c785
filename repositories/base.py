"""
Repository base classes - define the cache store interface.
"""

from abc import ABC, abstractmethod
from typing import Callable, Iterable, Optional

from models import ProfileRecord, ResearchJob, ResearchStatus


class StoreError(Exception):
    """The backing store failed (unreachable, corrupt, refused the write)."""


class JobNotFoundError(StoreError):
    """No research job with this id."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Research job not found: {job_id}")


class ProfileRepository(ABC):
    """Profile records keyed by identifier."""

    @abstractmethod
    def get(self, identifier: str) -> Optional[ProfileRecord]:
        """Get one profile, None if absent."""
        pass

    @abstractmethod
    def get_many(self, identifiers: Iterable[str]) -> dict[str, ProfileRecord]:
        """Batch lookup. Absent identifiers are simply missing from the result."""
        pass

    @abstractmethod
    def put(self, record: ProfileRecord) -> None:
        """Write (overwrite) a profile."""
        pass

    @abstractmethod
    def delete(self, identifier: str) -> bool:
        """Delete a profile. Returns True if deleted."""
        pass

    @abstractmethod
    def list_identifiers(self) -> list[str]:
        """All stored identifiers."""
        pass

    def exists(self, identifier: str) -> bool:
        return self.get(identifier) is not None


class ResearchJobRepository(ABC):
    """Research jobs keyed by job id."""

    @abstractmethod
    def get(self, job_id: str) -> Optional[ResearchJob]:
        """Get a job, None if absent."""
        pass

    @abstractmethod
    def put(self, job: ResearchJob) -> None:
        """Write a job record."""
        pass

    @abstractmethod
    def update(self, job_id: str, mutate: Callable[[ResearchJob], ResearchJob]) -> ResearchJob:
        """
        Atomic read-modify-write.

        mutate receives the current record and returns the next one. If it
        raises, nothing is written and the exception propagates.
        Raises JobNotFoundError if the job doesn't exist.
        """
        pass

    @abstractmethod
    def list(self, status: Optional[ResearchStatus] = None) -> list[ResearchJob]:
        """List jobs, optionally filtered by status, oldest first."""
        pass

    def exists(self, job_id: str) -> bool:
        return self.get(job_id) is not None


class Repository(ABC):
    """
    Aggregate repository - provides access to all stores.

    This is what consumers use. Backend implementations provide
    concrete versions of each sub-repository.
    """

    @property
    @abstractmethod
    def profiles(self) -> ProfileRepository:
        """Access profile store."""
        pass

    @property
    @abstractmethod
    def jobs(self) -> ResearchJobRepository:
        """Access research job store."""
        pass

    def ping(self) -> bool:
        """True if the store is reachable."""
        return True

    def info(self) -> dict:
        """Backend diagnostics."""
        return {}

    def close(self) -> None:
        """Release connections. Safe to call twice."""
        pass
