"""
In-memory backend - process-local, for development and tests.

Records are stored as serialized dicts so callers never share mutable
state with the store, same as the durable backends.
"""

import threading
from typing import Callable, Iterable, Optional

from models import ProfileRecord, ResearchJob, ResearchStatus
from .base import Repository, ProfileRepository, ResearchJobRepository, JobNotFoundError


class MemoryProfileRepository(ProfileRepository):

    def __init__(self, lock: threading.RLock):
        self._lock = lock
        self._data: dict[str, dict] = {}

    def get(self, identifier: str) -> Optional[ProfileRecord]:
        with self._lock:
            data = self._data.get(identifier)
        return ProfileRecord.model_validate(data) if data is not None else None

    def get_many(self, identifiers: Iterable[str]) -> dict[str, ProfileRecord]:
        with self._lock:
            rows = {i: self._data[i] for i in identifiers if i in self._data}
        return {i: ProfileRecord.model_validate(d) for i, d in rows.items()}

    def put(self, record: ProfileRecord) -> None:
        with self._lock:
            self._data[record.identifier] = record.to_store()

    def delete(self, identifier: str) -> bool:
        with self._lock:
            return self._data.pop(identifier, None) is not None

    def list_identifiers(self) -> list[str]:
        with self._lock:
            return sorted(self._data)


class MemoryResearchJobRepository(ResearchJobRepository):

    def __init__(self, lock: threading.RLock):
        self._lock = lock
        self._data: dict[str, dict] = {}

    def get(self, job_id: str) -> Optional[ResearchJob]:
        with self._lock:
            data = self._data.get(job_id)
        return ResearchJob.model_validate(data) if data is not None else None

    def put(self, job: ResearchJob) -> None:
        with self._lock:
            self._data[job.job_id] = job.to_store()

    def update(self, job_id: str, mutate: Callable[[ResearchJob], ResearchJob]) -> ResearchJob:
        with self._lock:
            current = self.get(job_id)
            if current is None:
                raise JobNotFoundError(job_id)
            updated = mutate(current)
            self._data[job_id] = updated.to_store()
            return updated

    def list(self, status: Optional[ResearchStatus] = None) -> list[ResearchJob]:
        with self._lock:
            rows = list(self._data.values())
        jobs = [ResearchJob.model_validate(d) for d in rows]
        if status is not None:
            jobs = [j for j in jobs if j.status == status]
        return sorted(jobs, key=lambda j: j.created_at)


class MemoryRepository(Repository):
    """Process-local backend implementation."""

    def __init__(self):
        lock = threading.RLock()
        self._profiles = MemoryProfileRepository(lock)
        self._jobs = MemoryResearchJobRepository(lock)

    @property
    def profiles(self) -> ProfileRepository:
        return self._profiles

    @property
    def jobs(self) -> ResearchJobRepository:
        return self._jobs

    def info(self) -> dict:
        return {
            "backend": "memory",
            "profiles": len(self._profiles.list_identifiers()),
            "research_jobs": len(self._jobs.list()),
        }
