"""
JSON file backend - stores each record as its own JSON file.

Directory structure:
    {data_dir}/
        profiles/{identifier}.json   - Profile records (identifier URL-quoted)
        research/{job_id}.json       - Research jobs
"""

import json
import logging
import threading
from pathlib import Path
from typing import Callable, Iterable, Optional
from urllib.parse import quote, unquote

from pydantic import ValidationError

from models import ProfileRecord, ResearchJob, ResearchStatus
from .base import (
    Repository,
    ProfileRepository,
    ResearchJobRepository,
    JobNotFoundError,
    StoreError,
)

logger = logging.getLogger(__name__)


class WriteQueue:
    """Thread-safe write serialization."""

    def __init__(self):
        self.lock = threading.RLock()

    def write_json(self, path: Path, data: dict) -> None:
        """Atomic JSON write: temp file, then rename over the target."""
        with self.lock:
            path.parent.mkdir(parents=True, exist_ok=True)
            temp = path.with_suffix(".json.tmp")
            try:
                with open(temp, "w") as f:
                    json.dump(data, f, indent=2, default=str)
                temp.replace(path)
            except OSError as e:
                raise StoreError(f"Failed to write {path.name}: {e}") from e


def _read_json(path: Path) -> Optional[dict]:
    """Read a record file. Missing or corrupt files read as absent."""
    if not path.exists():
        return None
    try:
        with open(path) as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        logger.warning("Corrupt record %s: %s", path.name, e)
        return None
    except OSError as e:
        raise StoreError(f"Failed to read {path.name}: {e}") from e


class JsonProfileRepository(ProfileRepository):
    """JSON file implementation of the profile store."""

    def __init__(self, base_path: Path, write_queue: WriteQueue):
        self._dir = base_path / "profiles"
        self._write_queue = write_queue

    def _file(self, identifier: str) -> Path:
        return self._dir / f"{quote(identifier, safe='')}.json"

    def get(self, identifier: str) -> Optional[ProfileRecord]:
        data = _read_json(self._file(identifier))
        if data is None:
            return None
        try:
            return ProfileRecord.model_validate(data)
        except ValidationError as e:
            logger.warning("Unreadable profile %s: %s", identifier, e)
            return None

    def get_many(self, identifiers: Iterable[str]) -> dict[str, ProfileRecord]:
        found = {}
        for identifier in identifiers:
            record = self.get(identifier)
            if record is not None:
                found[identifier] = record
        return found

    def put(self, record: ProfileRecord) -> None:
        self._write_queue.write_json(self._file(record.identifier), record.to_store())

    def delete(self, identifier: str) -> bool:
        path = self._file(identifier)
        with self._write_queue.lock:
            if not path.exists():
                return False
            path.unlink()
            return True

    def list_identifiers(self) -> list[str]:
        if not self._dir.exists():
            return []
        return sorted(unquote(p.stem) for p in self._dir.glob("*.json"))


class JsonResearchJobRepository(ResearchJobRepository):
    """JSON file implementation of the research job store."""

    def __init__(self, base_path: Path, write_queue: WriteQueue):
        self._dir = base_path / "research"
        self._write_queue = write_queue

    def _file(self, job_id: str) -> Path:
        return self._dir / f"{quote(job_id, safe='')}.json"

    def _load(self, path: Path) -> Optional[ResearchJob]:
        data = _read_json(path)
        if data is None:
            return None
        try:
            return ResearchJob.model_validate(data)
        except ValidationError as e:
            logger.warning("Unreadable research job %s: %s", path.stem, e)
            return None

    def get(self, job_id: str) -> Optional[ResearchJob]:
        return self._load(self._file(job_id))

    def put(self, job: ResearchJob) -> None:
        self._write_queue.write_json(self._file(job.job_id), job.to_store())

    def update(self, job_id: str, mutate: Callable[[ResearchJob], ResearchJob]) -> ResearchJob:
        # Lock spans read and write so concurrent updaters serialize
        with self._write_queue.lock:
            current = self.get(job_id)
            if current is None:
                raise JobNotFoundError(job_id)
            updated = mutate(current)
            self._write_queue.write_json(self._file(job_id), updated.to_store())
            return updated

    def list(self, status: Optional[ResearchStatus] = None) -> list[ResearchJob]:
        if not self._dir.exists():
            return []
        jobs = []
        for path in self._dir.glob("*.json"):
            job = self._load(path)
            if job and (status is None or job.status == status):
                jobs.append(job)
        return sorted(jobs, key=lambda j: j.created_at)


class JsonRepository(Repository):
    """JSON file backend implementation."""

    def __init__(self, base_path: Path):
        self._base_path = Path(base_path)
        self._write_queue = WriteQueue()
        self._profiles = JsonProfileRepository(self._base_path, self._write_queue)
        self._jobs = JsonResearchJobRepository(self._base_path, self._write_queue)

    @property
    def profiles(self) -> ProfileRepository:
        return self._profiles

    @property
    def jobs(self) -> ResearchJobRepository:
        return self._jobs

    def ping(self) -> bool:
        try:
            self._base_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error("Data directory unavailable: %s", e)
            return False
        return True

    def info(self) -> dict:
        return {
            "backend": "json",
            "data_dir": str(self._base_path),
            "profiles": len(self._profiles.list_identifiers()),
            "research_jobs": len(self._jobs.list()),
        }
