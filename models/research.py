"""
Research jobs - durable lifecycle of one deep-research run.

    queued -> processing -> completed
                         -> failed

Every state change goes through a mark_* method so no record can move
backwards or skip a state.
"""

import re
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import uuid4
from pydantic import Field, field_validator, model_validator

from .base import BaseEntity, utcnow
from .profile import is_profile_url, normalize_identifier

BARE_IDENTIFIER = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.%-]*$")


class ResearchStatus(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES = frozenset({ResearchStatus.COMPLETED, ResearchStatus.FAILED})

ALLOWED_TRANSITIONS = {
    ResearchStatus.QUEUED: frozenset({ResearchStatus.PROCESSING}),
    ResearchStatus.PROCESSING: frozenset({ResearchStatus.COMPLETED, ResearchStatus.FAILED}),
    ResearchStatus.COMPLETED: frozenset(),
    ResearchStatus.FAILED: frozenset(),
}


class InvalidTransitionError(ValueError):
    """Raised when a job is asked to move somewhere it can't go."""

    def __init__(self, job_id: str, current: ResearchStatus, target: ResearchStatus):
        self.job_id = job_id
        self.current = current
        self.target = target
        super().__init__(
            f"Research job {job_id} cannot move from {current.value} to {target.value}"
        )


def new_job_id() -> str:
    return uuid4().hex


class ResearchSource(BaseEntity):
    """A web source that fed the report."""
    url: str
    summary: str = ""


class ResearchResult(BaseEntity):
    """Final payload of a completed job."""
    report: str
    sources: list[ResearchSource] = Field(default_factory=list)


class ResearchJob(BaseEntity):
    """A tracked, asynchronously executed research task."""
    job_id: str = Field(default_factory=new_job_id)
    status: ResearchStatus = ResearchStatus.QUEUED
    identifier: str
    subject_name: str
    reference: Optional[str] = None  # profile URL the workflow fetches

    created_at: datetime = Field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None

    result: Optional[ResearchResult] = None
    error_detail: Optional[str] = None

    # Free-form counters: steps executed, partial result counts, timings
    metadata: dict = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_payload_matches_status(self):
        completed = self.status == ResearchStatus.COMPLETED
        failed = self.status == ResearchStatus.FAILED
        if (self.result is not None) != completed:
            raise ValueError("result must be present exactly when status is completed")
        if (self.error_detail is not None) != failed:
            raise ValueError("error_detail must be present exactly when status is failed")
        if failed and not self.error_detail:
            raise ValueError("a failed job needs a non-empty error_detail")
        return self

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def _check(self, target: ResearchStatus) -> None:
        if target not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransitionError(self.job_id, self.status, target)

    def _replace(self, **changes) -> "ResearchJob":
        # Build the next record in one step so the validator sees the
        # final combination, not an intermediate one.
        data = self.model_dump()
        data.update(changes)
        return ResearchJob.model_validate(data)

    def mark_processing(self, when: datetime = None) -> "ResearchJob":
        self._check(ResearchStatus.PROCESSING)
        return self._replace(
            status=ResearchStatus.PROCESSING,
            started_at=when or utcnow(),
        )

    def record_progress(self, **counters) -> "ResearchJob":
        """Merge partial progress into metadata. Only while processing."""
        if self.status != ResearchStatus.PROCESSING:
            raise InvalidTransitionError(self.job_id, self.status, ResearchStatus.PROCESSING)
        return self._replace(metadata={**self.metadata, **counters})

    def mark_completed(self, result: ResearchResult, metadata: dict = None,
                       when: datetime = None) -> "ResearchJob":
        self._check(ResearchStatus.COMPLETED)
        return self._replace(
            status=ResearchStatus.COMPLETED,
            result=result.model_dump(),
            completed_at=when or utcnow(),
            metadata={**self.metadata, **(metadata or {})},
        )

    def mark_failed(self, error_detail: str, metadata: dict = None,
                    when: datetime = None) -> "ResearchJob":
        self._check(ResearchStatus.FAILED)
        return self._replace(
            status=ResearchStatus.FAILED,
            error_detail=(error_detail or "").strip() or "Unknown error occurred",
            failed_at=when or utcnow(),
            metadata={**self.metadata, **(metadata or {})},
        )


class ResearchRequest(BaseEntity):
    """Body of a research call: which profile, and who it is."""
    identifier: str = Field(min_length=1, max_length=500)
    subject_name: str = Field(min_length=1, max_length=200)

    @field_validator("identifier", mode="before")
    @classmethod
    def check_identifier(cls, value):
        if not value or not isinstance(value, str):
            raise ValueError("identifier is required")
        return value

    @property
    def normalized_identifier(self) -> Optional[str]:
        """Canonical id from either a profile URL or a bare profile id."""
        identifier = normalize_identifier(self.identifier)
        if identifier:
            return identifier
        if BARE_IDENTIFIER.match(self.identifier):
            return self.identifier.lower()
        return None

    @property
    def reference(self) -> Optional[str]:
        """The caller's URL when they gave a full profile URL."""
        return self.identifier.strip() if is_profile_url(self.identifier) else None
