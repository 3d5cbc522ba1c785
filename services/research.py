"""
Research state machine - owns the lifecycle of research jobs.

create() is fast: it writes a queued record and hands the job id to the
dispatcher. execute() is slow: it runs the workflow out of band and
records the outcome. Every transition is a single atomic store update,
so pollers always read one of the four valid states.

A process that dies mid-execute leaves its job in processing. Nothing
here reclaims it unless reclaim_stale() is called (see workers.reaper).
"""

import logging
import time
import traceback
from datetime import datetime, timedelta
from functools import partial
from typing import Callable, Optional

from models import (
    InvalidTransitionError,
    ResearchJob,
    ResearchResult,
    ResearchStatus,
    canonical_profile_url,
    utcnow,
)
from providers.base import ResearchWorkflow, WorkflowError
from repositories.base import JobNotFoundError, ResearchJobRepository, StoreError

logger = logging.getLogger(__name__)

Dispatch = Callable[[str], bool]


class ResearchStateMachine:

    def __init__(self, jobs: ResearchJobRepository, workflow: ResearchWorkflow,
                 dispatch: Optional[Dispatch] = None, clock: Callable[[], datetime] = utcnow):
        self.jobs = jobs
        self.workflow = workflow
        self._dispatch = dispatch
        self._clock = clock

    def set_dispatcher(self, dispatch: Optional[Dispatch]) -> None:
        """Attach the executor. Jobs created without one stay queued."""
        self._dispatch = dispatch

    def create(self, identifier: str, subject_name: str, reference: str = None) -> str:
        """Record a queued job and dispatch it. Returns the new job id."""
        job = ResearchJob(
            identifier=identifier,
            subject_name=subject_name,
            reference=reference or canonical_profile_url(identifier),
            created_at=self._clock(),
        )
        self.jobs.put(job)
        logger.info("Created research job %s for %s (%s)", job.job_id, subject_name, identifier)

        if self._dispatch is not None and not self._dispatch(job.job_id):
            logger.warning("Research job %s was not accepted by the dispatcher; it stays queued", job.job_id)
        return job.job_id

    def get(self, job_id: str) -> ResearchJob:
        job = self.jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def execute(self, job_id: str) -> ResearchJob:
        """
        Run the workflow for a queued job and persist the outcome.

        A job that isn't queued (already running or finished) is left
        alone. Workflow errors end in failed, never propagate.
        """
        try:
            job = self.jobs.update(job_id, lambda j: j.mark_processing(self._clock()))
        except InvalidTransitionError as e:
            logger.warning("Not executing research job %s: %s", job_id, e)
            return self.get(job_id)

        logger.info("Starting research for %s (%s)", job.subject_name, job_id)
        started = time.monotonic()

        try:
            outcome = self.workflow.run(
                job.identifier,
                job.subject_name,
                on_progress=partial(self._record_progress, job_id),
                reference=job.reference,
            )
            if outcome is None or not (outcome.report or "").strip():
                raise WorkflowError("Workflow completed but no report was generated")
        except Exception as e:
            logger.exception("Error in research job %s", job_id)
            return self._fail(job_id, e, started)

        result = ResearchResult(report=outcome.report, sources=outcome.sources)
        metadata = {**outcome.metadata, "elapsed_seconds": round(time.monotonic() - started, 3)}
        try:
            job = self.jobs.update(job_id, lambda j: j.mark_completed(result, metadata, self._clock()))
        except InvalidTransitionError as e:
            # Reclaimed as stale while we were running; the failure stands
            logger.warning("Research job %s finished too late to record: %s", job_id, e)
            return self.get(job_id)

        logger.info("Research job %s completed successfully", job_id)
        return job

    def _fail(self, job_id: str, error: Exception, started: float) -> ResearchJob:
        detail = str(error).strip() or type(error).__name__
        metadata = {
            "error_type": type(error).__name__,
            "traceback": "".join(traceback.format_exception(type(error), error, error.__traceback__)),
            "elapsed_seconds": round(time.monotonic() - started, 3),
        }
        try:
            job = self.jobs.update(job_id, lambda j: j.mark_failed(detail, metadata, self._clock()))
        except InvalidTransitionError as e:
            logger.warning("Research job %s could not be marked failed: %s", job_id, e)
            return self.get(job_id)

        logger.info("Research job %s marked as failed", job_id)
        return job

    def _record_progress(self, job_id: str, **counters) -> None:
        """Persist partial metadata. Never interrupts the workflow."""
        try:
            self.jobs.update(job_id, lambda j: j.record_progress(**counters))
        except (InvalidTransitionError, StoreError) as e:
            logger.warning("Progress update for research job %s dropped: %s", job_id, e)

    def requeue_pending(self) -> list[str]:
        """Dispatch jobs still queued, e.g. created before a restart."""
        if self._dispatch is None:
            return []
        requeued = []
        for job in self.jobs.list(status=ResearchStatus.QUEUED):
            if self._dispatch(job.job_id):
                requeued.append(job.job_id)
        if requeued:
            logger.info("Requeued %d pending research jobs", len(requeued))
        return requeued

    def reclaim_stale(self, older_than: timedelta) -> list[str]:
        """Fail jobs stuck in processing longer than older_than."""
        now = self._clock()
        reclaimed = []
        for job in self.jobs.list(status=ResearchStatus.PROCESSING):
            if job.started_at is None or now - job.started_at <= older_than:
                continue
            detail = (
                f"Research did not finish within {int(older_than.total_seconds())}s of starting; "
                f"the executing process is presumed lost"
            )
            try:
                self.jobs.update(job.job_id, lambda j: j.mark_failed(detail, {"reclaimed": True}, now))
            except InvalidTransitionError:
                continue  # finished in the meantime
            logger.warning("Reclaimed stale research job %s (started %s)", job.job_id, job.started_at)
            reclaimed.append(job.job_id)
        return reclaimed
