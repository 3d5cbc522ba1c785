"""
Stale job reaper - fails research jobs stuck in processing.

A job stays in processing forever if its executing process dies. When
enabled, the reaper marks such jobs failed once they've been running
longer than stale_after so pollers get a final answer.
"""

import logging
from datetime import timedelta

from services.research import ResearchStateMachine
from .base import BaseWorker

logger = logging.getLogger(__name__)


class StaleJobReaper(BaseWorker):

    def __init__(self, state_machine: ResearchStateMachine, stale_after_seconds: float, interval: float = 60.0):
        super().__init__(name="STALE-REAPER", interval=interval)
        self.state_machine = state_machine
        self.stale_after = timedelta(seconds=stale_after_seconds)

    def _do_work(self) -> int:
        reclaimed = self.state_machine.reclaim_stale(self.stale_after)
        if reclaimed:
            self.notify("jobs_reclaimed", {"job_ids": reclaimed})
        return len(reclaimed)
