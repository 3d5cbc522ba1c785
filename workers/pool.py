"""
Research worker pool - bounded concurrency for long-running research jobs.

create() enqueues a job id and returns; one of num_workers threads picks
it up and calls execute(job_id). At most num_workers jobs run at once.

Usage:
    pool = ResearchWorkerPool(state_machine.execute, num_workers=3)
    pool.start()
    pool.submit(job_id)
    pool.stop()
"""

import logging
import queue
import threading
from typing import Callable, Optional

from models import WorkerStats

logger = logging.getLogger(__name__)

_STOP = object()


class ResearchWorkerPool:

    def __init__(self, execute: Callable[[str], object], num_workers: int = 3, name: str = "research"):
        if num_workers < 1:
            raise ValueError("num_workers must be at least 1")
        self.execute = execute
        self.num_workers = num_workers
        self.name = name
        self.stats = WorkerStats()
        self._queue: queue.Queue = queue.Queue()
        self._workers: list[threading.Thread] = []
        self._lock = threading.Lock()
        self._running = False
        self._active = 0

    @property
    def running(self) -> bool:
        return self._running

    @property
    def pending(self) -> int:
        """Jobs waiting for a free worker."""
        return self._queue.qsize()

    @property
    def active(self) -> int:
        """Jobs currently executing."""
        with self._lock:
            return self._active

    def start(self) -> None:
        """Start worker threads."""
        with self._lock:
            if self._running:
                return
            self._running = True
            for i in range(self.num_workers):
                t = threading.Thread(target=self._worker_loop, name=f"{self.name}-worker-{i}", daemon=True)
                t.start()
                self._workers.append(t)
        logger.info("Started %d %s workers", self.num_workers, self.name)

    def stop(self, timeout: float = 5.0) -> None:
        """
        Stop accepting work and let workers exit.

        Jobs still in the queue are dropped from memory; their records
        remain queued in the store and are picked up on next start.
        """
        with self._lock:
            if not self._running:
                return
            self._running = False
            workers = list(self._workers)
            self._workers.clear()

        dropped = 0
        while True:
            try:
                self._queue.get_nowait()
                self._queue.task_done()
                dropped += 1
            except queue.Empty:
                break
        for _ in workers:
            self._queue.put(_STOP)
        for t in workers:
            t.join(timeout=timeout)
            if t.is_alive():
                logger.warning("%s still running a job at shutdown", t.name)

        logger.info("Stopped %s workers (%d queued jobs left for next start)", self.name, dropped)

    def submit(self, job_id: str) -> bool:
        """Queue a job. Returns False if the pool isn't running."""
        if not self._running:
            logger.warning("%s pool not running, can't submit %s", self.name, job_id)
            return False
        self._queue.put(job_id)
        return True

    def _worker_loop(self) -> None:
        while True:
            job_id = self._queue.get()
            try:
                if job_id is _STOP:
                    return
                self._run(job_id)
            finally:
                self._queue.task_done()

    def _run(self, job_id: str) -> None:
        with self._lock:
            self._active += 1
        self.stats.record_run(job_id)
        try:
            self.execute(job_id)
            self.stats.record_success(1)
        except Exception as e:
            # execute() records workflow failures itself; this is store trouble
            logger.exception("Research job %s could not be executed", job_id)
            self.stats.record_error(str(e))
        finally:
            with self._lock:
                self._active -= 1

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait until the queue drains. Returns False on timeout (for tests/CLI)."""
        done = threading.Event()

        def waiter():
            self._queue.join()
            done.set()

        threading.Thread(target=waiter, daemon=True).start()
        return done.wait(timeout)

    def get_stats(self) -> dict:
        return {
            "name": self.name,
            "running": self._running,
            "workers": self.num_workers,
            "pending": self.pending,
            "active": self.active,
            **self.stats.to_dict(),
        }
