"""
Base worker class - handles threading, lifecycle, and stats.

Concrete workers just implement _do_work().
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Optional, Callable

from models import WorkerStats

logger = logging.getLogger(__name__)


class BaseWorker(ABC):
    """
    Base class for periodic background workers.

    Handles:
    - Thread lifecycle (start/stop)
    - Stats tracking
    - Callbacks for notifications

    Subclasses implement _do_work() with their actual logic.
    """

    def __init__(self, name: str, interval: float = 60.0):
        self.name = name
        self.interval = interval
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._callbacks: list[Callable] = []
        self.stats = WorkerStats()

    def start(self) -> None:
        """Start the worker thread."""
        if self._thread and self._thread.is_alive():
            logger.info("[%s] Already running", self.name)
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_loop, name=self.name, daemon=True)
        self._thread.start()
        logger.info("[%s] Started (interval=%ss)", self.name, self.interval)

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the worker thread."""
        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning("[%s] Thread didn't stop cleanly", self.name)
        self._thread = None
        logger.info("[%s] Stopped", self.name)

    def is_running(self) -> bool:
        """Check if worker is active."""
        return self._thread is not None and self._thread.is_alive()

    def add_callback(self, callback: Callable) -> None:
        """Add callback for notifications."""
        self._callbacks.append(callback)

    def remove_callback(self, callback: Callable) -> None:
        """Remove callback."""
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def notify(self, event_type: str, data: dict) -> None:
        """Notify all registered callbacks."""
        for cb in self._callbacks:
            try:
                cb(event_type, data)
            except Exception as e:
                logger.warning("[%s] Callback error: %s", self.name, e)

    def run_once(self) -> int:
        """One cycle with stats. Errors are recorded, not raised."""
        self.stats.record_run()
        try:
            items = self._do_work()
        except Exception as e:
            logger.exception("[%s] Error", self.name)
            self.stats.record_error(str(e))
            return 0
        self.stats.record_success(items)
        return items

    def _run_loop(self) -> None:
        """Main worker loop."""
        while not self._stop_event.is_set():
            self.run_once()
            self._stop_event.wait(self.interval)

    @abstractmethod
    def _do_work(self) -> int:
        """
        Do the actual work.

        Returns:
            Number of items processed (for stats)
        """
        pass

    def get_stats(self) -> dict:
        """Get stats as dict for API."""
        return {
            "name": self.name,
            "running": self.is_running(),
            **self.stats.to_dict(),
        }
