"""
In-flight fetch registry - lets concurrent resolutions share one fetch per identifier.

The first resolver to miss on an identifier owns its fetch; any other
resolver that misses while that fetch is running waits on the owner's
future instead of fetching again.
"""

import logging
import threading
from concurrent.futures import Future, TimeoutError as FutureTimeout
from typing import Iterable, Optional

from models import ProfileRecord

logger = logging.getLogger(__name__)


class InflightRegistry:

    def __init__(self, wait_timeout: float = 120.0):
        self.wait_timeout = wait_timeout
        self._lock = threading.Lock()
        self._futures: dict[str, Future] = {}

    def claim(self, identifiers: Iterable[str]) -> tuple[list[str], dict[str, Future]]:
        """
        Split identifiers into (owned, waiting).

        owned: caller must fetch these and then call settle().
        waiting: identifier -> future already being fetched by someone else.
        """
        owned, waiting = [], {}
        with self._lock:
            for identifier in identifiers:
                future = self._futures.get(identifier)
                if future is None:
                    self._futures[identifier] = Future()
                    owned.append(identifier)
                else:
                    waiting[identifier] = future
        return owned, waiting

    def settle(self, owned: Iterable[str], records: dict[str, ProfileRecord]) -> None:
        """Publish fetch results (None for not found) and release ownership."""
        with self._lock:
            futures = [(i, self._futures.pop(i, None)) for i in owned]
        for identifier, future in futures:
            if future is not None:
                future.set_result(records.get(identifier))

    def wait(self, identifier: str, future: Future) -> Optional[ProfileRecord]:
        try:
            return future.result(timeout=self.wait_timeout)
        except FutureTimeout:
            logger.warning("Gave up waiting for shared fetch of %s after %ss", identifier, self.wait_timeout)
            return None

    def __len__(self) -> int:
        with self._lock:
            return len(self._futures)
