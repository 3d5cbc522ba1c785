"""
Background workers.

- ResearchWorkerPool: executes research jobs with bounded concurrency
- StaleJobReaper: optionally fails jobs left in processing by a dead process
"""

from .base import BaseWorker
from .pool import ResearchWorkerPool
from .reaper import StaleJobReaper

__all__ = ["BaseWorker", "ResearchWorkerPool", "StaleJobReaper"]
