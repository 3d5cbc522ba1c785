"""
Worker models - shared across all background workers.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from .base import utcnow


class WorkerStats(BaseModel):
    """Statistics for a background worker or pool."""
    runs: int = 0
    successes: int = 0
    errors: int = 0
    items_processed: int = 0

    # Timing
    last_run: Optional[datetime] = None
    last_success: Optional[datetime] = None
    last_error: Optional[datetime] = None
    last_error_message: Optional[str] = None

    # Context
    last_item: Optional[str] = None

    def record_run(self, item: str = None) -> None:
        """Record a run attempt."""
        self.runs += 1
        self.last_run = utcnow()
        if item:
            self.last_item = item

    def record_success(self, items: int = 0) -> None:
        """Record successful run."""
        self.successes += 1
        self.last_success = utcnow()
        self.items_processed += items

    def record_error(self, message: str = None) -> None:
        """Record an error."""
        self.errors += 1
        self.last_error = utcnow()
        self.last_error_message = message

    @property
    def success_rate(self) -> float:
        if self.runs == 0:
            return 0.0
        return self.successes / self.runs

    @property
    def is_healthy(self) -> bool:
        """Recent success, low error rate."""
        if self.runs < 3:
            return True  # Not enough data
        return self.success_rate > 0.5

    def to_dict(self) -> dict:
        """Export for API responses."""
        return {
            "runs": self.runs,
            "successes": self.successes,
            "errors": self.errors,
            "items_processed": self.items_processed,
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "last_error": self.last_error_message,
            "last_item": self.last_item,
            "healthy": self.is_healthy,
        }
