"""
Core services - cache-aside resolution, search pipeline, research lifecycle.
"""

from .inflight import InflightRegistry
from .resolver import CacheAsideResolver
from .search import SearchService
from .research import ResearchStateMachine

__all__ = ["InflightRegistry", "CacheAsideResolver", "SearchService", "ResearchStateMachine"]
