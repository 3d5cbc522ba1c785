"""
Repository layer - abstracts the cache store.

Usage:
    from repositories import create_repository

    repo = create_repository(settings)   # caller owns the instance
    record = repo.profiles.get("alice")
    repo.jobs.put(job)
    repo.close()

Backends are chosen by settings.store_backend.
"""

from pathlib import Path

from .base import (
    Repository,
    ProfileRepository,
    ResearchJobRepository,
    StoreError,
    JobNotFoundError,
)
from .json_backend import JsonRepository
from .memory_backend import MemoryRepository


def create_repository(settings) -> Repository:
    """Build the configured backend. No caching - one instance per caller."""
    backend = settings.store_backend

    if backend == "json":
        return JsonRepository(Path(settings.data_dir))
    if backend == "memory":
        return MemoryRepository()
    if backend == "redis":
        from .redis_backend import RedisRepository, build_client
        client = build_client(
            url=settings.redis_url,
            host=settings.redis_host,
            port=settings.redis_port,
            password=settings.redis_password,
            tls=settings.redis_tls,
        )
        return RedisRepository(
            client,
            prefix=settings.redis_key_prefix,
            profile_ttl_seconds=settings.profile_ttl_seconds,
        )

    raise ValueError(f"Unknown backend: {backend}")


__all__ = [
    "create_repository",
    "Repository",
    "ProfileRepository",
    "ResearchJobRepository",
    "StoreError",
    "JobNotFoundError",
    "JsonRepository",
    "MemoryRepository",
]
