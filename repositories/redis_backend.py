"""
Redis backend - the production cache store.

Key layout (prefix defaults to "profile-scout"):
    {prefix}:profile:{identifier}   - Profile record JSON, optional TTL
    {prefix}:research:{job_id}      - Research job JSON
    {prefix}:research:index         - Set of all job ids

One client per repository, created by the caller and closed at shutdown.
"""

import json
import logging
from typing import Callable, Iterable, Optional

import redis
from pydantic import ValidationError
from redis.backoff import ExponentialBackoff
from redis.exceptions import (
    ConnectionError as RedisConnectionError,
    RedisError,
    TimeoutError as RedisTimeoutError,
)
from redis.retry import Retry

from models import ProfileRecord, ResearchJob, ResearchStatus
from .base import (
    Repository,
    ProfileRepository,
    ResearchJobRepository,
    JobNotFoundError,
    StoreError,
)

logger = logging.getLogger(__name__)

MAX_RETRIES = 3


def build_client(url: str = None, host: str = None, port: int = 6379, password: str = None,
                 tls: bool = False, socket_timeout: float = 5.0) -> redis.Redis:
    """
    Create a Redis client with bounded retries.

    Backoff grows from 50ms and is capped at 2s; only connection and
    timeout errors are retried.
    """
    options = dict(
        decode_responses=True,
        retry=Retry(ExponentialBackoff(cap=2.0, base=0.05), MAX_RETRIES),
        retry_on_error=[RedisConnectionError, RedisTimeoutError],
        socket_connect_timeout=socket_timeout,
        socket_timeout=socket_timeout,
        health_check_interval=30,
    )
    if url:
        return redis.Redis.from_url(url, **options)
    return redis.Redis(host=host, port=port, password=password, ssl=tls, **options)


def _decode(raw: Optional[str], model, key: str):
    if raw is None:
        return None
    try:
        return model.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.warning("Unreadable entry %s: %s", key, e)
        return None


class RedisProfileRepository(ProfileRepository):
    """Redis implementation of the profile store."""

    def __init__(self, client: redis.Redis, prefix: str, ttl_seconds: int = 0):
        self._client = client
        self._prefix = prefix
        self._ttl = ttl_seconds or None

    def _key(self, identifier: str) -> str:
        return f"{self._prefix}:profile:{identifier}"

    def get(self, identifier: str) -> Optional[ProfileRecord]:
        key = self._key(identifier)
        try:
            raw = self._client.get(key)
        except RedisError as e:
            raise StoreError(f"Profile read failed: {e}") from e
        return _decode(raw, ProfileRecord, key)

    def get_many(self, identifiers: Iterable[str]) -> dict[str, ProfileRecord]:
        identifiers = list(identifiers)
        if not identifiers:
            return {}
        keys = [self._key(i) for i in identifiers]
        try:
            values = self._client.mget(keys)
        except RedisError as e:
            raise StoreError(f"Profile batch read failed: {e}") from e

        found = {}
        for identifier, key, raw in zip(identifiers, keys, values):
            record = _decode(raw, ProfileRecord, key)
            if record is not None:
                found[identifier] = record
        return found

    def put(self, record: ProfileRecord) -> None:
        try:
            self._client.set(self._key(record.identifier), json.dumps(record.to_store()), ex=self._ttl)
        except RedisError as e:
            raise StoreError(f"Profile write failed: {e}") from e

    def delete(self, identifier: str) -> bool:
        try:
            return bool(self._client.delete(self._key(identifier)))
        except RedisError as e:
            raise StoreError(f"Profile delete failed: {e}") from e

    def list_identifiers(self) -> list[str]:
        pattern = self._key("*")
        start = len(self._key(""))
        try:
            return sorted(k[start:] for k in self._client.scan_iter(match=pattern))
        except RedisError as e:
            raise StoreError(f"Profile scan failed: {e}") from e


class RedisResearchJobRepository(ResearchJobRepository):
    """Redis implementation of the research job store."""

    def __init__(self, client: redis.Redis, prefix: str):
        self._client = client
        self._prefix = prefix
        self._index = f"{prefix}:research:index"

    def _key(self, job_id: str) -> str:
        return f"{self._prefix}:research:{job_id}"

    def get(self, job_id: str) -> Optional[ResearchJob]:
        key = self._key(job_id)
        try:
            raw = self._client.get(key)
        except RedisError as e:
            raise StoreError(f"Research job read failed: {e}") from e
        return _decode(raw, ResearchJob, key)

    def put(self, job: ResearchJob) -> None:
        try:
            self._client.set(self._key(job.job_id), json.dumps(job.to_store()))
            self._client.sadd(self._index, job.job_id)
        except RedisError as e:
            raise StoreError(f"Research job write failed: {e}") from e

    def update(self, job_id: str, mutate: Callable[[ResearchJob], ResearchJob]) -> ResearchJob:
        key = self._key(job_id)

        def apply(pipe):
            # WATCH is active here; a concurrent write to key restarts apply
            current = _decode(pipe.get(key), ResearchJob, key)
            if current is None:
                raise JobNotFoundError(job_id)
            updated = mutate(current)
            pipe.multi()
            pipe.set(key, json.dumps(updated.to_store()))
            return updated

        try:
            return self._client.transaction(apply, key, value_from_callable=True)
        except RedisError as e:
            raise StoreError(f"Research job update failed: {e}") from e

    def list(self, status: Optional[ResearchStatus] = None) -> list[ResearchJob]:
        try:
            job_ids = sorted(self._client.smembers(self._index))
            keys = [self._key(j) for j in job_ids]
            values = self._client.mget(keys) if keys else []
        except RedisError as e:
            raise StoreError(f"Research job listing failed: {e}") from e

        jobs = []
        for key, raw in zip(keys, values):
            job = _decode(raw, ResearchJob, key)
            if job and (status is None or job.status == status):
                jobs.append(job)
        return sorted(jobs, key=lambda j: j.created_at)


class RedisRepository(Repository):
    """Redis backend implementation."""

    def __init__(self, client: redis.Redis, prefix: str = "profile-scout", profile_ttl_seconds: int = 0):
        self._client = client
        self._closed = False
        self._profiles = RedisProfileRepository(client, prefix, profile_ttl_seconds)
        self._jobs = RedisResearchJobRepository(client, prefix)

    @property
    def client(self) -> redis.Redis:
        return self._client

    @property
    def profiles(self) -> ProfileRepository:
        return self._profiles

    @property
    def jobs(self) -> ResearchJobRepository:
        return self._jobs

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except RedisError as e:
            logger.error("Redis health check failed: %s", e)
            return False

    def info(self) -> dict:
        try:
            info = self._client.info()
        except RedisError as e:
            logger.error("Failed to get Redis info: %s", e)
            return {}
        return {"backend": "redis", **{k: str(v) for k, v in info.items()}}

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._client.close()
            logger.info("Redis connection closed")
        except RedisError as e:
            logger.error("Error closing Redis connection: %s", e)
