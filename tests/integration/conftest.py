"""
Integration test fixtures.

Integration tests:
- Test component boundaries
- Use real I/O but to temp locations
- Should be deterministic
"""

import fnmatch
import shutil
import tempfile
import threading
from pathlib import Path

import pytest
from redis.exceptions import WatchError


@pytest.fixture
def temp_dir():
    """Temporary directory for test data."""
    d = tempfile.mkdtemp()
    yield Path(d)
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def data_dir(temp_dir):
    """Temporary data directory for the JSON backend."""
    p = temp_dir / "data"
    p.mkdir()
    return p


class FakePipeline:
    """
    Just enough of redis-py's Pipeline for WATCH/MULTI/EXEC use.

    Commands run immediately until multi(); execute() refuses with
    WatchError when a watched key was written after the pipeline began.
    """

    def __init__(self, server, watches=()):
        self._server = server
        self._watched = {key: server.version(key) for key in watches}
        self._queued = []
        self._buffering = False

    def get(self, key):
        return self._server.get(key)

    def multi(self):
        self._buffering = True

    def set(self, key, value, ex=None):
        if not self._buffering:
            return self._server.set(key, value, ex=ex)
        self._queued.append((key, value, ex))

    def execute(self):
        if self._server.before_execute is not None:
            hook, self._server.before_execute = self._server.before_execute, None
            hook()
        with self._server._lock:
            if any(self._server.version(k) != v for k, v in self._watched.items()):
                self._queued.clear()
                raise WatchError("Watched variable changed.")
            results = [self._server.set(k, v, ex=ex) for k, v, ex in self._queued]
        self._queued.clear()
        return results


class FakeRedis:
    """
    In-process stand-in for a decode_responses=True redis.Redis client.

    Single commands apply under one lock. transaction() retries its
    callable on WatchError the way redis-py does, so concurrent updates
    really race.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self.data = {}
        self.sets = {}
        self.ttls = {}
        self.versions = {}
        self.watch_retries = 0
        self.before_execute = None  # one-shot callable run inside the next EXEC
        self.closed = False

    def version(self, key):
        with self._lock:
            return self.versions.get(key, 0)

    def _touch(self, key):
        self.versions[key] = self.versions.get(key, 0) + 1

    def get(self, key):
        with self._lock:
            return self.data.get(key)

    def mget(self, keys):
        with self._lock:
            return [self.data.get(k) for k in keys]

    def set(self, key, value, ex=None):
        with self._lock:
            self.data[key] = value
            self._touch(key)
            if ex:
                self.ttls[key] = ex
            else:
                self.ttls.pop(key, None)
            return True

    def delete(self, *keys):
        with self._lock:
            removed = 0
            for k in keys:
                if self.data.pop(k, None) is not None:
                    self._touch(k)
                    removed += 1
            return removed

    def sadd(self, key, *members):
        with self._lock:
            self.sets.setdefault(key, set()).update(members)
            return len(members)

    def smembers(self, key):
        with self._lock:
            return set(self.sets.get(key, set()))

    def scan_iter(self, match=None):
        with self._lock:
            keys = list(self.data)
        return (k for k in keys if match is None or fnmatch.fnmatchcase(k, match))

    def transaction(self, func, *watches, value_from_callable=False):
        while True:
            pipe = FakePipeline(self, watches)
            try:
                value = func(pipe)
                exec_value = pipe.execute()
            except WatchError:
                with self._lock:
                    self.watch_retries += 1
                continue
            return value if value_from_callable else exec_value

    def ping(self):
        return True

    def info(self):
        return {"redis_version": "7.2.0", "used_memory_human": "1M"}

    def close(self):
        self.closed = True


@pytest.fixture
def fake_redis():
    return FakeRedis()
