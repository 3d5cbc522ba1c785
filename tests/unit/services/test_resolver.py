"""Unit tests for CacheAsideResolver."""

import threading
from unittest.mock import MagicMock

import pytest

from providers.base import ProviderTimeoutError
from repositories.base import StoreError
from services import CacheAsideResolver, InflightRegistry


@pytest.fixture
def resolver(memory_repo, fetch_provider):
    return CacheAsideResolver(memory_repo.profiles, fetch_provider)


def ids(result):
    return [p.identifier for p in result.profiles]


class TestCacheAsideResolver:

    def test_mixed_hits_and_misses(self, resolver, memory_repo, fetch_provider, record_factory):
        memory_repo.profiles.put(record_factory("alice"))
        memory_repo.profiles.put(record_factory("bob"))
        fetch_provider.known = {"carol"}

        result = resolver.resolve(["https://x/in/alice", "https://x/in/bob", "https://x/in/carol"])

        assert sorted(ids(result)) == ["alice", "bob", "carol"]
        assert result.cached == 2
        assert result.fetched == 1
        assert fetch_provider.calls == [["https://x/in/carol"]]
        assert memory_repo.profiles.exists("carol")

    def test_all_hits_never_fetch(self, resolver, memory_repo, fetch_provider, record_factory):
        memory_repo.profiles.put(record_factory("alice"))

        result = resolver.resolve(["https://www.linkedin.com/in/Alice?trk=1"])

        assert ids(result) == ["alice"]
        assert result.cached == 1
        assert result.fetched == 0
        assert fetch_provider.calls == []

    def test_counts_add_up(self, resolver, memory_repo, fetch_provider, record_factory):
        memory_repo.profiles.put(record_factory("a"))
        fetch_provider.known = {"b"}

        result = resolver.resolve(["https://x/in/a", "https://x/in/b", "https://x/in/missing"])

        assert result.cached + result.fetched == result.count == 2
        assert result.requested == 3

    def test_duplicates_and_junk_dropped(self, resolver, fetch_provider):
        fetch_provider.known = {"alice", "bob"}

        result = resolver.resolve([
            "https://www.linkedin.com/in/alice",
            "https://uk.linkedin.com/in/ALICE/",
            "not a url",
            None,
            "https://www.linkedin.com/in/bob",
        ])

        assert ids(result) == ["alice", "bob"]
        assert result.dropped == 3
        # First-seen reference is the one sent to the provider
        assert fetch_provider.calls == [["https://www.linkedin.com/in/alice", "https://www.linkedin.com/in/bob"]]

    def test_at_most_one_fetch_per_call(self, resolver, fetch_provider):
        fetch_provider.known = {f"p{i}" for i in range(20)}

        result = resolver.resolve([f"https://x/in/p{i}" for i in range(20)])

        assert result.fetched == 20
        assert len(fetch_provider.calls) == 1

    def test_empty_input(self, resolver, fetch_provider):
        result = resolver.resolve([])
        assert result.count == 0
        assert fetch_provider.calls == []

    def test_fetch_order_follows_input(self, resolver, fetch_provider):
        fetch_provider.known = {"c", "a", "b"}

        result = resolver.resolve(["https://x/in/c", "https://x/in/a", "https://x/in/b"])

        assert ids(result) == ["c", "a", "b"]

    def test_provider_failure_returns_hits(self, resolver, memory_repo, fetch_provider, record_factory):
        memory_repo.profiles.put(record_factory("alice"))
        fetch_provider.error = ProviderTimeoutError("brightdata", 30)

        result = resolver.resolve(["https://x/in/alice", "https://x/in/bob"])

        assert ids(result) == ["alice"]
        assert result.fetched == 0
        assert "timed out" in result.fetch_error

    def test_unrequested_records_are_cached_and_returned(self, resolver, memory_repo, fetch_provider):
        fetch_provider.known = {"alice"}
        fetch_provider.extra = ["zed"]

        result = resolver.resolve(["https://x/in/alice"])

        assert ids(result) == ["alice", "zed"]
        assert memory_repo.profiles.exists("zed")

    def test_store_read_failure_degrades_to_fetch(self, fetch_provider, record_factory):
        profiles = MagicMock()
        profiles.get_many.side_effect = StoreError("connection refused")
        fetch_provider.known = {"alice"}
        resolver = CacheAsideResolver(profiles, fetch_provider)

        result = resolver.resolve(["https://x/in/alice"])

        assert ids(result) == ["alice"]
        assert result.cached == 0
        assert result.fetched == 1

    def test_store_write_failure_still_returns_record(self, fetch_provider):
        profiles = MagicMock()
        profiles.get_many.return_value = {}
        profiles.put.side_effect = StoreError("read only")
        fetch_provider.known = {"alice", "bob"}
        resolver = CacheAsideResolver(profiles, fetch_provider)

        result = resolver.resolve(["https://x/in/alice", "https://x/in/bob"])

        assert ids(result) == ["alice", "bob"]
        assert profiles.put.call_count == 2

    def test_duplicate_records_from_provider(self, resolver, fetch_provider):
        fetch_provider.known = {"alice"}
        fetch_provider.extra = ["alice"]

        result = resolver.resolve(["https://x/in/alice"])

        assert ids(result) == ["alice"]


class TestInflightSharing:

    def test_concurrent_misses_share_one_fetch(self, memory_repo, fetch_provider):
        fetch_provider.known = {"alice"}
        fetch_provider.gate = threading.Event()
        resolver = CacheAsideResolver(memory_repo.profiles, fetch_provider, inflight=InflightRegistry(wait_timeout=5))

        results = []
        first = threading.Thread(target=lambda: results.append(resolver.resolve(["https://x/in/alice"])))
        first.start()
        while not fetch_provider.calls:
            threading.Event().wait(0.01)

        second = threading.Thread(target=lambda: results.append(resolver.resolve(["https://x/in/alice"])))
        second.start()
        threading.Event().wait(0.05)
        fetch_provider.gate.set()
        first.join(5)
        second.join(5)

        assert len(fetch_provider.calls) == 1
        assert [ids(r) for r in results] == [["alice"], ["alice"]]
        assert resolver.inflight is not None and len(resolver.inflight) == 0

    def test_failed_owner_releases_waiters(self, memory_repo, fetch_provider):
        registry = InflightRegistry(wait_timeout=1)
        owned, waiting = registry.claim(["alice"])
        _, waiting = registry.claim(["alice"])

        registry.settle(owned, {})

        assert registry.wait("alice", waiting["alice"]) is None
        assert len(registry) == 0

    def test_claim_splits_owned_and_waiting(self):
        registry = InflightRegistry()
        owned, waiting = registry.claim(["a", "b"])
        owned2, waiting2 = registry.claim(["b", "c"])

        assert owned == ["a", "b"] and waiting == {}
        assert owned2 == ["c"]
        assert list(waiting2) == ["b"]
