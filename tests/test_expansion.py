"""Tests for query expansion and the TTL cache."""

import threading

import pytest

from docsync.search.expansion import (
    MAX_EXPANSIONS,
    MISS,
    TTLCache,
    clear_expansion_cache,
    code_expansions,
    expand_query,
)


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


class TestTTLCache:
    """Test TTLCache."""

    def test_miss_for_absent_key(self, clock):
        assert TTLCache(clock=clock).get("nope") is MISS

    def test_set_and_get(self, clock):
        cache = TTLCache(clock=clock)
        cache.set("k", [1, 2])
        assert cache.get("k") == [1, 2]

    def test_none_is_a_value(self, clock):
        cache = TTLCache(clock=clock)
        cache.set("k", None)
        assert cache.get("k") is None

    def test_expiry(self, clock):
        cache = TTLCache(default_ttl=10, clock=clock)
        cache.set("k", "v")
        clock.now = 9.9
        assert cache.get("k") == "v"
        clock.now = 10.0
        assert cache.get("k") is MISS
        assert len(cache) == 0

    def test_per_entry_ttl(self, clock):
        cache = TTLCache(default_ttl=100, clock=clock)
        cache.set("short", 1, ttl=1)
        cache.set("long", 2)
        clock.now = 5
        assert cache.get("short") is MISS
        assert cache.get("long") == 2

    def test_replace_resets_ttl(self, clock):
        cache = TTLCache(default_ttl=10, clock=clock)
        cache.set("k", "old")
        clock.now = 8
        cache.set("k", "new")
        clock.now = 15
        assert cache.get("k") == "new"

    def test_evicts_when_full(self, clock):
        cache = TTLCache(max_size=2, default_ttl=10, clock=clock)
        cache.set("a", 1)
        clock.now = 1
        cache.set("b", 2)
        cache.set("c", 3)
        assert len(cache) == 2
        assert cache.get("a") is MISS
        assert cache.get("b") == 2
        assert cache.get("c") == 3

    def test_clear(self, clock):
        cache = TTLCache(clock=clock)
        cache.set("a", 1)
        cache.clear()
        assert cache.get("a") is MISS

    def test_concurrent_writers(self):
        cache = TTLCache(max_size=50)

        def writer(offset):
            for i in range(200):
                cache.set((offset, i % 60), i)

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(cache) <= 50


class TestExpandQuery:
    """Test expand_query()."""

    def setup_method(self):
        clear_expansion_cache()

    def test_query_comes_first(self):
        assert expand_query("get user")[0] == "get user"

    def test_code_synonyms(self):
        assert expand_query("get user") == [
            "get user",
            "fetch user",
            "retrieve user",
            "read user",
        ]

    def test_expansion_limit(self):
        assert len(code_expansions("create delete error config")) == MAX_EXPANSIONS

    def test_no_matches(self):
        assert expand_query("quantum widget") == ["quantum widget"]

    def test_cached_copy_is_independent(self):
        first = expand_query("delete file")
        first.append("mutated")
        assert "mutated" not in expand_query("delete file")
