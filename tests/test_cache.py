"""Tests for the advisory TTL cache."""

import threading

from vulnreach.core.cache import AdvisoryCache, advisory_cache_key


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class TestAdvisoryCache:
    def test_init(self):
        cache = AdvisoryCache(maxsize=100, ttl_seconds=60)
        assert cache.maxsize == 100
        assert cache.ttl_seconds == 60
        assert len(cache) == 0

    def test_put_then_get(self):
        cache = AdvisoryCache(maxsize=10, ttl_seconds=60)
        cache.put("lodash", "4.17.20", "npm", ["GHSA-1"])
        assert cache.get("lodash", "4.17.20", "npm") == ["GHSA-1"]

    def test_miss_returns_none(self):
        cache = AdvisoryCache(maxsize=10, ttl_seconds=60)
        assert cache.get("lodash", None, "npm") is None

    def test_empty_result_is_a_hit(self):
        cache = AdvisoryCache(maxsize=10, ttl_seconds=60)
        cache.put("left-pad", None, "npm", [])
        assert cache.get("left-pad", None, "npm") == []
        assert cache.stats()["hits"] == 1

    def test_version_and_ecosystem_are_part_of_key(self):
        cache = AdvisoryCache(maxsize=10, ttl_seconds=60)
        cache.put("requests", "2.0.0", "PyPI", ["PYSEC-1"])
        assert cache.get("requests", "2.1.0", "PyPI") is None
        assert cache.get("requests", None, "PyPI") is None
        assert cache.get("requests", "2.0.0", "npm") is None

    def test_returned_list_is_a_copy(self):
        cache = AdvisoryCache(maxsize=10, ttl_seconds=60)
        cache.put("lodash", None, "npm", ["GHSA-1"])
        cache.get("lodash", None, "npm").append("mutated")
        assert cache.get("lodash", None, "npm") == ["GHSA-1"]

    def test_entries_expire(self):
        clock = FakeClock()
        cache = AdvisoryCache(maxsize=10, ttl_seconds=30, clock=clock)
        cache.put("lodash", None, "npm", ["GHSA-1"])

        clock.advance(29)
        assert cache.get("lodash", None, "npm") == ["GHSA-1"]

        clock.advance(1)
        assert cache.get("lodash", None, "npm") is None
        assert len(cache) == 0

    def test_least_recently_used_is_evicted(self):
        cache = AdvisoryCache(maxsize=2, ttl_seconds=60)
        cache.put("a", None, "npm", [])
        cache.put("b", None, "npm", [])
        cache.get("a", None, "npm")
        cache.put("c", None, "npm", [])

        assert cache.get("a", None, "npm") == []
        assert cache.get("b", None, "npm") is None
        assert cache.get("c", None, "npm") == []

    def test_expired_entries_are_evicted_before_live_ones(self):
        clock = FakeClock()
        cache = AdvisoryCache(maxsize=2, ttl_seconds=10, clock=clock)
        cache.put("old", None, "npm", [])
        clock.advance(5)
        cache.put("fresh", None, "npm", [])
        clock.advance(6)
        cache.put("fresh", None, "npm", ["GHSA-2"])
        cache.put("newest", None, "npm", [])

        assert len(cache) == 2
        assert cache.get("fresh", None, "npm") == ["GHSA-2"]

    def test_overwrite_does_not_evict(self):
        cache = AdvisoryCache(maxsize=2, ttl_seconds=60)
        cache.put("a", None, "npm", [])
        cache.put("b", None, "npm", [])
        cache.put("a", None, "npm", ["GHSA-1"])
        assert len(cache) == 2
        assert cache.get("b", None, "npm") == []

    def test_invalidate_by_package(self):
        cache = AdvisoryCache(maxsize=10, ttl_seconds=60)
        cache.put("lodash", "1.0.0", "npm", [])
        cache.put("lodash", "2.0.0", "npm", [])
        cache.put("express", None, "npm", [])

        assert cache.invalidate(package_name="lodash") == 2
        assert len(cache) == 1

    def test_invalidate_by_ecosystem(self):
        cache = AdvisoryCache(maxsize=10, ttl_seconds=60)
        cache.put("requests", None, "PyPI", [])
        cache.put("lodash", None, "npm", [])

        assert cache.invalidate(ecosystem="PyPI") == 1
        assert cache.get("lodash", None, "npm") == []

    def test_clear_resets_stats(self):
        cache = AdvisoryCache(maxsize=10, ttl_seconds=60)
        cache.put("lodash", None, "npm", [])
        cache.get("lodash", None, "npm")
        cache.get("missing", None, "npm")
        cache.clear()

        stats = cache.stats()
        assert stats["size"] == 0
        assert stats["hits"] == 0
        assert stats["misses"] == 0

    def test_stats(self):
        cache = AdvisoryCache(maxsize=10, ttl_seconds=60)
        cache.put("lodash", None, "npm", [])
        cache.get("lodash", None, "npm")
        cache.get("lodash", None, "npm")
        cache.get("express", None, "npm")

        stats = cache.stats()
        assert stats["hits"] == 2
        assert stats["misses"] == 1
        assert stats["hit_rate_percent"] == 66.67
        assert stats["maxsize"] == 10

    def test_concurrent_puts(self):
        cache = AdvisoryCache(maxsize=50, ttl_seconds=60)

        def worker(n):
            for i in range(20):
                cache.put(f"pkg-{n}-{i}", None, "npm", [])

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(cache) == 50


class TestAdvisoryCacheKey:
    def test_missing_version_is_empty(self):
        assert advisory_cache_key("lodash", None, "npm") == ("npm", "lodash", "")

    def test_case_is_preserved(self):
        key = advisory_cache_key("github.com/BurntSushi/toml", "v1.0.0", "Go")
        assert key == ("Go", "github.com/BurntSushi/toml", "v1.0.0")
