"""
Zoo API — TTL Cache Unit Tests
================================

What:  Tests for the in-process cache behind the analytics dashboard.
How:   A fake clock moves time forward without sleeping.
"""

from zoo_api.cache import TTLCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestTTLCache:

    def setup_method(self):
        self.clock = FakeClock()
        self.cache = TTLCache(ttl=60, clock=self.clock)

    def test_get_before_expiry(self):
        self.cache.set("overview", {"animals": 3})
        self.clock.now += 59
        assert self.cache.get("overview") == {"animals": 3}

    def test_entry_expires(self):
        self.cache.set("overview", {"animals": 3})
        self.clock.now += 60
        assert self.cache.get("overview") is None
        assert "overview" not in self.cache

    def test_per_entry_ttl(self):
        self.cache.set("short", 1, ttl=5)
        self.clock.now += 6
        assert self.cache.get("short", "missing") == "missing"

    def test_invalidate_and_prefix(self):
        self.cache.set("dashboard:overview", 1)
        self.cache.set("dashboard:today", 2)
        self.cache.set("other", 3)
        self.cache.invalidate("other")
        assert self.cache.invalidate_prefix("dashboard:") == 2
        assert len(self.cache) == 0

    def test_zero_ttl_disables_cache(self):
        cache = TTLCache(ttl=0, clock=self.clock)
        cache.set("overview", 1)
        assert cache.enabled is False
        assert cache.get("overview") is None

    def test_len_sweeps_expired(self):
        self.cache.set("a", 1)
        self.clock.now += 30
        self.cache.set("b", 2)
        self.clock.now += 31
        assert len(self.cache) == 1
