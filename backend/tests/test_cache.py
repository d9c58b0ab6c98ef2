"""Tests for the TTL cache and the keyed lock."""

import threading

import pytest

from coinfolio.services.shared.cache import MISSING, TTLCache
from coinfolio.services.shared.keyed_lock import KeyedLock


@pytest.fixture
def cache(clock):
    return TTLCache(clock=clock, default_ttl=300)


class TestTTLCache:
    """Tests for TTLCache expiry and get_or_compute."""

    def test_get_missing_key(self, cache):
        assert cache.get("missing") is None

    def test_set_and_get(self, cache):
        cache.set("k", {"a": 1})
        assert cache.get("k") == {"a": 1}
        assert "k" in cache

    def test_entry_expires_after_ttl(self, cache, clock):
        """An entry is a hit up to its TTL and a miss after it."""
        cache.set("k", "v", ttl=60)
        clock.advance(seconds=60)
        assert cache.get("k") == "v"

        clock.advance(seconds=1)
        assert cache.get("k") is None
        assert len(cache) == 0  # Evicted on read

    def test_default_ttl_used(self, cache, clock):
        cache.set("k", "v")
        clock.advance(seconds=299)
        assert cache.get("k") == "v"
        clock.advance(seconds=2)
        assert cache.get("k") is None

    def test_zero_ttl_never_hits(self, cache):
        cache.set("k", "v", ttl=0)
        assert cache.get("k") is None

    def test_delete_and_clear(self, cache):
        cache.set("a", 1)
        cache.set("b", 2)
        cache.delete("a")
        cache.delete("not-there")
        assert cache.get("a") is None
        assert cache.get("b") == 2

        cache.clear()
        assert len(cache) == 0

    def test_get_or_compute_caches_result(self, cache):
        calls = []

        def compute():
            calls.append(1)
            return "value"

        assert cache.get_or_compute("k", compute) == "value"
        assert cache.get_or_compute("k", compute) == "value"
        assert len(calls) == 1

    def test_get_or_compute_recomputes_after_expiry(self, cache, clock):
        values = iter(["first", "second"])
        assert cache.get_or_compute("k", lambda: next(values), ttl=10) == "first"
        clock.advance(seconds=11)
        assert cache.get_or_compute("k", lambda: next(values), ttl=10) == "second"

    def test_get_or_compute_failure_not_cached(self, cache):
        """Exceptions propagate and leave the key empty."""

        def boom():
            raise RuntimeError("upstream down")

        with pytest.raises(RuntimeError):
            cache.get_or_compute("k", boom)
        assert "k" not in cache
        assert cache.get_or_compute("k", lambda: "ok") == "ok"

    def test_cached_none_is_a_hit(self, cache):
        """A None payload is stored and served like any other value."""
        calls = []

        def compute():
            calls.append(1)
            return None

        assert cache.get_or_compute("k", compute) is None
        assert cache.get_or_compute("k", compute) is None
        assert len(calls) == 1
        assert "k" in cache
        assert cache.get("missing", MISSING) is MISSING
        assert cache.get("k", MISSING) is None


class TestKeyedLock:
    """Tests for per-key locking."""

    def test_lock_released_and_dropped(self):
        locks = KeyedLock()
        with locks.hold(1):
            assert len(locks) == 1
        assert len(locks) == 0

    def test_same_key_is_serialized(self):
        locks = KeyedLock()
        inside = threading.Event()
        release = threading.Event()
        order = []

        def first():
            with locks.hold("pos-1"):
                inside.set()
                release.wait(timeout=5)
                order.append("first")

        def second():
            inside.wait(timeout=5)
            with locks.hold("pos-1"):
                order.append("second")

        t1 = threading.Thread(target=first)
        t2 = threading.Thread(target=second)
        t1.start()
        t2.start()
        inside.wait(timeout=5)
        release.set()
        t1.join(timeout=5)
        t2.join(timeout=5)

        assert order == ["first", "second"]

    def test_different_keys_do_not_block(self):
        locks = KeyedLock()
        with locks.hold("a"):
            acquired = threading.Event()

            def other():
                with locks.hold("b"):
                    acquired.set()

            t = threading.Thread(target=other)
            t.start()
            t.join(timeout=5)
            assert acquired.is_set()
