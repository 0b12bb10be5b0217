"""Unit tests for SharedInstanceCache."""

import threading
import time

import pytest

from trellis_di.application.shared_cache import SharedInstanceCache
from trellis_di.domain import ISharedInstanceCache


class TestSharedInstanceCache:
    """Test cases for basic cache operations."""

    def test_implements_interface(self):
        assert isinstance(SharedInstanceCache(), ISharedInstanceCache)

    def test_set_and_get(self):
        cache = SharedInstanceCache()
        instance = object()

        cache.set("service", instance)

        assert cache.contains("service")
        assert cache.get("service") is instance

    def test_none_is_cached(self):
        """Test that None counts as a cached instance."""
        cache = SharedInstanceCache()
        cache.set("nothing", None)

        assert cache.contains("nothing")

    def test_discard(self):
        cache = SharedInstanceCache()
        cache.set("service", object())

        cache.discard("service")
        cache.discard("missing")

        assert not cache.contains("service")

    def test_clear(self):
        cache = SharedInstanceCache()
        cache.set("a", 1)
        cache.set("b", 2)

        cache.clear()

        assert not cache.contains("a")
        assert not cache.contains("b")


class TestGetOrCreate:
    """Test cases for get_or_create."""

    def test_creates_once(self):
        cache = SharedInstanceCache()
        calls = []

        first = cache.get_or_create("service", lambda: calls.append(1) or object())
        second = cache.get_or_create("service", lambda: calls.append(1) or object())

        assert first is second
        assert len(calls) == 1

    def test_failure_is_not_cached(self):
        """Test that a raising factory leaves no entry behind."""
        cache = SharedInstanceCache()

        def explode():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            cache.get_or_create("service", explode)

        assert not cache.contains("service")
        assert cache.get_or_create("service", lambda: "ok") == "ok"

    def test_reentrant_creation(self):
        """Test that a factory may create other entries on the same thread."""
        cache = SharedInstanceCache()

        def outer():
            return ("outer", cache.get_or_create("inner", lambda: "inner"))

        assert cache.get_or_create("outer", outer) == ("outer", "inner")
        assert cache.get("inner") == "inner"

    def test_concurrent_first_access_builds_once(self):
        """Test that racing threads share one constructed instance."""
        cache = SharedInstanceCache()
        built = []
        start = threading.Barrier(8)
        results = []

        def factory():
            time.sleep(0.01)
            instance = object()
            built.append(instance)
            return instance

        def worker():
            start.wait()
            results.append(cache.get_or_create("service", factory))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(built) == 1
        assert all(result is built[0] for result in results)
