"""
Unit tests for the storefront CacheManager.
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_storefront.app.caching.cache_manager import (
    CacheManager,
    PRODUCTS_TAG,
    PRODUCT_CATEGORY_TAG,
    PRODUCT_DETAIL_TAG,
    PRODUCT_IMAGES_TAG,
)
from service_storefront.app.caching.store import MemoryCacheStore
from shared.metrics import MetricsCollector


class DummyMetrics:
    """Minimal metrics collector stub."""

    def __init__(self):
        self.counters = []
        self.gauges = []

    def increment_counter(self, metric_name: str, **labels):
        self.counters.append((metric_name, labels))

    def set_gauge(self, metric_name: str, value: float, **labels):
        self.gauges.append((metric_name, value))


class TestCacheManager:
    """Test cases for CacheManager."""

    @pytest.fixture
    def store(self):
        return MemoryCacheStore()

    @pytest.fixture
    def metrics(self):
        return DummyMetrics()

    @pytest.fixture
    def cache_manager(self, store, metrics):
        return CacheManager(store, metrics=metrics)

    def test_defaults_to_memory_store(self):
        manager = CacheManager()

        assert isinstance(manager.store, MemoryCacheStore)
        assert manager.default_duration == 60
        assert manager.single_flight is False

    def test_invalidate_evicts_tagged_entries(self, cache_manager, store):
        store.store("/api/products", {}, 60, [PRODUCTS_TAG])
        store.store("/api/products/1", {}, 300, [PRODUCTS_TAG, PRODUCT_DETAIL_TAG])
        store.store("/api/blog", {}, 60, ["blog"])

        evicted = cache_manager.invalidate([PRODUCT_DETAIL_TAG])

        assert evicted == 1
        assert "/api/products" in store
        assert "/api/blog" in store

    def test_invalidate_multiple_tags(self, cache_manager, store):
        store.store("/a", {}, 60, [PRODUCTS_TAG])
        store.store("/b", {}, 60, [PRODUCT_IMAGES_TAG])
        store.store("/c", {}, 60, [PRODUCTS_TAG, PRODUCT_IMAGES_TAG])

        assert cache_manager.invalidate([PRODUCTS_TAG, PRODUCT_IMAGES_TAG]) == 3
        assert len(store) == 0

    def test_invalidate_unknown_tag_succeeds(self, cache_manager, store):
        store.store("/a", {}, 60, [PRODUCTS_TAG])

        assert cache_manager.invalidate(["does-not-exist"]) == 0
        assert len(store) == 1

    def test_clear(self, cache_manager, store):
        store.store("/a", {}, 60, [PRODUCTS_TAG])
        store.store("/b", {}, 60)

        assert cache_manager.clear() == 2
        assert len(store) == 0

    def test_invalidation_metrics(self, cache_manager, store, metrics):
        store.store("/a", {}, 60, [PRODUCTS_TAG])
        store.store("/b", {}, 60)

        cache_manager.invalidate([PRODUCTS_TAG])
        cache_manager.clear()

        assert metrics.counters == [
            ("cache_invalidations_total", {"scope": "tags"}),
            ("cache_invalidations_total", {"scope": "all"}),
        ]
        assert metrics.gauges == [("cache_entries", 1), ("cache_entries", 0)]

    def test_get_cache_stats(self, cache_manager, store):
        store.store("/a", {}, 60, [PRODUCTS_TAG])

        stats = cache_manager.get_cache_stats()

        assert stats["backend"] == "memory"
        assert stats["entries"] == 1
        assert stats["tags"] == {PRODUCTS_TAG: 1}
        assert stats["default_duration"] == 60
        assert stats["single_flight"] is False
        assert stats["known_tags"] == [PRODUCTS_TAG, PRODUCT_DETAIL_TAG, PRODUCT_CATEGORY_TAG, PRODUCT_IMAGES_TAG]

    def test_cached_uses_default_duration(self, store):
        manager = CacheManager(store, default_duration=45, single_flight=True)

        @manager.cached(tags=[PRODUCTS_TAG])
        async def endpoint():
            return {}

        options = endpoint.cached_handler.options
        assert options.duration == 45
        assert options.tags == (PRODUCTS_TAG,)
        assert options.single_flight is True

    def test_cached_route_round_trip(self, store):
        metrics = MetricsCollector("storefront-test")
        manager = CacheManager(store, metrics=metrics)
        app = FastAPI()
        calls = []

        @app.get("/api/products")
        @manager.cached(duration=60, tags=[PRODUCTS_TAG])
        async def list_products():
            calls.append(1)
            return {"count": len(calls)}

        client = TestClient(app)

        assert client.get("/api/products").headers["X-Cache"] == "MISS"
        assert client.get("/api/products").headers["X-Cache"] == "HIT"

        manager.invalidate([PRODUCTS_TAG])

        response = client.get("/api/products")
        assert response.headers["X-Cache"] == "MISS"
        assert response.json() == {"count": 2}

        exported = metrics.export().decode()
        assert 'cache_hits_total{route="list_products"} 1.0' in exported
        assert 'cache_misses_total{route="list_products"} 2.0' in exported
        assert 'cache_invalidations_total{scope="tags"} 1.0' in exported
