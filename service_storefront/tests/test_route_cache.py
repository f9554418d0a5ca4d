"""
Unit tests for the FastAPI cached route decorator.
"""

import asyncio

import pytest
from fastapi import Depends, FastAPI, Request, Response
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_storefront.app.caching.route_cache import cached_route
from service_storefront.app.caching.store import MemoryCacheStore
from service_storefront.app.validation.request_validation import query_schema, path_schema
from service_storefront.app.validation.schemas import PaginationParams, ProductIdParams
from shared.errors import StorefrontError


class TestCachedRoute:
    """Test cases for cached_route."""

    @pytest.fixture
    def store(self):
        return MemoryCacheStore()

    @pytest.fixture
    def calls(self):
        return []

    @pytest.fixture
    def app(self, store, calls):
        app = FastAPI()

        @app.exception_handler(StorefrontError)
        async def storefront_error(request: Request, exc: StorefrontError):
            return JSONResponse(status_code=exc.status_code, content=exc.to_response().model_dump())

        @app.get("/counter")
        @cached_route(store, duration=60, tags=["products"])
        async def counter():
            calls.append("counter")
            return {"count": len(calls)}

        @app.get("/pages")
        @cached_route(store, duration=60, tags=["products"])
        async def pages(pagination: PaginationParams = Depends(query_schema(PaginationParams))):
            calls.append(pagination.page)
            return {"page": pagination.page, "limit": pagination.limit}

        @app.get("/products/{product_id}")
        @cached_route(store, duration=300, tags=["product-detail"])
        async def product(params: ProductIdParams = Depends(path_schema(ProductIdParams))):
            calls.append(str(params.product_id))
            return {"id": str(params.product_id)}

        @app.get("/explicit")
        @cached_route(store, duration=10)
        async def explicit(request: Request, response: Response):
            calls.append(request.url.path)
            response.headers["X-Handler"] = "yes"
            return {"path": request.url.path}

        @app.api_route("/mixed", methods=["GET", "POST"])
        @cached_route(store, duration=60, tags=["products"])
        async def mixed():
            calls.append("mixed")
            return {"count": len(calls)}

        @app.get("/blocking")
        @cached_route(store, duration=60)
        def blocking():
            try:
                asyncio.get_running_loop()
                calls.append("event-loop")
            except RuntimeError:
                calls.append("threadpool")
            return {"count": len(calls)}

        return app

    @pytest.fixture
    def client(self, app):
        return TestClient(app)

    def test_miss_then_hit(self, client, calls):
        first = client.get("/counter")
        assert first.status_code == 200
        assert first.json() == {"count": 1}
        assert first.headers["X-Cache"] == "MISS"
        assert first.headers["Cache-Control"] == "private, max-age=60"

        second = client.get("/counter")
        assert second.json() == {"count": 1}
        assert second.headers["X-Cache"] == "HIT"
        assert calls == ["counter"]

    def test_count_scenario_with_invalidation(self, client, store):
        assert client.get("/counter").json() == {"count": 1}
        assert client.get("/counter").headers["X-Cache"] == "HIT"

        store.evict_by_tag("products")

        response = client.get("/counter")
        assert response.json() == {"count": 2}
        assert response.headers["X-Cache"] == "MISS"

    def test_query_order_shares_entry(self, client, calls):
        client.get("/pages?page=2&limit=5")
        response = client.get("/pages?limit=5&page=2")

        assert response.headers["X-Cache"] == "HIT"
        assert response.json() == {"page": 2, "limit": 5}
        assert calls == [2]

    def test_cache_key_uses_request_path(self, client, store):
        client.get("/pages?page=3")

        assert "/pages?page=3" in store

    def test_invalid_query_rejected_before_handler(self, client, calls, store):
        response = client.get("/pages?page=0")

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["message"] == "Invalid query parameters"
        assert body["details"]["errors"][0]["loc"] == ["page"]
        assert "X-Cache" not in response.headers
        assert calls == []
        assert len(store) == 0

    def test_invalid_path_rejected_before_handler(self, client, calls):
        response = client.get("/products/not-a-uuid")

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid path parameters"
        assert calls == []

    def test_path_params_cached_per_value(self, client, calls):
        first_id = "0b8f7a63-1e24-4d9b-b5c8-7a6e3f2d1c33"
        second_id = "c2d4e6f8-0a1b-4c3d-9e5f-6a7b8c9d0e44"

        client.get(f"/products/{first_id}")
        client.get(f"/products/{second_id}")
        response = client.get(f"/products/{first_id}")

        assert response.headers["X-Cache"] == "HIT"
        assert response.json() == {"id": first_id}
        assert calls == [first_id, second_id]

    def test_declared_request_and_response_are_used(self, client, calls):
        first = client.get("/explicit")
        assert first.json() == {"path": "/explicit"}
        assert first.headers["X-Handler"] == "yes"
        assert first.headers["X-Cache"] == "MISS"
        assert first.headers["Cache-Control"] == "private, max-age=10"

        second = client.get("/explicit")
        assert second.headers["X-Cache"] == "HIT"
        assert calls == ["/explicit"]

    def test_sync_endpoint_runs_in_threadpool(self, client, calls):
        first = client.get("/blocking")
        second = client.get("/blocking")

        assert first.json() == {"count": 1}
        assert second.headers["X-Cache"] == "HIT"
        assert calls == ["threadpool"]

    def test_post_bypasses_cache(self, client, store, calls):
        response = client.post("/mixed")

        assert response.status_code == 200
        assert "X-Cache" not in response.headers
        assert len(store) == 0

        client.post("/mixed")
        assert calls == ["mixed", "mixed"]

    def test_injected_parameters_hidden_from_openapi(self, app):
        schema = app.openapi()
        parameters = schema["paths"]["/counter"]["get"].get("parameters", [])

        assert all(not p["name"].startswith("_cache") for p in parameters)

    def test_wrapper_exposes_cached_handler(self, app):
        route = next(r for r in app.routes if getattr(r, "path", None) == "/counter")

        assert route.endpoint.cached_handler.options.tags == ("products",)
