"""
Unit tests for the cache invalidation CLI.
"""

import json

import httpx
import pytest

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..', 'scripts'))

import invalidate_cache


class TestInvalidateCacheScript:
    """Test cases for scripts/invalidate_cache.py."""

    def test_build_payload(self):
        assert invalidate_cache.build_payload(["products", "product-detail"], False) == {
            "tags": ["products", "product-detail"]
        }
        assert invalidate_cache.build_payload(None, True) == {"clearAll": True}

    @pytest.mark.asyncio
    async def test_invalidate_posts_to_endpoint(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"success": True, "evicted": 2})

        result = await invalidate_cache.invalidate(
            base_url="http://storefront.test",
            token="admin-token",
            tags=["products"],
            clear_all=False,
            timeout=5.0,
            transport=httpx.MockTransport(handler),
        )

        assert result == {"success": True, "evicted": 2}
        request = seen[0]
        assert request.url.path == "/api/admin/cache/invalidate"
        assert request.headers["Authorization"] == "Bearer admin-token"
        assert json.loads(request.content) == {"tags": ["products"]}

    @pytest.mark.asyncio
    async def test_rejection_raises(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(403, json={"code": "AUTHORIZATION_ERROR"}))

        with pytest.raises(httpx.HTTPStatusError):
            await invalidate_cache.invalidate(
                base_url="http://storefront.test",
                token="customer-token",
                tags=None,
                clear_all=True,
                timeout=5.0,
                transport=transport,
            )

    def test_parse_repeated_tags(self):
        args = invalidate_cache._parse_args(["--tag", "products", "--tag", "product-images", "--token", "t"])

        assert args.tags == ["products", "product-images"]
        assert args.clear_all is False

    def test_tags_and_all_are_exclusive(self):
        with pytest.raises(SystemExit):
            invalidate_cache._parse_args(["--tag", "products", "--all", "--token", "t"])

    def test_token_required(self, monkeypatch):
        monkeypatch.delenv("STOREFRONT_ADMIN_TOKEN", raising=False)

        with pytest.raises(SystemExit):
            invalidate_cache._parse_args(["--all"])
