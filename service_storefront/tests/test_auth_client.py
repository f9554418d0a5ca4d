"""
Unit tests for the storefront Auth Client.
"""

import httpx
import pytest
from unittest.mock import AsyncMock, patch

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_storefront.app.adapters.auth_client import AuthClient
from shared.circuit_breaker import circuit_breaker_manager
from shared.errors import AuthenticationError


class TestAuthClient:
    """Test cases for AuthClient."""

    @pytest.fixture(autouse=True)
    def reset_circuit_breakers(self):
        circuit_breaker_manager.circuit_breakers.clear()
        yield
        circuit_breaker_manager.circuit_breakers.clear()

    @pytest.fixture(autouse=True)
    def no_retry_sleep(self):
        with patch("shared.retry.asyncio.sleep", new=AsyncMock()):
            yield

    @pytest.fixture
    def mock_user(self):
        """Mock user payload from the auth service."""
        return {"id": "7d3e9b1a-2c4f-4e6a-8b0d-1f3a5c7e9b01", "email": "admin@solarstore.example"}

    def make_client(self, handler):
        return AuthClient("http://supabase.test", "anon-key", transport=httpx.MockTransport(handler))

    @pytest.mark.asyncio
    async def test_get_user_success(self, mock_user):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=mock_user)

        client = self.make_client(handler)

        user = await client.get_user("valid-token")

        assert user == mock_user
        assert seen[0].url.path == "/auth/v1/user"
        assert seen[0].headers["Authorization"] == "Bearer valid-token"
        assert seen[0].headers["apikey"] == "anon-key"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [401, 403])
    async def test_rejected_token(self, status_code):
        client = self.make_client(lambda request: httpx.Response(status_code, json={"msg": "invalid JWT"}))

        with pytest.raises(AuthenticationError) as exc_info:
            await client.get_user("expired-token")

        assert exc_info.value.message == "Invalid or expired session"

    @pytest.mark.asyncio
    async def test_rejected_tokens_do_not_open_circuit(self):
        client = self.make_client(lambda request: httpx.Response(401))

        for _ in range(5):
            with pytest.raises(AuthenticationError):
                await client.get_user("bad-token")

        assert client.circuit_breaker.get_state()["state"] == "closed"

    @pytest.mark.asyncio
    async def test_unexpected_status(self):
        client = self.make_client(lambda request: httpx.Response(500))

        with pytest.raises(AuthenticationError) as exc_info:
            await client.get_user("token")

        assert exc_info.value.details == {"status_code": 500}

    @pytest.mark.asyncio
    async def test_service_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client = self.make_client(handler)

        with pytest.raises(AuthenticationError) as exc_info:
            await client.get_user("token")

        assert exc_info.value.message == "Auth service unavailable"
        assert exc_info.value.status_code == 401
