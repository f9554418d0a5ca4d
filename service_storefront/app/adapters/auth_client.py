"""
Hosted auth client for the storefront.
"""

from typing import Any, Dict, Optional

import httpx

from shared.logging import get_logger
from shared.errors import AuthenticationError
from shared.circuit_breaker import CircuitBreakerOpenException, get_circuit_breaker
from shared.retry import RetryConfig, RetryError, retry_on_exception


class AuthClient:
    """Resolves access tokens to users via the hosted auth endpoint."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport
        self.logger = get_logger("storefront.auth_client")
        self.circuit_breaker = get_circuit_breaker(
            "auth_service",
            failure_threshold=3,
            recovery_timeout=30.0
        )

    async def get_user(self, token: str) -> Dict[str, Any]:
        """Return the user owning ``token``.

        Raises ``AuthenticationError`` for rejected tokens and when the auth
        service cannot be reached.
        """
        try:
            user = await self.circuit_breaker.call(self._get_user, token)
        except AuthenticationError:
            raise
        except (RetryError, CircuitBreakerOpenException) as e:
            self.logger.error("Auth service unavailable", error=str(e))
            raise AuthenticationError(
                "Auth service unavailable",
                details={"error": str(e)}
            ) from e

        if user is None:
            raise AuthenticationError("Invalid or expired session")
        return user

    @retry_on_exception((httpx.TransportError,), config=RetryConfig(max_attempts=3, base_delay=0.5))
    async def _get_user(self, token: str) -> Optional[Dict[str, Any]]:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.get(
                f"{self.base_url}/auth/v1/user",
                headers={"apikey": self.api_key, "Authorization": f"Bearer {token}"},
            )

        if response.status_code == 200:
            return response.json()

        if response.status_code in (401, 403):
            self.logger.warning("Token rejected by auth service", status_code=response.status_code)
            return None

        raise AuthenticationError(
            f"Auth service error: {response.status_code}",
            details={"status_code": response.status_code}
        )
