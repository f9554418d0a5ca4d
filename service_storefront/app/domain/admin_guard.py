"""
Admin authorization for storefront write and cache-control endpoints.
"""

from typing import Any, Dict

from fastapi import Request

from shared.logging import get_logger, set_user_context
from shared.errors import AuthenticationError, AuthorizationError
from ..adapters.auth_client import AuthClient
from ..adapters.catalog_client import CatalogClient

PROFILES_TABLE = "user_profiles"
ADMIN_ROLE = "admin"


class AdminGuard:
    """Authenticates bearer tokens and checks the caller's profile role."""

    def __init__(self, auth_client: AuthClient, catalog_client: CatalogClient):
        self.auth_client = auth_client
        self.catalog_client = catalog_client
        self.logger = get_logger("storefront.admin_guard")

    async def authenticate_request(self, request: Request) -> Dict[str, Any]:
        """Resolve the request's bearer token to a user."""
        auth_header = request.headers.get("Authorization")
        if not auth_header:
            raise AuthenticationError("Authorization header required")

        if not auth_header.startswith("Bearer "):
            raise AuthenticationError("Invalid authorization header format")

        token = auth_header[7:]
        user = await self.auth_client.get_user(token)
        user_id = user.get("id")
        if not user_id:
            raise AuthenticationError("Session has no user")

        set_user_context(user_id)
        request.state.user = user

        return user

    async def is_admin(self, user_id: str) -> bool:
        profile = await self.catalog_client.fetch(
            PROFILES_TABLE,
            {"select": "role", "user_id": f"eq.{user_id}"},
            single=True,
        )
        return bool(profile) and profile.get("role") == ADMIN_ROLE

    async def require_admin(self, request: Request) -> Dict[str, Any]:
        """FastAPI dependency: the authenticated admin user, or 401/403."""
        user = await self.authenticate_request(request)

        if not await self.is_admin(user["id"]):
            self.logger.warning("Admin access denied", user_id=user["id"], path=request.url.path)
            raise AuthorizationError("Admin privileges required")

        self.logger.info("Admin request authorized", user_id=user["id"], path=request.url.path)
        return user
