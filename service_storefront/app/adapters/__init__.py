"""
Adapters package for the Storefront Service.

HTTP clients for the hosted backend (catalog REST endpoint and auth). They
own base URLs, request shapes, retries and circuit breakers, and map
failures onto the shared error types. Keep adapters thin: query building
belongs to the domain layer.
"""

from .auth_client import AuthClient
from .catalog_client import CatalogClient

__all__ = [
    "AuthClient",
    "CatalogClient",
]
