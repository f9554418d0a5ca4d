"""
Domain utilities for the Storefront Service.

Catalog read models and admin authorization; neither knows about the
response cache beyond the tags it invalidates.
"""

from .admin_guard import AdminGuard
from .catalog import CatalogService

__all__ = [
    "AdminGuard",
    "CatalogService",
]
