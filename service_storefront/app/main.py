"""
Storefront API service for the Solar Storefront.
"""

from typing import Any, Dict, Optional

from fastapi import Depends

from shared.base_service import BaseService
from shared.config import ServiceConfig
from shared.errors import ValidationError
from .adapters.auth_client import AuthClient
from .adapters.catalog_client import CatalogClient
from .caching.cache_manager import (
    CacheManager,
    DEFAULT_DETAIL_TTL,
    DEFAULT_LIST_TTL,
    PRODUCTS_TAG,
    PRODUCT_CATEGORY_TAG,
    PRODUCT_DETAIL_TAG,
    PRODUCT_IMAGES_TAG,
)
from .caching.store import CacheStore
from .domain.admin_guard import AdminGuard
from .domain.catalog import CatalogService
from .validation.request_validation import body_schema, path_schema, query_schema
from .validation.schemas import (
    CacheInvalidationRequest,
    CategoryIdParams,
    CategorySlugParams,
    PaginationParams,
    ProductFilterParams,
    ProductIdParams,
    ProductImageIdParams,
    ProductImageQuery,
    ProductImageUpdate,
    ProductSlugParams,
)

SERVICE_NAME = "storefront"
SERVICE_PORT = 8080


class StorefrontService(BaseService):
    """Storefront API service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        *,
        catalog_client: Optional[CatalogClient] = None,
        auth_client: Optional[AuthClient] = None,
        cache_store: Optional[CacheStore] = None,
    ):
        super().__init__(SERVICE_NAME, SERVICE_PORT, config)

        # Profile lookups need the service role when one is configured
        catalog_key = self.config.supabase_service_role_key or self.config.supabase_anon_key
        self.catalog_client = catalog_client or CatalogClient(
            self.config.supabase_url,
            catalog_key,
            timeout=self.config.request_timeout_seconds,
        )
        self.auth_client = auth_client or AuthClient(
            self.config.supabase_url,
            self.config.supabase_anon_key,
            timeout=self.config.request_timeout_seconds,
        )

        self.cache_manager = CacheManager(
            cache_store,
            metrics=self.metrics,
            default_duration=self.config.cache_default_duration,
            single_flight=self.config.cache_single_flight,
        )
        self.catalog = CatalogService(self.catalog_client, invalidate=self.cache_manager.invalidate)
        self.admin_guard = AdminGuard(self.auth_client, self.catalog_client)

        self._setup_catalog_routes()
        self._setup_admin_routes()

        self.app.state.storefront_service = self

    def _setup_catalog_routes(self):
        """Catalog read routes and the admin image writes.

        Fixed path segments are registered before ``/api/products/{product_id}``.
        """
        cache = self.cache_manager

        @self.app.get("/api/products")
        @cache.cached(duration=DEFAULT_LIST_TTL, tags=[PRODUCTS_TAG])
        async def list_products(filters: ProductFilterParams = Depends(query_schema(ProductFilterParams))):
            """Paginated, filterable product listing."""
            return await self.catalog.list_products(filters)

        @self.app.get("/api/products/images")
        @cache.cached(duration=DEFAULT_LIST_TTL, tags=[PRODUCTS_TAG, PRODUCT_IMAGES_TAG])
        async def list_product_images(query: ProductImageQuery = Depends(query_schema(ProductImageQuery))):
            """Images of one product in display order."""
            return await self.catalog.list_images(query.product_id)

        @self.app.patch("/api/products/images/{image_id}")
        async def update_product_image(
            admin: Dict[str, Any] = Depends(self.admin_guard.require_admin),
            params: ProductImageIdParams = Depends(path_schema(ProductImageIdParams)),
            update: ProductImageUpdate = Depends(body_schema(ProductImageUpdate)),
        ):
            """Update image metadata (admin only)."""
            return await self.catalog.update_image(params.image_id, update)

        @self.app.delete("/api/products/images/delete/{image_id}")
        async def delete_product_image(
            admin: Dict[str, Any] = Depends(self.admin_guard.require_admin),
            params: ProductImageIdParams = Depends(path_schema(ProductImageIdParams)),
        ):
            """Delete an image record (admin only)."""
            return await self.catalog.delete_image(params.image_id)

        @self.app.get("/api/products/slug/{slug}")
        @cache.cached(duration=DEFAULT_DETAIL_TTL, tags=[PRODUCTS_TAG, PRODUCT_DETAIL_TAG])
        async def get_product_by_slug(params: ProductSlugParams = Depends(path_schema(ProductSlugParams))):
            return await self.catalog.get_product_by_slug(params.slug)

        @self.app.get("/api/products/category/slug/{category_slug}")
        @cache.cached(duration=DEFAULT_DETAIL_TTL, tags=[PRODUCTS_TAG, PRODUCT_CATEGORY_TAG])
        async def list_products_by_category_slug(
            params: CategorySlugParams = Depends(path_schema(CategorySlugParams)),
            pagination: PaginationParams = Depends(query_schema(PaginationParams)),
        ):
            return await self.catalog.list_products_by_category_slug(params.category_slug, pagination)

        @self.app.get("/api/products/category/{category_id}")
        @cache.cached(duration=DEFAULT_DETAIL_TTL, tags=[PRODUCTS_TAG, PRODUCT_CATEGORY_TAG])
        async def list_products_by_category(
            params: CategoryIdParams = Depends(path_schema(CategoryIdParams)),
            pagination: PaginationParams = Depends(query_schema(PaginationParams)),
        ):
            return await self.catalog.list_products_by_category(params.category_id, pagination)

        @self.app.get("/api/products/{product_id}")
        @cache.cached(duration=DEFAULT_DETAIL_TTL, tags=[PRODUCTS_TAG, PRODUCT_DETAIL_TAG])
        async def get_product(params: ProductIdParams = Depends(path_schema(ProductIdParams))):
            return await self.catalog.get_product(params.product_id)

    def _setup_admin_routes(self):
        """Cache control routes (admin only)."""

        @self.app.post("/api/admin/cache/invalidate")
        async def invalidate_cache(
            admin: Dict[str, Any] = Depends(self.admin_guard.require_admin),
            body: CacheInvalidationRequest = Depends(body_schema(CacheInvalidationRequest)),
        ):
            """Invalidate cached responses by tag, or clear everything."""
            if body.clear_all:
                evicted = self.cache_manager.clear()
                self.logger.info("Cache cleared by admin", user_id=admin["id"], evicted=evicted)
                return {"success": True, "message": "All cache cleared", "evicted": evicted}

            if body.tags:
                evicted = self.cache_manager.invalidate(body.tags)
                self.logger.info("Cache tags invalidated by admin", user_id=admin["id"], tags=body.tags)
                return {
                    "success": True,
                    "message": f"Cache invalidated for tags: {', '.join(body.tags)}",
                    "tags": body.tags,
                    "evicted": evicted,
                }

            raise ValidationError("Either tags or clearAll must be provided")

        @self.app.get("/api/admin/cache/stats")
        async def get_cache_stats(admin: Dict[str, Any] = Depends(self.admin_guard.require_admin)):
            """Get cache statistics."""
            return self.cache_manager.get_cache_stats()

    async def _check_dependencies(self) -> Dict[str, str]:
        catalog_ok = await self.catalog_client.ping()
        return {
            "catalog": "ok" if catalog_ok else "unavailable",
            "cache": self.cache_manager.get_cache_stats().get("backend", "unknown"),
        }


def create_app():
    """Create FastAPI application."""
    service = StorefrontService()
    return service.app


if __name__ == "__main__":
    service = StorefrontService()
    service.run()
