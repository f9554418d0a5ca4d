"""
Catalog read models and the admin image writes.

Builds the PostgREST filters for each catalog view, shapes rows into the
JSON the storefront serves, and invalidates the affected cache tags after
writes.
"""

import math
from typing import Any, Callable, Dict, List, Optional, Tuple
from uuid import UUID

from shared.logging import get_logger
from shared.errors import NotFoundError, ValidationError
from ..adapters.catalog_client import CatalogClient
from ..caching.cache_manager import PRODUCTS_TAG, PRODUCT_DETAIL_TAG, PRODUCT_IMAGES_TAG
from ..validation.schemas import PaginationParams, ProductFilterParams, ProductImageUpdate

PRODUCTS_TABLE = "product_skus"
CATEGORIES_TABLE = "product_categories"
IMAGES_TABLE = "product_images"

LIST_SELECT = "*,category:product_categories(*),variants:product_variants(*),images:product_images(*)"
DETAIL_SELECT = LIST_SELECT

SORT_ORDERS = {
    "name": "name.asc",
    "price_asc": "price.asc",
    "price_desc": "price.desc",
    "newest": "created_at.desc",
}

IMAGE_UPDATE_TAGS = [PRODUCTS_TAG, PRODUCT_DETAIL_TAG, PRODUCT_IMAGES_TAG]

Params = List[Tuple[str, str]]


class CatalogService:
    """Catalog queries for the storefront API."""

    def __init__(self, client: CatalogClient, invalidate: Optional[Callable[[List[str]], Any]] = None):
        self.client = client
        self.invalidate = invalidate
        self.logger = get_logger("storefront.catalog")

    async def list_products(self, filters: ProductFilterParams) -> Dict[str, Any]:
        params: Params = [("select", LIST_SELECT), ("is_active", "eq.true")]
        if filters.categories:
            params.append(("category_id", f"in.({','.join(filters.categories)})"))
        if filters.use_cases:
            params.append(("use_cases", "ov.{" + ",".join(filters.use_cases) + "}"))
        if filters.min_price is not None:
            params.append(("price", f"gte.{filters.min_price}"))
        if filters.max_price is not None:
            params.append(("price", f"lte.{filters.max_price}"))
        if filters.has_subsidy is not None:
            params.append(("has_subsidy", f"eq.{filters.has_subsidy}"))

        return await self._product_page(params, filters, SORT_ORDERS[filters.sort_by])

    async def get_product(self, product_id: UUID) -> Dict[str, Any]:
        product = await self.client.fetch(
            PRODUCTS_TABLE,
            [("select", DETAIL_SELECT), ("id", f"eq.{product_id}"), ("is_active", "eq.true")],
            single=True,
        )
        if not product:
            raise NotFoundError("Product not found", details={"product_id": str(product_id)})
        return {"product": shape_product_detail(product)}

    async def get_product_by_slug(self, slug: str) -> Dict[str, Any]:
        product = await self.client.fetch(
            PRODUCTS_TABLE,
            [("select", DETAIL_SELECT), ("slug", f"eq.{slug}"), ("is_active", "eq.true")],
            single=True,
        )
        if not product:
            raise NotFoundError("Product not found", details={"slug": slug})
        return {"product": shape_product_detail(product)}

    async def list_products_by_category(self, category_id: UUID, pagination: PaginationParams) -> Dict[str, Any]:
        page = await self._category_page(str(category_id), pagination)
        page["category"] = {"id": str(category_id)}
        return page

    async def list_products_by_category_slug(self, category_slug: str, pagination: PaginationParams) -> Dict[str, Any]:
        category = await self.client.fetch(
            CATEGORIES_TABLE,
            [("select", "id"), ("slug", f"eq.{category_slug}"), ("is_active", "eq.true")],
            single=True,
        )
        if not category:
            raise NotFoundError("Category not found", details={"category_slug": category_slug})

        page = await self._category_page(category["id"], pagination)
        page["category"] = {"id": category["id"], "slug": category_slug}
        return page

    async def list_images(self, product_id: UUID) -> Dict[str, Any]:
        images = await self.client.fetch(
            IMAGES_TABLE,
            [("select", "*"), ("product_id", f"eq.{product_id}"), ("order", "display_order.asc")],
        )
        return {"images": images}

    async def update_image(self, image_id: UUID, update: ProductImageUpdate) -> Dict[str, Any]:
        """Apply an admin image edit, keeping a single primary image per product."""
        changes = update_columns(update)
        if not changes:
            raise ValidationError("No image fields to update")

        image = await self.client.fetch(
            IMAGES_TABLE,
            [("select", "product_id,is_primary"), ("id", f"eq.{image_id}")],
            single=True,
        )
        if not image:
            raise NotFoundError("Image not found", details={"image_id": str(image_id)})

        if update.is_primary and not image.get("is_primary"):
            await self.client.update(
                IMAGES_TABLE,
                [("product_id", f"eq.{image['product_id']}")],
                {"is_primary": False},
            )

        rows = await self.client.update(IMAGES_TABLE, [("id", f"eq.{image_id}")], changes)
        if not rows:
            raise NotFoundError("Image not found", details={"image_id": str(image_id)})

        if self.invalidate is not None:
            self.invalidate(IMAGE_UPDATE_TAGS)

        self.logger.info("Product image updated", image_id=str(image_id), fields=sorted(changes))
        return {"image": rows[0]}

    async def delete_image(self, image_id: UUID) -> Dict[str, Any]:
        """Remove an image row; the product's next image becomes primary if needed.

        The stored file is left in the storage bucket.
        """
        image = await self.client.fetch(
            IMAGES_TABLE,
            [("select", "id,product_id,is_primary"), ("id", f"eq.{image_id}")],
            single=True,
        )
        if not image:
            raise NotFoundError("Image not found", details={"image_id": str(image_id)})

        await self.client.delete(IMAGES_TABLE, [("id", f"eq.{image_id}")])

        if image.get("is_primary"):
            remaining = await self.client.fetch(
                IMAGES_TABLE,
                [
                    ("select", "id"),
                    ("product_id", f"eq.{image['product_id']}"),
                    ("order", "display_order.asc"),
                    ("limit", "1"),
                ],
            )
            if remaining:
                await self.client.update(IMAGES_TABLE, [("id", f"eq.{remaining[0]['id']}")], {"is_primary": True})

        if self.invalidate is not None:
            self.invalidate(IMAGE_UPDATE_TAGS)

        self.logger.info("Product image deleted", image_id=str(image_id), was_primary=bool(image.get("is_primary")))
        return {"success": True}

    async def _category_page(self, category_id: str, pagination: PaginationParams) -> Dict[str, Any]:
        params: Params = [
            ("select", LIST_SELECT),
            ("is_active", "eq.true"),
            ("category_id", f"eq.{category_id}"),
        ]
        return await self._product_page(params, pagination, SORT_ORDERS["name"])

    async def _product_page(self, params: Params, pagination: PaginationParams, order: str) -> Dict[str, Any]:
        params = params + [
            ("order", order),
            ("limit", str(pagination.limit)),
            ("offset", str(pagination.offset)),
        ]
        rows, total = await self.client.fetch_page(PRODUCTS_TABLE, params)
        return {
            "products": [shape_product_summary(row) for row in rows],
            "pagination": build_pagination(pagination.page, pagination.limit, total),
        }


def shape_product_summary(row: Dict[str, Any]) -> Dict[str, Any]:
    """Listing view: one default variant and one primary image."""
    product = {k: v for k, v in row.items() if k not in ("variants", "images")}
    product["default_variant"] = _pick(row.get("variants"), "is_default")
    product["primary_image"] = _pick(row.get("images"), "is_primary")
    return product


def shape_product_detail(row: Dict[str, Any]) -> Dict[str, Any]:
    """Detail view: variants by capacity, images by display order."""
    product = dict(row)
    product["variants"] = sorted(row.get("variants") or [], key=lambda v: v.get("capacity_kw") or 0)
    product["images"] = sorted(row.get("images") or [], key=lambda i: i.get("display_order") or 0)
    return product


def build_pagination(page: int, limit: int, total: int) -> Dict[str, Any]:
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": total_pages,
        "hasNextPage": page < total_pages,
        "hasPrevPage": page > 1,
    }


def update_columns(update: ProductImageUpdate) -> Dict[str, Any]:
    columns = {
        "alt_text": update.alt_text,
        "is_primary": update.is_primary,
        "display_order": update.display_order,
    }
    return {column: value for column, value in columns.items() if value is not None}


def _pick(rows: Optional[List[Dict[str, Any]]], flag: str) -> Optional[Dict[str, Any]]:
    if not rows:
        return None
    for row in rows:
        if row.get(flag):
            return row
    return rows[0]
