"""
Request schemas for the storefront API.
"""

from typing import Annotated, Any, List, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, StringConstraints


class RequestSchema(BaseModel):
    """Base for request schemas: camelCase aliases, snake_case attributes."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class PaginationParams(RequestSchema):
    page: int = Field(default=1, gt=0)
    limit: int = Field(default=10, gt=0, le=100)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class ProductIdParams(RequestSchema):
    product_id: UUID


class ProductSlugParams(RequestSchema):
    slug: str = Field(min_length=1, max_length=100)


class CategoryIdParams(RequestSchema):
    category_id: UUID = Field(alias="categoryId")


class CategorySlugParams(RequestSchema):
    category_slug: str = Field(alias="categorySlug", min_length=1, max_length=100)


SortOrder = Literal["name", "price_asc", "price_desc", "newest"]

# Use-case values are embedded in an array literal filter
UseCase = Annotated[str, StringConstraints(pattern=r"^[A-Za-z0-9_-]+$", max_length=50)]


class ProductFilterParams(PaginationParams):
    category: Optional[Union[UUID, List[UUID]]] = None
    use_case: Optional[Union[UseCase, List[UseCase]]] = Field(default=None, alias="useCase")
    min_price: Optional[int] = Field(default=None, alias="minPrice", gt=0)
    max_price: Optional[int] = Field(default=None, alias="maxPrice", gt=0)
    has_subsidy: Optional[Literal["true", "false"]] = Field(default=None, alias="hasSubsidy")
    sort_by: SortOrder = Field(default="name", alias="sortBy")

    @property
    def categories(self) -> List[str]:
        return [str(category) for category in _as_list(self.category)]

    @property
    def use_cases(self) -> List[str]:
        return _as_list(self.use_case)


class ProductImageQuery(RequestSchema):
    product_id: UUID = Field(alias="productId")


class ProductImageIdParams(RequestSchema):
    image_id: UUID


class ProductImageUpdate(RequestSchema):
    alt_text: Optional[str] = Field(default=None, alias="altText")
    is_primary: Optional[bool] = Field(default=None, alias="isPrimary")
    display_order: Optional[int] = Field(default=None, alias="displayOrder")


class CacheInvalidationRequest(RequestSchema):
    tags: Optional[List[str]] = None
    clear_all: bool = Field(default=False, alias="clearAll")


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return list(value)
    return [value]
