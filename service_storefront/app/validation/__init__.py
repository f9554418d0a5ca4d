"""
Request validation for the storefront API.

Schemas are pydantic models; failures surface as ``RequestValidationFailed``
(HTTP 400) before any handler or cache lookup runs.
"""

from .request_validation import (
    RequestValidationFailed,
    body_schema,
    format_errors,
    path_schema,
    query_schema,
    validate_body,
    validate_params,
    validate_path,
    validate_query,
)
from .schemas import (
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

__all__ = [
    "CacheInvalidationRequest",
    "CategoryIdParams",
    "CategorySlugParams",
    "PaginationParams",
    "ProductFilterParams",
    "ProductIdParams",
    "ProductImageIdParams",
    "ProductImageQuery",
    "ProductImageUpdate",
    "ProductSlugParams",
    "RequestValidationFailed",
    "body_schema",
    "format_errors",
    "path_schema",
    "query_schema",
    "validate_body",
    "validate_params",
    "validate_path",
    "validate_query",
]
