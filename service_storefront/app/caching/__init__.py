"""
Storefront response cache package.

In-process GET response cache with tag-based invalidation:
- cache_key: deterministic keys from path + sorted query
- store: entries with lazy expiry and the tag index
- cached_handler: framework-independent get-or-compute wrapper
- route_cache: FastAPI endpoint decorator
- cache_manager: per-service owner of the store and invalidation surface
"""

from .cache_key import generate_cache_key, query_params_to_mapping
from .store import CacheEntry, CacheStore, MemoryCacheStore, TagIndex
from .cached_handler import (
    CACHE_HIT,
    CACHE_MISS,
    CACHE_STATUS_HEADER,
    CacheOptions,
    CachedHandler,
    CachedResponse,
    ReadRequest,
    with_cache,
)
from .route_cache import cached_route
from .cache_manager import CacheManager

__all__ = [
    "CACHE_HIT",
    "CACHE_MISS",
    "CACHE_STATUS_HEADER",
    "CacheEntry",
    "CacheManager",
    "CacheOptions",
    "CacheStore",
    "CachedHandler",
    "CachedResponse",
    "MemoryCacheStore",
    "ReadRequest",
    "TagIndex",
    "cached_route",
    "generate_cache_key",
    "query_params_to_mapping",
    "with_cache",
]
