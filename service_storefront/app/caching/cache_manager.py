"""
Storefront cache manager: cached routes plus the invalidation surface.
"""

from typing import Any, Callable, Dict, Iterable, List, Optional, TYPE_CHECKING

from shared.logging import get_logger
from .route_cache import cached_route
from .store import CacheStore, MemoryCacheStore

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


# Tags declared by the catalog read routes
PRODUCTS_TAG = "products"
PRODUCT_DETAIL_TAG = "product-detail"
PRODUCT_CATEGORY_TAG = "product-category"
PRODUCT_IMAGES_TAG = "product-images"

DEFAULT_LIST_TTL = 60
DEFAULT_DETAIL_TTL = 300


class CacheManager:
    """Owns the response cache store for a service instance.

    Read routes are decorated through ``cached``; write paths call
    ``invalidate``/``clear`` after changing the underlying data. Callers
    are responsible for authorizing invalidation requests.
    """

    def __init__(
        self,
        store: Optional[CacheStore] = None,
        *,
        metrics: Optional["MetricsCollector"] = None,
        default_duration: int = DEFAULT_LIST_TTL,
        single_flight: bool = False,
    ):
        self.store = store if store is not None else MemoryCacheStore()
        self.metrics = metrics
        self.default_duration = default_duration
        self.single_flight = single_flight
        self.logger = get_logger("storefront.cache_manager")

    def cached(
        self,
        *,
        duration: Optional[int] = None,
        include_query: bool = True,
        tags: Iterable[str] = (),
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Decorator caching a FastAPI read endpoint in this manager's store."""
        return cached_route(
            self.store,
            duration=self.default_duration if duration is None else duration,
            include_query=include_query,
            tags=tags,
            single_flight=self.single_flight,
            metrics=self.metrics,
        )

    def invalidate(self, tags: Iterable[str]) -> int:
        """Evict every entry registered under any of ``tags``.

        Unknown tags are accepted and evict nothing.
        """
        tags = list(tags)
        evicted = 0
        for tag in tags:
            evicted += self.store.evict_by_tag(tag)

        self.logger.info("Cache invalidated", tags=tags, evicted=evicted)
        self._record_invalidation("tags")
        return evicted

    def clear(self) -> int:
        """Evict every entry regardless of tag."""
        evicted = self.store.clear_all()
        self.logger.info("Cache cleared", evicted=evicted)
        self._record_invalidation("all")
        return evicted

    def get_cache_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        stats = self.store.stats()
        stats.setdefault("single_flight", self.single_flight)
        stats.setdefault("default_duration", self.default_duration)
        stats.setdefault("known_tags", self.known_tags())
        return stats

    @staticmethod
    def known_tags() -> List[str]:
        return [PRODUCTS_TAG, PRODUCT_DETAIL_TAG, PRODUCT_CATEGORY_TAG, PRODUCT_IMAGES_TAG]

    def _record_invalidation(self, scope: str) -> None:
        if not self.metrics:
            return
        self.metrics.increment_counter("cache_invalidations_total", scope=scope)
        self.metrics.set_gauge("cache_entries", self.store.stats().get("entries", 0))
