"""
Framework-independent cached handler wrapper.

``with_cache(handler, store, ...)`` turns a read handler into a
``CachedHandler``. GET requests are answered from the store when a fresh
entry exists; every other method runs the handler and leaves the store
untouched.
"""

import asyncio
import copy
import inspect
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple, TYPE_CHECKING

from shared.logging import get_logger
from .cache_key import generate_cache_key
from .store import CacheStore

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


CACHE_STATUS_HEADER = "X-Cache"
CACHE_HIT = "HIT"
CACHE_MISS = "MISS"
DEFAULT_DURATION = 60


@dataclass(frozen=True)
class CacheOptions:
    """How a wrapped handler is cached."""

    duration: float = DEFAULT_DURATION
    include_query: bool = True
    tags: Tuple[str, ...] = ()
    single_flight: bool = False

    def __post_init__(self):
        if self.duration < 0:
            raise ValueError("cache duration must be zero or positive")
        # Accept any iterable of tags, store an immutable tuple
        object.__setattr__(self, "tags", tuple(self.tags))


@dataclass
class ReadRequest:
    """The parts of a request that identify it for caching."""

    method: str
    path: str
    query: Mapping[str, Any] = field(default_factory=dict)

    @property
    def is_cacheable(self) -> bool:
        return self.method.upper() == "GET"


@dataclass
class CachedResponse:
    """Handler result plus how it was served."""

    payload: Any
    cache_status: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def hit(self) -> bool:
        return self.cache_status == CACHE_HIT


class CachedHandler:
    """Read handler with get-or-compute semantics over a ``CacheStore``."""

    def __init__(
        self,
        handler: Callable[..., Any],
        store: CacheStore,
        options: Optional[CacheOptions] = None,
        *,
        name: Optional[str] = None,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.handler = handler
        self.store = store
        self.options = options or CacheOptions()
        self.name = name or getattr(handler, "__name__", "handler")
        self.metrics = metrics
        self.logger = get_logger("storefront.cached_handler")
        self._in_flight: Dict[str, "asyncio.Future[Any]"] = {}

    async def __call__(self, request: ReadRequest, /, *args, **kwargs) -> CachedResponse:
        if not request.is_cacheable:
            payload = await self._invoke(request, *args, **kwargs)
            return CachedResponse(payload=payload)

        key = generate_cache_key(request.path, request.query, self.options.include_query)

        entry = self.store.lookup(key)
        if entry is not None:
            self._record("cache_hits_total")
            self.logger.debug("Serving response from cache", route=self.name, key=key)
            return CachedResponse(
                payload=entry.payload,
                cache_status=CACHE_HIT,
                headers={CACHE_STATUS_HEADER: CACHE_HIT},
            )

        self._record("cache_misses_total")
        if self.options.single_flight:
            payload = await self._compute_once(key, request, *args, **kwargs)
        else:
            payload = await self._compute(key, request, *args, **kwargs)

        return CachedResponse(
            payload=payload,
            cache_status=CACHE_MISS,
            headers={
                CACHE_STATUS_HEADER: CACHE_MISS,
                "Cache-Control": f"private, max-age={int(self.options.duration)}",
            },
        )

    async def _compute(self, key: str, request: ReadRequest, /, *args, **kwargs) -> Any:
        # Failures propagate before anything is stored
        payload = await self._invoke(request, *args, **kwargs)
        self.store.store(key, payload, self.options.duration, self.options.tags)
        self.logger.debug(
            "Cached handler result",
            route=self.name,
            key=key,
            duration=self.options.duration,
            tags=list(self.options.tags),
        )
        return payload

    async def _compute_once(self, key: str, request: ReadRequest, /, *args, **kwargs) -> Any:
        """Share one in-flight computation per key between concurrent misses.

        A follower whose leader gets cancelled is not cancelled with it; it
        takes over the computation instead.
        """
        pending = self._in_flight.get(key)
        if pending is not None:
            self.logger.debug("Joining in-flight computation", route=self.name, key=key)
            try:
                return copy.deepcopy(await asyncio.shield(pending))
            except asyncio.CancelledError:
                # Shield keeps ``pending`` alive when only this task is cancelled
                if not pending.cancelled():
                    raise
                self.logger.debug("In-flight computation cancelled, recomputing", route=self.name, key=key)
                return await self._compute_once(key, request, *args, **kwargs)

        future: "asyncio.Future[Any]" = asyncio.get_running_loop().create_future()
        # Mark the exception retrieved when no follower awaited it
        future.add_done_callback(lambda f: f.cancelled() or f.exception())
        self._in_flight[key] = future
        try:
            payload = await self._compute(key, request, *args, **kwargs)
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as exc:
            future.set_exception(exc)
            raise
        else:
            future.set_result(payload)
            return payload
        finally:
            self._in_flight.pop(key, None)

    async def _invoke(self, request: ReadRequest, /, *args, **kwargs) -> Any:
        result = self.handler(request, *args, **kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result

    def _record(self, metric_name: str) -> None:
        if self.metrics is not None:
            self.metrics.increment_counter(metric_name, route=self.name)


def with_cache(
    handler: Callable[..., Any],
    store: CacheStore,
    *,
    duration: float = DEFAULT_DURATION,
    include_query: bool = True,
    tags: Iterable[str] = (),
    single_flight: bool = False,
    name: Optional[str] = None,
    metrics: Optional["MetricsCollector"] = None,
) -> CachedHandler:
    """Wrap ``handler`` so GET results are cached in ``store``."""
    options = CacheOptions(
        duration=duration,
        include_query=include_query,
        tags=tuple(tags),
        single_flight=single_flight,
    )
    return CachedHandler(handler, store, options, name=name, metrics=metrics)
