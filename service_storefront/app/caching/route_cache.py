"""
FastAPI integration for the response cache.

``cached_route`` decorates an endpoint function. FastAPI still sees the
endpoint's own parameters (path/query params, ``Depends`` validators), so
dependencies resolve and validate before the cache is consulted. The
decorator adds ``Request``/``Response`` parameters when the endpoint does not
declare them, and copies the cache headers onto the outgoing response.
"""

import functools
import inspect
from typing import Any, Callable, Iterable, Optional, Tuple, TYPE_CHECKING

from fastapi import Request, Response
from fastapi.concurrency import run_in_threadpool

from .cache_key import query_params_to_mapping
from .cached_handler import CacheOptions, CachedHandler, ReadRequest
from .store import CacheStore

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


_INJECTED_REQUEST = "_cache_request"
_INJECTED_RESPONSE = "_cache_response"


def cached_route(
    store: CacheStore,
    *,
    duration: float = 60,
    include_query: bool = True,
    tags: Iterable[str] = (),
    single_flight: bool = False,
    metrics: Optional["MetricsCollector"] = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Cache the GET responses of a FastAPI endpoint in ``store``."""
    options = CacheOptions(
        duration=duration,
        include_query=include_query,
        tags=tuple(tags),
        single_flight=single_flight,
    )

    def decorator(endpoint: Callable[..., Any]) -> Callable[..., Any]:
        signature = inspect.signature(endpoint)
        request_name, inject_request = _find_param(signature, Request, _INJECTED_REQUEST)
        response_name, inject_response = _find_param(signature, Response, _INJECTED_RESPONSE)

        is_async = inspect.iscoroutinefunction(endpoint)

        async def invoke(_read_request: ReadRequest, **kwargs) -> Any:
            if is_async:
                return await endpoint(**kwargs)
            # Plain ``def`` endpoints run in the threadpool, as FastAPI would run them
            return await run_in_threadpool(endpoint, **kwargs)

        cached = CachedHandler(invoke, store, options, name=endpoint.__name__, metrics=metrics)

        @functools.wraps(endpoint)
        async def wrapper(**kwargs) -> Any:
            request: Request = kwargs[request_name]
            response: Response = kwargs[response_name]
            if inject_request:
                kwargs.pop(request_name)
            if inject_response:
                kwargs.pop(response_name)

            read_request = ReadRequest(
                method=request.method,
                path=request.url.path,
                query=query_params_to_mapping(request.query_params),
            )
            result = await cached(read_request, **kwargs)
            for header, value in result.headers.items():
                response.headers[header] = value
            return result.payload

        extra = []
        if inject_request:
            extra.append(inspect.Parameter(_INJECTED_REQUEST, inspect.Parameter.KEYWORD_ONLY, annotation=Request))
        if inject_response:
            extra.append(inspect.Parameter(_INJECTED_RESPONSE, inspect.Parameter.KEYWORD_ONLY, annotation=Response))
        wrapper.__signature__ = _extend_signature(signature, extra)
        wrapper.cached_handler = cached
        return wrapper

    return decorator


def _find_param(signature: inspect.Signature, annotation: type, injected_name: str) -> Tuple[str, bool]:
    """Name of the parameter annotated with ``annotation``, or the name to inject."""
    for name, param in signature.parameters.items():
        if inspect.isclass(param.annotation) and issubclass(param.annotation, annotation):
            return name, False
    return injected_name, True


def _extend_signature(signature: inspect.Signature, extra: list) -> inspect.Signature:
    if not extra:
        return signature
    params = list(signature.parameters.values())
    # Keyword-only parameters must precede **kwargs
    insert_at = len(params)
    for index, param in enumerate(params):
        if param.kind == inspect.Parameter.VAR_KEYWORD:
            insert_at = index
            break
    return signature.replace(parameters=params[:insert_at] + extra + params[insert_at:])
