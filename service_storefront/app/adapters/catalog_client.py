"""
Catalog data client for the storefront.

Reads and writes catalog rows through the hosted backend's PostgREST
endpoint (``/rest/v1/<table>``). Callers pass PostgREST filter parameters;
the client only transports them.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import httpx

from shared.logging import get_logger
from shared.errors import ExternalServiceError, ValidationError
from shared.circuit_breaker import CircuitBreakerOpenException, get_circuit_breaker
from shared.retry import RetryConfig, RetryError, retry_on_exception

QueryParams = Union[Mapping[str, str], Sequence[Tuple[str, str]]]

SERVICE_NAME = "catalog_service"
SINGLE_OBJECT_MEDIA_TYPE = "application/vnd.pgrst.object+json"


class CatalogClient:
    """Async client for catalog tables in the hosted database."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport
        self.logger = get_logger("storefront.catalog_client")

        self.circuit_breaker = get_circuit_breaker(
            SERVICE_NAME,
            failure_threshold=3,
            recovery_timeout=30.0
        )

    async def fetch(self, resource: str, params: Optional[QueryParams] = None, *, single: bool = False) -> Any:
        """Fetch rows from ``resource``.

        With ``single=True`` the backend is asked for exactly one object and a
        missing row returns ``None`` instead of an empty list.
        """
        headers = {"Accept": SINGLE_OBJECT_MEDIA_TYPE} if single else {}
        response = await self._call("GET", resource, params=params, headers=headers)

        if single and response.status_code == 406:
            return None
        return response.json()

    async def fetch_page(self, resource: str, params: Optional[QueryParams] = None) -> Tuple[List[Dict[str, Any]], int]:
        """Fetch one page of rows plus the exact total row count."""
        response = await self._call("GET", resource, params=params, headers={"Prefer": "count=exact"})
        rows = response.json()
        total = parse_content_range_total(response.headers.get("Content-Range"))
        return rows, len(rows) if total is None else total

    async def update(self, resource: str, filters: QueryParams, values: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Update rows matching ``filters`` and return the updated rows."""
        response = await self._call(
            "PATCH",
            resource,
            params=filters,
            json=values,
            headers={"Prefer": "return=representation"},
        )
        return response.json()

    async def delete(self, resource: str, filters: QueryParams) -> List[Dict[str, Any]]:
        """Delete rows matching ``filters`` and return the deleted rows."""
        response = await self._call(
            "DELETE",
            resource,
            params=filters,
            headers={"Prefer": "return=representation"},
        )
        return response.json()

    async def ping(self) -> bool:
        """Check that the REST endpoint answers."""
        try:
            async with self._client() as client:
                response = await client.get(f"{self.base_url}/rest/v1/", headers=self._headers())
            return response.status_code < 500
        except httpx.HTTPError:
            return False

    async def _call(self, method: str, resource: str, **kwargs) -> httpx.Response:
        """Send a request with retry + circuit breaker, mapping failures.

        Only transport errors and 5xx responses count against the breaker.
        Client errors are raised after the breaker has recorded a success.
        """
        try:
            response = await self.circuit_breaker.call(self._send, method, resource, **kwargs)
        except ExternalServiceError:
            raise
        except CircuitBreakerOpenException as exc:
            self.logger.warning("Catalog service circuit open", resource=resource)
            raise ExternalServiceError(
                service=SERVICE_NAME,
                message="Catalog service temporarily unavailable",
                details={"resource": resource},
            ) from exc
        except RetryError as exc:
            self.logger.error("Catalog service unreachable", resource=resource, error=str(exc.last_exception))
            raise ExternalServiceError(
                service=SERVICE_NAME,
                message="Catalog service unreachable",
                details={"resource": resource, "error": str(exc.last_exception)},
            ) from exc

        # 406 is "no single row" when a single object was requested
        if response.status_code < 400 or response.status_code == 406:
            return response

        self.logger.warning(
            "Catalog request rejected",
            method=method,
            resource=resource,
            status_code=response.status_code,
            response=response.text,
        )
        if response.status_code == 400:
            raise ValidationError(
                "Catalog query rejected",
                details={"resource": resource, "backend": _error_code(response)},
            )
        raise ExternalServiceError(
            service=SERVICE_NAME,
            message=f"Unexpected status {response.status_code}",
            details={"status_code": response.status_code, "resource": resource},
        )

    @retry_on_exception((httpx.TransportError,), config=RetryConfig(max_attempts=3, base_delay=0.5))
    async def _send(
        self,
        method: str,
        resource: str,
        *,
        params: Optional[QueryParams] = None,
        json: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        url = f"{self.base_url}/rest/v1/{resource}"
        async with self._client() as client:
            response = await client.request(
                method,
                url,
                params=params,
                json=json,
                headers={**self._headers(), **(headers or {})},
            )

        if response.status_code < 500:
            self.logger.debug("Catalog request completed", method=method, resource=resource,
                              status_code=response.status_code)
            return response

        self.logger.error(
            "Catalog request failed",
            method=method,
            resource=resource,
            status_code=response.status_code,
            response=response.text,
        )
        raise ExternalServiceError(
            service=SERVICE_NAME,
            message=f"Unexpected status {response.status_code}",
            details={"status_code": response.status_code, "resource": resource},
        )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    def _headers(self) -> Dict[str, str]:
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
        }


def _error_code(response: httpx.Response) -> Optional[str]:
    """PostgREST error code (``PGRST...`` or a SQLSTATE) from an error body."""
    try:
        body = response.json()
    except ValueError:
        return None
    return body.get("code") if isinstance(body, dict) else None


def parse_content_range_total(content_range: Optional[str]) -> Optional[int]:
    """Total from a ``Content-Range: 0-9/42`` header; ``None`` when unknown."""
    if not content_range or "/" not in content_range:
        return None
    total = content_range.rsplit("/", 1)[1]
    return int(total) if total.isdigit() else None
