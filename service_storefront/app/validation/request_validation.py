"""
Request validation gate.

Every storefront handler receives already-validated input: each helper
either returns the parsed schema instance or raises
``RequestValidationFailed``, which the service renders as a 400 response
carrying the list of failures. The dependency factories below run the gate
as FastAPI dependencies, ahead of the response cache and the handler.
"""

import json
from typing import Any, Callable, Dict, List, Type, TypeVar

import pydantic
from fastapi import Request

from shared.errors import ValidationError
from ..caching.cache_key import query_params_to_mapping

SchemaT = TypeVar("SchemaT", bound=pydantic.BaseModel)

LOCATION_MESSAGES = {
    "query": "Invalid query parameters",
    "path": "Invalid path parameters",
    "body": "Invalid request body",
}


class RequestValidationFailed(ValidationError):
    """Input failed its schema; ``errors`` is machine-readable."""

    def __init__(self, location: str, errors: List[Dict[str, Any]]):
        self.location = location
        self.errors = errors
        super().__init__(
            LOCATION_MESSAGES.get(location, "Validation failed"),
            details={"errors": errors},
        )


def validate_params(data: Any, schema: Type[SchemaT], location: str) -> SchemaT:
    """Parse ``data`` against ``schema`` or raise ``RequestValidationFailed``."""
    try:
        return schema.model_validate(data)
    except pydantic.ValidationError as exc:
        raise RequestValidationFailed(location, format_errors(exc)) from exc


def validate_query(request: Request, schema: Type[SchemaT]) -> SchemaT:
    return validate_params(query_params_to_mapping(request.query_params), schema, "query")


def validate_path(request: Request, schema: Type[SchemaT]) -> SchemaT:
    return validate_params(dict(request.path_params), schema, "path")


def validate_body(payload: Any, schema: Type[SchemaT]) -> SchemaT:
    if payload is None:
        payload = {}
    return validate_params(payload, schema, "body")


def format_errors(exc: pydantic.ValidationError) -> List[Dict[str, Any]]:
    """Reduce pydantic errors to JSON-safe ``loc``/``msg``/``type`` records."""
    return [
        {
            "loc": [str(part) for part in error.get("loc", ())],
            "msg": error.get("msg", ""),
            "type": error.get("type", ""),
        }
        for error in exc.errors()
    ]


def query_schema(schema: Type[SchemaT]) -> Callable[[Request], SchemaT]:
    """FastAPI dependency validating the query string."""

    def dependency(request: Request) -> SchemaT:
        return validate_query(request, schema)

    return dependency


def path_schema(schema: Type[SchemaT]) -> Callable[[Request], SchemaT]:
    """FastAPI dependency validating path parameters."""

    def dependency(request: Request) -> SchemaT:
        return validate_path(request, schema)

    return dependency


def body_schema(schema: Type[SchemaT]) -> Callable[[Request], Any]:
    """FastAPI dependency validating a JSON body."""

    async def dependency(request: Request) -> SchemaT:
        raw = await request.body()
        if not raw:
            return validate_body(None, schema)
        try:
            payload = json.loads(raw)
        except ValueError as exc:
            raise RequestValidationFailed(
                "body",
                [{"loc": ["body"], "msg": "Request body is not valid JSON", "type": "json_invalid"}],
            ) from exc
        return validate_body(payload, schema)

    return dependency

