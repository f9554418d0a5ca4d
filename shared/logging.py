"""
Structured logging for the Solar Storefront API.

Every event carries the service name plus whatever request correlation is
bound for the current context: the request id, the HTTP method and path
being served, and the authenticated user once the admin guard has resolved
one. Events are rendered as one JSON object per line.
"""

import sys
import structlog
import logging
import uuid
from typing import Any, Callable, Dict, Optional
from contextvars import ContextVar

Processor = Callable[[Any, str, Dict[str, Any]], Dict[str, Any]]

request_id_var: ContextVar[Optional[str]] = ContextVar('request_id', default=None)
user_id_var: ContextVar[Optional[str]] = ContextVar('user_id', default=None)
http_method_var: ContextVar[Optional[str]] = ContextVar('http_method', default=None)
http_path_var: ContextVar[Optional[str]] = ContextVar('http_path', default=None)

# Event field -> context variable
CORRELATION_FIELDS = {
    "request_id": request_id_var,
    "user_id": user_id_var,
    "http_method": http_method_var,
    "http_path": http_path_var,
}


def configure_logging(service_name: str, log_level: str = "info") -> None:
    """Configure structlog on top of stdlib logging for one service."""

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            service_context(service_name),
            add_correlation_context,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )


def service_context(service_name: str) -> Processor:
    """Processor stamping ``service`` on every event.

    Shared components log under their own names (``circuit_breaker.catalog_service``),
    so the service is bound here rather than derived from the logger name.
    """

    def add_service(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
        event_dict.setdefault("service", service_name)
        return event_dict

    return add_service


def add_correlation_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Copy bound correlation fields onto the event, never overwriting explicit ones."""
    for field, var in CORRELATION_FIELDS.items():
        value = var.get()
        if value is not None:
            event_dict.setdefault(field, value)
    return event_dict


def bind_request_context(request_id: Optional[str] = None,
                         method: Optional[str] = None,
                         path: Optional[str] = None) -> str:
    """Bind the request being served; returns the request id, generating one if absent."""
    if not request_id:
        request_id = str(uuid.uuid4())
    request_id_var.set(request_id)
    http_method_var.set(method)
    http_path_var.set(path)
    return request_id


def set_user_context(user_id: Optional[str] = None):
    """Attach the authenticated user to subsequent events."""
    if user_id:
        user_id_var.set(user_id)


def get_correlation_context() -> Dict[str, str]:
    """Currently bound correlation fields."""
    return {field: var.get() for field, var in CORRELATION_FIELDS.items() if var.get() is not None}


def clear_context():
    for var in CORRELATION_FIELDS.values():
        var.set(None)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
