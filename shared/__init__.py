"""
Shared utilities for the Solar Storefront services.

This package aggregates common building blocks consumed by all services:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- retry: Retry decorators for outbound calls
- circuit_breaker: Resilient external call protection
- base_service: FastAPI service skeleton
- test_helpers: Catalog fixtures and in-memory clients for tests

Do not import from service packages into shared/.
"""
