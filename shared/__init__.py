"""
Shared utilities for the Content Protection layer.

This package aggregates common building blocks consumed by the services
and mocks:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request and evaluation context
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- retry: Retry decorator for blocking collaborator calls
- base_service: FastAPI service skeleton with health, metrics and error handlers

Any cross-service logic should live here to avoid import cycles across
service packages. Do not import from service_* packages into shared/.
"""
