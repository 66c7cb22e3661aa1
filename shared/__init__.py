"""
Shared utilities for the Campus Access Layer.

This package aggregates common building blocks consumed by the services:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request/user/tenant correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- circuit_breaker: Resilient external call protection
- base_service: FastAPI application scaffolding
- test_helpers: Factories and token generators for tests only

Any cross-service logic should live here to avoid import cycles across
service packages. Runtime modules must not import from service_* packages;
test_helpers is the one exception and is never imported by service code.
"""
