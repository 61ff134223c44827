"""
Shared utilities for the MOV Event Platform.

This package aggregates common building blocks consumed by all services:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types
- responses: Success and failure envelopes
- identity: Caller identity and its forwarded header form
- base_service: FastAPI application shell every service builds on

Any cross-service logic should live here to avoid import cycles across
service packages. Do not import from service_* packages into shared/.
"""
