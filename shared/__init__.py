"""
Shared utilities for the Policy Layer.

This package aggregates common building blocks consumed by the services:

- config: Service configuration via pydantic-settings
- logging: Structured logging with trace and principal correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- base_service: FastAPI service skeleton (middleware, health, metrics)

Cross-service logic lives here to avoid import cycles. Do not import from
service_* packages into shared/.
"""
