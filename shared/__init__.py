"""
Shared utilities for the Task Manager service.

This package aggregates the ambient building blocks used by the service:

- config: Service configuration via pydantic-settings
- logging: Structured logging with trace correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- tracing: OpenTelemetry tracer provider setup

Do not import from service_task_manager into shared/.
"""
