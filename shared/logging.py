"""
Shared logging configuration for the Task Manager service.

Log events are rendered as JSON lines by default, or as coloured console
output for local runs. Request-scoped fields (``request_id``) are carried in
structlog's context variables and merged into every event logged while the
request is being handled.
"""

import logging
import sys
import uuid
from typing import Any, Dict, Optional

import structlog
from opentelemetry import trace

LOG_FORMATS = ("json", "console")


def configure_logging(service_name: str, log_level: str = "info", log_format: str = "json") -> None:
    """Configure structured logging for a service."""
    if log_format not in LOG_FORMATS:
        raise ValueError(f"log_format must be one of {LOG_FORMATS}, got {log_format!r}")

    renderer = (
        structlog.dev.ConsoleRenderer()
        if log_format == "console"
        else structlog.processors.JSONRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            ServiceContext(service_name),
            add_trace_context,
            renderer,
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


class ServiceContext:
    """Stamp every event with the service name and its component.

    Logger names follow ``<service>.<component>``, e.g. ``task-manager.cache.redis``.
    """

    def __init__(self, service_name: str):
        self.service_name = service_name

    def __call__(self, logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
        event_dict.setdefault("service", self.service_name)
        logger_name = event_dict.get("logger", "")
        prefix = f"{self.service_name}."
        if logger_name.startswith(prefix):
            event_dict.setdefault("component", logger_name[len(prefix):])
        return event_dict


def add_trace_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add trace context to log events."""
    current_span = trace.get_current_span()
    if current_span and current_span.is_recording():
        span_context = current_span.get_span_context()
        if span_context.trace_id != 0:
            event_dict["trace_id"] = f"{span_context.trace_id:032x}"
        if span_context.span_id != 0:
            event_dict["span_id"] = f"{span_context.span_id:016x}"

    return event_dict


def set_request_id(request_id: Optional[str] = None) -> str:
    """Bind the request ID for the current context, generating one if absent."""
    if not request_id:
        request_id = str(uuid.uuid4())
    structlog.contextvars.bind_contextvars(request_id=request_id)
    return request_id


def get_request_id() -> Optional[str]:
    return structlog.contextvars.get_contextvars().get("request_id")


def clear_context():
    """Drop all request-scoped logging context."""
    structlog.contextvars.clear_contextvars()


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
