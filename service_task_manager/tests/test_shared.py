"""
Tests for shared errors, logging and tracing helpers.
"""

from unittest.mock import patch

import pytest
import structlog
from fastapi import FastAPI
from opentelemetry.sdk.trace import TracerProvider

from shared.errors import CacheError, InvalidInputError, StorageError, TaskNotFoundError
from shared.logging import (
    ServiceContext,
    clear_context,
    configure_logging,
    get_request_id,
    set_request_id,
)
from shared.tracing import _build_otlp_exporter_kwargs, configure_tracing


class TestErrors:

    def test_codes(self):
        assert InvalidInputError().code == "INVALID_INPUT"
        assert TaskNotFoundError("abc").code == "NOT_FOUND"
        assert StorageError().code == "STORAGE_ERROR"
        assert CacheError().code == "CACHE_ERROR"

    def test_cause_is_kept(self):
        cause = OSError("connection reset")
        assert StorageError("Failed to get task", cause=cause).cause is cause

    def test_response_without_span(self):
        response = TaskNotFoundError("abc").to_response()

        assert response.trace_id is None
        assert response.code == "NOT_FOUND"
        assert response.details == {"task_id": "abc"}

    def test_response_carries_trace_id(self):
        tracer = TracerProvider().get_tracer("tests")

        with tracer.start_as_current_span("request") as span:
            response = InvalidInputError("Invalid status").to_response()
            expected = f"{span.get_span_context().trace_id:032x}"

        assert response.trace_id == expected


class TestRequestContext:

    def test_explicit_request_id(self):
        assert set_request_id("req-1") == "req-1"
        assert get_request_id() == "req-1"
        clear_context()
        assert get_request_id() is None

    def test_generated_request_id(self):
        request_id = set_request_id()
        assert request_id
        assert get_request_id() == request_id
        clear_context()

    def test_empty_request_id_is_replaced(self):
        assert set_request_id("")
        clear_context()


class TestLogging:

    def test_service_context_splits_component(self):
        processor = ServiceContext("task-manager")

        event = processor(None, "info", {"event": "Cache hit", "logger": "task-manager.cache.redis"})

        assert event["service"] == "task-manager"
        assert event["component"] == "cache.redis"

    def test_service_context_foreign_logger(self):
        event = ServiceContext("task-manager")(None, "info", {"event": "x", "logger": "uvicorn.error"})

        assert event["service"] == "task-manager"
        assert "component" not in event

    @pytest.mark.parametrize("log_format", ["json", "console"])
    def test_configure_logging_formats(self, log_format):
        configure_logging("task-manager", "debug", log_format)
        assert structlog.is_configured()

    def test_configure_logging_rejects_unknown_format(self):
        with pytest.raises(ValueError):
            configure_logging("task-manager", "info", "xml")


class TestTracing:

    def test_exporter_kwargs_from_override(self, monkeypatch):
        monkeypatch.delenv("OTEL_EXPORTER_OTLP_HEADERS", raising=False)

        kwargs = _build_otlp_exporter_kwargs("http://collector:4317")

        assert kwargs == {"endpoint": "http://collector:4317", "insecure": True}

    def test_exporter_kwargs_from_environment(self, monkeypatch):
        monkeypatch.delenv("OTEL_EXPORTER_OTLP_TRACES_ENDPOINT", raising=False)
        monkeypatch.setenv("OTEL_EXPORTER_OTLP_ENDPOINT", "https://otel.example.com:4317")
        monkeypatch.setenv("OTEL_EXPORTER_OTLP_HEADERS", "api-key=secret, ,tenant = ops")

        kwargs = _build_otlp_exporter_kwargs()

        assert kwargs == {
            "endpoint": "https://otel.example.com:4317",
            "headers": {"api-key": "secret", "tenant": "ops"},
        }

    @pytest.mark.parametrize("enable_console, processors", [(False, 1), (True, 2)])
    def test_configure_tracing(self, enable_console, processors):
        app = FastAPI()

        with patch("shared.tracing.FastAPIInstrumentor.instrument_app") as instrument_app, \
                patch("shared.tracing.BatchSpanProcessor") as batch_processor:
            provider = configure_tracing(
                "task-manager",
                "http://localhost:4317",
                environment="test",
                enable_console=enable_console,
                app=app,
            )

        assert provider.resource.attributes["service.name"] == "task-manager"
        assert provider.resource.attributes["deployment.environment"] == "test"
        assert batch_processor.call_count == processors
        instrument_app.assert_called_once_with(app, tracer_provider=provider)
