"""
Shared error handling for the Task Manager service.
"""

from typing import Any, Dict, Optional

from opentelemetry import trace
from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response format."""

    trace_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class TaskManagerException(Exception):
    """Base exception for Task Manager errors."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        trace_id = None
        current_span = trace.get_current_span()
        if current_span and current_span.is_recording():
            span_context = current_span.get_span_context()
            if span_context.trace_id != 0:
                trace_id = f"{span_context.trace_id:032x}"

        return ErrorResponse(
            trace_id=trace_id,
            code=self.code,
            message=self.message,
            details=self.details,
        )


class InvalidInputError(TaskManagerException):
    """Malformed, out-of-enumeration or missing required field."""

    def __init__(self, message: str = "Invalid input", details: Optional[Dict[str, Any]] = None):
        super().__init__("INVALID_INPUT", message, details)


class TaskNotFoundError(TaskManagerException):
    """The targeted task does not exist."""

    def __init__(self, task_id: str, message: str = "Task not found"):
        self.task_id = task_id
        super().__init__("NOT_FOUND", message, {"task_id": task_id})


class StorageError(TaskManagerException):
    """The task store failed to complete an operation."""

    def __init__(
        self,
        message: str = "Storage error",
        cause: Optional[BaseException] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.cause = cause
        super().__init__("STORAGE_ERROR", message, details)


class CacheError(TaskManagerException):
    """The cache failed. Never surfaced to API callers."""

    def __init__(
        self,
        message: str = "Cache error",
        cause: Optional[BaseException] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.cause = cause
        super().__init__("CACHE_ERROR", message, details)
