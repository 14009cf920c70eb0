"""
Task data model, request payloads and list filters.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class TaskStatus(str, Enum):
    """Task status enumeration."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def is_valid(cls, value: Optional[str]) -> bool:
        """Return True if ``value`` names a member of the closed status set."""
        return value in cls._value2member_map_


class Task(BaseModel):
    """Task model."""

    id: str = Field(..., description="Unique task ID")
    title: str = Field(..., min_length=1, description="Task title")
    description: str = Field(default="", description="Task description")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="Current status")
    assignee: str = Field(default="", description="Assigned user handle")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")

    @classmethod
    def new(
        cls,
        title: str,
        description: str = "",
        assignee: str = "",
        status: Optional[str] = None,
    ) -> "Task":
        """Build a new task with a fresh ID and equal creation/update timestamps."""
        now = utcnow()
        return cls(
            id=str(uuid.uuid4()),
            title=title,
            description=description,
            status=TaskStatus(status) if status else TaskStatus.PENDING,
            assignee=assignee,
            created_at=now,
            updated_at=now,
        )


class CreateTaskRequest(BaseModel):
    """Request body for creating a task."""

    title: str = Field(default="", description="Task title")
    description: str = Field(default="", description="Task description")
    status: str = Field(default="", description="Initial status, defaults to pending")
    assignee: str = Field(default="", description="Assigned user handle")


class UpdateTaskRequest(BaseModel):
    """Partial update; fields left as None are not touched."""

    title: Optional[str] = Field(None, description="New title")
    description: Optional[str] = Field(None, description="New description")
    status: Optional[str] = Field(None, description="New status")
    assignee: Optional[str] = Field(None, description="New assignee")


class TaskFilter(BaseModel):
    """Filtering and pagination options for listing tasks."""

    status: Optional[str] = Field(None, description="Filter by status")
    assignee: Optional[str] = Field(None, description="Filter by assignee")
    page: int = Field(default=1, description="1-based page number")
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, description="Page size")

    def normalized(self) -> "TaskFilter":
        """Return a copy with page defaults and clamps applied."""
        page = self.page if self.page >= 1 else 1
        page_size = self.page_size
        if page_size < 1:
            page_size = DEFAULT_PAGE_SIZE
        if page_size > MAX_PAGE_SIZE:
            page_size = MAX_PAGE_SIZE
        return self.model_copy(update={"page": page, "page_size": page_size})

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


class TaskListResponse(BaseModel):
    """Paginated list of tasks."""

    tasks: List[Task] = Field(default_factory=list)
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1)
    total_pages: int = Field(..., ge=0)
