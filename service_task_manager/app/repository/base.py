"""
Task store contract.

Store operations report their outcome through ``StoreResult`` rather than
raising: a missing row is ``NOT_FOUND`` and an infrastructure failure is
``ERROR`` carrying the underlying exception. Cancellation is not an outcome
and always propagates.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Generic, List, Optional, Tuple, TypeVar

from ..models import Task, TaskFilter

T = TypeVar("T")


class StoreOutcome(str, Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    ERROR = "error"


@dataclass(frozen=True)
class StoreResult(Generic[T]):
    """Tagged result of a store operation: Ok | NotFound | Error(cause)."""

    outcome: StoreOutcome
    value: Optional[T] = None
    cause: Optional[BaseException] = None

    @classmethod
    def ok(cls, value: Optional[T] = None) -> "StoreResult[T]":
        return cls(StoreOutcome.OK, value=value)

    @classmethod
    def not_found(cls) -> "StoreResult[T]":
        return cls(StoreOutcome.NOT_FOUND)

    @classmethod
    def error(cls, cause: BaseException) -> "StoreResult[T]":
        return cls(StoreOutcome.ERROR, cause=cause)

    @property
    def is_ok(self) -> bool:
        return self.outcome is StoreOutcome.OK

    @property
    def is_not_found(self) -> bool:
        return self.outcome is StoreOutcome.NOT_FOUND

    @property
    def is_error(self) -> bool:
        return self.outcome is StoreOutcome.ERROR


class TaskRepository(ABC):
    """Authoritative task storage."""

    async def start(self) -> None:
        """Acquire resources. No-op by default."""

    async def stop(self) -> None:
        """Release resources. No-op by default."""

    async def health_check(self) -> bool:
        return True

    @abstractmethod
    async def create(self, task: Task) -> StoreResult[None]:
        """Insert a new task."""

    @abstractmethod
    async def get_by_id(self, task_id: str) -> StoreResult[Task]:
        """Fetch one task, ``NOT_FOUND`` if absent."""

    @abstractmethod
    async def get_all(self, task_filter: TaskFilter) -> StoreResult[Tuple[List[Task], int]]:
        """Return one page of matching tasks, newest first, and the total match count."""

    @abstractmethod
    async def update(self, task: Task) -> StoreResult[None]:
        """Overwrite the mutable fields of an existing task, ``NOT_FOUND`` if absent."""

    @abstractmethod
    async def delete(self, task_id: str) -> StoreResult[None]:
        """Remove a task, ``NOT_FOUND`` if absent."""

    @abstractmethod
    async def count(self) -> StoreResult[int]:
        """Total number of stored tasks."""
