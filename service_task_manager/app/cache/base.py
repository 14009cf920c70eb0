"""
Task cache contract and cache key layout.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..models import Task, TaskFilter

TASK_KEY_PREFIX = "task:"
TASK_LIST_PREFIX = "tasks:list"
TASK_LIST_PATTERN = f"{TASK_LIST_PREFIX}*"
DEFAULT_CACHE_TTL = 300  # 5 minutes


def task_key(task_id: str) -> str:
    """Cache key for a single task."""
    return f"{TASK_KEY_PREFIX}{task_id}"


def derive_list_key(task_filter: Optional[TaskFilter]) -> str:
    """Canonical cache key for one page of a filtered task list.

    Field-wise equal filters always produce the same key. ``None`` maps to
    the unfiltered ``tasks:list:all`` key.
    """
    if task_filter is None:
        return f"{TASK_LIST_PREFIX}:all"

    key = TASK_LIST_PREFIX
    if task_filter.status is not None:
        key += f":status:{task_filter.status}"
    if task_filter.assignee is not None:
        key += f":assignee:{task_filter.assignee}"
    key += f":page:{task_filter.page}:size:{task_filter.page_size}"
    return key


class TaskCache(ABC):
    """TTL cache for single tasks and task list pages.

    Implementations raise ``CacheError`` on failure. A missing entry is a
    miss (``None``), never an error.
    """

    async def start(self) -> None:
        """Acquire resources. No-op by default."""

    async def stop(self) -> None:
        """Release resources. No-op by default."""

    async def health_check(self) -> bool:
        return True

    def derive_list_key(self, task_filter: Optional[TaskFilter]) -> str:
        return derive_list_key(task_filter)

    @abstractmethod
    async def get_task(self, task_id: str) -> Optional[Task]:
        """Cached task or None."""

    @abstractmethod
    async def put_task(self, task: Task) -> None:
        """Cache a task under its ID with the fixed TTL."""

    @abstractmethod
    async def evict_task(self, task_id: str) -> None:
        """Drop the cached task. Absent entries are not an error."""

    @abstractmethod
    async def get_task_list(self, key: str) -> Optional[List[Task]]:
        """Cached page of tasks or None."""

    @abstractmethod
    async def put_task_list(self, key: str, tasks: List[Task]) -> None:
        """Cache a page of tasks under a derived key with the fixed TTL."""

    @abstractmethod
    async def evict_all_task_lists(self) -> int:
        """Drop every cached task list page; returns the number of keys removed."""
