"""
In-memory task store for local runs and tests.
"""

from typing import Dict, List, Tuple

from ..models import Task, TaskFilter
from .base import StoreResult, TaskRepository


class InMemoryTaskRepository(TaskRepository):
    """Dict-backed task store.

    Stored and returned tasks are copies, so callers never alias stored state.
    """

    def __init__(self):
        self._tasks: Dict[str, Task] = {}

    async def create(self, task: Task) -> StoreResult[None]:
        if task.id in self._tasks:
            return StoreResult.error(KeyError(f"duplicate task id {task.id}"))
        self._tasks[task.id] = task.model_copy()
        return StoreResult.ok()

    async def get_by_id(self, task_id: str) -> StoreResult[Task]:
        task = self._tasks.get(task_id)
        if task is None:
            return StoreResult.not_found()
        return StoreResult.ok(task.model_copy())

    async def get_all(self, task_filter: TaskFilter) -> StoreResult[Tuple[List[Task], int]]:
        task_filter = task_filter.normalized()
        matches = [
            task for task in self._tasks.values()
            if (task_filter.status is None or task.status.value == task_filter.status)
            and (task_filter.assignee is None or task.assignee == task_filter.assignee)
        ]
        matches.sort(key=lambda t: t.created_at, reverse=True)
        page = matches[task_filter.offset:task_filter.offset + task_filter.page_size]
        return StoreResult.ok(([t.model_copy() for t in page], len(matches)))

    async def update(self, task: Task) -> StoreResult[None]:
        if task.id not in self._tasks:
            return StoreResult.not_found()
        self._tasks[task.id] = task.model_copy()
        return StoreResult.ok()

    async def delete(self, task_id: str) -> StoreResult[None]:
        if self._tasks.pop(task_id, None) is None:
            return StoreResult.not_found()
        return StoreResult.ok()

    async def count(self) -> StoreResult[int]:
        return StoreResult.ok(len(self._tasks))
