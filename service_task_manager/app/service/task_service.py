"""
Task orchestration service.

Reads are cache-aside: the cache is consulted first and repopulated from the
store on a miss. Mutations go to the store first and then invalidate the
cache; cached values are deleted, never patched in place. Any mutation
clears the whole task list namespace, since working out which cached pages
a task could appear on is not worth it for a TTL-bounded cache.

The cache is strictly optional. Cache failures are logged and downgraded to
misses or no-ops; they never fail an operation. Store failures surface as
``TaskNotFoundError`` or ``StorageError`` and are never retried here.

Concurrent calls are independent. A read may race an invalidating write
and put a stale value back into the cache; the TTL bounds that window.
"""

import asyncio
import math
from typing import Any, Awaitable, Callable, Optional, TypeVar

from shared.errors import InvalidInputError, StorageError, TaskNotFoundError
from shared.logging import get_logger
from shared.metrics import MetricsCollector

from ..cache.base import TaskCache
from ..models import (
    CreateTaskRequest,
    Task,
    TaskFilter,
    TaskListResponse,
    TaskStatus,
    UpdateTaskRequest,
    utcnow,
)
from ..repository.base import StoreResult, TaskRepository

T = TypeVar("T")


class TaskService:
    """Business logic for tasks on top of a store and an optional cache."""

    def __init__(
        self,
        repository: TaskRepository,
        cache: Optional[TaskCache] = None,
        *,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.repository = repository
        self.cache = cache
        self.metrics = metrics
        self.logger = get_logger("task-manager.service")

    # Cache guard

    async def _cache_call(
        self,
        operation: str,
        call: Callable[..., Awaitable[T]],
        *args: Any,
    ) -> Optional[T]:
        """Run a cache operation; any failure is logged and reported as None."""
        try:
            return await call(*args)
        except Exception as exc:
            self.logger.warning("Cache operation failed", operation=operation, error=str(exc))
            if self.metrics:
                self.metrics.record_cache_error(operation)
            return None

    def _record_lookup(self, cache_type: str, hit: bool):
        if self.metrics:
            self.metrics.record_cache_access(cache_type, hit)

    async def _invalidate(self, task_id: Optional[str] = None):
        """Evict after a committed write.

        Runs to completion even if the caller is cancelled, so the task entry
        and the list pages are never left half-invalidated.
        """
        if self.cache is None:
            return
        await asyncio.shield(self._evict(task_id))

    async def _evict(self, task_id: Optional[str]):
        if task_id is not None:
            await self._cache_call("evict_task", self.cache.evict_task, task_id)
        await self._cache_call("evict_all_task_lists", self.cache.evict_all_task_lists)

    # Store result unwrapping

    @staticmethod
    def _unwrap(result: StoreResult[T], action: str, task_id: Optional[str] = None) -> Optional[T]:
        if result.is_not_found:
            raise TaskNotFoundError(task_id or "")
        if result.is_error:
            raise StorageError(f"Failed to {action}", cause=result.cause)
        return result.value

    @staticmethod
    def _validate_status(status: Optional[str], field: str = "status"):
        if not TaskStatus.is_valid(status):
            raise InvalidInputError(
                f"Invalid {field}",
                {field: status, "allowed": [s.value for s in TaskStatus]},
            )

    # Operations

    async def create_task(self, request: CreateTaskRequest) -> Task:
        """Validate and persist a new task."""
        if not request.title:
            raise InvalidInputError("Title is required", {"field": "title"})
        if request.status:
            self._validate_status(request.status)

        task = Task.new(request.title, request.description, request.assignee, request.status or None)

        self._unwrap(await self.repository.create(task), "create task", task.id)

        # New task changes list membership and counts.
        await self._invalidate()

        self.logger.info("Task created", task_id=task.id, status=task.status.value)
        return task

    async def get_task(self, task_id: str) -> Task:
        """Fetch a task, preferring the cache."""
        if self.cache is not None:
            cached = await self._cache_call("get_task", self.cache.get_task, task_id)
            self._record_lookup("task", cached is not None)
            if cached is not None:
                return cached

        task = self._unwrap(await self.repository.get_by_id(task_id), "get task", task_id)

        if self.cache is not None:
            await self._cache_call("put_task", self.cache.put_task, task)

        return task

    async def list_tasks(self, task_filter: Optional[TaskFilter] = None) -> TaskListResponse:
        """List one page of tasks.

        On a cache hit the totals are derived from the cached page itself, so
        ``total`` is the page length and ``total_pages`` is computed from it.
        This under-reports when the full result spans several pages; it is
        kept so that cache hits never cost a store round trip.
        """
        task_filter = (task_filter or TaskFilter()).normalized()
        if task_filter.status is not None:
            self._validate_status(task_filter.status)

        cache_key = None
        if self.cache is not None:
            cache_key = self.cache.derive_list_key(task_filter)
            cached = await self._cache_call("get_task_list", self.cache.get_task_list, cache_key)
            self._record_lookup("task_list", cached is not None)
            if cached is not None:
                total = len(cached)
                return TaskListResponse(
                    tasks=cached,
                    total=total,
                    page=task_filter.page,
                    page_size=task_filter.page_size,
                    total_pages=math.ceil(total / task_filter.page_size),
                )

        tasks, total = self._unwrap(await self.repository.get_all(task_filter), "list tasks")

        if self.cache is not None:
            await self._cache_call("put_task_list", self.cache.put_task_list, cache_key, tasks)

        return TaskListResponse(
            tasks=tasks,
            total=total,
            page=task_filter.page,
            page_size=task_filter.page_size,
            total_pages=max(1, math.ceil(total / task_filter.page_size)),
        )

    async def update_task(self, task_id: str, request: UpdateTaskRequest) -> Task:
        """Apply a partial update to an existing task."""
        # Mutations always start from the authoritative copy.
        task = self._unwrap(await self.repository.get_by_id(task_id), "get task", task_id)

        changes = request.model_dump(exclude_none=True)
        if "title" in changes and not changes["title"]:
            raise InvalidInputError("Title must not be empty", {"field": "title"})
        if "status" in changes:
            self._validate_status(changes["status"])
            changes["status"] = TaskStatus(changes["status"])

        # updated_at never moves backwards, even if the clock does.
        changes["updated_at"] = max(utcnow(), task.updated_at)
        updated = task.model_copy(update=changes)

        self._unwrap(await self.repository.update(updated), "update task", task_id)

        await self._invalidate(task_id)

        self.logger.info("Task updated", task_id=task_id, fields=sorted(changes))
        return updated

    async def delete_task(self, task_id: str) -> None:
        """Delete a task."""
        self._unwrap(await self.repository.delete(task_id), "delete task", task_id)

        await self._invalidate(task_id)

        self.logger.info("Task deleted", task_id=task_id)

    async def get_task_count(self) -> int:
        """Total number of tasks, always read from the store."""
        return self._unwrap(await self.repository.count(), "count tasks")
