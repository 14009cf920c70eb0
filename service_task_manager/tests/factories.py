"""
Test data builders and test doubles.
"""

from datetime import timedelta
from fnmatch import fnmatchcase
from typing import Dict, List, Optional

from shared.errors import CacheError
from service_task_manager.app.cache import TaskCache
from service_task_manager.app.models import Task, utcnow


def make_task(index: int = 0, **overrides) -> Task:
    """Build a task whose creation time increases with ``index``."""
    created = utcnow() - timedelta(hours=1) + timedelta(seconds=index)
    fields = {
        "id": f"task-{index:03d}",
        "title": f"Task {index}",
        "description": f"Description {index}",
        "status": "pending",
        "assignee": "john.doe@example.com",
        "created_at": created,
        "updated_at": created,
    }
    fields.update(overrides)
    return Task(**fields)


class BrokenCache(TaskCache):
    """Cache whose every operation fails, as during a Redis outage."""

    def __init__(self):
        self.calls: List[str] = []

    def _fail(self, operation: str):
        self.calls.append(operation)
        raise CacheError(f"{operation} failed", cause=ConnectionError("redis down"))

    async def get_task(self, task_id: str) -> Optional[Task]:
        self._fail("get_task")

    async def put_task(self, task: Task) -> None:
        self._fail("put_task")

    async def evict_task(self, task_id: str) -> None:
        self._fail("evict_task")

    async def get_task_list(self, key: str) -> Optional[List[Task]]:
        self._fail("get_task_list")

    async def put_task_list(self, key: str, tasks: List[Task]) -> None:
        self._fail("put_task_list")

    async def evict_all_task_lists(self) -> int:
        self._fail("evict_all_task_lists")


class InMemoryRedis:
    """Subset of the ``redis.asyncio.Redis`` API the task cache uses."""

    def __init__(self):
        self.data: Dict[str, str] = {}
        self.expiry: Dict[str, int] = {}
        # Keys touched by SET or DEL, in call order.
        self.writes: List[str] = []

    async def ping(self) -> bool:
        return True

    async def aclose(self):
        pass

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str, ex: Optional[int] = None) -> bool:
        self.writes.append(key)
        self.data[key] = value
        if ex is None:
            self.expiry.pop(key, None)
        else:
            self.expiry[key] = ex
        return True

    async def delete(self, *keys: str) -> int:
        self.writes.extend(keys)
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
            self.expiry.pop(key, None)
        return removed

    async def exists(self, key: str) -> int:
        return int(key in self.data)

    async def ttl(self, key: str) -> int:
        if key not in self.data:
            return -2
        return self.expiry.get(key, -1)

    async def scan_iter(self, match: str = "*", count: Optional[int] = None):
        for key in list(self.data):
            if fnmatchcase(key, match):
                yield key
