"""
Redis caching layer for the Task Manager service.
"""

import json
from typing import Dict, List, Optional

import redis.asyncio as redis
from pydantic import TypeAdapter, ValidationError
from redis.exceptions import RedisError

from shared.errors import CacheError
from shared.logging import get_logger

from ..models import Task
from .base import DEFAULT_CACHE_TTL, TASK_LIST_PATTERN, TaskCache, task_key

_TASK_LIST_ADAPTER = TypeAdapter(List[Task])
_EVICT_BATCH_SIZE = 100


class RedisTaskCache(TaskCache):
    """Redis cache for tasks and task list pages."""

    def __init__(
        self,
        redis_url: Optional[str] = None,
        *,
        client: Optional[redis.Redis] = None,
        ttl_seconds: int = DEFAULT_CACHE_TTL,
        socket_timeout: float = 5.0,
    ):
        if redis_url is None and client is None:
            raise ValueError("redis_url or client is required")
        self.redis_url = redis_url
        self.ttl_seconds = ttl_seconds
        self.socket_timeout = socket_timeout
        self.logger = get_logger("task-manager.cache.redis")
        self.redis: Optional[redis.Redis] = client
        self._stats: Dict[str, int] = {"hits": 0, "misses": 0, "errors": 0}

    def _get_redis(self) -> redis.Redis:
        """Get Redis connection."""
        if self.redis is None:
            self.redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=self.socket_timeout,
                socket_timeout=self.socket_timeout,
                health_check_interval=30,
            )
        return self.redis

    async def start(self):
        """Connect and verify the Redis server is reachable."""
        try:
            await self._get_redis().ping()
            self.logger.info("Redis cache started", ttl_seconds=self.ttl_seconds)
        except RedisError as e:
            self.logger.error("Failed to start Redis cache", error=str(e))
            raise CacheError("Failed to start Redis cache", cause=e) from e

    async def stop(self):
        """Close the Redis client."""
        if self.redis is not None:
            await self.redis.aclose()
            self.redis = None
            self.logger.info("Redis cache stopped")

    async def health_check(self) -> bool:
        try:
            await self._get_redis().ping()
            return True
        except RedisError:
            return False

    def stats(self) -> Dict[str, int]:
        return dict(self._stats)

    def _fail(self, message: str, error: Exception, **context) -> CacheError:
        self._stats["errors"] += 1
        self.logger.debug(message, error=str(error), **context)
        return CacheError(message, cause=error, details=context)

    def _record_lookup(self, hit: bool, key: str):
        self._stats["hits" if hit else "misses"] += 1
        self.logger.debug("Cache hit" if hit else "Cache miss", cache_key=key)

    async def get_task(self, task_id: str) -> Optional[Task]:
        key = task_key(task_id)
        try:
            cached_data = await self._get_redis().get(key)
        except RedisError as e:
            raise self._fail("Failed to read task from cache", e, cache_key=key) from e

        if cached_data is None:
            self._record_lookup(False, key)
            return None

        try:
            task = Task.model_validate_json(cached_data)
        except ValidationError as e:
            raise self._fail("Failed to decode cached task", e, cache_key=key) from e

        self._record_lookup(True, key)
        return task

    async def put_task(self, task: Task) -> None:
        key = task_key(task.id)
        try:
            await self._get_redis().set(key, task.model_dump_json(), ex=self.ttl_seconds)
        except RedisError as e:
            raise self._fail("Failed to cache task", e, cache_key=key) from e

    async def evict_task(self, task_id: str) -> None:
        key = task_key(task_id)
        try:
            await self._get_redis().delete(key)
        except RedisError as e:
            raise self._fail("Failed to evict task from cache", e, cache_key=key) from e

    async def get_task_list(self, key: str) -> Optional[List[Task]]:
        try:
            cached_data = await self._get_redis().get(key)
        except RedisError as e:
            raise self._fail("Failed to read task list from cache", e, cache_key=key) from e

        if cached_data is None:
            self._record_lookup(False, key)
            return None

        try:
            tasks = _TASK_LIST_ADAPTER.validate_json(cached_data)
        except ValidationError as e:
            raise self._fail("Failed to decode cached task list", e, cache_key=key) from e

        self._record_lookup(True, key)
        return tasks

    async def put_task_list(self, key: str, tasks: List[Task]) -> None:
        payload = json.dumps([task.model_dump(mode="json") for task in tasks])
        try:
            await self._get_redis().set(key, payload, ex=self.ttl_seconds)
        except RedisError as e:
            raise self._fail("Failed to cache task list", e, cache_key=key) from e

    async def evict_all_task_lists(self) -> int:
        client = self._get_redis()
        removed = 0
        batch: List[str] = []
        try:
            async for key in client.scan_iter(match=TASK_LIST_PATTERN, count=_EVICT_BATCH_SIZE):
                batch.append(key)
                if len(batch) >= _EVICT_BATCH_SIZE:
                    removed += await client.delete(*batch)
                    batch = []
            if batch:
                removed += await client.delete(*batch)
        except RedisError as e:
            raise self._fail("Failed to evict task lists from cache", e, pattern=TASK_LIST_PATTERN) from e

        self.logger.debug("Invalidated task lists", count=removed)
        return removed
