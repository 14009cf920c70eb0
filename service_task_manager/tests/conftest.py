"""
Shared fixtures for Task Manager tests.
"""

import pytest

from service_task_manager.app.cache import RedisTaskCache
from service_task_manager.app.repository import InMemoryTaskRepository
from service_task_manager.app.service import TaskService

from .factories import BrokenCache, InMemoryRedis


@pytest.fixture
def repository():
    """Empty in-memory task store."""
    return InMemoryTaskRepository()


@pytest.fixture
def fake_redis():
    """In-process stand-in for the Redis client."""
    return InMemoryRedis()


@pytest.fixture
def cache(fake_redis):
    """Redis task cache over the in-process client."""
    return RedisTaskCache(client=fake_redis, ttl_seconds=300)


@pytest.fixture
def broken_cache():
    return BrokenCache()


@pytest.fixture
def service(repository, cache):
    """Task service with a working cache."""
    return TaskService(repository, cache)


@pytest.fixture
def uncached_service(repository):
    """Task service without a cache."""
    return TaskService(repository)
