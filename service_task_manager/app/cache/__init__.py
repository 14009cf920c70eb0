from .base import (
    DEFAULT_CACHE_TTL,
    TASK_LIST_PATTERN,
    TASK_LIST_PREFIX,
    TaskCache,
    derive_list_key,
    task_key,
)
from .redis_cache import RedisTaskCache

__all__ = [
    "DEFAULT_CACHE_TTL",
    "TASK_LIST_PATTERN",
    "TASK_LIST_PREFIX",
    "TaskCache",
    "RedisTaskCache",
    "derive_list_key",
    "task_key",
]
