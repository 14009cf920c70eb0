from .base import StoreOutcome, StoreResult, TaskRepository
from .memory import InMemoryTaskRepository
from .postgres import PostgresTaskRepository

__all__ = [
    "StoreOutcome",
    "StoreResult",
    "TaskRepository",
    "InMemoryTaskRepository",
    "PostgresTaskRepository",
]
