"""
PostgreSQL task store.
"""

from typing import Any, List, Optional, Tuple

import asyncpg

from shared.errors import StorageError
from shared.logging import get_logger

from ..models import Task, TaskFilter, TaskStatus
from .base import StoreResult, TaskRepository

TASK_COLUMNS = "id, title, description, status, assignee, created_at, updated_at"


def _affected_rows(command_tag: str) -> int:
    """Parse the row count from an asyncpg command tag such as ``UPDATE 1``."""
    try:
        return int(command_tag.rsplit(" ", 1)[-1])
    except (AttributeError, ValueError):
        return 0


class PostgresTaskRepository(TaskRepository):
    """PostgreSQL persistence layer for tasks."""

    def __init__(
        self,
        dsn: str,
        *,
        min_pool_size: int = 2,
        max_pool_size: int = 10,
        command_timeout: float = 30.0,
    ):
        self.dsn = dsn
        self.min_pool_size = min_pool_size
        self.max_pool_size = max_pool_size
        self.command_timeout = command_timeout
        self.logger = get_logger("task-manager.repository.postgres")
        self.pool: Optional[asyncpg.Pool] = None

    async def start(self):
        """Create the connection pool and bootstrap the schema."""
        try:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=self.min_pool_size,
                max_size=self.max_pool_size,
                command_timeout=self.command_timeout,
            )
            await self._create_tables()
            self.logger.info("PostgreSQL task store started")
        except Exception as e:
            self.logger.error("Failed to start PostgreSQL task store", error=str(e))
            raise StorageError("Failed to start PostgreSQL task store", cause=e) from e

    async def stop(self):
        """Close the connection pool."""
        if self.pool:
            await self.pool.close()
            self.pool = None
            self.logger.info("PostgreSQL task store stopped")

    async def _create_tables(self):
        async with self.pool.acquire() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS tasks (
                    id VARCHAR(36) PRIMARY KEY,
                    title VARCHAR(255) NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    status VARCHAR(50) NOT NULL,
                    assignee VARCHAR(255) NOT NULL DEFAULT '',
                    created_at TIMESTAMP WITH TIME ZONE NOT NULL,
                    updated_at TIMESTAMP WITH TIME ZONE NOT NULL
                );
            """)
            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status);
            """)
            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_tasks_assignee ON tasks(assignee);
            """)
            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_tasks_created_at ON tasks(created_at DESC);
            """)

    async def create(self, task: Task) -> StoreResult[None]:
        try:
            async with self.pool.acquire() as conn:
                await conn.execute(
                    f"INSERT INTO tasks ({TASK_COLUMNS}) VALUES ($1, $2, $3, $4, $5, $6, $7)",
                    task.id, task.title, task.description, task.status.value,
                    task.assignee, task.created_at, task.updated_at,
                )
            return StoreResult.ok()
        except Exception as e:
            self.logger.error("Error creating task", task_id=task.id, error=str(e))
            return StoreResult.error(e)

    async def get_by_id(self, task_id: str) -> StoreResult[Task]:
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"SELECT {TASK_COLUMNS} FROM tasks WHERE id = $1", task_id
                )
            if not row:
                return StoreResult.not_found()
            return StoreResult.ok(self._row_to_task(row))
        except Exception as e:
            self.logger.error("Error loading task", task_id=task_id, error=str(e))
            return StoreResult.error(e)

    async def get_all(self, task_filter: TaskFilter) -> StoreResult[Tuple[List[Task], int]]:
        task_filter = task_filter.normalized()
        where_clauses: List[str] = []
        args: List[Any] = []

        if task_filter.status is not None:
            args.append(task_filter.status)
            where_clauses.append(f"status = ${len(args)}")
        if task_filter.assignee is not None:
            args.append(task_filter.assignee)
            where_clauses.append(f"assignee = ${len(args)}")

        where_sql = f"WHERE {' AND '.join(where_clauses)}" if where_clauses else ""
        limit_pos = len(args) + 1

        try:
            async with self.pool.acquire() as conn:
                total = await conn.fetchval(f"SELECT COUNT(*) FROM tasks {where_sql}", *args)
                rows = await conn.fetch(
                    f"""
                    SELECT {TASK_COLUMNS} FROM tasks
                    {where_sql}
                    ORDER BY created_at DESC
                    LIMIT ${limit_pos} OFFSET ${limit_pos + 1}
                    """,
                    *args, task_filter.page_size, task_filter.offset,
                )
            return StoreResult.ok(([self._row_to_task(row) for row in rows], total or 0))
        except Exception as e:
            self.logger.error("Error listing tasks", error=str(e))
            return StoreResult.error(e)

    async def update(self, task: Task) -> StoreResult[None]:
        try:
            async with self.pool.acquire() as conn:
                result = await conn.execute(
                    """
                    UPDATE tasks
                    SET title = $1, description = $2, status = $3, assignee = $4, updated_at = $5
                    WHERE id = $6
                    """,
                    task.title, task.description, task.status.value,
                    task.assignee, task.updated_at, task.id,
                )
            if _affected_rows(result) == 0:
                self.logger.warning("Task not found for update", task_id=task.id)
                return StoreResult.not_found()
            return StoreResult.ok()
        except Exception as e:
            self.logger.error("Error updating task", task_id=task.id, error=str(e))
            return StoreResult.error(e)

    async def delete(self, task_id: str) -> StoreResult[None]:
        try:
            async with self.pool.acquire() as conn:
                result = await conn.execute("DELETE FROM tasks WHERE id = $1", task_id)
            if _affected_rows(result) == 0:
                self.logger.warning("Task not found for deletion", task_id=task_id)
                return StoreResult.not_found()
            return StoreResult.ok()
        except Exception as e:
            self.logger.error("Error deleting task", task_id=task_id, error=str(e))
            return StoreResult.error(e)

    async def count(self) -> StoreResult[int]:
        try:
            async with self.pool.acquire() as conn:
                count = await conn.fetchval("SELECT COUNT(*) FROM tasks")
            return StoreResult.ok(count or 0)
        except Exception as e:
            self.logger.error("Error counting tasks", error=str(e))
            return StoreResult.error(e)

    def _row_to_task(self, row) -> Task:
        """Convert database row to Task object."""
        return Task(
            id=row['id'],
            title=row['title'],
            description=row['description'] or "",
            status=TaskStatus(row['status']),
            assignee=row['assignee'] or "",
            created_at=row['created_at'],
            updated_at=row['updated_at'],
        )

    async def health_check(self) -> bool:
        """Check database health."""
        if self.pool is None:
            return False
        try:
            async with self.pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
                return True
        except Exception:
            return False
