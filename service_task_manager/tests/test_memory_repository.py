"""
Tests for the in-memory task store.
"""

import pytest

from service_task_manager.app.models import TaskFilter
from service_task_manager.app.repository import StoreOutcome

from .factories import make_task


class TestInMemoryTaskRepository:

    @pytest.mark.asyncio
    async def test_create_and_get(self, repository):
        task = make_task(1)

        assert (await repository.create(task)).is_ok
        result = await repository.get_by_id(task.id)

        assert result.is_ok
        assert result.value == task

    @pytest.mark.asyncio
    async def test_duplicate_id_is_an_error(self, repository):
        task = make_task(1)
        await repository.create(task)

        result = await repository.create(task)

        assert result.outcome is StoreOutcome.ERROR
        assert isinstance(result.cause, KeyError)

    @pytest.mark.asyncio
    async def test_returned_tasks_are_copies(self, repository):
        task = make_task(1)
        await repository.create(task)

        fetched = (await repository.get_by_id(task.id)).value
        fetched.title = "mutated"

        assert (await repository.get_by_id(task.id)).value.title == task.title

    @pytest.mark.asyncio
    async def test_missing_task(self, repository):
        assert (await repository.get_by_id("nope")).is_not_found
        assert (await repository.update(make_task(99))).is_not_found
        assert (await repository.delete("nope")).is_not_found

    @pytest.mark.asyncio
    async def test_update_and_delete(self, repository):
        task = make_task(1)
        await repository.create(task)

        assert (await repository.update(task.model_copy(update={"title": "Renamed"}))).is_ok
        assert (await repository.get_by_id(task.id)).value.title == "Renamed"

        assert (await repository.delete(task.id)).is_ok
        assert (await repository.count()).value == 0

    @pytest.mark.asyncio
    async def test_get_all_orders_newest_first_and_pages(self, repository):
        for i in range(15):
            await repository.create(make_task(i))

        first = await repository.get_all(TaskFilter(page=1, page_size=10))
        second = await repository.get_all(TaskFilter(page=2, page_size=10))

        tasks, total = first.value
        assert total == 15
        assert [t.id for t in tasks] == [f"task-{i:03d}" for i in range(14, 4, -1)]
        tasks, total = second.value
        assert total == 15
        assert len(tasks) == 5

    @pytest.mark.asyncio
    async def test_get_all_filters(self, repository):
        await repository.create(make_task(1, status="completed", assignee="alice"))
        await repository.create(make_task(2, status="completed", assignee="bob"))
        await repository.create(make_task(3, status="pending", assignee="alice"))

        tasks, total = (await repository.get_all(TaskFilter(status="completed"))).value
        assert total == 2

        tasks, total = (await repository.get_all(TaskFilter(status="completed", assignee="alice"))).value
        assert total == 1
        assert tasks[0].id == "task-001"

    @pytest.mark.asyncio
    async def test_page_past_the_end_is_empty(self, repository):
        await repository.create(make_task(1))

        tasks, total = (await repository.get_all(TaskFilter(page=5))).value

        assert tasks == []
        assert total == 1
