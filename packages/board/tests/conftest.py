"""packages/board 测试配置 -- 内存仓储与任务工厂"""

import asyncio
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
from missionctl.core.exceptions import NotFoundError
from missionctl.core.models import (
    Task,
    TaskCreate,
    TaskPatch,
    TaskReview,
    TaskStep,
    parse_model,
)

BASE_TIME = datetime(2026, 10, 17, 9, 0, tzinfo=UTC)


def make_task(task_id: int, **overrides) -> Task:
    values: dict[str, Any] = {
        "id": task_id,
        "title": f"task {task_id}",
        "created_at": BASE_TIME + timedelta(minutes=task_id),
        "updated_at": BASE_TIME + timedelta(minutes=task_id),
    }
    values.update(overrides)
    return Task(**values)


class FakeRepository:
    """内存 TaskRepository：记录调用，可注入失败与延迟"""

    def __init__(self, tasks: list[Task] | None = None) -> None:
        self.tasks: dict[int, Task] = {task.id: task for task in tasks or []}
        self.steps: dict[int, list[TaskStep]] = {}
        self.reviews: dict[int, list[TaskReview]] = {}
        self.calls: list[tuple[str, tuple]] = []
        self.fail_with: dict[str, Exception] = {}
        self.patch_gate: asyncio.Event | None = None
        self._next_id = max(self.tasks, default=0) + 1

    def _record(self, name: str, *args) -> None:
        self.calls.append((name, args))
        error = self.fail_with.get(name)
        if error is not None:
            raise error

    def calls_to(self, name: str) -> list[tuple]:
        return [args for call, args in self.calls if call == name]

    async def list_tasks(self, filters=None, order=None) -> list[Task]:
        self._record("list_tasks")
        return list(self.tasks.values())

    async def get_task(self, task_id: int) -> Task:
        self._record("get_task", task_id)
        if task_id not in self.tasks:
            raise NotFoundError("task", task_id)
        return self.tasks[task_id]

    async def create_task(self, data) -> Task:
        payload = parse_model(TaskCreate, data)
        self._record("create_task", payload)
        task = make_task(self._next_id, **payload.model_dump())
        self.tasks[task.id] = task
        self._next_id += 1
        return task

    async def patch_task(self, task_id: int, fields) -> Task:
        changes = parse_model(TaskPatch, fields).changes()
        if self.patch_gate is not None:
            await self.patch_gate.wait()
        self._record("patch_task", task_id, changes)
        if task_id not in self.tasks:
            raise NotFoundError("task", task_id)
        self.tasks[task_id] = self.tasks[task_id].model_copy(update=changes)
        return self.tasks[task_id]

    async def delete_task(self, task_id: int) -> None:
        self._record("delete_task", task_id)
        if self.tasks.pop(task_id, None) is None:
            raise NotFoundError("task", task_id)
        self.steps.pop(task_id, None)
        self.reviews.pop(task_id, None)

    async def list_steps(self, task_id: int) -> list[TaskStep]:
        self._record("list_steps", task_id)
        return list(self.steps.get(task_id, []))

    async def list_reviews(self, task_id: int) -> list[TaskReview]:
        self._record("list_reviews", task_id)
        return list(self.reviews.get(task_id, []))


@pytest.fixture
def fake_repo() -> FakeRepository:
    return FakeRepository(
        [
            make_task(1, status="inbox", priority="high"),
            make_task(2, status="in_progress", started_at=BASE_TIME),
            make_task(3, status="review", metadata={"review_reason": "approve deploy"}),
            make_task(4, status="review"),
            make_task(5, status="done", completed_at=BASE_TIME),
        ]
    )


@pytest.fixture
def task_factory():
    """Task 工厂：task_factory(id, **fields)"""
    return make_task


@pytest.fixture
def base_time() -> datetime:
    return BASE_TIME
