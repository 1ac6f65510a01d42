"""TaskService -- 任务写操作与快照推送

包装 TaskRepository：每次任务变更成功后，向 SSE 订阅者推送一次完整任务列表。
步骤、审核、Requirement 的读写直接走仓储；删除 Requirement 会置空任务的
requirement_id，因此同样触发推送。
"""

from typing import Any

import structlog
from missionctl.core.models import Task, TaskCreate, TaskPatch
from missionctl.core.store import DEFAULT_TASK_ORDER, TaskRepository

from .sse_hub import SSEHub, TaskSnapshot

log = structlog.get_logger()


class TaskService:
    """任务业务服务"""

    def __init__(self, repository: TaskRepository, sse_hub: SSEHub | None = None) -> None:
        self._repository = repository
        self._sse_hub = sse_hub

    @property
    def repository(self) -> TaskRepository:
        return self._repository

    async def list_tasks(
        self,
        filters: dict[str, Any] | None = None,
        order: list[tuple[str, bool]] | None = None,
    ) -> list[Task]:
        return await self._repository.list_tasks(filters, order)

    async def create_task(self, data: TaskCreate | dict[str, Any]) -> Task:
        task = await self._repository.create_task(data)
        await self.publish()
        return task

    async def patch_task(self, task_id: int, fields: TaskPatch | dict[str, Any]) -> Task:
        task = await self._repository.patch_task(task_id, fields)
        await self.publish()
        return task

    async def delete_task(self, task_id: int) -> None:
        await self._repository.delete_task(task_id)
        await self.publish()

    async def delete_requirement(self, requirement_id: int) -> None:
        await self._repository.delete_requirement(requirement_id)
        await self.publish()

    async def snapshot(self) -> TaskSnapshot:
        """按看板默认顺序返回完整任务列表"""
        tasks = await self._repository.list_tasks(None, DEFAULT_TASK_ORDER)
        return [task.model_dump(mode="json") for task in tasks]

    async def publish(self) -> None:
        """向订阅者推送快照；无订阅者时跳过查询"""
        if self._sse_hub is None or self._sse_hub.subscriber_count == 0:
            return
        snapshot = await self.snapshot()
        await self._sse_hub.broadcast(snapshot)
        await log.adebug(
            "task_snapshot_published",
            tasks=len(snapshot),
            subscribers=self._sse_hub.subscriber_count,
        )
