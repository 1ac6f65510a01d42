"""Repository Protocol 接口定义

TaskRepository 是看板与存储之间唯一的接缝。SQLite 实现（core）与
HTTP 实现（client）都满足该接口，使用 Python Protocol 实现结构化子类型。
每个方法都是独立调用，不存在跨调用事务。
"""

from typing import Any, Protocol

from ..models.requirement import Requirement, RequirementCreate, RequirementPatch
from ..models.review import ReviewCreate, ReviewResolve, TaskReview
from ..models.step import StepCreate, TaskStep
from ..models.task import Task, TaskCreate, TaskPatch


class TaskRepository(Protocol):
    """Task 仓储接口"""

    async def list_tasks(
        self,
        filters: dict[str, Any] | None = None,
        order: list[tuple[str, bool]] | None = None,
    ) -> list[Task]:
        """按 priority desc, created_at desc, id asc 返回任务列表"""
        ...

    async def get_task(self, task_id: int) -> Task:
        """查询单个任务，不存在时抛出 NotFoundError"""
        ...

    async def create_task(self, data: TaskCreate | dict[str, Any]) -> Task:
        """创建任务，标题为空时抛出 ValidationError 且不写入"""
        ...

    async def patch_task(self, task_id: int, fields: TaskPatch | dict[str, Any]) -> Task:
        """部分更新任务，不自动填充 started_at / completed_at"""
        ...

    async def delete_task(self, task_id: int) -> None:
        """删除任务（级联删除 steps / reviews），不存在时抛出 NotFoundError"""
        ...

    async def list_steps(self, task_id: int) -> list[TaskStep]:
        """sort_order asc, created_at asc；任务不存在时返回空列表"""
        ...

    async def append_step(self, task_id: int, data: StepCreate | dict[str, Any]) -> TaskStep:
        ...

    async def list_reviews(self, task_id: int) -> list[TaskReview]:
        """created_at desc；任务不存在时返回空列表"""
        ...

    async def append_review(
        self,
        task_id: int,
        data: ReviewCreate | dict[str, Any],
    ) -> TaskReview:
        ...

    async def resolve_review(
        self,
        review_id: int,
        data: ReviewResolve | dict[str, Any],
    ) -> TaskReview:
        ...

    async def list_requirements(self) -> list[Requirement]:
        ...

    async def create_requirement(
        self,
        data: RequirementCreate | dict[str, Any],
    ) -> Requirement:
        """cron_job_id 重复时抛出 ConflictError"""
        ...

    async def patch_requirement(
        self,
        requirement_id: int,
        fields: RequirementPatch | dict[str, Any],
    ) -> Requirement:
        ...

    async def delete_requirement(self, requirement_id: int) -> None:
        """删除 Requirement，关联任务保留（requirement_id 置空）"""
        ...
