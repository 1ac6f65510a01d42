"""SqliteTaskRepository -- TaskRepository 的 SQLite 实现

每次调用对应一个独立事务：成功提交，失败回滚。
数据库约束错误转换为统一的异常分类：
- UNIQUE 冲突 -> ConflictError
- FOREIGN KEY 失败（父记录不存在） -> NotFoundError
- 连接已关闭、数据库锁超时等连接层故障 -> TransportError
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

import aiosqlite
import structlog

from ..exceptions import ConflictError, NotFoundError, TransportError, ValidationError
from ..models.requirement import Requirement, RequirementCreate, RequirementPatch
from ..models.review import ReviewCreate, ReviewResolve, TaskReview
from ..models.step import StepCreate, TaskStep
from ..models.task import Task, TaskCreate, TaskPatch
from ..models.validation import parse_model

if TYPE_CHECKING:
    from . import StoreGroup

log = structlog.get_logger()


class SqliteTaskRepository:
    """基于 StoreGroup 的任务仓储"""

    def __init__(self, stores: "StoreGroup") -> None:
        self._stores = stores
        # 共享单连接：写事务串行化，避免一个调用的 commit 带走另一个调用的半成品
        self._write_lock = asyncio.Lock()

    @asynccontextmanager
    async def _reachable(self) -> AsyncIterator[None]:
        """将 SQLite 连接层故障转换为 TransportError"""
        try:
            yield
        except aiosqlite.OperationalError as e:
            await log.awarning("store_unreachable", error=str(e))
            raise TransportError(f"SQLite store unreachable: {e}") from e
        except ValueError as e:
            # aiosqlite 对已关闭的连接抛出 ValueError
            if "connection" not in str(e).lower():
                raise
            await log.awarning("store_unreachable", error=str(e))
            raise TransportError(f"SQLite store unreachable: {e}") from e

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        conn = self._stores.conn
        async with self._write_lock, self._reachable():
            try:
                yield conn
                await conn.commit()
            except Exception:
                await conn.rollback()
                raise

    @staticmethod
    def _is_unique_conflict(error: Exception) -> bool:
        return isinstance(error, aiosqlite.IntegrityError) and "UNIQUE" in str(error)

    @staticmethod
    def _is_missing_parent(error: Exception) -> bool:
        return isinstance(error, aiosqlite.IntegrityError) and "FOREIGN KEY" in str(error)

    # ============================================================
    # Task
    # ============================================================

    async def list_tasks(
        self,
        filters: dict[str, Any] | None = None,
        order: list[tuple[str, bool]] | None = None,
    ) -> list[Task]:
        try:
            async with self._reachable():
                return await self._stores.task_store.list_tasks(filters, order)
        except KeyError as e:
            raise ValidationError(f"unsupported column: {e.args[0]}") from e

    async def get_task(self, task_id: int) -> Task:
        async with self._reachable():
            task = await self._stores.task_store.get_task(task_id)
        if task is None:
            raise NotFoundError("task", task_id)
        return task

    async def create_task(self, data: TaskCreate | dict[str, Any]) -> Task:
        payload = parse_model(TaskCreate, data)
        try:
            async with self._transaction():
                task_id = await self._stores.task_store.create_task(payload)
        except aiosqlite.IntegrityError as e:
            if self._is_missing_parent(e):
                raise NotFoundError("requirement", payload.requirement_id) from e
            raise
        await log.ainfo("task_created", task_id=task_id, priority=payload.priority)
        return await self.get_task(task_id)

    async def patch_task(self, task_id: int, fields: TaskPatch | dict[str, Any]) -> Task:
        changes = parse_model(TaskPatch, fields).changes()
        try:
            async with self._transaction():
                updated = await self._stores.task_store.update_task(task_id, changes)
        except aiosqlite.IntegrityError as e:
            if self._is_missing_parent(e):
                raise NotFoundError("requirement", changes.get("requirement_id")) from e
            raise
        if not updated:
            raise NotFoundError("task", task_id)
        await log.ainfo("task_patched", task_id=task_id, fields=sorted(changes))
        return await self.get_task(task_id)

    async def delete_task(self, task_id: int) -> None:
        async with self._transaction():
            deleted = await self._stores.task_store.delete_task(task_id)
        if not deleted:
            raise NotFoundError("task", task_id)
        await log.ainfo("task_deleted", task_id=task_id)

    # ============================================================
    # TaskStep
    # ============================================================

    async def list_steps(self, task_id: int) -> list[TaskStep]:
        async with self._reachable():
            return await self._stores.step_store.list_steps(task_id)

    async def append_step(self, task_id: int, data: StepCreate | dict[str, Any]) -> TaskStep:
        payload = parse_model(StepCreate, data)
        try:
            async with self._transaction():
                step_id = await self._stores.step_store.append_step(task_id, payload)
        except aiosqlite.IntegrityError as e:
            if self._is_missing_parent(e):
                raise NotFoundError("task", task_id) from e
            raise
        async with self._reachable():
            return await self._stores.step_store.get_step(step_id)

    # ============================================================
    # TaskReview
    # ============================================================

    async def list_reviews(self, task_id: int) -> list[TaskReview]:
        async with self._reachable():
            return await self._stores.review_store.list_reviews(task_id)

    async def append_review(
        self,
        task_id: int,
        data: ReviewCreate | dict[str, Any],
    ) -> TaskReview:
        payload = parse_model(ReviewCreate, data)
        try:
            async with self._transaction():
                review_id = await self._stores.review_store.append_review(task_id, payload)
        except aiosqlite.IntegrityError as e:
            if self._is_missing_parent(e):
                raise NotFoundError("task", task_id) from e
            raise
        await log.ainfo("review_requested", task_id=task_id, review_id=review_id)
        async with self._reachable():
            return await self._stores.review_store.get_review(review_id)

    async def resolve_review(
        self,
        review_id: int,
        data: ReviewResolve | dict[str, Any],
    ) -> TaskReview:
        payload = parse_model(ReviewResolve, data)
        async with self._transaction():
            updated = await self._stores.review_store.resolve_review(review_id, payload)
        if not updated:
            raise NotFoundError("review", review_id)
        await log.ainfo("review_resolved", review_id=review_id, status=payload.status)
        async with self._reachable():
            return await self._stores.review_store.get_review(review_id)

    # ============================================================
    # Requirement
    # ============================================================

    async def list_requirements(self) -> list[Requirement]:
        async with self._reachable():
            return await self._stores.requirement_store.list_requirements()

    async def get_requirement(self, requirement_id: int) -> Requirement:
        async with self._reachable():
            requirement = await self._stores.requirement_store.get_requirement(requirement_id)
        if requirement is None:
            raise NotFoundError("requirement", requirement_id)
        return requirement

    async def create_requirement(
        self,
        data: RequirementCreate | dict[str, Any],
    ) -> Requirement:
        payload = parse_model(RequirementCreate, data)
        try:
            async with self._transaction():
                requirement_id = await self._stores.requirement_store.create_requirement(
                    payload
                )
        except aiosqlite.IntegrityError as e:
            if self._is_unique_conflict(e):
                raise ConflictError(
                    f"cron_job_id {payload.cron_job_id!r} is already in use"
                ) from e
            raise
        return await self.get_requirement(requirement_id)

    async def patch_requirement(
        self,
        requirement_id: int,
        fields: RequirementPatch | dict[str, Any],
    ) -> Requirement:
        changes = parse_model(RequirementPatch, fields).changes()
        try:
            async with self._transaction():
                updated = await self._stores.requirement_store.update_requirement(
                    requirement_id, changes
                )
        except aiosqlite.IntegrityError as e:
            if self._is_unique_conflict(e):
                raise ConflictError(
                    f"cron_job_id {changes.get('cron_job_id')!r} is already in use"
                ) from e
            raise
        if not updated:
            raise NotFoundError("requirement", requirement_id)
        return await self.get_requirement(requirement_id)

    async def delete_requirement(self, requirement_id: int) -> None:
        async with self._transaction():
            deleted = await self._stores.requirement_store.delete_requirement(requirement_id)
        if not deleted:
            raise NotFoundError("requirement", requirement_id)
        await log.ainfo("requirement_deleted", requirement_id=requirement_id)
