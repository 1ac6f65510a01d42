"""BoardStore -- 看板内存状态的唯一持有者

一个看板视图对应一个 BoardStore，不与其他视图共享。
服务端数据每次刷新整体替换，但仍在途的乐观移动会覆盖在刷新结果之上，
直到对应的 PATCH 结束；之后的下一次刷新即为最终结果（last-write-wins）。
"""

import itertools
from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Any

import structlog
from missionctl.core.models import ReviewBucket, Task, TaskReview, TaskStatus, TaskStep
from pydantic import BaseModel, Field

from .reducer import find_task, group_by_status

log = structlog.get_logger()

Listener = Callable[["BoardStore"], None]


class TaskDetail(BaseModel):
    """详情视图数据"""

    task: Task
    steps: list[TaskStep] = Field(default_factory=list)
    reviews: list[TaskReview] = Field(default_factory=list)


class BoardStore:
    """可注入的看板状态容器"""

    def __init__(self, tasks: Sequence[Task] | None = None) -> None:
        self.tasks: list[Task] = list(tasks or [])
        self.selected_task_id: int | None = None
        self.review_bucket: ReviewBucket = ReviewBucket.ALL
        self.error: str | None = None
        self.loaded: bool = False
        self.last_refreshed_at: datetime | None = None
        # task_id -> (move token, 乐观字段)
        self._pending: dict[int, tuple[int, dict[str, Any]]] = {}
        self._tokens = itertools.count(1)
        self._listeners: list[Listener] = []

    # ============================================================
    # 派生视图
    # ============================================================

    @property
    def columns(self) -> dict[TaskStatus, list[Task]]:
        return group_by_status(self.tasks)

    @property
    def selected_task(self) -> Task | None:
        if self.selected_task_id is None:
            return None
        return find_task(self.tasks, self.selected_task_id)

    @property
    def pending_task_ids(self) -> set[int]:
        return set(self._pending)

    # ============================================================
    # 状态变更
    # ============================================================

    def replace_tasks(self, tasks: Sequence[Task], refreshed_at: datetime | None = None) -> None:
        """用服务端结果整体替换本地任务（在途乐观移动除外）

        若当前详情视图的任务已不存在，详情静默关闭。
        """
        fetched_ids = {task.id for task in tasks}
        for task_id in [tid for tid in self._pending if tid not in fetched_ids]:
            # 任务已被删除，乐观覆盖作废
            del self._pending[task_id]

        merged: list[Task] = []
        for task in tasks:
            pending = self._pending.get(task.id)
            if pending is not None:
                task = task.model_copy(update=pending[1])
            merged.append(task)
        self.tasks = merged
        self.loaded = True
        self.last_refreshed_at = refreshed_at

        if self.selected_task_id is not None and find_task(merged, self.selected_task_id) is None:
            log.info("detail_closed_task_gone", task_id=self.selected_task_id)
            self.selected_task_id = None
        self._notify()

    def begin_move(self, task_id: int, fields: dict[str, Any]) -> int:
        """登记在途乐观移动并立即施加到本地任务

        Returns:
            本次移动的 token，settle_move 时需要匹配
        """
        token = next(self._tokens)
        self._pending[task_id] = (token, dict(fields))
        self.tasks = [
            task.model_copy(update=fields) if task.id == task_id else task
            for task in self.tasks
        ]
        self._notify()
        return token

    def settle_move(self, task_id: int, token: int) -> None:
        """PATCH 结束（成功或失败）后解除覆盖；同一任务的更新移动不受影响"""
        pending = self._pending.get(task_id)
        if pending is not None and pending[0] == token:
            del self._pending[task_id]

    def select(self, task_id: int | None) -> None:
        self.selected_task_id = task_id
        self._notify()

    def close_detail(self) -> None:
        self.select(None)

    def set_review_bucket(self, bucket: ReviewBucket) -> None:
        self.review_bucket = ReviewBucket(bucket)
        self._notify()

    def set_error(self, message: str) -> None:
        self.error = message
        self._notify()

    def acknowledge_error(self) -> None:
        self.error = None
        self._notify()

    # ============================================================
    # 订阅
    # ============================================================

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """注册状态变更回调，返回取消订阅函数"""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)
