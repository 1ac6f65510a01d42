"""Task 状态流转的进入动作

状态图是四个状态上的完全图，没有流转会被拒绝。进入动作由发起方施加，
存储层不强制：
- 首次进入 in_progress：started_at 未设置时写入 now
- 进入 done：completed_at 写入 now
- 离开 done：completed_at 保留（历史事实）
"""

from datetime import UTC, datetime
from typing import Any

from .models.enums import TaskStatus
from .models.task import Task


def utcnow() -> datetime:
    """当前 UTC 时间"""
    return datetime.now(UTC)


def entry_action_fields(
    task: Task | None,
    target: TaskStatus,
    now: datetime | None = None,
) -> dict[str, Any]:
    """计算一次状态流转需要提交的 PATCH 字段

    Args:
        task: 流转前的任务（未知时为 None，按 started_at 未设置处理）
        target: 目标状态
        now: 当前时间，默认 UTC now

    Returns:
        包含 status 及进入动作时间戳的字段字典
    """
    now = now or utcnow()
    fields: dict[str, Any] = {"status": TaskStatus(target)}
    if target == TaskStatus.IN_PROGRESS and (task is None or task.started_at is None):
        fields["started_at"] = now
    if target == TaskStatus.DONE:
        fields["completed_at"] = now
    return fields


def apply_transition(
    task: Task,
    target: TaskStatus,
    now: datetime | None = None,
) -> Task:
    """返回施加进入动作后的任务副本（不修改原对象）"""
    return task.model_copy(update=entry_action_fields(task, target, now))
