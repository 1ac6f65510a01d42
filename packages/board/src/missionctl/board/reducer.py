"""看板 Reducer -- 纯函数，不修改输入

- group_by_status: 按列稳定分区（不排序，列内顺序沿用仓储返回顺序）
- Review 列子分桶：approval_needed / blocked / all
- move_task: 乐观移动，施加进入动作后返回新列表
"""

from collections.abc import Iterable, Sequence
from datetime import datetime

from missionctl.core.lifecycle import apply_transition
from missionctl.core.models import BOARD_COLUMNS, ReviewBucket, Task, TaskStatus
from pydantic import BaseModel


class ReviewCounts(BaseModel):
    """Review 列各子分桶的卡片数"""

    all: int = 0
    approval_needed: int = 0
    blocked: int = 0


def group_by_status(tasks: Iterable[Task]) -> dict[TaskStatus, list[Task]]:
    """按状态列稳定分区

    返回的字典总是包含四个列（按看板顺序），空列为空列表。
    """
    columns: dict[TaskStatus, list[Task]] = {status: [] for status in BOARD_COLUMNS}
    for task in tasks:
        columns[task.status].append(task)
    return columns


def has_review_reason(task: Task) -> bool:
    """metadata.review_reason 存在且为真值"""
    return bool(task.review_reason)


def filter_review(tasks: Sequence[Task], bucket: ReviewBucket) -> list[Task]:
    """Review 列子筛选（只读视图，不修改任务数据）

    Args:
        tasks: Review 列的任务（其他状态的任务会被忽略）
        bucket: 子分桶
    """
    review = [task for task in tasks if task.status == TaskStatus.REVIEW]
    if bucket == ReviewBucket.APPROVAL_NEEDED:
        return [task for task in review if has_review_reason(task)]
    if bucket == ReviewBucket.BLOCKED:
        return [task for task in review if not has_review_reason(task)]
    return review


def review_counts(tasks: Sequence[Task]) -> ReviewCounts:
    review = [task for task in tasks if task.status == TaskStatus.REVIEW]
    approval_needed = sum(1 for task in review if has_review_reason(task))
    return ReviewCounts(
        all=len(review),
        approval_needed=approval_needed,
        blocked=len(review) - approval_needed,
    )


def find_task(tasks: Sequence[Task], task_id: int) -> Task | None:
    for task in tasks:
        if task.id == task_id:
            return task
    return None


def move_task(
    tasks: Sequence[Task],
    task_id: int,
    target: TaskStatus,
    now: datetime | None = None,
) -> list[Task]:
    """乐观移动：把任务放入目标列

    任务在列表中的位置不变，group_by_status 会把它分到新列。
    目标状态与当前状态相同或任务不存在时，返回内容不变的新列表。
    """
    moved: list[Task] = []
    for task in tasks:
        if task.id == task_id and task.status != target:
            task = apply_transition(task, target, now)
        moved.append(task)
    return moved
