"""枚举定义 -- 与数据库 CHECK 约束逐字对应

包含 TaskStatus 状态机、TaskPriority、StepStatus、ReviewStatus、ReviewBucket 枚举，
以及 VALID_TRANSITIONS 合法流转映射和看板列顺序。
"""

from enum import StrEnum


class TaskStatus(StrEnum):
    """Task 状态机（看板的四列）"""

    INBOX = "inbox"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"
    DONE = "done"


class TaskPriority(StrEnum):
    """Task 优先级，与状态正交"""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class StepStatus(StrEnum):
    """TaskStep 状态"""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class ReviewStatus(StrEnum):
    """TaskReview 状态"""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ReviewBucket(StrEnum):
    """Review 列子筛选"""

    ALL = "all"
    APPROVAL_NEEDED = "approval_needed"
    BLOCKED = "blocked"


# 看板列顺序
BOARD_COLUMNS: tuple[TaskStatus, ...] = (
    TaskStatus.INBOX,
    TaskStatus.IN_PROGRESS,
    TaskStatus.REVIEW,
    TaskStatus.DONE,
)

# 优先级排名（数值越大越优先），与枚举声明顺序一致
PRIORITY_RANK: dict[TaskPriority, int] = {
    TaskPriority.LOW: 0,
    TaskPriority.MEDIUM: 1,
    TaskPriority.HIGH: 2,
    TaskPriority.CRITICAL: 3,
}

# 完全图：人工拖拽可将任意卡片移到任意列，包括把 done 重新打开
VALID_TRANSITIONS: dict[TaskStatus, set[TaskStatus]] = {
    status: {target for target in TaskStatus if target != status}
    for status in TaskStatus
}


def validate_transition(from_status: TaskStatus, to_status: TaskStatus) -> bool:
    """验证状态流转是否合法

    Args:
        from_status: 当前状态
        to_status: 目标状态

    Returns:
        True 如果流转合法（两状态不同），否则 False
    """
    allowed = VALID_TRANSITIONS.get(from_status, set())
    return to_status in allowed
