"""Mission Control Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .enums import (
    BOARD_COLUMNS,
    PRIORITY_RANK,
    VALID_TRANSITIONS,
    ReviewBucket,
    ReviewStatus,
    StepStatus,
    TaskPriority,
    TaskStatus,
    validate_transition,
)
from .requirement import Requirement, RequirementCreate, RequirementPatch
from .review import ReviewCreate, ReviewResolve, TaskReview
from .step import StepCreate, TaskStep
from .task import Task, TaskCreate, TaskPatch
from .validation import parse_model

__all__ = [
    # 枚举
    "TaskStatus",
    "TaskPriority",
    "StepStatus",
    "ReviewStatus",
    "ReviewBucket",
    "BOARD_COLUMNS",
    "PRIORITY_RANK",
    # 状态机
    "VALID_TRANSITIONS",
    "validate_transition",
    # Task
    "Task",
    "TaskCreate",
    "TaskPatch",
    # Step
    "TaskStep",
    "StepCreate",
    # Review
    "TaskReview",
    "ReviewCreate",
    "ReviewResolve",
    # Requirement
    "Requirement",
    "RequirementCreate",
    "RequirementPatch",
    # 校验
    "parse_model",
]
