"""Task Domain Model

tasks 表的一行对应一个 Task。metadata 由生产方（通常是 agent）拥有，
核心层只读取 review_reason 一个键。
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, JsonValue, StrictStr, field_validator

from ..config import REVIEW_REASON_KEY
from .enums import TaskPriority, TaskStatus


def _require_title(value: str) -> str:
    stripped = value.strip()
    if not stripped:
        raise ValueError("title must not be empty")
    return stripped


class Task(BaseModel):
    """Task 数据模型"""

    id: int = Field(description="服务端生成的整数 ID，不可变")
    requirement_id: int | None = Field(default=None, description="关联 Requirement（弱引用）")
    title: str = Field(description="任务标题")
    description: str | None = Field(default=None, description="任务描述")
    status: TaskStatus = Field(default=TaskStatus.INBOX, description="看板列")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="优先级")
    agent_id: str | None = Field(default=None, description="执行者 agent 标识")
    session_key: str | None = Field(default=None, description="执行会话标识")
    due_at: datetime | None = Field(default=None, description="截止时间")
    started_at: datetime | None = Field(default=None, description="首次进入 in_progress 的时间")
    completed_at: datetime | None = Field(default=None, description="最近一次进入 done 的时间")
    tags: list[StrictStr] = Field(default_factory=list, description="标签（保持展示顺序）")
    metadata: dict[str, JsonValue] = Field(default_factory=dict, description="开放键值")
    created_at: datetime = Field(description="创建时间")
    updated_at: datetime = Field(description="更新时间")

    @property
    def review_reason(self) -> JsonValue:
        """metadata.review_reason，不存在时为 None"""
        return self.metadata.get(REVIEW_REASON_KEY)


class TaskCreate(BaseModel):
    """创建 Task 的输入"""

    model_config = ConfigDict(extra="forbid")

    title: str
    description: str | None = None
    status: TaskStatus = TaskStatus.INBOX
    priority: TaskPriority = TaskPriority.MEDIUM
    requirement_id: int | None = None
    agent_id: str | None = None
    session_key: str | None = None
    due_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    tags: list[StrictStr] = Field(default_factory=list)
    metadata: dict[str, JsonValue] = Field(default_factory=dict)

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        return _require_title(value)


class TaskPatch(BaseModel):
    """部分更新 Task 的输入

    只有显式给出的字段会被写入（exclude_unset）。
    """

    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    description: str | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    requirement_id: int | None = None
    agent_id: str | None = None
    session_key: str | None = None
    due_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    tags: list[StrictStr] | None = None
    metadata: dict[str, JsonValue] | None = None

    @field_validator("title", "status", "priority", "tags", "metadata", mode="before")
    @classmethod
    def _not_null(cls, value, info):
        if value is None:
            raise ValueError(f"{info.field_name} must not be null")
        return value

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        return _require_title(value)

    def changes(self) -> dict:
        """返回显式设置的字段"""
        return self.model_dump(exclude_unset=True)
