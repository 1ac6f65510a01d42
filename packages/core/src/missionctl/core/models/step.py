"""TaskStep Domain Model

append-only 的进度日志，强归属于一个 Task，随 Task 级联删除。
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .enums import StepStatus


class TaskStep(BaseModel):
    """TaskStep 数据模型"""

    id: int
    task_id: int
    title: str
    description: str | None = None
    status: StepStatus = StepStatus.PENDING
    agent_note: str | None = Field(default=None, description="agent 备注")
    duration_ms: int | None = Field(default=None, description="本步骤耗时（毫秒）")
    sort_order: int = Field(default=0, description="展示顺序，相同值按创建顺序")
    created_at: datetime


class StepCreate(BaseModel):
    """追加 TaskStep 的输入"""

    model_config = ConfigDict(extra="forbid")

    title: str
    description: str | None = None
    status: StepStatus = StepStatus.PENDING
    agent_note: str | None = None
    duration_ms: int | None = Field(default=None, ge=0)
    sort_order: int = 0

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("title must not be empty")
        return value.strip()
