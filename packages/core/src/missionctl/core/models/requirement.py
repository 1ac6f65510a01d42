"""Requirement Domain Model

可选的分组/周期性父实体，可通过 is_active 停用而不删除其任务。
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator


class Requirement(BaseModel):
    """Requirement 数据模型"""

    id: int
    title: str
    description: str | None = None
    cron_job_id: str | None = Field(default=None, description="外部 cron 任务 ID，全局唯一")
    cron_expr: str | None = Field(default=None, description="cron 表达式（仅展示）")
    agent_id: str | None = None
    is_active: bool = True
    tags: list[StrictStr] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class RequirementCreate(BaseModel):
    """创建 Requirement 的输入"""

    model_config = ConfigDict(extra="forbid")

    title: str
    description: str | None = None
    cron_job_id: str | None = None
    cron_expr: str | None = None
    agent_id: str | None = None
    is_active: bool = True
    tags: list[StrictStr] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("title must not be empty")
        return value.strip()


class RequirementPatch(BaseModel):
    """部分更新 Requirement 的输入"""

    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    description: str | None = None
    cron_job_id: str | None = None
    cron_expr: str | None = None
    agent_id: str | None = None
    is_active: bool | None = None
    tags: list[StrictStr] | None = None

    @field_validator("title", "is_active", "tags", mode="before")
    @classmethod
    def _not_null(cls, value, info):
        if value is None:
            raise ValueError(f"{info.field_name} must not be null")
        return value

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("title must not be empty")
        return value.strip()

    def changes(self) -> dict:
        """返回显式设置的字段"""
        return self.model_dump(exclude_unset=True)
