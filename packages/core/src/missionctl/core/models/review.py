"""TaskReview Domain Model

审核/批准请求，强归属于一个 Task。resolved_at 仅在离开 pending 时写入。
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .enums import ReviewStatus


class TaskReview(BaseModel):
    """TaskReview 数据模型"""

    id: int
    task_id: int
    reason: str = Field(description="请求审核的原因")
    confidence: int | None = Field(default=None, description="agent 置信度 0-100")
    status: ReviewStatus = ReviewStatus.PENDING
    reviewer_comment: str | None = None
    created_at: datetime
    resolved_at: datetime | None = None


class ReviewCreate(BaseModel):
    """追加 TaskReview 的输入"""

    model_config = ConfigDict(extra="forbid")

    reason: str
    confidence: int | None = Field(default=None, ge=0, le=100)

    @field_validator("reason")
    @classmethod
    def _reason_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("reason must not be empty")
        return value.strip()


class ReviewResolve(BaseModel):
    """审核结论"""

    model_config = ConfigDict(extra="forbid")

    status: ReviewStatus
    reviewer_comment: str | None = None
