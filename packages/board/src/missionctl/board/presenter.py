"""展示适配层 -- 把看板状态转换为与 UI 无关的视图模型

任何 UI（终端、Web、SSE 客户端）都消费同一组视图模型：
列标题与计数、卡片字段、详情中的步骤与审核。
"""

from collections.abc import Sequence
from datetime import UTC, datetime

from missionctl.core.config import CARD_VISIBLE_TAGS
from missionctl.core.lifecycle import utcnow
from missionctl.core.models import (
    BOARD_COLUMNS,
    ReviewBucket,
    Task,
    TaskPriority,
    TaskReview,
    TaskStatus,
    TaskStep,
)
from pydantic import BaseModel, Field

from .reducer import ReviewCounts, filter_review, group_by_status, review_counts

COLUMN_TITLES: dict[TaskStatus, str] = {
    TaskStatus.INBOX: "Inbox",
    TaskStatus.IN_PROGRESS: "In Progress",
    TaskStatus.REVIEW: "Review",
    TaskStatus.DONE: "Done",
}

REVIEW_BUCKET_LABELS: dict[ReviewBucket, str] = {
    ReviewBucket.ALL: "All",
    ReviewBucket.APPROVAL_NEEDED: "Approval needed",
    ReviewBucket.BLOCKED: "Blocked",
}


class CardView(BaseModel):
    """看板卡片"""

    id: int
    title: str
    status: TaskStatus
    priority: str = Field(description="大写优先级标签")
    assignee: str | None = None
    due: str | None = None
    is_overdue: bool = False
    tags: list[str] = Field(default_factory=list)
    approval_needed: bool = False


class ColumnView(BaseModel):
    """看板列"""

    status: TaskStatus
    title: str
    count: int
    cards: list[CardView]
    review_counts: ReviewCounts | None = None


class BoardView(BaseModel):
    columns: list[ColumnView]
    review_bucket: ReviewBucket
    total: int


class StepView(BaseModel):
    id: int
    title: str
    status: str
    agent_note: str | None = None
    duration: str | None = None


class ReviewView(BaseModel):
    id: int
    reason: str
    status: str
    confidence: str | None = None
    reviewer_comment: str | None = None


class DetailView(BaseModel):
    card: CardView
    description: str | None = None
    session_key: str | None = None
    steps: list[StepView]
    reviews: list[ReviewView]


def format_due(task: Task, now: datetime) -> tuple[str | None, bool]:
    """紧凑的截止时间标签；done 的任务永不逾期"""
    if task.due_at is None:
        return None, False
    due_at = task.due_at
    if due_at.tzinfo is None:
        due_at = due_at.replace(tzinfo=UTC)
    label = f"{due_at:%b} {due_at.day}"
    is_overdue = task.status != TaskStatus.DONE and due_at < now
    if is_overdue:
        return f"Overdue · {label}", True
    return label, False


def format_duration(duration_ms: int | None) -> str | None:
    """步骤耗时标签，未记录或为 0 时不展示"""
    if not duration_ms:
        return None
    return f"{duration_ms}ms"


def render_card(task: Task, now: datetime | None = None) -> CardView:
    now = now or utcnow()
    due, is_overdue = format_due(task, now)
    priority = (task.priority or TaskPriority.MEDIUM).value.upper()
    return CardView(
        id=task.id,
        title=task.title,
        status=task.status,
        priority=priority,
        assignee=task.agent_id,
        due=due,
        is_overdue=is_overdue,
        tags=list(task.tags[:CARD_VISIBLE_TAGS]),
        approval_needed=task.status == TaskStatus.REVIEW and bool(task.review_reason),
    )


def render_board(
    tasks: Sequence[Task],
    review_bucket: ReviewBucket = ReviewBucket.ALL,
    now: datetime | None = None,
) -> BoardView:
    """生成整块看板视图

    Review 列按 review_bucket 过滤，count 为过滤后的卡片数；
    review_counts 始终基于完整的 Review 列。
    """
    now = now or utcnow()
    bucket = ReviewBucket(review_bucket)
    grouped = group_by_status(tasks)
    columns: list[ColumnView] = []
    for status in BOARD_COLUMNS:
        column_tasks = grouped[status]
        counts = None
        if status == TaskStatus.REVIEW:
            counts = review_counts(column_tasks)
            column_tasks = filter_review(column_tasks, bucket)
        columns.append(
            ColumnView(
                status=status,
                title=COLUMN_TITLES[status],
                count=len(column_tasks),
                cards=[render_card(task, now) for task in column_tasks],
                review_counts=counts,
            )
        )
    return BoardView(columns=columns, review_bucket=bucket, total=len(tasks))


def render_detail(
    task: Task,
    steps: Sequence[TaskStep],
    reviews: Sequence[TaskReview],
    now: datetime | None = None,
) -> DetailView:
    return DetailView(
        card=render_card(task, now),
        description=task.description,
        session_key=task.session_key,
        steps=[
            StepView(
                id=step.id,
                title=step.title,
                status=step.status.value,
                agent_note=step.agent_note,
                duration=format_duration(step.duration_ms),
            )
            for step in steps
        ],
        reviews=[
            ReviewView(
                id=review.id,
                reason=review.reason,
                status=review.status.value,
                confidence=f"{review.confidence}%" if review.confidence is not None else None,
                reviewer_comment=review.reviewer_comment,
            )
            for review in reviews
        ],
    )
