"""Mission Control Board -- 看板状态、对账引擎与展示适配

packages/board 的公开接口导出。
"""

from .poller import BoardPoller
from .presenter import (
    BoardView,
    CardView,
    ColumnView,
    DetailView,
    render_board,
    render_card,
    render_detail,
)
from .reducer import (
    ReviewCounts,
    filter_review,
    group_by_status,
    has_review_reason,
    move_task,
    review_counts,
)
from .store import BoardStore, TaskDetail

__all__ = [
    # reducer
    "group_by_status",
    "has_review_reason",
    "filter_review",
    "review_counts",
    "move_task",
    "ReviewCounts",
    # 状态与对账
    "BoardStore",
    "TaskDetail",
    "BoardPoller",
    # 展示
    "BoardView",
    "ColumnView",
    "CardView",
    "DetailView",
    "render_board",
    "render_card",
    "render_detail",
]
