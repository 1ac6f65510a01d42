"""TaskReviewStore SQLite 实现"""

from collections.abc import Callable
from datetime import datetime

import aiosqlite

from ..lifecycle import utcnow
from ..models.enums import ReviewStatus
from ..models.review import ReviewCreate, ReviewResolve, TaskReview
from .codec import encode_value, ts_from_db, ts_to_db

_SELECT_REVIEWS = """
    SELECT id, task_id, reason, confidence, status, reviewer_comment,
           created_at, resolved_at
    FROM task_reviews
"""


class SqliteReviewStore:
    """TaskReview 存储的 SQLite 实现"""

    def __init__(
        self,
        conn: aiosqlite.Connection,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._conn = conn
        self._clock = clock

    async def append_review(self, task_id: int, data: ReviewCreate) -> int:
        """追加审核请求（状态固定为 pending）"""
        cursor = await self._conn.execute(
            """
            INSERT INTO task_reviews (task_id, reason, confidence, status, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                task_id,
                data.reason,
                data.confidence,
                ReviewStatus.PENDING.value,
                ts_to_db(self._clock()),
            ),
        )
        return cursor.lastrowid

    async def get_review(self, review_id: int) -> TaskReview | None:
        cursor = await self._conn.execute(
            f"{_SELECT_REVIEWS} WHERE id = ?",
            (review_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_review(row)

    async def list_reviews(self, task_id: int) -> list[TaskReview]:
        """查询任务的全部审核请求，最新的在前"""
        cursor = await self._conn.execute(
            f"{_SELECT_REVIEWS} WHERE task_id = ? ORDER BY created_at DESC, id DESC",
            (task_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_review(row) for row in rows]

    async def resolve_review(self, review_id: int, data: ReviewResolve) -> bool:
        """写入审核结论

        resolved_at 只在状态由 pending 转出时写入，已结论之间的改判保留原时间；
        改回 pending 时清空。未提供 reviewer_comment 时保留原评论。
        """
        assignments = [
            "status = ?",
            """resolved_at = CASE
                WHEN ? = 'pending' THEN NULL
                WHEN status = 'pending' THEN ?
                ELSE resolved_at
            END""",
        ]
        status = encode_value(data.status)
        params: list = [status, status, ts_to_db(self._clock())]
        if "reviewer_comment" in data.model_fields_set:
            assignments.append("reviewer_comment = ?")
            params.append(data.reviewer_comment)
        params.append(review_id)

        cursor = await self._conn.execute(
            f"UPDATE task_reviews SET {', '.join(assignments)} WHERE id = ?",
            params,
        )
        return cursor.rowcount > 0

    @staticmethod
    def _row_to_review(row: aiosqlite.Row) -> TaskReview:
        return TaskReview(
            id=row[0],
            task_id=row[1],
            reason=row[2],
            confidence=row[3],
            status=row[4],
            reviewer_comment=row[5],
            created_at=ts_from_db(row[6]),
            resolved_at=ts_from_db(row[7]),
        )
