"""TaskStepStore SQLite 实现

task_steps 表 append-only：只允许插入，随所属 Task 级联删除。
"""

from collections.abc import Callable
from datetime import datetime

import aiosqlite

from ..lifecycle import utcnow
from ..models.step import StepCreate, TaskStep
from .codec import encode_value, ts_from_db, ts_to_db


class SqliteStepStore:
    """TaskStep 存储的 SQLite 实现"""

    def __init__(
        self,
        conn: aiosqlite.Connection,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._conn = conn
        self._clock = clock

    async def append_step(self, task_id: int, data: StepCreate) -> int:
        """追加步骤记录

        注意：此方法不自动提交事务，需由调用方管理事务。
        task_id 不存在时由外键约束抛出 IntegrityError。
        """
        cursor = await self._conn.execute(
            """
            INSERT INTO task_steps (task_id, title, description, status,
                                    agent_note, duration_ms, sort_order, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                task_id,
                data.title,
                data.description,
                encode_value(data.status),
                data.agent_note,
                data.duration_ms,
                data.sort_order,
                ts_to_db(self._clock()),
            ),
        )
        return cursor.lastrowid

    async def get_step(self, step_id: int) -> TaskStep | None:
        cursor = await self._conn.execute(
            """
            SELECT id, task_id, title, description, status, agent_note,
                   duration_ms, sort_order, created_at
            FROM task_steps WHERE id = ?
            """,
            (step_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_step(row)

    async def list_steps(self, task_id: int) -> list[TaskStep]:
        """查询任务的全部步骤，按 sort_order、创建时间正序"""
        cursor = await self._conn.execute(
            """
            SELECT id, task_id, title, description, status, agent_note,
                   duration_ms, sort_order, created_at
            FROM task_steps
            WHERE task_id = ?
            ORDER BY sort_order ASC, created_at ASC, id ASC
            """,
            (task_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_step(row) for row in rows]

    @staticmethod
    def _row_to_step(row: aiosqlite.Row) -> TaskStep:
        return TaskStep(
            id=row[0],
            task_id=row[1],
            title=row[2],
            description=row[3],
            status=row[4],
            agent_note=row[5],
            duration_ms=row[6],
            sort_order=row[7],
            created_at=ts_from_db(row[8]),
        )
