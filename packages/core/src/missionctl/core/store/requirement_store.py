"""RequirementStore SQLite 实现"""

from collections.abc import Callable
from datetime import datetime
from typing import Any

import aiosqlite

from ..lifecycle import utcnow
from ..models.requirement import Requirement, RequirementCreate
from .codec import encode_value, json_from_db, ts_from_db, ts_to_db

_SELECT_REQUIREMENTS = """
    SELECT id, title, description, cron_job_id, cron_expr, agent_id,
           is_active, tags, created_at, updated_at
    FROM requirements
"""

REQUIREMENT_MUTABLE_COLUMNS: frozenset[str] = frozenset(
    {"title", "description", "cron_job_id", "cron_expr", "agent_id", "is_active", "tags"}
)


class SqliteRequirementStore:
    """Requirement 存储的 SQLite 实现"""

    def __init__(
        self,
        conn: aiosqlite.Connection,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._conn = conn
        self._clock = clock

    async def create_requirement(self, data: RequirementCreate) -> int:
        now = ts_to_db(self._clock())
        cursor = await self._conn.execute(
            """
            INSERT INTO requirements (title, description, cron_job_id, cron_expr,
                                      agent_id, is_active, tags, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                data.title,
                data.description,
                data.cron_job_id,
                data.cron_expr,
                data.agent_id,
                encode_value(data.is_active),
                encode_value(data.tags),
                now,
                now,
            ),
        )
        return cursor.lastrowid

    async def get_requirement(self, requirement_id: int) -> Requirement | None:
        cursor = await self._conn.execute(
            f"{_SELECT_REQUIREMENTS} WHERE id = ?",
            (requirement_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_requirement(row)

    async def list_requirements(self, active_only: bool = False) -> list[Requirement]:
        """查询 Requirement 列表，最新创建的在前"""
        sql = _SELECT_REQUIREMENTS
        if active_only:
            sql += " WHERE is_active = 1"
        sql += " ORDER BY created_at DESC, id DESC"
        cursor = await self._conn.execute(sql)
        rows = await cursor.fetchall()
        return [self._row_to_requirement(row) for row in rows]

    async def update_requirement(self, requirement_id: int, changes: dict[str, Any]) -> bool:
        unknown = set(changes) - REQUIREMENT_MUTABLE_COLUMNS
        if unknown:
            raise KeyError(", ".join(sorted(unknown)))

        assignments = [f"{column} = ?" for column in changes]
        params = [encode_value(value) for value in changes.values()]
        assignments.append("updated_at = ?")
        params.append(ts_to_db(self._clock()))
        params.append(requirement_id)

        cursor = await self._conn.execute(
            f"UPDATE requirements SET {', '.join(assignments)} WHERE id = ?",
            params,
        )
        return cursor.rowcount > 0

    async def delete_requirement(self, requirement_id: int) -> bool:
        """删除 Requirement（关联任务的 requirement_id 置空）"""
        cursor = await self._conn.execute(
            "DELETE FROM requirements WHERE id = ?",
            (requirement_id,),
        )
        return cursor.rowcount > 0

    @staticmethod
    def _row_to_requirement(row: aiosqlite.Row) -> Requirement:
        return Requirement(
            id=row[0],
            title=row[1],
            description=row[2],
            cron_job_id=row[3],
            cron_expr=row[4],
            agent_id=row[5],
            is_active=bool(row[6]),
            tags=json_from_db(row[7], []),
            created_at=ts_from_db(row[8]),
            updated_at=ts_from_db(row[9]),
        )
