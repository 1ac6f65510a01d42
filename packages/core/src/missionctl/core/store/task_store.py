"""TaskStore SQLite 实现

仅提供数据库操作，不提交事务；提交由 SqliteTaskRepository 管理。
"""

from collections.abc import Callable
from datetime import datetime
from typing import Any

import aiosqlite

from ..lifecycle import utcnow
from ..models.task import Task, TaskCreate
from .codec import encode_value, json_from_db, ts_from_db, ts_to_db

_TASK_COLUMNS = (
    "id",
    "requirement_id",
    "title",
    "description",
    "status",
    "priority",
    "agent_id",
    "session_key",
    "due_at",
    "started_at",
    "completed_at",
    "tags",
    "metadata",
    "created_at",
    "updated_at",
)

_SELECT_TASKS = f"SELECT {', '.join(_TASK_COLUMNS)} FROM tasks"

# priority 按枚举声明顺序排名（critical 最高）
_PRIORITY_RANK_SQL = (
    "CASE priority WHEN 'critical' THEN 3 WHEN 'high' THEN 2 "
    "WHEN 'medium' THEN 1 ELSE 0 END"
)

# 可排序列 -> SQL 表达式
TASK_ORDER_COLUMNS: dict[str, str] = {
    "priority": _PRIORITY_RANK_SQL,
    "created_at": "created_at",
    "updated_at": "updated_at",
    "due_at": "due_at",
    "title": "title",
    "status": "status",
    "id": "id",
}

# 可做等值过滤的列
TASK_FILTER_COLUMNS: frozenset[str] = frozenset(
    {"id", "status", "priority", "agent_id", "requirement_id", "session_key"}
)

# 默认看板顺序：priority desc, created_at desc（并列时 id asc）
DEFAULT_TASK_ORDER: list[tuple[str, bool]] = [
    ("priority", True),
    ("created_at", True),
]

# 允许 PATCH 的列
TASK_MUTABLE_COLUMNS: frozenset[str] = frozenset(
    {
        "requirement_id",
        "title",
        "description",
        "status",
        "priority",
        "agent_id",
        "session_key",
        "due_at",
        "started_at",
        "completed_at",
        "tags",
        "metadata",
    }
)


class SqliteTaskStore:
    """TaskStore 的 SQLite 实现"""

    def __init__(
        self,
        conn: aiosqlite.Connection,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._conn = conn
        self._clock = clock

    async def create_task(self, data: TaskCreate) -> int:
        """插入任务记录，返回服务端生成的 id"""
        now = ts_to_db(self._clock())
        values = {k: encode_value(v) for k, v in data.model_dump().items()}
        cursor = await self._conn.execute(
            """
            INSERT INTO tasks (requirement_id, title, description, status, priority,
                               agent_id, session_key, due_at, started_at, completed_at,
                               tags, metadata, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                values["requirement_id"],
                values["title"],
                values["description"],
                values["status"],
                values["priority"],
                values["agent_id"],
                values["session_key"],
                values["due_at"],
                values["started_at"],
                values["completed_at"],
                values["tags"],
                values["metadata"],
                now,
                now,
            ),
        )
        return cursor.lastrowid

    async def get_task(self, task_id: int) -> Task | None:
        """根据 id 查询任务"""
        cursor = await self._conn.execute(f"{_SELECT_TASKS} WHERE id = ?", (task_id,))
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_task(row)

    async def list_tasks(
        self,
        filters: dict[str, Any] | None = None,
        order: list[tuple[str, bool]] | None = None,
    ) -> list[Task]:
        """查询任务列表

        Args:
            filters: 列名 -> 等值条件（列名须在 TASK_FILTER_COLUMNS 中）
            order: [(列名, 是否降序)]，默认 DEFAULT_TASK_ORDER；总是追加 id asc

        Raises:
            KeyError: 使用了不支持的过滤或排序列
        """
        clauses = []
        params: list[Any] = []
        for column, value in (filters or {}).items():
            if column not in TASK_FILTER_COLUMNS:
                raise KeyError(column)
            clauses.append(f"{column} = ?")
            params.append(encode_value(value))

        order_sql = [
            f"{TASK_ORDER_COLUMNS[column]} {'DESC' if descending else 'ASC'}"
            for column, descending in (order or DEFAULT_TASK_ORDER)
        ]
        order_sql.append("id ASC")

        sql = _SELECT_TASKS
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY " + ", ".join(order_sql)

        cursor = await self._conn.execute(sql, params)
        rows = await cursor.fetchall()
        return [self._row_to_task(row) for row in rows]

    async def update_task(self, task_id: int, changes: dict[str, Any]) -> bool:
        """部分更新任务，每次调用都刷新 updated_at

        Returns:
            True 如果记录存在并已更新
        """
        unknown = set(changes) - TASK_MUTABLE_COLUMNS
        if unknown:
            raise KeyError(", ".join(sorted(unknown)))

        assignments = [f"{column} = ?" for column in changes]
        params = [encode_value(value) for value in changes.values()]
        assignments.append("updated_at = ?")
        params.append(ts_to_db(self._clock()))
        params.append(task_id)

        cursor = await self._conn.execute(
            f"UPDATE tasks SET {', '.join(assignments)} WHERE id = ?",
            params,
        )
        return cursor.rowcount > 0

    async def delete_task(self, task_id: int) -> bool:
        """删除任务（task_steps / task_reviews 由外键级联删除）"""
        cursor = await self._conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
        return cursor.rowcount > 0

    @staticmethod
    def _row_to_task(row: aiosqlite.Row) -> Task:
        """将数据库行转换为 Task 模型"""
        return Task(
            id=row[0],
            requirement_id=row[1],
            title=row[2],
            description=row[3],
            status=row[4],
            priority=row[5],
            agent_id=row[6],
            session_key=row[7],
            due_at=ts_from_db(row[8]),
            started_at=ts_from_db(row[9]),
            completed_at=ts_from_db(row[10]),
            tags=json_from_db(row[11], []),
            metadata=json_from_db(row[12], {}),
            created_at=ts_from_db(row[13]),
            updated_at=ts_from_db(row[14]),
        )
