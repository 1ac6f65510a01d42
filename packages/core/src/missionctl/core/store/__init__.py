"""Mission Control Core Store -- SQLite 持久化实现

提供工厂函数创建共享数据库连接的 Store 实例组。
"""

from collections.abc import Callable
from datetime import datetime
from pathlib import Path

import aiosqlite

from ..lifecycle import utcnow
from .protocols import TaskRepository
from .repository import SqliteTaskRepository
from .requirement_store import SqliteRequirementStore
from .review_store import SqliteReviewStore
from .sqlite_init import init_db, verify_foreign_keys
from .step_store import SqliteStepStore
from .task_store import DEFAULT_TASK_ORDER, SqliteTaskStore


class StoreGroup:
    """Store 实例组 -- 共享同一个数据库连接"""

    def __init__(
        self,
        conn: aiosqlite.Connection,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.conn = conn
        self.task_store = SqliteTaskStore(conn, clock)
        self.step_store = SqliteStepStore(conn, clock)
        self.review_store = SqliteReviewStore(conn, clock)
        self.requirement_store = SqliteRequirementStore(conn, clock)


async def create_store_group(
    db_path: str,
    clock: Callable[[], datetime] = utcnow,
) -> StoreGroup:
    """创建 Store 实例组

    Args:
        db_path: SQLite 数据库文件路径
        clock: 时间戳来源（测试中可注入固定时钟）

    Returns:
        StoreGroup 实例
    """
    # 确保数据库目录存在
    db_dir = Path(db_path).parent
    db_dir.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(db_path)
    conn.row_factory = aiosqlite.Row
    await init_db(conn)

    return StoreGroup(conn=conn, clock=clock)


__all__ = [
    "StoreGroup",
    "create_store_group",
    "TaskRepository",
    "SqliteTaskRepository",
    "SqliteTaskStore",
    "SqliteStepStore",
    "SqliteReviewStore",
    "SqliteRequirementStore",
    "DEFAULT_TASK_ORDER",
    "init_db",
    "verify_foreign_keys",
]
