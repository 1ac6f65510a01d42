"""SQLite 数据库初始化

PRAGMA 配置 + 四张表 DDL + updated_at 触发器 + 索引创建。
枚举以 CHECK 约束表达，取值与 models/enums.py 一致。
使用 aiosqlite 异步操作。
"""

import aiosqlite

# requirements 表 DDL
_REQUIREMENTS_DDL = """
CREATE TABLE IF NOT EXISTS requirements (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    title        TEXT NOT NULL,
    description  TEXT,
    cron_job_id  TEXT UNIQUE,
    cron_expr    TEXT,
    agent_id     TEXT,
    is_active    INTEGER NOT NULL DEFAULT 1 CHECK (is_active IN (0, 1)),
    tags         TEXT NOT NULL DEFAULT '[]',
    created_at   TEXT NOT NULL,
    updated_at   TEXT NOT NULL
);
"""

# tasks 表 DDL
_TASKS_DDL = """
CREATE TABLE IF NOT EXISTS tasks (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    requirement_id  INTEGER REFERENCES requirements(id) ON DELETE SET NULL,
    title           TEXT NOT NULL,
    description     TEXT,
    status          TEXT NOT NULL DEFAULT 'inbox'
                    CHECK (status IN ('inbox', 'in_progress', 'review', 'done')),
    priority        TEXT NOT NULL DEFAULT 'medium'
                    CHECK (priority IN ('low', 'medium', 'high', 'critical')),
    agent_id        TEXT,
    session_key     TEXT,
    due_at          TEXT,
    started_at      TEXT,
    completed_at    TEXT,
    tags            TEXT NOT NULL DEFAULT '[]',
    metadata        TEXT NOT NULL DEFAULT '{}',
    created_at      TEXT NOT NULL,
    updated_at      TEXT NOT NULL
);
"""

_TASKS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_requirement ON tasks(requirement_id);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_agent ON tasks(agent_id);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_created ON tasks(created_at DESC);",
]

# task_steps 表 DDL
_TASK_STEPS_DDL = """
CREATE TABLE IF NOT EXISTS task_steps (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    task_id      INTEGER NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
    title        TEXT NOT NULL,
    description  TEXT,
    status       TEXT NOT NULL DEFAULT 'pending'
                 CHECK (status IN ('pending', 'in_progress', 'completed', 'failed', 'skipped')),
    agent_note   TEXT,
    duration_ms  INTEGER,
    sort_order   INTEGER NOT NULL DEFAULT 0,
    created_at   TEXT NOT NULL
);
"""

# task_reviews 表 DDL
_TASK_REVIEWS_DDL = """
CREATE TABLE IF NOT EXISTS task_reviews (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    task_id           INTEGER NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
    reason            TEXT NOT NULL,
    confidence        INTEGER CHECK (confidence BETWEEN 0 AND 100),
    status            TEXT NOT NULL DEFAULT 'pending'
                      CHECK (status IN ('pending', 'approved', 'rejected')),
    reviewer_comment  TEXT,
    created_at        TEXT NOT NULL,
    resolved_at       TEXT
);
"""

_CHILD_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_steps_task ON task_steps(task_id);",
    "CREATE INDEX IF NOT EXISTS idx_reviews_task ON task_reviews(task_id);",
    "CREATE INDEX IF NOT EXISTS idx_reviews_status ON task_reviews(status);",
]

# 任何未显式刷新 updated_at 的 UPDATE 都由触发器补写
_UPDATED_AT_TRIGGERS = [
    """
    CREATE TRIGGER IF NOT EXISTS trg_requirements_updated
    AFTER UPDATE ON requirements
    FOR EACH ROW WHEN NEW.updated_at = OLD.updated_at
    BEGIN
        UPDATE requirements
        SET updated_at = strftime('%Y-%m-%dT%H:%M:%f+00:00', 'now')
        WHERE id = NEW.id;
    END;
    """,
    """
    CREATE TRIGGER IF NOT EXISTS trg_tasks_updated
    AFTER UPDATE ON tasks
    FOR EACH ROW WHEN NEW.updated_at = OLD.updated_at
    BEGIN
        UPDATE tasks
        SET updated_at = strftime('%Y-%m-%dT%H:%M:%f+00:00', 'now')
        WHERE id = NEW.id;
    END;
    """,
]


async def init_db(conn: aiosqlite.Connection) -> None:
    """初始化数据库：设置 PRAGMA + 创建表 + 触发器 + 索引

    Args:
        conn: aiosqlite 数据库连接
    """
    # 设置 PRAGMA（foreign_keys 是连接级设置，级联删除依赖它）
    await conn.execute("PRAGMA journal_mode = WAL;")
    await conn.execute("PRAGMA foreign_keys = ON;")
    await conn.execute("PRAGMA busy_timeout = 5000;")

    # 创建表（被引用的表在前）
    await conn.execute(_REQUIREMENTS_DDL)
    await conn.execute(_TASKS_DDL)
    await conn.execute(_TASK_STEPS_DDL)
    await conn.execute(_TASK_REVIEWS_DDL)

    for trigger_sql in _UPDATED_AT_TRIGGERS:
        await conn.execute(trigger_sql)

    # 创建索引
    for idx_sql in _TASKS_INDEXES + _CHILD_INDEXES:
        await conn.execute(idx_sql)

    await conn.commit()


async def verify_foreign_keys(conn: aiosqlite.Connection) -> bool:
    """验证外键约束是否生效

    Returns:
        True 如果 foreign_keys 已启用
    """
    cursor = await conn.execute("PRAGMA foreign_keys;")
    row = await cursor.fetchone()
    return row is not None and row[0] == 1
