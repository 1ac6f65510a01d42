"""Schema 层测试 -- CHECK 约束、外键、updated_at 触发器"""

import aiosqlite
import pytest
from missionctl.core.store.sqlite_init import init_db, verify_foreign_keys

_NOW = "2000-01-01T00:00:00.000000+00:00"


async def _insert_task(conn: aiosqlite.Connection, **columns) -> int:
    values = {"title": "x", "created_at": _NOW, "updated_at": _NOW}
    values.update(columns)
    names = ", ".join(values)
    marks = ", ".join("?" for _ in values)
    cursor = await conn.execute(
        f"INSERT INTO tasks ({names}) VALUES ({marks})", tuple(values.values())
    )
    await conn.commit()
    return cursor.lastrowid


class TestSchema:
    async def test_foreign_keys_enabled(self, core_db):
        assert await verify_foreign_keys(core_db) is True

    async def test_init_is_idempotent(self, core_db):
        await init_db(core_db)
        cursor = await core_db.execute(
            "SELECT name FROM sqlite_master WHERE type = 'table' ORDER BY name"
        )
        names = {row[0] for row in await cursor.fetchall()}
        assert {"requirements", "tasks", "task_steps", "task_reviews"} <= names

    async def test_defaults(self, core_db):
        task_id = await _insert_task(core_db)
        cursor = await core_db.execute(
            "SELECT status, priority, tags, metadata FROM tasks WHERE id = ?", (task_id,)
        )
        assert await cursor.fetchone() == ("inbox", "medium", "[]", "{}")

    @pytest.mark.parametrize(
        "column,value",
        [("status", "archived"), ("priority", "urgent")],
    )
    async def test_enum_check_constraints(self, core_db, column, value):
        with pytest.raises(aiosqlite.IntegrityError):
            await _insert_task(core_db, **{column: value})

    async def test_review_confidence_range(self, core_db):
        task_id = await _insert_task(core_db)
        with pytest.raises(aiosqlite.IntegrityError):
            await core_db.execute(
                "INSERT INTO task_reviews (task_id, reason, confidence, created_at) "
                "VALUES (?, ?, ?, ?)",
                (task_id, "check", 150, _NOW),
            )

    async def test_trigger_refreshes_updated_at(self, core_db):
        task_id = await _insert_task(core_db)
        await core_db.execute("UPDATE tasks SET title = 'y' WHERE id = ?", (task_id,))
        await core_db.commit()
        cursor = await core_db.execute("SELECT updated_at FROM tasks WHERE id = ?", (task_id,))
        (updated_at,) = await cursor.fetchone()
        assert updated_at > _NOW

    async def test_step_cascade(self, core_db):
        task_id = await _insert_task(core_db)
        await core_db.execute(
            "INSERT INTO task_steps (task_id, title, created_at) VALUES (?, ?, ?)",
            (task_id, "plan", _NOW),
        )
        await core_db.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
        await core_db.commit()
        cursor = await core_db.execute("SELECT COUNT(*) FROM task_steps")
        assert (await cursor.fetchone())[0] == 0
