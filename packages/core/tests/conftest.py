"""packages/core 测试配置 -- 核心层 fixture

时钟 fixture `clock` 由根目录 conftest 提供。
"""

from collections.abc import AsyncGenerator
from pathlib import Path

import aiosqlite
import pytest_asyncio
from missionctl.core.store import SqliteTaskRepository, StoreGroup, create_store_group


@pytest_asyncio.fixture
async def core_db_path(tmp_path: Path) -> Path:
    """核心层临时数据库路径"""
    return tmp_path / "core_test.db"


@pytest_asyncio.fixture
async def core_db(core_db_path: Path) -> AsyncGenerator[aiosqlite.Connection, None]:
    """核心层已初始化数据库连接"""
    from missionctl.core.store.sqlite_init import init_db

    conn = await aiosqlite.connect(str(core_db_path))
    await init_db(conn)
    yield conn
    await conn.close()


@pytest_asyncio.fixture
async def store_group(core_db_path: Path, clock) -> AsyncGenerator[StoreGroup, None]:
    """共享连接的 Store 实例组（确定性时钟）"""
    group = await create_store_group(str(core_db_path), clock=clock)
    yield group
    await group.conn.close()


@pytest_asyncio.fixture
async def repo(store_group: StoreGroup) -> SqliteTaskRepository:
    return SqliteTaskRepository(store_group)
