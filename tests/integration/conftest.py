"""集成测试共享 fixture -- 真实网关 + HTTP 仓储（ASGITransport，无网络）"""

import os
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from missionctl.client import HttpTaskRepository
from missionctl.core.store import SqliteTaskRepository, create_store_group
from missionctl.gateway.services.sse_hub import SSEHub

BASE_URL = "http://gateway.test"


@pytest_asyncio.fixture
async def integration_app(tmp_path: Path, clock):
    """集成测试用 FastAPI app"""
    os.environ["MISSIONCTL_DB_PATH"] = str(tmp_path / "test.db")
    os.environ["LOGFIRE_SEND_TO_LOGFIRE"] = "false"

    from missionctl.gateway.main import create_app

    app = create_app()

    store_group = await create_store_group(str(tmp_path / "test.db"), clock=clock)
    app.state.store_group = store_group
    app.state.repository = SqliteTaskRepository(store_group)
    app.state.sse_hub = SSEHub()

    yield app

    await store_group.conn.close()
    os.environ.pop("MISSIONCTL_DB_PATH", None)
    os.environ.pop("LOGFIRE_SEND_TO_LOGFIRE", None)


@pytest_asyncio.fixture
async def http_repo(integration_app) -> AsyncGenerator[HttpTaskRepository, None]:
    """经由网关 REST 接口访问存储的 TaskRepository"""
    async with AsyncClient(
        transport=ASGITransport(app=integration_app),
        base_url=BASE_URL,
    ) as http_client:
        yield HttpTaskRepository(base_url=BASE_URL, http_client=http_client)
