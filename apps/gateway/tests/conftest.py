"""apps/gateway 测试配置 -- FastAPI app + httpx AsyncClient + 假 Collaborator"""

import os
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from missionctl.client.collaborator import AgentCommand, CollaboratorResult
from missionctl.core.store import SqliteTaskRepository, create_store_group
from missionctl.gateway.services.sse_hub import SSEHub


class FakeCollaborator:
    """记录调用的 CollaboratorPort 实现，结果可按用例配置"""

    def __init__(self) -> None:
        self.commands: list[AgentCommand] = []
        self.restarts = 0
        self.mutation_result = CollaboratorResult(ok=True, output='{"ok": true}')
        self.restart_result = CollaboratorResult(ok=True)

    async def apply_agent_mutation(self, command: AgentCommand) -> CollaboratorResult:
        self.commands.append(command)
        return self.mutation_result

    async def restart_gateway(self) -> CollaboratorResult:
        self.restarts += 1
        return self.restart_result


@pytest.fixture
def collaborator() -> FakeCollaborator:
    return FakeCollaborator()


@pytest_asyncio.fixture
async def test_app(tmp_path: Path, clock, collaborator: FakeCollaborator):
    """创建测试用 FastAPI app（手动初始化 app.state，绕过 lifespan）"""
    os.environ["MISSIONCTL_DB_PATH"] = str(tmp_path / "test.db")
    os.environ["LOGFIRE_SEND_TO_LOGFIRE"] = "false"

    from missionctl.gateway.main import create_app

    app = create_app()

    store_group = await create_store_group(str(tmp_path / "test.db"), clock=clock)
    app.state.store_group = store_group
    app.state.repository = SqliteTaskRepository(store_group)
    app.state.sse_hub = SSEHub()
    app.state.collaborator = collaborator

    yield app

    await store_group.conn.close()
    for key in ["MISSIONCTL_DB_PATH", "LOGFIRE_SEND_TO_LOGFIRE"]:
        os.environ.pop(key, None)


@pytest_asyncio.fixture
async def client(test_app) -> AsyncGenerator[AsyncClient, None]:
    """提供 httpx AsyncClient 用于测试"""
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def representation() -> dict[str, str]:
    return {"Prefer": "return=representation"}
