"""依赖注入模块 -- 通过 FastAPI Depends 注入仓储与服务实例

实例通过 app.state 管理，在 lifespan 中初始化/清理。
"""

from fastapi import Request
from missionctl.client.collaborator import CollaboratorPort
from missionctl.core.store import SqliteTaskRepository, StoreGroup

from .services.sse_hub import SSEHub
from .services.task_service import TaskService


def get_store_group(request: Request) -> StoreGroup:
    """从 app.state 获取 StoreGroup 实例"""
    return request.app.state.store_group


def get_repository(request: Request) -> SqliteTaskRepository:
    return request.app.state.repository


def get_sse_hub(request: Request) -> SSEHub:
    """从 app.state 获取 SSEHub 实例"""
    return request.app.state.sse_hub


def get_task_service(request: Request) -> TaskService:
    return TaskService(request.app.state.repository, request.app.state.sse_hub)


def get_collaborator(request: Request) -> CollaboratorPort:
    return request.app.state.collaborator
