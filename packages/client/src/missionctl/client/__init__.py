"""Mission Control Client -- 网关 HTTP 客户端与外部协作方

packages/client 的公开接口导出。
"""

from .client import HttpTaskRepository
from .collaborator import (
    AgentAction,
    AgentCommand,
    CliCollaborator,
    CollaboratorPort,
    CollaboratorResult,
)
from .config import ClientConfig, load_client_config
from .exceptions import StoreUnreachableError

__all__ = [
    "HttpTaskRepository",
    "AgentAction",
    "AgentCommand",
    "CliCollaborator",
    "CollaboratorPort",
    "CollaboratorResult",
    "ClientConfig",
    "load_client_config",
    "StoreUnreachableError",
]
