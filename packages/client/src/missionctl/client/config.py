"""ClientConfig -- 看板客户端配置加载

从环境变量加载配置，不硬编码网关地址与 CLI 路径。
"""

import os

import structlog
from pydantic import BaseModel, Field

log = structlog.get_logger()


class ClientConfig(BaseModel):
    """客户端配置 -- 从环境变量加载

    环境变量:
        MISSIONCTL_API_URL: 网关地址（默认 http://localhost:8000）
        MISSIONCTL_API_TIMEOUT_S: 单次请求超时（秒，默认 10）
        MISSIONCTL_AGENT_CLI: 外部 agent CLI 可执行文件（默认 openclaw）
    """

    api_base_url: str = Field(
        default="http://localhost:8000",
        description="Mission Control 网关基础 URL",
    )
    timeout_s: int = Field(
        default=10,
        ge=1,
        description="单次请求超时（秒），轮询依赖 httpx 的超时兜底",
    )
    agent_cli: str = Field(
        default="openclaw",
        description="agent 编排 CLI 可执行文件",
    )


def load_client_config() -> ClientConfig:
    """从环境变量加载客户端配置

    环境变量映射:
        MISSIONCTL_API_URL -> api_base_url (默认 "http://localhost:8000")
        MISSIONCTL_API_TIMEOUT_S -> timeout_s (默认 10)
        MISSIONCTL_AGENT_CLI -> agent_cli (默认 "openclaw")

    Returns:
        ClientConfig 实例
    """
    kwargs: dict = {}

    if val := os.environ.get("MISSIONCTL_API_URL"):
        kwargs["api_base_url"] = val.rstrip("/")

    if val := os.environ.get("MISSIONCTL_API_TIMEOUT_S"):
        try:
            kwargs["timeout_s"] = int(val)
        except ValueError:
            log.warning(
                "invalid_timeout_config",
                env_var="MISSIONCTL_API_TIMEOUT_S",
                value=val,
                fallback=10,
            )
            # 使用默认值，不阻塞启动

    if val := os.environ.get("MISSIONCTL_AGENT_CLI"):
        kwargs["agent_cli"] = val

    return ClientConfig(**kwargs)
