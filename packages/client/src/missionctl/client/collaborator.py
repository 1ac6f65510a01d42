"""Collaborator Port -- 外部 agent 编排 CLI 的调用边界

看板只调用、不实现 agent 的增删改与网关重启。
所有变更都通过 CLI 的非交互模式完成，绝不直接改写 CLI 的配置文件。

失败语义：
- 命令本身不合法（缺少名称、删除 main 等） -> 抛出 ValidationError
- CLI 执行失败、超时、可执行文件缺失 -> 返回 ok=False 的结果并记录 warning，不抛出
"""

import asyncio
import os
from enum import StrEnum
from pathlib import Path
from typing import Protocol

import structlog
from pydantic import BaseModel, ConfigDict, Field, model_validator

from .config import ClientConfig

log = structlog.get_logger()

# CLI 调用超时（秒）
MUTATION_TIMEOUT_S = 30
RESTART_TIMEOUT_S = 15

# 默认 agent，不允许删除
PROTECTED_AGENT_ID = "main"

_IDENTITY_FIELDS = ("name", "emoji", "theme", "avatar")


class AgentAction(StrEnum):
    """agent 变更类型"""

    CREATE = "create"
    SET_IDENTITY = "set_identity"
    DELETE = "delete"


class AgentCommand(BaseModel):
    """一次 agent 变更请求"""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    action: AgentAction
    agent_id: str | None = Field(default=None, description="set_identity / delete 的目标")
    name: str | None = None
    workspace: str | None = Field(default=None, description="create 时的工作目录")
    model: str | None = None
    emoji: str | None = None
    theme: str | None = None
    avatar: str | None = None

    @model_validator(mode="after")
    def _check_required(self) -> "AgentCommand":
        if self.action == AgentAction.CREATE:
            if not self.name:
                raise ValueError("Agent name is required")
            if not self.workspace:
                raise ValueError("Workspace directory is required")
        else:
            if not self.agent_id:
                raise ValueError("Agent id is required")
        if self.action == AgentAction.SET_IDENTITY and not any(
            getattr(self, field) for field in _IDENTITY_FIELDS
        ):
            raise ValueError(
                "At least one identity field (name, emoji, theme, avatar) is required"
            )
        if self.action == AgentAction.DELETE and self.agent_id.lower() == PROTECTED_AGENT_ID:
            raise ValueError(f'The default "{PROTECTED_AGENT_ID}" agent cannot be deleted')
        return self

    def to_args(self) -> list[str]:
        """转换为 CLI 参数列表（以参数数组传递，不经过 shell）"""
        if self.action == AgentAction.CREATE:
            args = [
                "agents",
                "add",
                self.name,
                "--workspace",
                self.workspace,
                "--non-interactive",
                "--json",
            ]
            if self.model:
                args += ["--model", self.model]
            return args

        if self.action == AgentAction.SET_IDENTITY:
            args = ["agents", "set-identity", "--agent", self.agent_id, "--json"]
            for field in _IDENTITY_FIELDS:
                value = getattr(self, field)
                if value:
                    args += [f"--{field}", value]
            return args

        return ["agents", "delete", self.agent_id, "--force", "--json"]


class CollaboratorResult(BaseModel):
    """外部调用结果（失败不抛出）"""

    ok: bool
    output: str = ""
    error: str | None = None


class CollaboratorPort(Protocol):
    """外部协作方接口"""

    async def apply_agent_mutation(self, command: AgentCommand) -> CollaboratorResult:
        """执行一次 agent 变更"""
        ...

    async def restart_gateway(self) -> CollaboratorResult:
        """重启 agent 网关，使配置变更生效"""
        ...


class CliCollaborator:
    """通过子进程调用 agent CLI 的 Collaborator 实现"""

    def __init__(
        self,
        executable: str = "openclaw",
        mutation_timeout_s: float = MUTATION_TIMEOUT_S,
        restart_timeout_s: float = RESTART_TIMEOUT_S,
        cwd: str | Path | None = None,
    ) -> None:
        self._executable = executable
        self._mutation_timeout_s = mutation_timeout_s
        self._restart_timeout_s = restart_timeout_s
        self._cwd = str(cwd) if cwd is not None else str(Path.home())

    @classmethod
    def from_config(cls, config: ClientConfig) -> "CliCollaborator":
        return cls(executable=config.agent_cli)

    async def apply_agent_mutation(self, command: AgentCommand) -> CollaboratorResult:
        result = await self._run(command.to_args(), self._mutation_timeout_s)
        if result.ok:
            await log.ainfo(
                "agent_mutation_applied",
                action=command.action,
                agent_id=command.agent_id or command.name,
            )
        return result

    async def restart_gateway(self) -> CollaboratorResult:
        return await self._run(["gateway", "restart"], self._restart_timeout_s)

    async def _run(self, args: list[str], timeout_s: float) -> CollaboratorResult:
        """运行 CLI 子命令，所有失败都折叠为 ok=False"""
        argv = [self._executable, *args]
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self._cwd,
                env={**os.environ, "NODE_NO_WARNINGS": "1"},
            )
        except OSError as e:
            log.warning("collaborator_spawn_failed", argv=argv, error=str(e))
            return CollaboratorResult(ok=False, error=str(e))

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout_s)
        except TimeoutError:
            proc.kill()
            await proc.wait()
            log.warning("collaborator_timeout", argv=argv, timeout_s=timeout_s)
            return CollaboratorResult(ok=False, error=f"timed out after {timeout_s}s")

        out = stdout.decode(errors="replace").strip()
        err = stderr.decode(errors="replace").strip()
        if proc.returncode != 0:
            log.warning(
                "collaborator_command_failed",
                argv=argv,
                returncode=proc.returncode,
                stderr=err,
            )
            return CollaboratorResult(
                ok=False,
                output=out,
                error=err or f"exit code {proc.returncode}",
            )
        if err:
            log.warning("collaborator_stderr", argv=argv, stderr=err)
        return CollaboratorResult(ok=True, output=out)
