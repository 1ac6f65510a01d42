"""Agent 变更路由 -- 通过 Collaborator Port 调用外部 agent CLI

POST   /api/agents          {name, workspace, model?}
PUT    /api/agents          {id, name?, emoji?, theme?, avatar?}
DELETE /api/agents?id=<id>

网关从不直接改写 agent CLI 的配置文件。变更成功后重启 agent 网关；
重启失败不影响本次变更的结果，只在响应中通过 gateway_error 体现。
"""

from typing import Any

import structlog
from fastapi import APIRouter, Depends, Query, Request
from missionctl.client.collaborator import AgentAction, AgentCommand, CollaboratorPort
from missionctl.core.exceptions import ValidationError
from missionctl.core.models import parse_model
from pydantic import BaseModel
from starlette.responses import JSONResponse

from ..deps import get_collaborator
from ..services.postgrest import read_json

log = structlog.get_logger()

router = APIRouter()


class AgentMutationResponse(BaseModel):
    """agent 变更结果"""

    ok: bool
    cli_output: str
    gateway_restarted: bool
    gateway_error: str | None = None


async def _apply(collaborator: CollaboratorPort, command: AgentCommand):
    result = await collaborator.apply_agent_mutation(command)
    if not result.ok:
        return JSONResponse(
            status_code=502,
            content={
                "error": {
                    "code": "AGENT_CLI_FAILED",
                    "message": result.error or "agent CLI failed",
                }
            },
        )

    restart = await collaborator.restart_gateway()
    if not restart.ok:
        await log.awarning("agent_gateway_restart_failed", error=restart.error)

    return AgentMutationResponse(
        ok=True,
        cli_output=result.output,
        gateway_restarted=restart.ok,
        gateway_error=restart.error if not restart.ok else None,
    )


def _command_fields(body: Any) -> dict[str, Any]:
    if not isinstance(body, dict):
        raise ValidationError("request body must be a JSON object")
    return dict(body)


@router.post("/api/agents")
async def create_agent(
    request: Request,
    collaborator: CollaboratorPort = Depends(get_collaborator),
):
    fields = _command_fields(await read_json(request))
    command = parse_model(AgentCommand, {**fields, "action": AgentAction.CREATE})
    return await _apply(collaborator, command)


@router.put("/api/agents")
async def update_agent_identity(
    request: Request,
    collaborator: CollaboratorPort = Depends(get_collaborator),
):
    fields = _command_fields(await read_json(request))
    agent_id = fields.pop("id", None)
    command = parse_model(
        AgentCommand,
        {**fields, "agent_id": agent_id, "action": AgentAction.SET_IDENTITY},
    )
    return await _apply(collaborator, command)


@router.delete("/api/agents")
async def delete_agent(
    agent_id: str | None = Query(default=None, alias="id"),
    collaborator: CollaboratorPort = Depends(get_collaborator),
):
    command = parse_model(
        AgentCommand, {"action": AgentAction.DELETE, "agent_id": agent_id}
    )
    return await _apply(collaborator, command)
