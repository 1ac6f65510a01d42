"""Requirement 路由

GET    /requirements[?is_active=eq.true]
POST   /requirements               -> 201 + [row]
PATCH  /requirements?id=eq.<id>    -> 200 + [row]
DELETE /requirements?id=eq.<id>    -> 204（关联任务保留，requirement_id 置空）
"""

from fastapi import APIRouter, Depends, Request
from missionctl.core.exceptions import ValidationError
from missionctl.core.store import SqliteTaskRepository
from starlette.responses import Response

from ..deps import get_repository, get_task_service
from ..services.postgrest import (
    parse_filters,
    read_json,
    require_eq_id,
    rows,
    write_response,
)
from ..services.task_service import TaskService

router = APIRouter()


@router.get("/requirements")
async def list_requirements(
    request: Request,
    repository: SqliteTaskRepository = Depends(get_repository),
):
    filters = parse_filters(request.query_params, {"is_active"})
    requirements = await repository.list_requirements()
    if "is_active" in filters:
        if filters["is_active"] not in ("true", "false"):
            raise ValidationError("is_active must be eq.true or eq.false")
        wanted = filters["is_active"] == "true"
        requirements = [r for r in requirements if r.is_active is wanted]
    return rows(requirements)


@router.post("/requirements", status_code=201)
async def create_requirement(
    request: Request,
    repository: SqliteTaskRepository = Depends(get_repository),
) -> Response:
    requirement = await repository.create_requirement(await read_json(request))
    return write_response(request, [requirement], status_code=201)


@router.patch("/requirements")
async def patch_requirement(
    request: Request,
    repository: SqliteTaskRepository = Depends(get_repository),
) -> Response:
    requirement_id = require_eq_id(request)
    requirement = await repository.patch_requirement(
        requirement_id, await read_json(request)
    )
    return write_response(request, [requirement], status_code=200)


@router.delete("/requirements", status_code=204)
async def delete_requirement(
    request: Request,
    service: TaskService = Depends(get_task_service),
) -> Response:
    await service.delete_requirement(require_eq_id(request))
    return Response(status_code=204)
