"""任务路由 -- PostgREST 风格的 /tasks 资源

GET    /tasks?order=priority.desc,created_at.desc[&status=eq.review]
POST   /tasks                      -> 201 + [row]
PATCH  /tasks?id=eq.<id>           -> 200 + [row]
DELETE /tasks?id=eq.<id>           -> 204

状态变更不自动填充 started_at / completed_at，进入动作由调用方随 PATCH 一并提交。
"""

from fastapi import APIRouter, Depends, Request
from missionctl.core.store.task_store import TASK_FILTER_COLUMNS
from starlette.responses import Response

from ..deps import get_task_service
from ..services.postgrest import (
    parse_filters,
    parse_order,
    read_json,
    require_eq_id,
    rows,
    write_response,
)
from ..services.task_service import TaskService

router = APIRouter()


@router.get("/tasks")
async def list_tasks(
    request: Request,
    service: TaskService = Depends(get_task_service),
):
    """查询任务列表，默认按 priority desc, created_at desc 排序"""
    order = parse_order(request.query_params.get("order"))
    filters = parse_filters(request.query_params, TASK_FILTER_COLUMNS)
    tasks = await service.list_tasks(filters, order)
    return rows(tasks)


@router.post("/tasks", status_code=201)
async def create_task(
    request: Request,
    service: TaskService = Depends(get_task_service),
) -> Response:
    body = await read_json(request)
    task = await service.create_task(body)
    return write_response(request, [task], status_code=201)


@router.patch("/tasks")
async def patch_task(
    request: Request,
    service: TaskService = Depends(get_task_service),
) -> Response:
    task_id = require_eq_id(request)
    body = await read_json(request)
    task = await service.patch_task(task_id, body)
    return write_response(request, [task], status_code=200)


@router.delete("/tasks", status_code=204)
async def delete_task(
    request: Request,
    service: TaskService = Depends(get_task_service),
) -> Response:
    task_id = require_eq_id(request)
    await service.delete_task(task_id)
    return Response(status_code=204)
