"""任务子资源路由 -- /task_steps 与 /task_reviews

GET   /task_steps?task_id=eq.<id>&order=sort_order.asc
POST  /task_steps                  {task_id, title, ...}
GET   /task_reviews?task_id=eq.<id>&order=created_at.desc
POST  /task_reviews                {task_id, reason, confidence?}
PATCH /task_reviews?id=eq.<id>     {status, reviewer_comment?}

列表顺序固定（步骤按 sort_order 正序，审核按创建时间倒序），order 参数只做格式校验。
"""

from typing import Any

from fastapi import APIRouter, Depends, Request
from missionctl.core.exceptions import ValidationError
from missionctl.core.store import SqliteTaskRepository
from starlette.responses import Response

from ..deps import get_repository
from ..services.postgrest import (
    parse_eq,
    parse_filters,
    parse_order,
    read_json,
    require_eq_id,
    rows,
    write_response,
)

router = APIRouter()


def _task_id_filter(request: Request) -> int:
    parse_order(request.query_params.get("order"))
    filters = parse_filters(request.query_params, {"task_id"})
    if "task_id" not in filters:
        raise ValidationError("task_id=eq.<id> is required")
    return filters["task_id"]


def _split_task_id(body: Any) -> tuple[int, dict[str, Any]]:
    """从请求体中拆出 task_id，其余字段交给对应的输入模型校验"""
    if not isinstance(body, dict) or "task_id" not in body:
        raise ValidationError("task_id is required")
    fields = dict(body)
    task_id = fields.pop("task_id")
    if isinstance(task_id, bool) or not isinstance(task_id, int):
        task_id = parse_eq("task_id", f"eq.{task_id}")
    return task_id, fields


@router.get("/task_steps")
async def list_steps(
    request: Request,
    repository: SqliteTaskRepository = Depends(get_repository),
):
    steps = await repository.list_steps(_task_id_filter(request))
    return rows(steps)


@router.post("/task_steps", status_code=201)
async def append_step(
    request: Request,
    repository: SqliteTaskRepository = Depends(get_repository),
) -> Response:
    task_id, fields = _split_task_id(await read_json(request))
    step = await repository.append_step(task_id, fields)
    return write_response(request, [step], status_code=201)


@router.get("/task_reviews")
async def list_reviews(
    request: Request,
    repository: SqliteTaskRepository = Depends(get_repository),
):
    reviews = await repository.list_reviews(_task_id_filter(request))
    return rows(reviews)


@router.post("/task_reviews", status_code=201)
async def append_review(
    request: Request,
    repository: SqliteTaskRepository = Depends(get_repository),
) -> Response:
    task_id, fields = _split_task_id(await read_json(request))
    review = await repository.append_review(task_id, fields)
    return write_response(request, [review], status_code=201)


@router.patch("/task_reviews")
async def resolve_review(
    request: Request,
    repository: SqliteTaskRepository = Depends(get_repository),
) -> Response:
    review_id = require_eq_id(request)
    review = await repository.resolve_review(review_id, await read_json(request))
    return write_response(request, [review], status_code=200)
