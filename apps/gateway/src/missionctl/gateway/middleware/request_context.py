"""RequestContextMiddleware -- 请求级日志上下文

每个请求在 structlog contextvars 中绑定：
- request_id：沿用调用方传入的 X-Request-ID（HttpTaskRepository 每次请求都会附带），
  缺失或格式不合法时生成 ULID；通过 X-Request-ID 响应头返回
- task_id：PostgREST 风格查询参数定位到的任务
  （/tasks?id=eq.<id>、/task_steps?task_id=eq.<id>、/task_reviews?task_id=eq.<id>）

请求结束时记录一条 request_completed（状态码 + 耗时）。
"""

import re
import time
from collections.abc import Mapping

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from ulid import ULID

REQUEST_ID_HEADER = "X-Request-ID"

_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._:-]{1,64}$")

_TASK_PATH = "/tasks"
_CHILD_PATHS = ("/task_steps", "/task_reviews")


def resolve_request_id(incoming: str | None) -> str:
    """沿用合法的上游 request_id，否则生成新的 ULID"""
    if incoming and _REQUEST_ID_PATTERN.match(incoming):
        return incoming
    return str(ULID())


def extract_task_id(path: str, query_params: Mapping[str, str]) -> int | None:
    """从查询参数提取 task_id，无法识别时返回 None"""
    if path == _TASK_PATH:
        raw = query_params.get("id")
    elif path in _CHILD_PATHS:
        raw = query_params.get("task_id")
    else:
        return None
    if not raw or not raw.startswith("eq."):
        return None
    value = raw[3:]
    return int(value) if value.isdigit() else None


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        task_id = extract_task_id(request.url.path, request.query_params)
        if task_id is not None:
            structlog.contextvars.bind_contextvars(task_id=task_id)

        log = structlog.get_logger()
        started = time.monotonic()
        try:
            response = await call_next(request)
        except Exception:
            await log.aexception(
                "request_failed",
                duration_ms=int((time.monotonic() - started) * 1000),
            )
            raise

        await log.ainfo(
            "request_completed",
            status_code=response.status_code,
            duration_ms=int((time.monotonic() - started) * 1000),
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
