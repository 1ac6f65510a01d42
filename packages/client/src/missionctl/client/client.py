"""HttpTaskRepository -- 通过网关 REST 接口实现 TaskRepository

请求形状沿用 PostgREST 约定：
- 过滤条件 `col=eq.<value>`，排序 `order=col.desc,col.asc`
- POST/PATCH 携带 `Prefer: return=representation`，响应为行数组

输入在发请求前先做客户端校验，空标题等错误不产生网络往返。
"""

from typing import Any, TypeVar

import httpx
import structlog
from missionctl.core.exceptions import (
    ConflictError,
    MissionControlError,
    NotFoundError,
    ValidationError,
)
from missionctl.core.models import (
    Requirement,
    RequirementCreate,
    RequirementPatch,
    ReviewCreate,
    ReviewResolve,
    StepCreate,
    Task,
    TaskCreate,
    TaskPatch,
    TaskReview,
    TaskStep,
    parse_model,
)
from pydantic import BaseModel
from ulid import ULID

from .config import ClientConfig
from .exceptions import MalformedResponseError, StoreUnreachableError

log = structlog.get_logger()

# 健康检查超时（硬编码，应快速响应）
HEALTH_CHECK_TIMEOUT_S = 5

_RETURN_REPRESENTATION = {"Prefer": "return=representation"}

# 看板默认排序（与服务端一致）
BOARD_ORDER = "priority.desc,created_at.desc"

# 网关不可达或上游超时
UNREACHABLE_STATUSES = frozenset({502, 503, 504})

M = TypeVar("M", bound=BaseModel)


def _order_param(order: list[tuple[str, bool]] | None) -> str:
    if not order:
        return BOARD_ORDER
    return ",".join(f"{column}.{'desc' if descending else 'asc'}" for column, descending in order)


def _rows(response: httpx.Response, model: type[M]) -> list[M]:
    """解析行数组；JSON 解码或模型校验失败视为传输层错误"""
    try:
        data = response.json()
        if isinstance(data, dict):
            data = [data]
        return [model.model_validate(row) for row in data]
    except (ValueError, TypeError) as e:
        raise MalformedResponseError(str(response.url), e) from e


def _first_row(response: httpx.Response, model: type[M]) -> M:
    rows = _rows(response, model)
    if not rows:
        raise MalformedResponseError(str(response.url), "empty representation")
    return rows[0]


class HttpTaskRepository:
    """网关 HTTP 客户端

    满足 missionctl.core.store.TaskRepository 协议。超时依赖 httpx 客户端配置，
    不做额外的请求级取消。
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        timeout_s: float = 10,
        transport: httpx.AsyncBaseTransport | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """初始化网关客户端

        Args:
            base_url: 网关基础 URL
            timeout_s: 请求超时（秒）
            transport: 自定义传输层（测试中使用 MockTransport / ASGITransport）
            http_client: 外部管理的 AsyncClient，传入时忽略 transport/timeout_s
        """
        self._base_url = base_url.rstrip("/")
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout_s,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    @classmethod
    def from_config(cls, config: ClientConfig) -> "HttpTaskRepository":
        return cls(base_url=config.api_base_url, timeout_s=config.timeout_s)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def __aenter__(self) -> "HttpTaskRepository":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ============================================================
    # 传输与错误映射
    # ============================================================

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
        entity: str = "record",
        entity_id: int | str | None = None,
    ) -> httpx.Response:
        url = f"{self._base_url}{path}"
        # 网关沿用该 id 作为日志中的 request_id
        request_id = str(ULID())
        try:
            response = await self._http.request(
                method,
                url,
                params=params,
                json=json,
                headers={"X-Request-ID": request_id, **(headers or {})},
            )
        except httpx.TransportError as e:
            log.warning(
                "gateway_request_failed",
                method=method,
                url=url,
                request_id=request_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise StoreUnreachableError(url=url, original_error=e) from e

        if response.is_success:
            return response
        raise self._error_from_response(response, url, entity, entity_id)

    @staticmethod
    def _error_from_response(
        response: httpx.Response,
        url: str,
        entity: str,
        entity_id: int | str | None,
    ) -> MissionControlError:
        message = response.text
        errors: list[dict] = []
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            message = body["error"].get("message", message)
            errors = body["error"].get("errors", [])

        status = response.status_code
        if status == 400 or status == 422:
            return ValidationError(message, errors)
        if status == 404:
            return NotFoundError(entity, entity_id if entity_id is not None else "?")
        if status == 409:
            return ConflictError(message)
        if status in UNREACHABLE_STATUSES:
            return StoreUnreachableError(url=url, original_error=message)
        return MissionControlError(f"HTTP {status}: {message}")

    # ============================================================
    # Task
    # ============================================================

    async def list_tasks(
        self,
        filters: dict[str, Any] | None = None,
        order: list[tuple[str, bool]] | None = None,
    ) -> list[Task]:
        params = {column: f"eq.{value}" for column, value in (filters or {}).items()}
        params["order"] = _order_param(order)
        response = await self._request("GET", "/tasks", params=params)
        return _rows(response, Task)

    async def get_task(self, task_id: int) -> Task:
        response = await self._request(
            "GET",
            "/tasks",
            params={"id": f"eq.{task_id}"},
            entity="task",
            entity_id=task_id,
        )
        rows = _rows(response, Task)
        if not rows:
            raise NotFoundError("task", task_id)
        return rows[0]

    async def create_task(self, data: TaskCreate | dict[str, Any]) -> Task:
        payload = parse_model(TaskCreate, data)
        response = await self._request(
            "POST",
            "/tasks",
            json=payload.model_dump(mode="json"),
            headers=_RETURN_REPRESENTATION,
        )
        return _first_row(response, Task)

    async def patch_task(self, task_id: int, fields: TaskPatch | dict[str, Any]) -> Task:
        patch = parse_model(TaskPatch, fields)
        response = await self._request(
            "PATCH",
            "/tasks",
            params={"id": f"eq.{task_id}"},
            json=patch.model_dump(mode="json", exclude_unset=True),
            headers=_RETURN_REPRESENTATION,
            entity="task",
            entity_id=task_id,
        )
        return _first_row(response, Task)

    async def delete_task(self, task_id: int) -> None:
        await self._request(
            "DELETE",
            "/tasks",
            params={"id": f"eq.{task_id}"},
            entity="task",
            entity_id=task_id,
        )

    # ============================================================
    # TaskStep / TaskReview
    # ============================================================

    async def list_steps(self, task_id: int) -> list[TaskStep]:
        response = await self._request(
            "GET",
            "/task_steps",
            params={"task_id": f"eq.{task_id}", "order": "sort_order.asc"},
        )
        return _rows(response, TaskStep)

    async def append_step(self, task_id: int, data: StepCreate | dict[str, Any]) -> TaskStep:
        payload = parse_model(StepCreate, data)
        body = {"task_id": task_id, **payload.model_dump(mode="json")}
        response = await self._request(
            "POST",
            "/task_steps",
            json=body,
            headers=_RETURN_REPRESENTATION,
            entity="task",
            entity_id=task_id,
        )
        return _first_row(response, TaskStep)

    async def list_reviews(self, task_id: int) -> list[TaskReview]:
        response = await self._request(
            "GET",
            "/task_reviews",
            params={"task_id": f"eq.{task_id}", "order": "created_at.desc"},
        )
        return _rows(response, TaskReview)

    async def append_review(
        self,
        task_id: int,
        data: ReviewCreate | dict[str, Any],
    ) -> TaskReview:
        payload = parse_model(ReviewCreate, data)
        body = {"task_id": task_id, **payload.model_dump(mode="json")}
        response = await self._request(
            "POST",
            "/task_reviews",
            json=body,
            headers=_RETURN_REPRESENTATION,
            entity="task",
            entity_id=task_id,
        )
        return _first_row(response, TaskReview)

    async def resolve_review(
        self,
        review_id: int,
        data: ReviewResolve | dict[str, Any],
    ) -> TaskReview:
        payload = parse_model(ReviewResolve, data)
        response = await self._request(
            "PATCH",
            "/task_reviews",
            params={"id": f"eq.{review_id}"},
            json=payload.model_dump(mode="json", exclude_unset=True),
            headers=_RETURN_REPRESENTATION,
            entity="review",
            entity_id=review_id,
        )
        return _first_row(response, TaskReview)

    # ============================================================
    # Requirement
    # ============================================================

    async def list_requirements(self) -> list[Requirement]:
        response = await self._request("GET", "/requirements")
        return _rows(response, Requirement)

    async def create_requirement(
        self,
        data: RequirementCreate | dict[str, Any],
    ) -> Requirement:
        payload = parse_model(RequirementCreate, data)
        response = await self._request(
            "POST",
            "/requirements",
            json=payload.model_dump(mode="json"),
            headers=_RETURN_REPRESENTATION,
        )
        return _first_row(response, Requirement)

    async def patch_requirement(
        self,
        requirement_id: int,
        fields: RequirementPatch | dict[str, Any],
    ) -> Requirement:
        patch = parse_model(RequirementPatch, fields)
        response = await self._request(
            "PATCH",
            "/requirements",
            params={"id": f"eq.{requirement_id}"},
            json=patch.model_dump(mode="json", exclude_unset=True),
            headers=_RETURN_REPRESENTATION,
            entity="requirement",
            entity_id=requirement_id,
        )
        return _first_row(response, Requirement)

    async def delete_requirement(self, requirement_id: int) -> None:
        await self._request(
            "DELETE",
            "/requirements",
            params={"id": f"eq.{requirement_id}"},
            entity="requirement",
            entity_id=requirement_id,
        )

    # ============================================================
    # 健康检查
    # ============================================================

    async def health_check(self) -> bool:
        """检查网关可达性

        发送 GET {base_url}/health 请求。

        注意: 此方法不抛出异常，所有异常内部捕获并返回 False。
        """
        try:
            resp = await self._http.get(f"{self._base_url}/health", timeout=HEALTH_CHECK_TIMEOUT_S)
            return resp.status_code == 200
        except httpx.HTTPError as e:
            log.debug("health_check_failed", url=self._base_url, error=str(e))
            return False
