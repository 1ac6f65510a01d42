"""PostgREST 查询约定 -- 查询参数解析与响应形状

网关沿用看板原本依赖的 PostgREST 接口形状：
- 过滤：`col=eq.<value>`（只支持等值）
- 排序：`order=col.desc,col.asc`
- 写操作携带 `Prefer: return=representation` 时返回行数组，否则返回空响应
"""

from collections.abc import Iterable, Mapping
from typing import Any

from fastapi import Request
from missionctl.core.exceptions import ValidationError
from pydantic import BaseModel
from starlette.responses import JSONResponse, Response

# 非过滤用途的保留参数
RESERVED_PARAMS = frozenset({"order", "select", "limit", "offset"})

# 需要转换为整数比较的列
INTEGER_COLUMNS = frozenset({"id", "task_id", "requirement_id"})


def parse_eq(column: str, raw: str) -> Any:
    """解析单个 `eq.<value>` 过滤值"""
    operator, sep, value = raw.partition(".")
    if not sep or operator != "eq":
        raise ValidationError(f"unsupported filter for {column}: {raw!r} (only eq. is supported)")
    if column in INTEGER_COLUMNS:
        try:
            return int(value)
        except ValueError as e:
            raise ValidationError(f"{column} must be an integer, got {value!r}") from e
    return value


def parse_filters(params: Mapping[str, str], allowed: Iterable[str]) -> dict[str, Any]:
    """将查询参数解析为 {列名: 值}，忽略保留参数"""
    allowed = frozenset(allowed)
    filters: dict[str, Any] = {}
    for column, raw in params.items():
        if column in RESERVED_PARAMS:
            continue
        if column not in allowed:
            raise ValidationError(f"unsupported filter column: {column}")
        filters[column] = parse_eq(column, raw)
    return filters


def parse_order(raw: str | None) -> list[tuple[str, bool]] | None:
    """解析 `order=col.desc,col2.asc`，未给出方向时默认升序"""
    if not raw:
        return None
    order: list[tuple[str, bool]] = []
    for item in raw.split(","):
        column, _, direction = item.strip().partition(".")
        if not column:
            raise ValidationError(f"malformed order: {raw!r}")
        direction = direction or "asc"
        if direction not in ("asc", "desc"):
            raise ValidationError(f"unsupported order direction: {direction!r}")
        order.append((column, direction == "desc"))
    return order


def require_eq_id(request: Request, column: str = "id") -> int:
    """写操作必须通过 `?id=eq.<id>` 定位到单行"""
    raw = request.query_params.get(column)
    if raw is None:
        raise ValidationError(f"{column}=eq.<value> is required")
    return parse_eq(column, raw)


async def read_json(request: Request) -> Any:
    """读取 JSON 请求体"""
    try:
        return await request.json()
    except ValueError as e:
        raise ValidationError("request body must be valid JSON") from e


def wants_representation(request: Request) -> bool:
    return "return=representation" in request.headers.get("prefer", "")


def rows(items: Iterable[BaseModel]) -> list[dict[str, Any]]:
    return [item.model_dump(mode="json") for item in items]


def write_response(
    request: Request,
    items: Iterable[BaseModel],
    status_code: int,
) -> Response:
    """写操作响应：return=representation 时返回行数组，否则仅状态码"""
    if wants_representation(request):
        return JSONResponse(status_code=status_code, content=rows(items))
    return Response(status_code=status_code if status_code == 201 else 204)
