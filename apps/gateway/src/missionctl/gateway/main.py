"""FastAPI 应用主文件

app 创建 + lifespan 管理：DB 初始化/关闭 + 仓储、SSE、Collaborator 初始化 + 路由注册。
领域异常统一转换为 {"error": {"code", "message"}} 响应体。
"""

import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from missionctl.client import CliCollaborator, load_client_config
from missionctl.core.config import get_db_path
from missionctl.core.exceptions import (
    ConflictError,
    MissionControlError,
    NotFoundError,
    TransportError,
    ValidationError,
)
from missionctl.core.observability import configure_logging
from missionctl.core.store import SqliteTaskRepository, create_store_group
from starlette.responses import JSONResponse

from .middleware.request_context import RequestContextMiddleware
from .routes import agents, health, requirements, stream, task_children, tasks
from .services.sse_hub import SSEHub

log = structlog.get_logger()

# 领域异常 -> HTTP 状态码
ERROR_STATUS: dict[type[MissionControlError], int] = {
    ValidationError: 400,
    NotFoundError: 404,
    ConflictError: 409,
    TransportError: 502,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理：启动时初始化 DB，关闭时清理连接"""
    db_path = get_db_path()
    store_group = await create_store_group(db_path)
    app.state.store_group = store_group
    app.state.repository = SqliteTaskRepository(store_group)
    app.state.sse_hub = SSEHub()
    app.state.collaborator = CliCollaborator.from_config(load_client_config())
    log.info("gateway_started", db_path=db_path)

    yield

    if getattr(app.state, "store_group", None) is not None:
        await app.state.store_group.conn.close()


def _error_body(code: str, message: str, **extra) -> dict:
    return {"error": {"code": code, "message": message, **extra}}


async def handle_domain_error(request: Request, exc: MissionControlError) -> JSONResponse:
    status_code = 500
    for error_type, mapped in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            status_code = mapped
            break
    extra = {"errors": exc.errors} if isinstance(exc, ValidationError) and exc.errors else {}
    if status_code >= 500:
        await log.aerror("request_failed", error_code=exc.code, error=exc.message)
    return JSONResponse(
        status_code=status_code,
        content=_error_body(exc.code, exc.message, **extra),
    )


async def handle_request_validation(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = [
        {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=_error_body("VALIDATION_ERROR", "Invalid request", errors=errors),
    )


def _instrument_logfire(app: FastAPI) -> None:
    """LOGFIRE_SEND_TO_LOGFIRE=true 时启用 Logfire APM（需要 logfire extra 与 LOGFIRE_TOKEN）"""
    if os.environ.get("LOGFIRE_SEND_TO_LOGFIRE", "false").lower() != "true":
        return
    try:
        import logfire

        logfire.configure()
        logfire.instrument_fastapi(app)
    except Exception as e:
        # 初始化失败时退回纯本地日志
        log.warning("logfire_init_failed", error=str(e))


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="Mission Control Gateway",
        version="0.1.0",
        description="Mission Control 任务看板 REST 网关",
        lifespan=lifespan,
    )

    app.add_middleware(RequestContextMiddleware)

    app.add_exception_handler(MissionControlError, handle_domain_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)

    configure_logging()
    _instrument_logfire(app)

    app.include_router(tasks.router, tags=["tasks"])
    app.include_router(task_children.router, tags=["tasks"])
    app.include_router(requirements.router, tags=["requirements"])
    app.include_router(agents.router, tags=["agents"])
    app.include_router(stream.router, tags=["stream"])
    app.include_router(health.router, tags=["health"])

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()
