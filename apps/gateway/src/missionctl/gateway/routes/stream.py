"""SSE 任务快照流

GET /api/stream/tasks: 连接后先推送一次完整任务列表，之后每次任务变更推送一次，
空闲期间发送心跳注释保活。客户端收到 snapshot 事件后整体替换本地任务列表。
"""

import asyncio
import json
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends
from missionctl.core.config import SSE_HEARTBEAT_INTERVAL
from sse_starlette.sse import EventSourceResponse
from ulid import ULID

from ..deps import get_sse_hub, get_task_service
from ..services.sse_hub import SSEHub, TaskSnapshot
from ..services.task_service import TaskService

router = APIRouter()

SNAPSHOT_EVENT = "snapshot"


def _snapshot_message(snapshot: TaskSnapshot) -> dict:
    return {
        "id": str(ULID()),
        "event": SNAPSHOT_EVENT,
        "data": json.dumps(snapshot, ensure_ascii=False),
    }


async def task_snapshot_events(
    service: TaskService,
    sse_hub: SSEHub,
    heartbeat_s: float = SSE_HEARTBEAT_INTERVAL,
) -> AsyncIterator[dict]:
    """生成 SSE 消息：初始快照、变更快照与心跳"""
    # 先订阅再读初始快照，避免丢失两者之间发生的变更
    queue = await sse_hub.subscribe()
    try:
        yield _snapshot_message(await service.snapshot())
        while True:
            try:
                snapshot = await asyncio.wait_for(queue.get(), timeout=heartbeat_s)
                yield _snapshot_message(snapshot)
            except TimeoutError:
                yield {"comment": "heartbeat"}
    finally:
        await sse_hub.unsubscribe(queue)


@router.get("/api/stream/tasks")
async def stream_tasks(
    service: TaskService = Depends(get_task_service),
    sse_hub: SSEHub = Depends(get_sse_hub),
):
    """任务快照 SSE 端点"""
    return EventSourceResponse(task_snapshot_events(service, sse_hub))
