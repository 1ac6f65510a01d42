"""SSEHub -- 内存中任务快照广播器

每个订阅者持有一个 asyncio.Queue，支持 subscribe/unsubscribe/broadcast。
推送的是完整任务列表快照，订阅方整体替换本地状态，不做增量合并。
"""

import asyncio
from typing import Any

TaskSnapshot = list[dict[str, Any]]


class SSEHub:
    """SSE 快照广播器 -- 基于 asyncio.Queue 的发布/订阅模式"""

    def __init__(self, queue_maxsize: int = 100) -> None:
        self._subscribers: set[asyncio.Queue] = set()
        self._queue_maxsize = queue_maxsize

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def subscribe(self) -> asyncio.Queue:
        """订阅任务快照流

        Returns:
            asyncio.Queue 实例，新快照会被推送到此队列
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._queue_maxsize)
        self._subscribers.add(queue)
        return queue

    async def unsubscribe(self, queue: asyncio.Queue) -> None:
        """取消订阅

        Args:
            queue: 之前订阅时返回的队列
        """
        self._subscribers.discard(queue)

    async def broadcast(self, snapshot: TaskSnapshot) -> None:
        """向所有订阅者广播快照

        Args:
            snapshot: 完整任务列表（已序列化为 JSON 兼容结构）
        """
        dead_queues = []
        for queue in self._subscribers:
            try:
                queue.put_nowait(snapshot)
            except asyncio.QueueFull:
                dead_queues.append(queue)

        # 清理已满的队列（消费过慢的订阅者）
        for q in dead_queues:
            self._subscribers.discard(q)
