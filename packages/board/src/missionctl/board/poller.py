"""BoardPoller -- 看板的轮询与对账引擎

一个看板视图一个轮询循环：
- 固定间隔拉取 list_tasks()，另外在创建/移动/删除后立即刷新
- 拉取结果整体替换本地状态，在途的乐观移动除外
- 轮询期间的传输错误静默等待下一轮；用户操作期间的错误写入 BoardStore.error
- 任何单次调用失败都不会取消轮询循环
- stop() 取消轮询循环与所有在途移动
"""

import asyncio
from collections.abc import Callable
from datetime import datetime
from typing import Any

import structlog
from missionctl.core.config import get_poll_interval_s
from missionctl.core.exceptions import MissionControlError, TransportError
from missionctl.core.lifecycle import entry_action_fields, utcnow
from missionctl.core.models import Task, TaskCreate, TaskStatus, parse_model
from missionctl.core.store.protocols import TaskRepository

from .reducer import find_task
from .store import BoardStore, TaskDetail

log = structlog.get_logger()


class BoardPoller:
    """看板对账引擎"""

    def __init__(
        self,
        repository: TaskRepository,
        store: BoardStore | None = None,
        interval_s: float | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """
        Args:
            repository: 任务仓储（SQLite 或 HTTP 实现）
            store: 看板状态容器，默认新建
            interval_s: 轮询间隔（秒），默认读取 MISSIONCTL_POLL_INTERVAL_S
            clock: 进入动作时间戳来源
        """
        self.repository = repository
        self.store = store or BoardStore()
        self.interval_s = interval_s if interval_s is not None else get_poll_interval_s()
        self._clock = clock
        self._poll_task: asyncio.Task | None = None
        self._inflight: set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    # ============================================================
    # 生命周期
    # ============================================================

    async def start(self) -> None:
        """首次拉取后启动轮询循环（重复调用无副作用）"""
        if self.running:
            return
        await self.refresh(explicit=True)
        self._poll_task = asyncio.create_task(self._poll_loop())

    async def stop(self) -> None:
        """视图销毁：取消轮询循环与在途移动"""
        tasks = list(self._inflight)
        if self._poll_task is not None:
            tasks.append(self._poll_task)
            self._poll_task = None
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._inflight.clear()

    async def __aenter__(self) -> "BoardPoller":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_s)
            try:
                await self.refresh()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                # 单次失败不终止轮询
                log.error("board_poll_failed", error=str(e), error_type=type(e).__name__)

    # ============================================================
    # 对账
    # ============================================================

    async def refresh(self, explicit: bool = False) -> bool:
        """拉取权威任务列表并替换本地状态

        Args:
            explicit: 是否由用户操作触发；轮询触发时传输错误静默

        Returns:
            True 如果拉取成功
        """
        try:
            tasks = await self.repository.list_tasks()
        except TransportError as e:
            if explicit:
                self.store.set_error(e.message)
            else:
                log.debug("board_poll_store_unreachable", error=e.message)
            return False
        except MissionControlError as e:
            log.warning("board_refresh_failed", error=e.message, code=e.code)
            self.store.set_error(e.message)
            return False

        self.store.replace_tasks(tasks, refreshed_at=self._clock())
        return True

    # ============================================================
    # 用户操作
    # ============================================================

    async def move_task(
        self,
        task_id: int,
        source: TaskStatus,
        target: TaskStatus,
    ) -> bool:
        """拖拽移动

        source == target 时为空操作，不调用仓储。
        否则先乐观移动本地卡片，再提交 PATCH（status + 进入动作字段）；
        失败时记录错误并重新拉取权威状态，不做手工回滚。

        Returns:
            True 如果 PATCH 成功
        """
        if TaskStatus(source) == TaskStatus(target):
            return False

        try:
            current = find_task(self.store.tasks, task_id)
            if current is None:
                # 本地尚无该任务（如首次拉取前），进入动作以服务端记录为准
                current = await self.repository.get_task(task_id)
            fields = entry_action_fields(current, TaskStatus(target), self._clock())
            token = self.store.begin_move(task_id, fields)
            try:
                await self.repository.patch_task(task_id, fields)
            finally:
                self.store.settle_move(task_id, token)
        except MissionControlError as e:
            log.warning(
                "board_move_failed",
                task_id=task_id,
                target=target,
                error=e.message,
                code=e.code,
            )
            await self._move_failed(task_id, e.message)
            return False
        except Exception as e:
            # 无法解析的响应等非预期失败，同样以重新拉取收场
            log.error(
                "board_move_failed",
                task_id=task_id,
                target=target,
                error=str(e),
                error_type=type(e).__name__,
            )
            await self._move_failed(task_id, str(e) or type(e).__name__)
            return False

        await log.ainfo("board_task_moved", task_id=task_id, source=source, target=target)
        await self.refresh(explicit=True)
        return True

    async def _move_failed(self, task_id: int, message: str) -> None:
        self.store.set_error(f"Failed to move task #{task_id}: {message}")
        await self.refresh(explicit=True)

    def schedule_move(
        self,
        task_id: int,
        source: TaskStatus,
        target: TaskStatus,
    ) -> asyncio.Task | None:
        """非阻塞地发起移动（拖拽回调使用），返回在途任务；空操作返回 None"""
        if TaskStatus(source) == TaskStatus(target):
            return None
        task = asyncio.create_task(self.move_task(task_id, source, target))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    async def create_task(self, data: TaskCreate | dict[str, Any]) -> Task | None:
        """创建任务

        Raises:
            ValidationError: 输入不合法（在任何网络往返之前抛出）

        Returns:
            创建的任务；仓储失败时返回 None 并写入 store.error
        """
        payload = parse_model(TaskCreate, data)
        try:
            task = await self.repository.create_task(payload)
        except MissionControlError as e:
            log.warning("board_create_failed", error=e.message, code=e.code)
            self.store.set_error(f"Failed to create task: {e.message}")
            return None
        await self.refresh(explicit=True)
        return task

    async def delete_task(self, task_id: int) -> bool:
        try:
            await self.repository.delete_task(task_id)
        except MissionControlError as e:
            log.warning("board_delete_failed", task_id=task_id, error=e.message, code=e.code)
            self.store.set_error(f"Failed to delete task #{task_id}: {e.message}")
            await self.refresh(explicit=True)
            return False
        await self.refresh(explicit=True)
        return True

    # ============================================================
    # 详情视图
    # ============================================================

    def select_task(self, task_id: int) -> None:
        self.store.select(task_id)

    def close_detail(self) -> None:
        self.store.close_detail()

    async def load_detail(self, task_id: int | None = None) -> TaskDetail | None:
        """加载详情（步骤 + 审核），任务已不存在时返回 None"""
        task_id = task_id if task_id is not None else self.store.selected_task_id
        if task_id is None:
            return None
        task = find_task(self.store.tasks, task_id)
        if task is None:
            return None
        try:
            steps, reviews = await asyncio.gather(
                self.repository.list_steps(task_id),
                self.repository.list_reviews(task_id),
            )
        except MissionControlError as e:
            log.warning("board_detail_failed", task_id=task_id, error=e.message)
            self.store.set_error(f"Failed to load task #{task_id}: {e.message}")
            return None
        return TaskDetail(task=task, steps=steps, reviews=reviews)
