"""CLI 入口模块 -- python -m missionctl.board <command>

支持的命令：
  show                  打印一次看板
  watch [bucket]        按轮询间隔持续刷新看板（Ctrl-C 退出）
  detail <id>           打印任务详情（步骤 + 审核）
  move <id> <status>    移动任务到指定列
  create <title>        新建任务
  delete <id>           删除任务
"""

import asyncio
import sys

from missionctl.client import HttpTaskRepository, load_client_config
from missionctl.core.exceptions import MissionControlError, ValidationError
from missionctl.core.models import ReviewBucket, TaskStatus
from missionctl.core.observability import configure_logging

from .poller import BoardPoller
from .presenter import render_board, render_detail
from .reducer import find_task
from .terminal import format_board, format_detail

_USAGE = __doc__.split("支持的命令：", 1)[1]


def main() -> None:
    """CLI 主入口"""
    # stdout 留给看板输出
    configure_logging(stream=sys.stderr, default_level="WARNING")

    if len(sys.argv) < 2:
        print("用法: python -m missionctl.board <command>")
        print("命令:" + _USAGE)
        sys.exit(1)

    command, args = sys.argv[1], sys.argv[2:]
    try:
        exit_code = asyncio.run(run(command, args))
    except KeyboardInterrupt:
        exit_code = 0
    sys.exit(exit_code)


async def run(command: str, args: list[str]) -> int:
    config = load_client_config()
    async with HttpTaskRepository.from_config(config) as repository:
        poller = BoardPoller(repository)
        try:
            return await _dispatch(poller, command, args)
        except (ValidationError, ValueError, IndexError) as e:
            print(f"参数错误: {e}")
            return 2
        except MissionControlError as e:
            print(f"请求失败: {e.message}")
            return 1
        finally:
            await poller.stop()


async def _dispatch(poller: BoardPoller, command: str, args: list[str]) -> int:
    store = poller.store

    if command == "show":
        await poller.refresh(explicit=True)
        return _print_board(poller)

    if command == "watch":
        if args:
            store.set_review_bucket(ReviewBucket(args[0]))
        store.subscribe(lambda _: _print_board(poller))
        await poller.start()
        while True:
            await asyncio.sleep(3600)

    if command == "detail":
        await poller.refresh(explicit=True)
        poller.select_task(int(args[0]))
        detail = await poller.load_detail()
        if detail is None:
            print(store.error or f"任务 #{args[0]} 不存在")
            return 1
        print(format_detail(render_detail(detail.task, detail.steps, detail.reviews)))
        return 0

    if command == "move":
        await poller.refresh(explicit=True)
        task_id, target = int(args[0]), TaskStatus(args[1])
        current = find_task(store.tasks, task_id)
        if current is None:
            print(f"任务 #{task_id} 不存在")
            return 1
        await poller.move_task(task_id, current.status, target)
        return _print_board(poller)

    if command == "create":
        task = await poller.create_task({"title": " ".join(args)})
        if task is None:
            print(store.error)
            return 1
        print(f"已创建任务 #{task.id}")
        return 0

    if command == "delete":
        ok = await poller.delete_task(int(args[0]))
        if not ok:
            print(store.error)
            return 1
        print(f"已删除任务 #{args[0]}")
        return 0

    print(f"未知命令: {command}")
    print("可用命令: show, watch, detail, move, create, delete")
    return 1


def _print_board(poller: BoardPoller) -> int:
    store = poller.store
    print(format_board(render_board(store.tasks, store.review_bucket)))
    if store.error:
        print(f"\n错误: {store.error}")
        store.error = None  # 已展示，直接清除以免触发重绘
        return 1
    return 0


if __name__ == "__main__":
    main()
