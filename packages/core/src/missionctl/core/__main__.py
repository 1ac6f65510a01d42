"""CLI 入口模块 -- python -m missionctl.core <command>

支持的命令：
  init-db     创建数据库与表结构
  list-tasks  按看板顺序打印全部任务
"""

import asyncio
import sys

from .config import get_db_path


def main() -> None:
    """CLI 主入口"""
    if len(sys.argv) < 2:
        print("用法: python -m missionctl.core <command>")
        print("命令:")
        print("  init-db     创建数据库与表结构")
        print("  list-tasks  按看板顺序打印全部任务")
        sys.exit(1)

    command = sys.argv[1]

    if command == "init-db":
        asyncio.run(initialize())
    elif command == "list-tasks":
        asyncio.run(list_tasks())
    else:
        print(f"未知命令: {command}")
        print("可用命令: init-db, list-tasks")
        sys.exit(1)


async def initialize() -> None:
    """初始化数据库（幂等）"""
    from .store import create_store_group, verify_foreign_keys

    db_path = get_db_path()
    print(f"数据库路径: {db_path}")

    store_group = await create_store_group(db_path)
    try:
        fk_enabled = await verify_foreign_keys(store_group.conn)
        print(f"初始化完成，外键约束: {'ON' if fk_enabled else 'OFF'}")
    finally:
        await store_group.conn.close()


async def list_tasks() -> None:
    """打印任务列表"""
    from .store import SqliteTaskRepository, create_store_group

    store_group = await create_store_group(get_db_path())
    try:
        tasks = await SqliteTaskRepository(store_group).list_tasks()
        for task in tasks:
            print(f"#{task.id:<5} {task.status:<12} {task.priority:<9} {task.title}")
        print(f"共 {len(tasks)} 个任务")
    finally:
        await store_group.conn.close()


if __name__ == "__main__":
    main()
