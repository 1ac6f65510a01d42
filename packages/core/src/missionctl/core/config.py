"""配置常量模块 -- 可通过环境变量覆盖

包含数据库路径、看板轮询间隔、SSE 心跳间隔、卡片展示参数等可配置常量。
"""

import os
from pathlib import Path


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("MISSIONCTL_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "MISSIONCTL_DB_PATH",
        str(_get_base_dir() / "sqlite" / "missionctl.db"),
    )


def get_poll_interval_s() -> float:
    """获取看板轮询间隔（秒）"""
    return float(os.environ.get("MISSIONCTL_POLL_INTERVAL_S", "10"))


# SSE 心跳间隔（秒）
SSE_HEARTBEAT_INTERVAL: int = int(
    os.environ.get("MISSIONCTL_SSE_HEARTBEAT_INTERVAL", "15")
)

# 卡片上最多展示的标签数
CARD_VISIBLE_TAGS: int = 3

# metadata 中唯一被核心层解释的键：Review 列子分桶依据
REVIEW_REASON_KEY: str = "review_reason"
