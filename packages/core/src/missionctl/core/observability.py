"""structlog 配置 -- 网关与看板 CLI 共用

两个入口共享同一套处理器链，区别只在输出去向与默认级别：
- 网关：stderr，默认 INFO，由进程管理器收集
- 看板 CLI：stdout 用于绘制看板，日志只写 stderr，默认 WARNING

环境变量:
    MISSIONCTL_LOG_FORMAT: "json" 结构化输出 / "dev"（默认）可读输出
    MISSIONCTL_LOG_LEVEL: 覆盖入口的默认级别
"""

import logging
import os
import sys
from typing import TextIO

import structlog

# 逐请求输出日志的第三方 logger，非 DEBUG 时压到 WARNING
_CHATTY_LOGGERS = ("httpx", "httpcore", "aiosqlite")


def _resolve_level(default_level: str) -> int:
    name = os.environ.get("MISSIONCTL_LOG_LEVEL", default_level).upper()
    return logging.getLevelNamesMapping().get(name, logging.INFO)


def configure_logging(
    stream: TextIO | None = None,
    default_level: str = "INFO",
) -> None:
    """初始化 structlog 与标准库 logging

    Args:
        stream: 日志输出流，默认 sys.stderr（调用时解析）
        default_level: 未设置 MISSIONCTL_LOG_LEVEL 时使用的级别
    """
    stream = stream if stream is not None else sys.stderr
    level = _resolve_level(default_level)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if os.environ.get("MISSIONCTL_LOG_FORMAT", "dev") == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer(
            ensure_ascii=False
        )
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=stream.isatty())

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=shared_processors,
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(level if level <= logging.DEBUG else logging.WARNING)
