"""列值编解码 -- Python 值 <-> SQLite TEXT/INTEGER"""

import json
from datetime import UTC, datetime
from enum import Enum
from typing import Any


def ts_to_db(value: datetime | None) -> str | None:
    """时间戳统一以微秒精度 ISO 字符串存储，保证字典序即时间序"""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def ts_from_db(value: str | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromisoformat(value)


def encode_value(value: Any) -> Any:
    """将单个字段值编码为可绑定的 SQLite 参数"""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return ts_to_db(value)
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (list, dict)):
        return json.dumps(value, ensure_ascii=False)
    return value


def json_from_db(value: str | None, default: Any) -> Any:
    if not value:
        return default
    return json.loads(value)
