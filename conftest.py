"""全局 pytest 配置 -- 确定性时钟 fixture"""

from datetime import UTC, datetime, timedelta

import pytest


class TickingClock:
    """每次调用前进 1 秒的确定性时钟"""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2026, 10, 1, 9, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


@pytest.fixture
def clock() -> TickingClock:
    """存储层时间戳来源：保证 created_at 严格递增"""
    return TickingClock()
