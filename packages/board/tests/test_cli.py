"""看板 CLI 入口测试"""

import logging
import sys

import pytest
import structlog
from missionctl.board.__main__ import main


@pytest.fixture(autouse=True)
def _restore_logging(monkeypatch):
    monkeypatch.delenv("MISSIONCTL_LOG_LEVEL", raising=False)
    monkeypatch.delenv("MISSIONCTL_LOG_FORMAT", raising=False)
    yield
    structlog.reset_defaults()
    logging.getLogger().handlers.clear()


def test_logs_go_to_stderr_not_board_output(monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", ["missionctl-board"])
    with pytest.raises(SystemExit) as exc_info:
        main()
    assert exc_info.value.code == 1

    log = structlog.get_logger("missionctl.board.poller")
    log.info("board_task_moved", task_id=1)
    log.warning("board_move_failed", task_id=1)

    captured = capsys.readouterr()
    assert "用法" in captured.out
    assert "board_move_failed" not in captured.out
    assert "board_move_failed" in captured.err
    assert "board_task_moved" not in captured.err
