"""BoardPoller 对账引擎测试

测试内容：
1. 空操作移动不调用仓储
2. 乐观移动立即生效，在途期间不被轮询结果覆盖
3. PATCH 失败：记录错误并重新拉取，不取消轮询
4. 轮询期间传输错误静默；用户操作期间暴露
5. 详情任务被删除后详情静默关闭
6. 空标题在任何网络往返之前被拒绝
7. stop() 取消轮询与在途移动
"""

import asyncio
from datetime import timedelta

import pytest
from missionctl.board.poller import BoardPoller
from missionctl.core.exceptions import NotFoundError, TransportError, ValidationError
from missionctl.core.models import TaskStatus


@pytest.fixture
def poller(fake_repo, base_time) -> BoardPoller:
    return BoardPoller(fake_repo, interval_s=0.01, clock=lambda: base_time)


async def _settle() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


class TestLifecycle:
    async def test_start_fetches_then_polls(self, poller, fake_repo):
        await poller.start()
        try:
            assert poller.store.loaded is True
            assert len(poller.store.tasks) == 5
            await asyncio.sleep(0.05)
            assert len(fake_repo.calls_to("list_tasks")) >= 2
        finally:
            await poller.stop()
        assert poller.running is False

    async def test_start_is_idempotent(self, poller, fake_repo):
        await poller.start()
        first = poller._poll_task
        await poller.start()
        assert poller._poll_task is first
        await poller.stop()

    async def test_stop_cancels_inflight_moves(self, poller, fake_repo):
        await poller.refresh()
        fake_repo.patch_gate = asyncio.Event()
        move = poller.schedule_move(1, TaskStatus.INBOX, TaskStatus.REVIEW)
        await _settle()

        await poller.stop()

        assert move.cancelled()
        assert fake_repo.calls_to("patch_task") == []

    async def test_context_manager(self, fake_repo):
        async with BoardPoller(fake_repo, interval_s=10) as poller:
            assert poller.running
        assert not poller.running


class TestMove:
    async def test_same_status_is_noop(self, poller, fake_repo):
        await poller.refresh()
        assert await poller.move_task(1, TaskStatus.INBOX, TaskStatus.INBOX) is False
        assert poller.schedule_move(1, TaskStatus.INBOX, "inbox") is None
        assert fake_repo.calls_to("patch_task") == []

    async def test_move_patches_status_with_entry_actions(self, poller, fake_repo, base_time):
        await poller.refresh()
        assert await poller.move_task(1, TaskStatus.INBOX, TaskStatus.IN_PROGRESS) is True

        [(task_id, changes)] = fake_repo.calls_to("patch_task")
        assert task_id == 1
        assert changes == {"status": TaskStatus.IN_PROGRESS, "started_at": base_time}
        assert fake_repo.tasks[1].status == TaskStatus.IN_PROGRESS

    async def test_move_to_done_sets_completed_at(self, poller, fake_repo, base_time):
        await poller.refresh()
        await poller.move_task(3, TaskStatus.REVIEW, TaskStatus.DONE)
        [(_, changes)] = fake_repo.calls_to("patch_task")
        assert changes["completed_at"] == base_time

    async def test_reopening_done_keeps_completed_at(self, poller, fake_repo, base_time):
        await poller.refresh()
        completed = fake_repo.tasks[5].completed_at
        await poller.move_task(5, TaskStatus.DONE, TaskStatus.INBOX)

        [(_, changes)] = fake_repo.calls_to("patch_task")
        assert changes == {"status": TaskStatus.INBOX}
        assert fake_repo.tasks[5].completed_at == completed

    async def test_optimistic_move_survives_poll_until_settled(self, poller, fake_repo):
        await poller.refresh()
        fake_repo.patch_gate = asyncio.Event()

        move = poller.schedule_move(1, TaskStatus.INBOX, TaskStatus.DONE)
        await _settle()

        # 本地立即移动
        columns = poller.store.columns
        assert 1 in [t.id for t in columns[TaskStatus.DONE]]
        assert 1 in poller.store.pending_task_ids

        # 服务端尚未更新，轮询结果不能覆盖在途移动
        await poller.refresh()
        assert fake_repo.tasks[1].status == TaskStatus.INBOX
        assert 1 in [t.id for t in poller.store.columns[TaskStatus.DONE]]

        fake_repo.patch_gate.set()
        assert await move is True
        assert poller.store.pending_task_ids == set()
        assert fake_repo.tasks[1].status == TaskStatus.DONE

    async def test_failed_move_refetches_authoritative_state(self, poller, fake_repo):
        await poller.refresh()
        fake_repo.fail_with["patch_task"] = TransportError("gateway down")
        list_calls_before = len(fake_repo.calls_to("list_tasks"))

        assert await poller.move_task(1, TaskStatus.INBOX, TaskStatus.REVIEW) is False

        assert "gateway down" in poller.store.error
        assert len(fake_repo.calls_to("list_tasks")) == list_calls_before + 1
        task = next(t for t in poller.store.tasks if t.id == 1)
        assert task.status == TaskStatus.INBOX
        assert poller.store.pending_task_ids == set()

    async def test_failed_move_does_not_cancel_polling(self, poller, fake_repo):
        await poller.start()
        try:
            fake_repo.fail_with["patch_task"] = NotFoundError("task", 1)
            await poller.move_task(1, TaskStatus.INBOX, TaskStatus.DONE)
            calls = len(fake_repo.calls_to("list_tasks"))
            await asyncio.sleep(0.05)
            assert poller.running
            assert len(fake_repo.calls_to("list_tasks")) > calls
        finally:
            await poller.stop()

    async def test_unexpected_move_failure_releases_optimistic_state(self, poller, fake_repo):
        await poller.refresh()
        fake_repo.fail_with["patch_task"] = ValueError("unparseable response body")

        assert await poller.move_task(1, TaskStatus.INBOX, TaskStatus.DONE) is False

        assert poller.store.pending_task_ids == set()
        assert "unparseable response body" in poller.store.error
        # 下一次拉取即为权威状态
        await poller.refresh()
        task = next(t for t in poller.store.tasks if t.id == 1)
        assert task.status == fake_repo.tasks[1].status == TaskStatus.INBOX

    async def test_move_before_first_refresh_keeps_server_started_at(self, fake_repo, base_time):
        later = base_time + timedelta(days=1)
        poller = BoardPoller(fake_repo, interval_s=0.01, clock=lambda: later)

        assert await poller.move_task(2, TaskStatus.REVIEW, TaskStatus.IN_PROGRESS) is True

        assert fake_repo.calls_to("get_task") == [(2,)]
        [(_, changes)] = fake_repo.calls_to("patch_task")
        assert changes == {"status": TaskStatus.IN_PROGRESS}
        assert fake_repo.tasks[2].started_at == base_time

    async def test_move_of_unknown_task_surfaces_error(self, poller, fake_repo):
        assert await poller.move_task(99, TaskStatus.INBOX, TaskStatus.DONE) is False
        assert fake_repo.calls_to("patch_task") == []
        assert poller.store.error.startswith("Failed to move task #99")
        assert poller.store.pending_task_ids == set()


class TestRefresh:
    async def test_poll_transport_error_is_silent(self, poller, fake_repo):
        await poller.refresh()
        fake_repo.fail_with["list_tasks"] = TransportError("timeout")

        assert await poller.refresh() is False
        assert poller.store.error is None
        # 保留最后一次成功的状态
        assert len(poller.store.tasks) == 5

    async def test_explicit_transport_error_is_surfaced(self, poller, fake_repo):
        fake_repo.fail_with["list_tasks"] = TransportError("timeout")
        assert await poller.refresh(explicit=True) is False
        assert poller.store.error == "timeout"

    async def test_poll_loop_survives_transport_errors(self, poller, fake_repo):
        await poller.start()
        try:
            fake_repo.fail_with["list_tasks"] = TransportError("timeout")
            await asyncio.sleep(0.05)
            assert poller.running
            assert poller.store.error is None
        finally:
            await poller.stop()

    async def test_detail_closes_when_task_deleted(self, poller, fake_repo):
        await poller.refresh()
        poller.select_task(3)
        assert poller.store.selected_task.id == 3

        del fake_repo.tasks[3]
        await poller.refresh()

        assert poller.store.selected_task_id is None
        assert poller.store.selected_task is None

    async def test_selected_task_follows_server_updates(self, poller, fake_repo):
        await poller.refresh()
        poller.select_task(4)
        fake_repo.tasks[4] = fake_repo.tasks[4].model_copy(update={"title": "renamed"})
        await poller.refresh()
        assert poller.store.selected_task.title == "renamed"


class TestCreateDelete:
    @pytest.mark.parametrize("title", ["", "   "])
    async def test_empty_title_rejected_without_round_trip(self, poller, fake_repo, title):
        with pytest.raises(ValidationError):
            await poller.create_task({"title": title})
        assert fake_repo.calls == []

    async def test_create_refreshes_board(self, poller, fake_repo):
        task = await poller.create_task({"title": "Implement X", "priority": "high"})
        assert task is not None
        assert task.id in [t.id for t in poller.store.tasks]

    async def test_create_transport_error_surfaced(self, poller, fake_repo):
        fake_repo.fail_with["create_task"] = TransportError("unreachable")
        assert await poller.create_task({"title": "x"}) is None
        assert "unreachable" in poller.store.error

    async def test_delete_closes_detail(self, poller, fake_repo):
        await poller.refresh()
        poller.select_task(2)
        assert await poller.delete_task(2) is True
        assert poller.store.selected_task_id is None
        assert 2 not in [t.id for t in poller.store.tasks]

    async def test_delete_unknown_surfaces_error(self, poller, fake_repo):
        await poller.refresh()
        assert await poller.delete_task(99) is False
        assert "99" in poller.store.error

    async def test_acknowledge_error(self, poller, fake_repo):
        await poller.delete_task(99)
        poller.store.acknowledge_error()
        assert poller.store.error is None


class TestDetail:
    async def test_load_detail(self, poller, fake_repo):
        await poller.refresh()
        poller.select_task(3)
        detail = await poller.load_detail()
        assert detail.task.id == 3
        assert detail.steps == []
        assert detail.reviews == []
        assert fake_repo.calls_to("list_steps") == [(3,)]
        assert fake_repo.calls_to("list_reviews") == [(3,)]

    async def test_load_detail_without_selection(self, poller):
        assert await poller.load_detail() is None

    async def test_load_detail_failure(self, poller, fake_repo):
        await poller.refresh()
        fake_repo.fail_with["list_steps"] = TransportError("down")
        assert await poller.load_detail(1) is None
        assert "down" in poller.store.error
