"""BoardStore 单元测试"""

from missionctl.board.store import BoardStore
from missionctl.core.models import ReviewBucket, TaskStatus


class TestBoardStore:
    def test_replace_marks_loaded(self, task_factory):
        store = BoardStore()
        assert store.loaded is False
        store.replace_tasks([task_factory(1)])
        assert store.loaded is True
        assert [t.id for t in store.columns[TaskStatus.INBOX]] == [1]

    def test_pending_move_overlays_refresh(self, task_factory):
        store = BoardStore([task_factory(1)])
        token = store.begin_move(1, {"status": TaskStatus.REVIEW})

        store.replace_tasks([task_factory(1, title="server title")])

        task = store.tasks[0]
        assert task.status == TaskStatus.REVIEW
        assert task.title == "server title"

        store.settle_move(1, token)
        store.replace_tasks([task_factory(1)])
        assert store.tasks[0].status == TaskStatus.INBOX

    def test_stale_settle_keeps_newer_move(self, task_factory):
        store = BoardStore([task_factory(1)])
        first = store.begin_move(1, {"status": TaskStatus.REVIEW})
        store.begin_move(1, {"status": TaskStatus.DONE})

        store.settle_move(1, first)

        assert store.pending_task_ids == {1}
        store.replace_tasks([task_factory(1)])
        assert store.tasks[0].status == TaskStatus.DONE

    def test_pending_move_for_deleted_task_is_dropped(self, task_factory):
        store = BoardStore([task_factory(1), task_factory(2)])
        store.begin_move(1, {"status": TaskStatus.DONE})
        store.replace_tasks([task_factory(2)])
        assert [t.id for t in store.tasks] == [2]
        assert store.pending_task_ids == set()

        # 同 id 的任务重新出现时不再被旧的乐观字段覆盖
        store.replace_tasks([task_factory(1), task_factory(2)])
        assert store.tasks[0].status == TaskStatus.INBOX

    def test_listeners(self, task_factory):
        store = BoardStore()
        seen = []
        unsubscribe = store.subscribe(lambda s: seen.append(len(s.tasks)))
        store.replace_tasks([task_factory(1)])
        store.set_review_bucket("blocked")
        unsubscribe()
        store.replace_tasks([])
        assert seen == [1, 1]
        assert store.review_bucket == ReviewBucket.BLOCKED

    def test_error_acknowledgement(self):
        store = BoardStore()
        store.set_error("boom")
        assert store.error == "boom"
        store.acknowledge_error()
        assert store.error is None
