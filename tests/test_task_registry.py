import threading
from datetime import datetime, timedelta, timezone

import pytest

from promptmedia.models.artifact import Artifact
from promptmedia.models.request import Mode
from promptmedia.models.task import Task, TaskStatus
from promptmedia.services.task_registry import TaskRegistry


def _artifact():
    return Artifact(data=b"png", mime_type="image/png", filename="generated-x.png")


def _task(task_id, *, done=False, at=None):
    task = Task(id=task_id, mode=Mode.TEXT_TO_IMAGE, request={"prompt": "p"})
    if done:
        task.complete(_artifact(), {"ok": True}, at=at)
    return task


def test_insert_get_list_preserves_insertion_order():
    registry = TaskRegistry()
    for tid in ("a", "b", "c"):
        registry.insert(_task(tid))

    assert registry.get("b").id == "b"
    assert registry.get("missing") is None
    assert [t.id for t in registry.list()] == ["a", "b", "c"]
    assert len(registry) == 3
    assert "a" in registry


def test_duplicate_insert_rejected():
    registry = TaskRegistry()
    registry.insert(_task("a"))
    with pytest.raises(ValueError):
        registry.insert(_task("a"))


def test_delete_is_idempotent():
    registry = TaskRegistry()
    registry.insert(_task("a"))

    assert registry.delete("a") is True
    assert registry.delete("a") is False
    assert registry.get("a") is None


def test_capacity_evicts_oldest_terminal_tasks():
    registry = TaskRegistry(capacity=2)
    registry.insert(_task("old", done=True))
    registry.insert(_task("pending"))
    registry.insert(_task("new", done=True))

    assert [t.id for t in registry.list()] == ["pending", "new"]


def test_capacity_never_evicts_pending_tasks():
    registry = TaskRegistry(capacity=1)
    registry.insert(_task("p1"))
    registry.insert(_task("p2"))

    assert len(registry) == 2


def test_ttl_sweeps_expired_terminal_tasks():
    now = datetime(2025, 1, 1, tzinfo=timezone.utc)
    registry = TaskRegistry(ttl_seconds=60, clock=lambda: now)
    registry.insert(_task("stale", done=True, at=now - timedelta(seconds=120)))
    registry.insert(_task("fresh", done=True, at=now - timedelta(seconds=10)))
    registry.insert(_task("running"))

    assert [t.id for t in registry.list()] == ["fresh", "running"]


def test_concurrent_inserts_are_all_stored():
    registry = TaskRegistry(capacity=1000)

    def worker(offset):
        for i in range(50):
            registry.insert(_task(f"{offset}-{i}"))

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(registry) == 400


def test_task_transitions_exactly_once():
    task = _task("a")
    task.complete(_artifact(), {"ok": True})

    assert task.status is TaskStatus.COMPLETED
    assert task.completed_at is not None
    with pytest.raises(RuntimeError):
        task.fail({"kind": "backend_failure", "message": "late"})


def test_task_to_dict_describes_artifact_without_bytes():
    task = _task("a", done=True)
    body = task.to_dict()

    assert body["taskId"] == "a"
    assert body["status"] == "completed"
    assert body["prompt"] == "p"
    assert body["artifact"] == {
        "filename": "generated-x.png",
        "mimeType": "image/png",
        "size": 3,
        "kind": "image",
    }
    assert body["error"] is None
