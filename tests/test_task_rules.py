# tests/test_task_rules.py

from __future__ import annotations

import contextlib
from dataclasses import replace

import pytest

from daybook.core.errors import ValidationFailed
from daybook.tasks.task_models import CascadePolicy, Subtask, Task, TaskStatus
from daybook.tasks.task_rules import completion_changes, evaluate_completion_cascade, sync_completion

from .fakes import make_subtask, make_task

NOW_MS = 1_700_000_000_000


class FakeTaskRepo:
    """
    In-memory slice of TaskRepo used by the cascade rules.

    This avoids SQLite and makes tests purely about the decision logic.
    """

    def __init__(self, task: Task, subtasks: list[Subtask]) -> None:
        self.tasks = {task.id: task}
        self.subtasks = list(subtasks)
        self.updates: list[dict] = []

    def atomic(self):
        return contextlib.nullcontext()

    def get_task(self, task_id: int, user_id: str) -> Task | None:
        return self.tasks.get(task_id)

    def list_subtasks(self, task_id: int, user_id: str) -> list[Subtask]:
        return [s for s in self.subtasks if s.task_id == task_id]

    def update_task(self, task_id: int, user_id: str, **changes) -> Task | None:
        self.updates.append(changes)
        t = self.tasks.get(task_id)
        if t is None:
            return None
        t = replace(t, **changes)
        self.tasks[task_id] = t
        return t


def test_completion_changes() -> None:
    assert completion_changes(True, NOW_MS) == {
        "is_completed": True,
        "status": TaskStatus.DONE,
        "completed_at": NOW_MS,
    }
    assert completion_changes(False, NOW_MS) == {
        "is_completed": False,
        "status": TaskStatus.TODO,
        "completed_at": None,
    }


def test_sync_completion_leaves_unrelated_changes_alone() -> None:
    assert sync_completion(make_task(), {"title": "x"}, NOW_MS) == {"title": "x"}


def test_sync_completion_flag_only() -> None:
    current = make_task(status=TaskStatus.HOLD)
    out = sync_completion(current, {"is_completed": True}, NOW_MS)
    assert out["status"] is TaskStatus.DONE
    assert out["completed_at"] == NOW_MS

    done = make_task(is_completed=True, completed_at=5)
    out = sync_completion(done, {"is_completed": False}, NOW_MS)
    assert (out["status"], out["completed_at"]) == (TaskStatus.TODO, None)


def test_sync_completion_status_drives_flag() -> None:
    done = make_task(is_completed=True, completed_at=5)

    out = sync_completion(done, {"status": TaskStatus.IN_PROGRESS}, NOW_MS)
    assert out["is_completed"] is False
    assert out["completed_at"] is None

    # Already done: the first completion time is kept.
    out = sync_completion(done, {"status": "done"}, NOW_MS)
    assert out["is_completed"] is True
    assert out["completed_at"] == 5

    out = sync_completion(make_task(), {"status": TaskStatus.DONE}, NOW_MS)
    assert out["completed_at"] == NOW_MS


def test_sync_completion_rejects_contradiction() -> None:
    with pytest.raises(ValidationFailed) as exc:
        sync_completion(make_task(), {"status": TaskStatus.TODO, "is_completed": True}, NOW_MS)
    assert exc.value.errors[0].field == "isCompleted"


def test_cascade_without_subtasks_is_noop() -> None:
    repo = FakeTaskRepo(make_task(), [])
    assert evaluate_completion_cascade(repo, 1, "u1", now_ms=NOW_MS) is None
    assert repo.updates == []


def test_cascade_completes_when_all_subtasks_done() -> None:
    repo = FakeTaskRepo(
        make_task(status=TaskStatus.IN_PROGRESS),
        [make_subtask(1, is_completed=True), make_subtask(2, is_completed=True)],
    )
    task = evaluate_completion_cascade(repo, 1, "u1", now_ms=NOW_MS)
    assert task is not None
    assert (task.is_completed, task.status, task.completed_at) == (True, TaskStatus.DONE, NOW_MS)


def test_cascade_forward_only_keeps_completed_parent() -> None:
    repo = FakeTaskRepo(
        make_task(is_completed=True, completed_at=5),
        [make_subtask(1, is_completed=True), make_subtask(2)],
    )
    assert evaluate_completion_cascade(repo, 1, "u1", policy=CascadePolicy.FORWARD_ONLY, now_ms=NOW_MS) is None
    assert repo.tasks[1].is_completed is True
    assert repo.updates == []


def test_cascade_bidirectional_reopens_parent() -> None:
    repo = FakeTaskRepo(
        make_task(is_completed=True, completed_at=5),
        [make_subtask(1, is_completed=True), make_subtask(2)],
    )
    task = evaluate_completion_cascade(repo, 1, "u1", policy=CascadePolicy.BIDIRECTIONAL, now_ms=NOW_MS)
    assert task is not None
    assert (task.is_completed, task.status, task.completed_at) == (False, TaskStatus.TODO, None)


def test_cascade_bidirectional_ignores_open_parent() -> None:
    repo = FakeTaskRepo(make_task(), [make_subtask(1)])
    assert evaluate_completion_cascade(repo, 1, "u1", policy=CascadePolicy.BIDIRECTIONAL, now_ms=NOW_MS) is None
    assert repo.updates == []
