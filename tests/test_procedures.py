# tests/test_procedures.py

from __future__ import annotations

import pytest

from daybook.api.procedures import registry, to_wire
from daybook.core.errors import NotFound, UnknownProcedure, ValidationFailed
from daybook.core.state import AppState
from daybook.stats.aggregator import CompletionStats


def call(state: AppState, name: str, payload: dict | None = None, user: str = "u1"):
    return registry.call(state, user, name, payload)


def test_every_documented_procedure_is_registered() -> None:
    expected = {
        "category.list", "category.create", "category.update", "category.delete",
        "project.list", "project.get", "project.create", "project.update", "project.delete", "project.stats",
        "task.list", "task.get", "task.create", "task.update", "task.delete",
        "task.toggleComplete", "task.complete", "task.today", "task.availableForToday",
        "subtask.create", "subtask.update", "subtask.delete", "subtask.today", "subtask.availableForToday",
        "comment.create", "comment.update", "comment.delete",
        "stats.overview", "stats.byCategory", "stats.byStatus", "stats.byPriority",
    }
    assert set(registry.names()) == expected
    assert "task.create (mutation)" in registry.build_help()


def test_to_wire_uses_camel_case() -> None:
    assert to_wire(CompletionStats(total=2, completed=1, completion_rate=50)) == {
        "total": 2,
        "completed": 1,
        "completionRate": 50,
    }


def test_task_create_accepts_camel_case_and_returns_it(state: AppState) -> None:
    out = call(state, "task.create", {"title": "  Pay rent  ", "dueDate": 1_000, "isToday": True, "priority": "high"})

    assert out["title"] == "Pay rent"
    assert out["dueDate"] == 1_000
    assert out["isToday"] is True
    assert out["priority"] == "high"
    assert out["status"] == "todo"
    assert out["isCompleted"] is False
    assert out["completedAt"] is None
    assert out["userId"] == "u1"


def test_input_validation(state: AppState) -> None:
    with pytest.raises(ValidationFailed) as exc:
        call(state, "task.create", {"title": "   "})
    assert exc.value.errors[0].field == "title"

    with pytest.raises(ValidationFailed):
        call(state, "task.create", {"title": "x" * 501})
    with pytest.raises(ValidationFailed):
        call(state, "task.create", {"title": "ok", "priority": "urgent"})
    with pytest.raises(ValidationFailed):
        call(state, "category.create", {"name": ""})
    with pytest.raises(ValidationFailed):
        call(state, "task.get", {"id": "abc"})


def test_unknown_procedure_and_missing_user(state: AppState) -> None:
    with pytest.raises(UnknownProcedure):
        call(state, "task.explode")
    with pytest.raises(ValidationFailed):
        call(state, "task.list", user="")


def test_task_update_null_semantics(state: AppState) -> None:
    created = call(state, "task.create", {"title": "Report", "description": "draft", "dueDate": 5})

    kept = call(state, "task.update", {"id": created["id"], "title": "Final report"})
    assert (kept["title"], kept["description"], kept["dueDate"]) == ("Final report", "draft", 5)

    cleared = call(state, "task.update", {"id": created["id"], "description": None, "dueDate": None})
    assert (cleared["description"], cleared["dueDate"]) == (None, None)

    with pytest.raises(ValidationFailed):
        call(state, "task.update", {"id": created["id"], "title": None})

    with pytest.raises(NotFound):
        call(state, "task.update", {"id": 999, "title": "ghost"})


def test_task_get_includes_children(state: AppState) -> None:
    task = call(state, "task.create", {"title": "Party"})
    call(state, "subtask.create", {"taskId": task["id"], "title": "cake"})
    call(state, "comment.create", {"taskId": task["id"], "content": "saturday?"})

    got = call(state, "task.get", {"id": task["id"]})
    assert got["title"] == "Party"
    assert [s["title"] for s in got["subtasks"]] == ["cake"]
    assert [c["content"] for c in got["comments"]] == ["saturday?"]

    assert call(state, "task.get", {"id": task["id"]}, user="u2") is None


def test_subtask_flow_over_procedures(state: AppState) -> None:
    task = call(state, "task.create", {"title": "Bake", "priority": "high"})
    sub = call(state, "subtask.create", {"taskId": task["id"], "title": "flour"})
    assert sub["order"] == 0

    call(state, "subtask.update", {"id": sub["id"], "taskId": task["id"], "isToday": True})
    today = call(state, "subtask.today")
    assert today[0]["id"] == sub["id"]
    assert today[0]["task"] == {
        "id": task["id"],
        "title": "Bake",
        "priority": "high",
        "status": "todo",
        "projectId": None,
    }

    call(state, "subtask.update", {"id": sub["id"], "taskId": task["id"], "isCompleted": True})
    assert call(state, "task.get", {"id": task["id"]})["status"] == "done"

    assert call(state, "subtask.delete", {"id": sub["id"], "taskId": task["id"]}) == {"success": True}


def test_project_update_and_delete(state: AppState) -> None:
    project = call(state, "project.create", {"name": "Blog", "description": "weekly"})
    assert project["color"] == "#8B5CF6"

    renamed = call(state, "project.update", {"id": project["id"], "name": "Blog v2"})
    assert (renamed["name"], renamed["description"]) == ("Blog v2", "weekly")

    cleared = call(state, "project.update", {"id": project["id"], "description": None})
    assert cleared["description"] is None

    assert call(state, "project.delete", {"id": project["id"]}) == {"success": True}
    assert call(state, "project.get", {"id": project["id"]}) is None
    assert call(state, "project.delete", {"id": project["id"]}) == {"success": True}


def test_task_list_filters_over_procedures(state: AppState) -> None:
    call(state, "task.create", {"title": "Alpha", "status": "in_progress"})
    call(state, "task.create", {"title": "Beta", "priority": "low"})

    names = [t["title"] for t in call(state, "task.list", {"status": ["in_progress"]})]
    assert names == ["Alpha"]
    names = [t["title"] for t in call(state, "task.list", {"search": "BET"})]
    assert names == ["Beta"]
    assert len(call(state, "task.list")) == 2


def test_stats_procedures(state: AppState) -> None:
    cat = call(state, "category.create", {"name": "Home"})
    done = call(state, "task.create", {"title": "Dishes", "categoryId": cat["id"]})
    call(state, "task.create", {"title": "Floor", "priority": "high"})
    call(state, "task.complete", {"id": done["id"], "isCompleted": True})

    assert call(state, "stats.overview", {"period": "day"}) == {
        "total": 2,
        "completed": 1,
        "completionRate": 50,
    }
    assert call(state, "stats.byStatus") == {"todo": 1, "in_progress": 0, "done": 1, "hold": 0}
    assert call(state, "stats.byPriority") == {"low": 0, "medium": 1, "high": 1}

    buckets = call(state, "stats.byCategory")
    assert [(b["categoryName"], b["total"], b["completed"]) for b in buckets] == [
        ("Home", 1, 1),
        ("Uncategorized", 1, 0),
    ]

    with pytest.raises(ValidationFailed):
        call(state, "stats.overview", {"period": "year"})
