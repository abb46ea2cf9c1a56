# src/daybook/tasks/task_api.py

"""
Task, subtask and comment operations for one authenticated user.

Every function takes the caller's user_id explicitly; the store scopes each
read and write by it. Mutations of something the user does not own raise
NotFound, reads return None / [].

Subtask mutations run inside store.atomic() together with the completion
cascade, so the parent task is re-evaluated against the state they just wrote.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from ..core.errors import NotFound, ValidationFailed
from ..core.state import AppState
from .task_models import (
    Comment,
    Subtask,
    Task,
    TaskDetail,
    TaskFilter,
    TaskPriority,
    TaskStatus,
    TaskSubtasks,
    TodaySubtask,
)
from .task_rules import completion_changes, evaluate_completion_cascade, sync_completion
from .today import derive_available_for_today, derive_available_subtasks_for_today, derive_today_view

logger = logging.getLogger(__name__)

TASK_FIELDS = frozenset(
    {
        "title",
        "description",
        "status",
        "priority",
        "due_date",
        "is_today",
        "is_completed",
        "project_id",
        "category_id",
    }
)


def _check_refs(state: AppState, user_id: str, *, project_id: int | None, category_id: int | None) -> None:
    """A task may only point at the caller's own project/category."""
    if project_id is not None and state.store.get_project(project_id, user_id) is None:
        raise NotFound("project", project_id)
    if category_id is not None and state.store.get_category(category_id, user_id) is None:
        raise NotFound("category", category_id)


def _cascade(state: AppState, user_id: str, task_id: int) -> None:
    evaluate_completion_cascade(
        state.store,
        task_id,
        user_id,
        policy=state.cascade_policy,
        now_ms=state.now_ms(),
    )


# ---- tasks ----


def list_tasks(state: AppState, user_id: str, flt: TaskFilter | None = None) -> list[Task]:
    return state.store.list_tasks(user_id, flt)


def get_task_detail(state: AppState, user_id: str, task_id: int) -> TaskDetail | None:
    task = state.store.get_task(task_id, user_id)
    if task is None:
        return None
    return TaskDetail(
        task=task,
        subtasks=state.store.list_subtasks(task_id, user_id),
        comments=state.store.list_comments(task_id, user_id),
    )


def create_task(
    state: AppState,
    user_id: str,
    *,
    title: str,
    description: str | None = None,
    status: TaskStatus | None = None,
    priority: TaskPriority = TaskPriority.MEDIUM,
    due_date: int | None = None,
    is_today: bool = False,
    is_completed: bool | None = None,
    project_id: int | None = None,
    category_id: int | None = None,
) -> Task:
    """
    Status defaults to todo. Passing only is_completed=True creates a done task;
    status and is_completed must agree when both are given.
    """
    _check_refs(state, user_id, project_id=project_id, category_id=category_id)

    requested: dict[str, Any] = {}
    if status is not None:
        requested["status"] = status
    if is_completed is not None:
        requested["is_completed"] = is_completed
    fields = sync_completion(None, requested or {"status": TaskStatus.TODO}, state.now_ms())
    task = state.store.add_task(
        user_id,
        title=title,
        description=description,
        status=fields["status"],
        priority=priority,
        due_date=due_date,
        is_today=is_today,
        is_completed=fields["is_completed"],
        completed_at=fields["completed_at"],
        project_id=project_id,
        category_id=category_id,
    )
    logger.info("Task created id=%s user=%s", task.id, user_id)
    return task


def update_task(state: AppState, user_id: str, task_id: int, changes: Mapping[str, Any]) -> Task:
    """
    Partial update. Keys are task field names; a key that is present with None
    clears a nullable field (description, due_date, project_id, category_id).
    """
    unknown = set(changes) - TASK_FIELDS
    if unknown:
        raise ValidationFailed.single(sorted(unknown)[0], "unknown task field")

    store = state.store
    with store.atomic():
        current = store.get_task(task_id, user_id)
        if current is None:
            raise NotFound("task", task_id)

        _check_refs(
            state,
            user_id,
            project_id=changes.get("project_id"),
            category_id=changes.get("category_id"),
        )
        synced = sync_completion(current, changes, state.now_ms())
        task = store.update_task(task_id, user_id, **synced)

    if task is None:
        raise NotFound("task", task_id)
    return task


def delete_task(state: AppState, user_id: str, task_id: int) -> None:
    """Deletes the task with its subtasks and comments."""
    if state.store.delete_task(task_id, user_id):
        logger.info("Task deleted id=%s user=%s", task_id, user_id)


def complete_task(state: AppState, user_id: str, task_id: int, is_completed: bool) -> Task:
    """
    Mark a task done (status=done, completed_at=now) or not done (status=todo,
    completed_at=None), regardless of its subtasks.
    """
    task = state.store.update_task(task_id, user_id, **completion_changes(is_completed, state.now_ms()))
    if task is None:
        raise NotFound("task", task_id)
    return task


def toggle_complete(state: AppState, user_id: str, task_id: int) -> Task:
    with state.store.atomic():
        current = state.store.get_task(task_id, user_id)
        if current is None:
            raise NotFound("task", task_id)
        return complete_task(state, user_id, task_id, not current.is_completed)


# ---- today ----


def today_view(state: AppState, user_id: str) -> list[Task]:
    return derive_today_view(state.store.list_tasks(user_id), state.now())


def today_subtasks(state: AppState, user_id: str) -> list[TodaySubtask]:
    return state.store.list_today_subtasks(user_id)


def available_for_today(state: AppState, user_id: str, search: str | None = None) -> list[Task]:
    return derive_available_for_today(state.store.list_tasks(user_id), state.now(), search)


def available_subtasks_for_today(state: AppState, user_id: str, search: str | None = None) -> list[TaskSubtasks]:
    return derive_available_subtasks_for_today(
        state.store.list_tasks(user_id),
        state.store.list_subtasks_for_user(user_id),
        search,
    )


# ---- subtasks ----


def create_subtask(state: AppState, user_id: str, task_id: int, *, title: str) -> Subtask:
    store = state.store
    with store.atomic():
        subtask = store.add_subtask(task_id, user_id, title=title)
        if subtask is None:
            raise NotFound("task", task_id)
        _cascade(state, user_id, task_id)
    return subtask


def update_subtask(
    state: AppState,
    user_id: str,
    subtask_id: int,
    task_id: int,
    *,
    title: str | None = None,
    is_completed: bool | None = None,
    is_today: bool | None = None,
    order: int | None = None,
) -> Subtask:
    changes: dict[str, Any] = {"title": title, "is_today": is_today, "order": order}
    if is_completed is not None:
        changes["is_completed"] = is_completed
        changes["completed_at"] = state.now_ms() if is_completed else None

    store = state.store
    with store.atomic():
        if store.get_task(task_id, user_id) is None:
            raise NotFound("task", task_id)
        subtask = store.update_subtask(subtask_id, task_id, user_id, **changes)
        if subtask is None:
            raise NotFound("subtask", subtask_id)
        _cascade(state, user_id, task_id)
    return subtask


def delete_subtask(state: AppState, user_id: str, subtask_id: int, task_id: int) -> None:
    store = state.store
    with store.atomic():
        if store.delete_subtask(subtask_id, task_id, user_id):
            _cascade(state, user_id, task_id)


# ---- comments ----


def create_comment(state: AppState, user_id: str, task_id: int, *, content: str) -> Comment:
    comment = state.store.add_comment(task_id, user_id, content=content)
    if comment is None:
        raise NotFound("task", task_id)
    return comment


def update_comment(state: AppState, user_id: str, comment_id: int, *, content: str) -> Comment:
    comment = state.store.update_comment(comment_id, user_id, content=content)
    if comment is None:
        raise NotFound("comment", comment_id)
    return comment


def delete_comment(state: AppState, user_id: str, comment_id: int) -> None:
    state.store.delete_comment(comment_id, user_id)
