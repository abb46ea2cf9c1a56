# src/daybook/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The rules and services depend on Protocols instead of the SQLite store.
This keeps storage swappable and makes testing easier.
"""

from contextlib import AbstractContextManager
from typing import Any, Callable, Protocol

from ..tasks.task_models import (
    Category,
    Comment,
    Project,
    Subtask,
    Task,
    TaskFilter,
    TaskPriority,
    TaskStatus,
    TodaySubtask,
)

Clock = Callable[[], float]
# Seconds since the epoch, like time.time.


class CategoryRepo(Protocol):
    def add_category(self, user_id: str, *, name: str, color: str = ...) -> Category: ...
    def get_category(self, category_id: int, user_id: str) -> Category | None: ...
    def list_categories(self, user_id: str) -> list[Category]: ...
    def update_category(
            self,
            category_id: int,
            user_id: str,
            *,
            name: str | None = None,
            color: str | None = None,
    ) -> Category | None: ...
    def delete_category(self, category_id: int, user_id: str) -> bool: ...


class ProjectRepo(Protocol):
    def add_project(
            self,
            user_id: str,
            *,
            name: str,
            description: str | None = None,
            color: str = ...,
    ) -> Project: ...
    def get_project(self, project_id: int, user_id: str) -> Project | None: ...
    def list_projects(self, user_id: str) -> list[Project]: ...
    def update_project(
            self,
            project_id: int,
            user_id: str,
            *,
            name: str | None = None,
            description: Any = ...,
            color: str | None = None,
    ) -> Project | None: ...
    def delete_project(self, project_id: int, user_id: str) -> bool: ...


class TaskRepo(Protocol):
    """
    Task/subtask/comment storage.

    Everything is scoped by user_id (subtasks and comments through their task).
    atomic() groups several calls into one serialized write transaction.
    """

    def atomic(self) -> AbstractContextManager[None]: ...

    # Tasks
    def add_task(
            self,
            user_id: str,
            *,
            title: str,
            description: str | None = None,
            status: TaskStatus = ...,
            priority: TaskPriority = ...,
            due_date: int | None = None,
            is_today: bool = False,
            is_completed: bool = False,
            completed_at: int | None = None,
            project_id: int | None = None,
            category_id: int | None = None,
    ) -> Task: ...
    def get_task(self, task_id: int, user_id: str) -> Task | None: ...
    def list_tasks(self, user_id: str, flt: TaskFilter | None = None) -> list[Task]: ...
    def update_task(self, task_id: int, user_id: str, **changes: Any) -> Task | None: ...
    def delete_task(self, task_id: int, user_id: str) -> bool: ...

    # Subtasks
    def add_subtask(self, task_id: int, user_id: str, *, title: str) -> Subtask | None: ...
    def get_subtask(self, subtask_id: int, user_id: str) -> Subtask | None: ...
    def list_subtasks(self, task_id: int, user_id: str) -> list[Subtask]: ...
    def list_subtasks_for_user(self, user_id: str) -> list[Subtask]: ...
    def list_today_subtasks(self, user_id: str) -> list[TodaySubtask]: ...
    def update_subtask(self, subtask_id: int, task_id: int, user_id: str, **changes: Any) -> Subtask | None: ...
    def delete_subtask(self, subtask_id: int, task_id: int, user_id: str) -> bool: ...

    # Comments
    def add_comment(self, task_id: int, user_id: str, *, content: str) -> Comment | None: ...
    def get_comment(self, comment_id: int, user_id: str) -> Comment | None: ...
    def list_comments(self, task_id: int, user_id: str) -> list[Comment]: ...
    def update_comment(self, comment_id: int, user_id: str, *, content: str) -> Comment | None: ...
    def delete_comment(self, comment_id: int, user_id: str) -> bool: ...


class Store(CategoryRepo, ProjectRepo, TaskRepo, Protocol):
    """Everything the services need from one persistence gateway."""
