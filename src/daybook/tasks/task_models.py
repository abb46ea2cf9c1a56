# src/daybook/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class TaskStatus(StrEnum):
    """
    Task workflow status.

    Notes:
    - "done" is the only completed status; is_completed mirrors it.
    - "hold" is a parked task, not a cancelled one.
    """

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    HOLD = "hold"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.TODO
        try:
            return cls(raw)
        except ValueError:
            return cls.TODO


class TaskPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskPriority:
        if not raw:
            return cls.MEDIUM
        try:
            return cls(raw)
        except ValueError:
            return cls.MEDIUM

    @property
    def rank(self) -> int:
        # high sorts first
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    TaskPriority.HIGH: 0,
    TaskPriority.MEDIUM: 1,
    TaskPriority.LOW: 2,
}


class CascadePolicy(StrEnum):
    """
    What the completion cascade does when a task's subtasks are not all done.

    FORWARD_ONLY: nothing; completion is sticky.
    BIDIRECTIONAL: a completed parent is reverted to todo.
    """

    FORWARD_ONLY = "forward_only"
    BIDIRECTIONAL = "bidirectional"


DEFAULT_CATEGORY_COLOR = "#3B82F6"
DEFAULT_PROJECT_COLOR = "#8B5CF6"


@dataclass(slots=True)
class Category:
    id: int
    user_id: str
    name: str
    color: str
    created_at: int
    updated_at: int


@dataclass(slots=True)
class Project:
    id: int
    user_id: str
    name: str
    description: str | None
    color: str
    created_at: int
    updated_at: int


@dataclass(slots=True)
class Task:
    id: int
    user_id: str
    project_id: int | None
    category_id: int | None
    title: str
    description: str | None
    status: TaskStatus
    priority: TaskPriority
    due_date: int | None
    is_completed: bool
    is_today: bool
    completed_at: int | None
    created_at: int
    updated_at: int


@dataclass(slots=True)
class Subtask:
    id: int
    task_id: int
    title: str
    is_completed: bool
    is_today: bool
    completed_at: int | None
    order: int
    created_at: int
    updated_at: int


@dataclass(slots=True)
class Comment:
    id: int
    task_id: int
    user_id: str
    content: str
    created_at: int
    updated_at: int


@dataclass(slots=True)
class TaskDetail:
    """A task together with its children, as returned by task.get."""

    task: Task
    subtasks: list[Subtask]
    comments: list[Comment]


@dataclass(slots=True)
class TaskSubtasks:
    """A task and a selection of its subtasks (the "add subtask to today" picker)."""

    task: Task
    subtasks: list[Subtask]


@dataclass(slots=True)
class TodaySubtask:
    """A subtask flagged for today plus the bits of its parent the Today page shows."""

    subtask: Subtask
    task_title: str
    task_priority: TaskPriority
    task_status: TaskStatus
    project_id: int | None


@dataclass(slots=True)
class TaskFilter:
    """
    Predicates for TaskStore.list_tasks. Empty collections and None mean "no filter".

    due_from/due_to are inclusive epoch-ms bounds; tasks without a due date never
    match a due-date bound.
    """

    statuses: set[TaskStatus] = field(default_factory=set)
    priorities: set[TaskPriority] = field(default_factory=set)
    category_id: int | None = None
    project_id: int | None = None
    is_today: bool | None = None
    search: str | None = None
    due_from: int | None = None
    due_to: int | None = None
    created_from: int | None = None
