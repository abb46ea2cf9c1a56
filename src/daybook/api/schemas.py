# src/daybook/api/schemas.py

"""
Procedure input models.

Each model maps to one procedure's JSON input. Wire names are camelCase
(dueDate, isToday, ...); snake_case is accepted too. Unknown keys are ignored.

Optional fields on the *Update models distinguish "absent" from an explicit
null through model_fields_set; only nullable columns accept null.
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator
from pydantic.alias_generators import to_camel

from ..stats.aggregator import Period
from ..tasks.task_models import (
    DEFAULT_CATEGORY_COLOR,
    DEFAULT_PROJECT_COLOR,
    TaskFilter,
    TaskPriority,
    TaskStatus,
)

CategoryName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
ProjectName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]
Title = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=500)]
Content = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
EntityId = Annotated[int, Field(gt=0)]


def _reject_null(value: Any) -> Any:
    if value is None:
        raise ValueError("may not be null")
    return value


class ProcedureInput(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def provided(self, *, exclude: set[str] | None = None) -> dict[str, Any]:
        """Fields the caller actually sent (snake_case keys), including explicit nulls."""
        return self.model_dump(exclude_unset=True, exclude=exclude)


class NoInput(ProcedureInput):
    pass


class IdInput(ProcedureInput):
    id: EntityId


# ---- categories ----


class CategoryCreate(ProcedureInput):
    name: CategoryName
    color: str = DEFAULT_CATEGORY_COLOR


class CategoryUpdate(ProcedureInput):
    id: EntityId
    name: CategoryName | None = None
    color: str | None = None

    @field_validator("name", "color", mode="before")
    @classmethod
    def _not_null(cls, v: Any) -> Any:
        return _reject_null(v)


# ---- projects ----


class ProjectCreate(ProcedureInput):
    name: ProjectName
    description: str | None = None
    color: str = DEFAULT_PROJECT_COLOR


class ProjectUpdate(ProcedureInput):
    id: EntityId
    name: ProjectName | None = None
    description: str | None = None
    color: str | None = None

    @field_validator("name", "color", mode="before")
    @classmethod
    def _not_null(cls, v: Any) -> Any:
        return _reject_null(v)


class ProjectStatsInput(ProcedureInput):
    project_id: EntityId


# ---- tasks ----


class TaskListInput(ProcedureInput):
    status: list[TaskStatus] | None = None
    priority: list[TaskPriority] | None = None
    category_id: EntityId | None = None
    project_id: EntityId | None = None
    is_today: bool | None = None
    search: str | None = None
    due_date_from: int | None = None
    due_date_to: int | None = None

    def to_filter(self) -> TaskFilter:
        return TaskFilter(
            statuses=set(self.status or ()),
            priorities=set(self.priority or ()),
            category_id=self.category_id,
            project_id=self.project_id,
            is_today=self.is_today,
            search=self.search or None,
            due_from=self.due_date_from,
            due_to=self.due_date_to,
        )


class TaskCreate(ProcedureInput):
    title: Title
    description: str | None = None
    status: TaskStatus | None = None
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: int | None = None
    is_today: bool = False
    is_completed: bool | None = None
    project_id: EntityId | None = None
    category_id: EntityId | None = None


class TaskUpdate(ProcedureInput):
    id: EntityId
    title: Title | None = None
    description: str | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    due_date: int | None = None
    is_today: bool | None = None
    is_completed: bool | None = None
    project_id: EntityId | None = None
    category_id: EntityId | None = None

    @field_validator("title", "status", "priority", "is_today", "is_completed", mode="before")
    @classmethod
    def _not_null(cls, v: Any) -> Any:
        return _reject_null(v)


class TaskCompleteInput(ProcedureInput):
    id: EntityId
    is_completed: bool


class SearchInput(ProcedureInput):
    search: str | None = None


# ---- subtasks ----


class SubtaskCreate(ProcedureInput):
    task_id: EntityId
    title: Title


class SubtaskUpdate(ProcedureInput):
    id: EntityId
    task_id: EntityId
    title: Title | None = None
    is_completed: bool | None = None
    is_today: bool | None = None
    order: Annotated[int, Field(ge=0)] | None = None

    @field_validator("title", "is_completed", "is_today", "order", mode="before")
    @classmethod
    def _not_null(cls, v: Any) -> Any:
        return _reject_null(v)


class SubtaskDelete(ProcedureInput):
    id: EntityId
    task_id: EntityId


# ---- comments ----


class CommentCreate(ProcedureInput):
    task_id: EntityId
    content: Content


class CommentUpdate(ProcedureInput):
    id: EntityId
    content: Content


# ---- stats ----


class StatsOverviewInput(ProcedureInput):
    period: Period = Period.WEEK
