# src/daybook/api/procedures.py

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ValidationError
from pydantic.alias_generators import to_camel

from ..core.errors import FieldError, UnknownProcedure, ValidationFailed
from ..core.state import AppState
from ..stats import stats_api
from ..tasks import catalog_api, task_api
from ..tasks.task_models import TaskDetail, TaskSubtasks, TodaySubtask
from . import schemas

Handler = Callable[[AppState, str, Any], Any]

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Procedure:
    name: str
    handler: Handler
    input_model: type[BaseModel]
    help_text: str
    mutation: bool


def to_wire(value: Any) -> Any:
    """Convert service results (dataclasses, enums, lists, dicts) to camelCase JSON values."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {to_camel(f.name): to_wire(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Mapping):
        return {to_wire(k) if isinstance(k, Enum) else k: to_wire(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_wire(v) for v in value]
    return value


def _validation_failed(exc: ValidationError) -> ValidationFailed:
    errors = [
        FieldError(field=".".join(str(p) for p in err.get("loc", ())) or "input", message=err.get("msg", "invalid"))
        for err in exc.errors()
    ]
    return ValidationFailed(errors)


class ProcedureRegistry:
    """Named, validated operations ("task.create", "stats.overview", ...) called on behalf of a user."""

    def __init__(self) -> None:
        self._procedures: dict[str, Procedure] = {}

    def register(
        self,
        name: str,
        handler: Handler,
        input_model: type[BaseModel] = schemas.NoInput,
        *,
        help_text: str = "",
        mutation: bool = False,
    ) -> None:
        self._procedures[name] = Procedure(
            name=name,
            handler=handler,
            input_model=input_model,
            help_text=help_text,
            mutation=mutation,
        )

    def names(self) -> list[str]:
        return sorted(self._procedures)

    def get(self, name: str) -> Procedure | None:
        return self._procedures.get(name)

    def call(
        self,
        state: AppState,
        user_id: str,
        name: str,
        payload: Mapping[str, Any] | None = None,
    ) -> Any:
        """
        Validate `payload` against the procedure's input model, run it for `user_id`
        and return a JSON-ready result.

        Raises UnknownProcedure, ValidationFailed, NotFound; storage errors propagate.
        """
        proc = self._procedures.get(name)
        if proc is None:
            raise UnknownProcedure(name)
        if not user_id:
            raise ValidationFailed.single("userId", "authenticated user id is required")

        try:
            data = proc.input_model.model_validate(dict(payload or {}))
        except ValidationError as e:
            raise _validation_failed(e) from e

        logger.debug("Procedure %s user=%s", name, user_id)
        return to_wire(proc.handler(state, user_id, data))

    def build_help(self) -> str:
        lines = ["Available procedures:"]
        for name in self.names():
            proc = self._procedures[name]
            kind = "mutation" if proc.mutation else "query"
            lines.append(f"  {name} ({kind}) - {proc.help_text}")
        return "\n".join(lines)


registry = ProcedureRegistry()

_OK = {"success": True}


def _task_detail(detail: TaskDetail | None) -> dict[str, Any] | None:
    # The task's own fields at top level, children alongside.
    if detail is None:
        return None
    out = to_wire(detail.task)
    out["subtasks"] = to_wire(detail.subtasks)
    out["comments"] = to_wire(detail.comments)
    return out


def _today_subtask(item: TodaySubtask) -> dict[str, Any]:
    out = to_wire(item.subtask)
    out["task"] = {
        "id": item.subtask.task_id,
        "title": item.task_title,
        "priority": item.task_priority.value,
        "status": item.task_status.value,
        "projectId": item.project_id,
    }
    return out


def _task_subtasks(item: TaskSubtasks) -> dict[str, Any]:
    out = to_wire(item.task)
    out["subtasks"] = to_wire(item.subtasks)
    return out


# ---- category ----


def proc_category_list(state: AppState, user_id: str, data: schemas.NoInput) -> Any:
    return catalog_api.list_categories(state, user_id)


def proc_category_create(state: AppState, user_id: str, data: schemas.CategoryCreate) -> Any:
    return catalog_api.create_category(state, user_id, name=data.name, color=data.color)


def proc_category_update(state: AppState, user_id: str, data: schemas.CategoryUpdate) -> Any:
    return catalog_api.update_category(state, user_id, data.id, name=data.name, color=data.color)


def proc_category_delete(state: AppState, user_id: str, data: schemas.IdInput) -> Any:
    catalog_api.delete_category(state, user_id, data.id)
    return _OK


# ---- project ----


def proc_project_list(state: AppState, user_id: str, data: schemas.NoInput) -> Any:
    return catalog_api.list_projects(state, user_id)


def proc_project_get(state: AppState, user_id: str, data: schemas.IdInput) -> Any:
    return catalog_api.get_project(state, user_id, data.id)


def proc_project_create(state: AppState, user_id: str, data: schemas.ProjectCreate) -> Any:
    return catalog_api.create_project(
        state, user_id, name=data.name, description=data.description, color=data.color
    )


def proc_project_update(state: AppState, user_id: str, data: schemas.ProjectUpdate) -> Any:
    changes = data.provided(exclude={"id"})
    return catalog_api.update_project(state, user_id, data.id, **changes)


def proc_project_delete(state: AppState, user_id: str, data: schemas.IdInput) -> Any:
    catalog_api.delete_project(state, user_id, data.id)
    return _OK


def proc_project_stats(state: AppState, user_id: str, data: schemas.ProjectStatsInput) -> Any:
    return stats_api.project_stats(state, user_id, data.project_id)


# ---- task ----


def proc_task_list(state: AppState, user_id: str, data: schemas.TaskListInput) -> Any:
    return task_api.list_tasks(state, user_id, data.to_filter())


def proc_task_get(state: AppState, user_id: str, data: schemas.IdInput) -> Any:
    return _task_detail(task_api.get_task_detail(state, user_id, data.id))


def proc_task_create(state: AppState, user_id: str, data: schemas.TaskCreate) -> Any:
    return task_api.create_task(state, user_id, **data.model_dump())


def proc_task_update(state: AppState, user_id: str, data: schemas.TaskUpdate) -> Any:
    return task_api.update_task(state, user_id, data.id, data.provided(exclude={"id"}))


def proc_task_delete(state: AppState, user_id: str, data: schemas.IdInput) -> Any:
    task_api.delete_task(state, user_id, data.id)
    return _OK


def proc_task_toggle_complete(state: AppState, user_id: str, data: schemas.IdInput) -> Any:
    return task_api.toggle_complete(state, user_id, data.id)


def proc_task_complete(state: AppState, user_id: str, data: schemas.TaskCompleteInput) -> Any:
    return task_api.complete_task(state, user_id, data.id, data.is_completed)


def proc_task_today(state: AppState, user_id: str, data: schemas.NoInput) -> Any:
    return task_api.today_view(state, user_id)


def proc_task_available_for_today(state: AppState, user_id: str, data: schemas.SearchInput) -> Any:
    return task_api.available_for_today(state, user_id, data.search)


# ---- subtask ----


def proc_subtask_create(state: AppState, user_id: str, data: schemas.SubtaskCreate) -> Any:
    return task_api.create_subtask(state, user_id, data.task_id, title=data.title)


def proc_subtask_update(state: AppState, user_id: str, data: schemas.SubtaskUpdate) -> Any:
    return task_api.update_subtask(
        state,
        user_id,
        data.id,
        data.task_id,
        title=data.title,
        is_completed=data.is_completed,
        is_today=data.is_today,
        order=data.order,
    )


def proc_subtask_delete(state: AppState, user_id: str, data: schemas.SubtaskDelete) -> Any:
    task_api.delete_subtask(state, user_id, data.id, data.task_id)
    return _OK


def proc_subtask_today(state: AppState, user_id: str, data: schemas.NoInput) -> Any:
    return [_today_subtask(item) for item in task_api.today_subtasks(state, user_id)]


def proc_subtask_available_for_today(state: AppState, user_id: str, data: schemas.SearchInput) -> Any:
    return [_task_subtasks(item) for item in task_api.available_subtasks_for_today(state, user_id, data.search)]


# ---- comment ----


def proc_comment_create(state: AppState, user_id: str, data: schemas.CommentCreate) -> Any:
    return task_api.create_comment(state, user_id, data.task_id, content=data.content)


def proc_comment_update(state: AppState, user_id: str, data: schemas.CommentUpdate) -> Any:
    return task_api.update_comment(state, user_id, data.id, content=data.content)


def proc_comment_delete(state: AppState, user_id: str, data: schemas.IdInput) -> Any:
    task_api.delete_comment(state, user_id, data.id)
    return _OK


# ---- stats ----


def proc_stats_overview(state: AppState, user_id: str, data: schemas.StatsOverviewInput) -> Any:
    return stats_api.overview(state, user_id, data.period)


def proc_stats_by_category(state: AppState, user_id: str, data: schemas.NoInput) -> Any:
    return stats_api.by_category(state, user_id)


def proc_stats_by_status(state: AppState, user_id: str, data: schemas.NoInput) -> Any:
    return stats_api.by_status(state, user_id)


def proc_stats_by_priority(state: AppState, user_id: str, data: schemas.NoInput) -> Any:
    return stats_api.by_priority(state, user_id)


registry.register("category.list", proc_category_list, help_text="Categories, by name.")
registry.register("category.create", proc_category_create, schemas.CategoryCreate, help_text="Create a category.", mutation=True)
registry.register("category.update", proc_category_update, schemas.CategoryUpdate, help_text="Rename/recolor a category.", mutation=True)
registry.register("category.delete", proc_category_delete, schemas.IdInput, help_text="Delete a category; its tasks are kept.", mutation=True)

registry.register("project.list", proc_project_list, help_text="Projects, newest first.")
registry.register("project.get", proc_project_get, schemas.IdInput, help_text="One project or null.")
registry.register("project.create", proc_project_create, schemas.ProjectCreate, help_text="Create a project.", mutation=True)
registry.register("project.update", proc_project_update, schemas.ProjectUpdate, help_text="Edit a project.", mutation=True)
registry.register("project.delete", proc_project_delete, schemas.IdInput, help_text="Delete a project; its tasks are kept.", mutation=True)
registry.register("project.stats", proc_project_stats, schemas.ProjectStatsInput, help_text="Completion of one project.")

registry.register("task.list", proc_task_list, schemas.TaskListInput, help_text="Filtered task list, newest first.")
registry.register("task.get", proc_task_get, schemas.IdInput, help_text="Task with subtasks and comments, or null.")
registry.register("task.create", proc_task_create, schemas.TaskCreate, help_text="Create a task.", mutation=True)
registry.register("task.update", proc_task_update, schemas.TaskUpdate, help_text="Partial task update.", mutation=True)
registry.register("task.delete", proc_task_delete, schemas.IdInput, help_text="Delete a task with its subtasks and comments.", mutation=True)
registry.register("task.toggleComplete", proc_task_toggle_complete, schemas.IdInput, help_text="Flip completion.", mutation=True)
registry.register("task.complete", proc_task_complete, schemas.TaskCompleteInput, help_text="Set completion explicitly.", mutation=True)
registry.register("task.today", proc_task_today, help_text="Tasks flagged for today or due today.")
registry.register("task.availableForToday", proc_task_available_for_today, schemas.SearchInput, help_text="Tasks that can be added to today.")

registry.register("subtask.create", proc_subtask_create, schemas.SubtaskCreate, help_text="Append a subtask.", mutation=True)
registry.register("subtask.update", proc_subtask_update, schemas.SubtaskUpdate, help_text="Edit a subtask; may complete its task.", mutation=True)
registry.register("subtask.delete", proc_subtask_delete, schemas.SubtaskDelete, help_text="Delete a subtask.", mutation=True)
registry.register("subtask.today", proc_subtask_today, help_text="Subtasks flagged for today.")
registry.register("subtask.availableForToday", proc_subtask_available_for_today, schemas.SearchInput, help_text="Subtasks that can be added to today.")

registry.register("comment.create", proc_comment_create, schemas.CommentCreate, help_text="Comment on a task.", mutation=True)
registry.register("comment.update", proc_comment_update, schemas.CommentUpdate, help_text="Edit own comment.", mutation=True)
registry.register("comment.delete", proc_comment_delete, schemas.IdInput, help_text="Delete own comment.", mutation=True)

registry.register("stats.overview", proc_stats_overview, schemas.StatsOverviewInput, help_text="Completion since start of day/week/month.")
registry.register("stats.byCategory", proc_stats_by_category, help_text="Completion per category.")
registry.register("stats.byStatus", proc_stats_by_status, help_text="Task count per status.")
registry.register("stats.byPriority", proc_stats_by_priority, help_text="Task count per priority.")
