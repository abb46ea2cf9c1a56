# src/daybook/tasks/catalog_api.py

"""Categories and projects: the per-user containers tasks are filed under."""

from __future__ import annotations

import logging
from typing import Any

from ..core.errors import NotFound
from ..core.state import AppState
from .task_models import DEFAULT_CATEGORY_COLOR, DEFAULT_PROJECT_COLOR, Category, Project

logger = logging.getLogger(__name__)

_UNSET: Any = object()


# ---- categories ----


def list_categories(state: AppState, user_id: str) -> list[Category]:
    return state.store.list_categories(user_id)


def create_category(
    state: AppState,
    user_id: str,
    *,
    name: str,
    color: str = DEFAULT_CATEGORY_COLOR,
) -> Category:
    category = state.store.add_category(user_id, name=name, color=color)
    logger.info("Category created id=%s user=%s", category.id, user_id)
    return category


def update_category(
    state: AppState,
    user_id: str,
    category_id: int,
    *,
    name: str | None = None,
    color: str | None = None,
) -> Category:
    category = state.store.update_category(category_id, user_id, name=name, color=color)
    if category is None:
        raise NotFound("category", category_id)
    return category


def delete_category(state: AppState, user_id: str, category_id: int) -> None:
    """Tasks filed under the category stay, with no category."""
    if state.store.delete_category(category_id, user_id):
        logger.info("Category deleted id=%s user=%s", category_id, user_id)


# ---- projects ----


def list_projects(state: AppState, user_id: str) -> list[Project]:
    return state.store.list_projects(user_id)


def get_project(state: AppState, user_id: str, project_id: int) -> Project | None:
    return state.store.get_project(project_id, user_id)


def create_project(
    state: AppState,
    user_id: str,
    *,
    name: str,
    description: str | None = None,
    color: str = DEFAULT_PROJECT_COLOR,
) -> Project:
    project = state.store.add_project(user_id, name=name, description=description, color=color)
    logger.info("Project created id=%s user=%s", project.id, user_id)
    return project


def update_project(
    state: AppState,
    user_id: str,
    project_id: int,
    *,
    name: str | None = None,
    description: str | None | Any = _UNSET,
    color: str | None = None,
) -> Project:
    kwargs: dict[str, Any] = {"name": name, "color": color}
    if description is not _UNSET:
        kwargs["description"] = description
    project = state.store.update_project(project_id, user_id, **kwargs)
    if project is None:
        raise NotFound("project", project_id)
    return project


def delete_project(state: AppState, user_id: str, project_id: int) -> None:
    """Tasks of the project stay, with no project."""
    if state.store.delete_project(project_id, user_id):
        logger.info("Project deleted id=%s user=%s", project_id, user_id)
