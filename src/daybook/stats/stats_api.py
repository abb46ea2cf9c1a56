# src/daybook/stats/stats_api.py

from __future__ import annotations

from ..core.state import AppState
from ..tasks.task_models import TaskFilter, TaskPriority, TaskStatus
from ..tasks.today import to_epoch_ms
from . import aggregator
from .aggregator import CategoryStats, CompletionStats, Period


def overview(state: AppState, user_id: str, period: Period | str = Period.WEEK) -> CompletionStats:
    """Tasks created since the start of the current day/week/month, and how many are done."""
    start_ms = to_epoch_ms(aggregator.period_start(period, state.now()))
    tasks = state.store.list_tasks(user_id, TaskFilter(created_from=start_ms))
    return aggregator.overview(tasks, start_ms)


def by_category(state: AppState, user_id: str) -> list[CategoryStats]:
    tasks = state.store.list_tasks(user_id)
    categories = state.store.list_categories(user_id)
    return aggregator.by_category(tasks, categories, state.uncategorized_label)


def project_stats(state: AppState, user_id: str, project_id: int) -> CompletionStats:
    # A foreign or missing project simply has no tasks for this user.
    tasks = state.store.list_tasks(user_id, TaskFilter(project_id=project_id))
    return aggregator.by_project(tasks, project_id)


def by_status(state: AppState, user_id: str) -> dict[TaskStatus, int]:
    return aggregator.by_status(state.store.list_tasks(user_id))


def by_priority(state: AppState, user_id: str) -> dict[TaskPriority, int]:
    return aggregator.by_priority(state.store.list_tasks(user_id))
