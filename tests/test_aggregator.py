# tests/test_aggregator.py

from __future__ import annotations

from datetime import datetime

import pytest

from daybook.stats.aggregator import (
    CompletionStats,
    Period,
    by_category,
    by_priority,
    by_project,
    by_status,
    completion_rate,
    overview,
    period_start,
)
from daybook.tasks.task_models import Category, TaskPriority, TaskStatus

from .fakes import make_task


def _category(cid: int, name: str) -> Category:
    return Category(id=cid, user_id="u1", name=name, color="#123456", created_at=0, updated_at=0)


def test_overview_of_nothing_is_zero() -> None:
    assert overview([], 0) == CompletionStats(total=0, completed=0, completion_rate=0)


@pytest.mark.parametrize(
    ("completed", "total", "expected"),
    [(0, 3, 0), (1, 3, 33), (2, 3, 67), (1, 8, 13), (1, 2, 50), (3, 3, 100)],
)
def test_completion_rate_rounds_half_up(completed: int, total: int, expected: int) -> None:
    assert completion_rate(completed, total) == expected


def test_overview_counts_tasks_created_since_period_start() -> None:
    tasks = [
        make_task(1, created_at=100, is_completed=True),
        make_task(2, created_at=200),
        make_task(3, created_at=50, is_completed=True),
    ]
    assert overview(tasks, 100) == CompletionStats(total=2, completed=1, completion_rate=50)


def test_by_project() -> None:
    tasks = [
        make_task(1, project_id=7, is_completed=True),
        make_task(2, project_id=7),
        make_task(3, project_id=8, is_completed=True),
    ]
    assert by_project(tasks, 7) == CompletionStats(total=2, completed=1, completion_rate=50)
    assert by_project(tasks, 99) == CompletionStats(total=0, completed=0, completion_rate=0)


def test_by_category_buckets_sum_to_totals() -> None:
    cats = [_category(1, "Home"), _category(2, "Work")]
    tasks = [
        make_task(1, category_id=1, is_completed=True),
        make_task(2, category_id=1),
        make_task(3, category_id=2),
        make_task(4),
        make_task(5, category_id=42, is_completed=True),
    ]
    got = by_category(tasks, cats, "No category")

    assert [(b.category_id, b.category_name, b.total, b.completed) for b in got] == [
        (1, "Home", 2, 1),
        (2, "Work", 1, 0),
        (None, "No category", 2, 1),
    ]
    assert sum(b.total for b in got) == len(tasks)
    assert sum(b.completed for b in got) == 2


def test_by_category_omits_empty_uncategorized_bucket() -> None:
    got = by_category([make_task(1, category_id=1)], [_category(1, "Home"), _category(2, "Empty")])
    assert [(b.category_name, b.total) for b in got] == [("Home", 1), ("Empty", 0)]


def test_period_start() -> None:
    wednesday = datetime(2024, 6, 12, 10, 30)
    assert period_start(Period.DAY, wednesday) == datetime(2024, 6, 12)
    assert period_start(Period.WEEK, wednesday) == datetime(2024, 6, 9)
    assert period_start("month", wednesday) == datetime(2024, 6, 1)

    sunday = datetime(2024, 6, 9, 23, 0)
    assert period_start(Period.WEEK, sunday) == datetime(2024, 6, 9)


def test_distributions_are_zero_filled() -> None:
    tasks = [
        make_task(1, status=TaskStatus.HOLD, priority=TaskPriority.HIGH),
        make_task(2, status=TaskStatus.HOLD),
    ]
    assert by_status(tasks) == {
        TaskStatus.TODO: 0,
        TaskStatus.IN_PROGRESS: 0,
        TaskStatus.DONE: 0,
        TaskStatus.HOLD: 2,
    }
    assert by_priority(tasks) == {TaskPriority.LOW: 0, TaskPriority.MEDIUM: 1, TaskPriority.HIGH: 1}
