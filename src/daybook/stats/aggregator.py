# src/daybook/stats/aggregator.py

from __future__ import annotations

"""
Completion statistics over an in-memory snapshot of tasks.

All functions are pure: the caller fetches tasks/categories and passes them in.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import StrEnum

from ..tasks.task_models import Category, Task, TaskPriority, TaskStatus
from ..tasks.today import start_of_local_day


class Period(StrEnum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


@dataclass(frozen=True, slots=True)
class CompletionStats:
    total: int
    completed: int
    completion_rate: int


@dataclass(frozen=True, slots=True)
class CategoryStats:
    category_id: int | None
    category_name: str
    color: str | None
    total: int
    completed: int


def completion_rate(completed: int, total: int) -> int:
    """Integer percent, half rounded up (12.5 -> 13); 0 for an empty set."""
    if total <= 0:
        return 0
    return (200 * completed + total) // (2 * total)


def summarize(tasks: Iterable[Task]) -> CompletionStats:
    total = 0
    completed = 0
    for t in tasks:
        total += 1
        if t.is_completed:
            completed += 1
    return CompletionStats(total=total, completed=completed, completion_rate=completion_rate(completed, total))


def period_start(period: Period | str, now: datetime) -> datetime:
    """
    Local midnight that opens the period containing `now`.

    day: today; week: the most recent Sunday (today on Sundays); month: the 1st.
    """
    period = Period(period)
    midnight = start_of_local_day(now)
    if period is Period.DAY:
        return midnight
    if period is Period.WEEK:
        # weekday(): Monday=0 .. Sunday=6
        return midnight - timedelta(days=(midnight.weekday() + 1) % 7)
    return midnight.replace(day=1)


def overview(tasks: Iterable[Task], period_start_ms: int) -> CompletionStats:
    return summarize(t for t in tasks if t.created_at >= period_start_ms)


def by_project(tasks: Iterable[Task], project_id: int) -> CompletionStats:
    return summarize(t for t in tasks if t.project_id == project_id)


def by_category(
    tasks: Iterable[Task],
    categories: Sequence[Category],
    uncategorized_label: str = "Uncategorized",
) -> list[CategoryStats]:
    """
    One bucket per category (in the given order), plus an uncategorized bucket
    appended last when it has tasks.

    Tasks pointing at a category that is not in `categories` land in the
    uncategorized bucket, so bucket totals always add up to the task count.
    """
    known = {c.id for c in categories}
    totals: dict[int | None, list[int]] = {c.id: [0, 0] for c in categories}
    totals[None] = [0, 0]

    for t in tasks:
        key = t.category_id if t.category_id in known else None
        bucket = totals[key]
        bucket[0] += 1
        if t.is_completed:
            bucket[1] += 1

    out = [
        CategoryStats(
            category_id=c.id,
            category_name=c.name,
            color=c.color,
            total=totals[c.id][0],
            completed=totals[c.id][1],
        )
        for c in categories
    ]

    total, completed = totals[None]
    if total > 0:
        out.append(
            CategoryStats(
                category_id=None,
                category_name=uncategorized_label,
                color=None,
                total=total,
                completed=completed,
            )
        )
    return out


def by_status(tasks: Iterable[Task]) -> dict[TaskStatus, int]:
    counts = {s: 0 for s in TaskStatus}
    for t in tasks:
        counts[t.status] += 1
    return counts


def by_priority(tasks: Iterable[Task]) -> dict[TaskPriority, int]:
    counts = {p: 0 for p in TaskPriority}
    for t in tasks:
        counts[t.priority] += 1
    return counts
