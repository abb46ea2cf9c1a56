# src/daybook/tasks/today.py

from __future__ import annotations

"""
"Today" projections.

Pure functions over already-fetched tasks/subtasks; nothing here touches storage.
Naive datetimes are local time, aware ones keep their zone.
"""

from collections import defaultdict
from collections.abc import Iterable
from datetime import date, datetime, time

from .task_models import Subtask, Task, TaskSubtasks


def to_epoch_ms(dt: datetime) -> int:
    return int(round(dt.timestamp() * 1000))


def _as_datetime(day: date | datetime) -> datetime:
    if isinstance(day, datetime):
        return day
    return datetime.combine(day, time.min)


def start_of_local_day(day: date | datetime) -> datetime:
    return _as_datetime(day).replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_local_day(day: date | datetime) -> datetime:
    return _as_datetime(day).replace(hour=23, minute=59, second=59, microsecond=999000)


def day_bounds_ms(day: date | datetime) -> tuple[int, int]:
    """Inclusive [00:00:00.000, 23:59:59.999] of the given local day, in epoch ms."""
    return to_epoch_ms(start_of_local_day(day)), to_epoch_ms(end_of_local_day(day))


def is_due_on(task: Task, day: date | datetime) -> bool:
    if task.due_date is None:
        return False
    start, end = day_bounds_ms(day)
    return start <= task.due_date <= end


def derive_today_view(tasks: Iterable[Task], now: datetime) -> list[Task]:
    """
    Tasks flagged for today or due today.

    Order: incomplete before completed, then high < medium < low priority.
    sorted() is stable, so equal keys keep their input order.
    """
    start, end = day_bounds_ms(now)
    today = [
        t for t in tasks
        if t.is_today or (t.due_date is not None and start <= t.due_date <= end)
    ]
    return sorted(today, key=lambda t: (t.is_completed, t.priority.rank))


def derive_today_subtasks(subtasks: Iterable[Subtask]) -> list[Subtask]:
    # Only the explicit flag counts; subtasks have no due date to inherit.
    return [s for s in subtasks if s.is_today]


def _matches(text: str, needle: str) -> bool:
    return needle in text.casefold()


def derive_available_for_today(
    tasks: Iterable[Task],
    target_date: date | datetime,
    search: str | None = None,
) -> list[Task]:
    """Candidates for "add to today": not flagged, not already due that day, not completed."""
    start, end = day_bounds_ms(target_date)
    needle = (search or "").strip().casefold()

    out: list[Task] = []
    for t in tasks:
        if t.is_today or t.is_completed:
            continue
        if t.due_date is not None and start <= t.due_date <= end:
            continue
        if needle and not _matches(t.title, needle):
            continue
        out.append(t)
    return out


def derive_available_subtasks_for_today(
    tasks: Iterable[Task],
    subtasks: Iterable[Subtask],
    search: str | None = None,
) -> list[TaskSubtasks]:
    """
    Candidates for "add subtask to today", grouped under their task.

    Only incomplete tasks; within them, subtasks that are neither completed nor
    already flagged. Search matches the task title or any of its subtask titles.
    """
    by_task: dict[int, list[Subtask]] = defaultdict(list)
    for s in subtasks:
        by_task[s.task_id].append(s)

    needle = (search or "").strip().casefold()

    out: list[TaskSubtasks] = []
    for t in tasks:
        if t.is_completed:
            continue
        children = by_task.get(t.id, [])
        if needle and not (
            _matches(t.title, needle) or any(_matches(s.title, needle) for s in children)
        ):
            continue
        eligible = [s for s in children if not s.is_completed and not s.is_today]
        if eligible:
            out.append(TaskSubtasks(task=t, subtasks=eligible))
    return out
