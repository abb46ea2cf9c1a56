# src/daybook/tasks/task_rules.py

"""
Task completion rules.

- completion_changes: the canonical "mark done / mark not done" field set.
- sync_completion: keeps status and is_completed in step for any task write.
- evaluate_completion_cascade: parent completion driven by subtask state.

Nothing here opens transactions; callers run these inside TaskRepo.atomic().
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from ..core.errors import ValidationFailed
from ..core.ports import TaskRepo
from .task_models import CascadePolicy, Task, TaskStatus

logger = logging.getLogger(__name__)


def completion_changes(is_completed: bool, now_ms: int) -> dict[str, Any]:
    """
    Fields written when a task is explicitly completed or reopened.

    Reopening always goes back to "todo"; an earlier in_progress/hold is not restored.
    """
    if is_completed:
        return {"is_completed": True, "status": TaskStatus.DONE, "completed_at": int(now_ms)}
    return {"is_completed": False, "status": TaskStatus.TODO, "completed_at": None}


def sync_completion(current: Task | None, changes: Mapping[str, Any], now_ms: int) -> dict[str, Any]:
    """
    Return `changes` with status, is_completed and completed_at made consistent.

    - only is_completed given: same as completion_changes
    - status given: is_completed follows status == done; completed_at is kept if the
      task was already done, set to now if it becomes done, cleared otherwise
    - both given and contradictory: ValidationFailed
    """
    out = dict(changes)
    status = out.get("status")
    flag = out.get("is_completed")

    if status is None and flag is None:
        return out

    if flag is not None and status is None:
        out.update(completion_changes(bool(flag), now_ms))
        return out

    status = TaskStatus(status)
    done = status is TaskStatus.DONE
    if flag is not None and bool(flag) != done:
        raise ValidationFailed.single("isCompleted", f"contradicts status '{status.value}'")

    out["status"] = status
    out["is_completed"] = done
    if not done:
        out["completed_at"] = None
    elif current is not None and current.is_completed and current.completed_at is not None:
        out["completed_at"] = current.completed_at
    else:
        out["completed_at"] = int(now_ms)
    return out


def evaluate_completion_cascade(
    repo: TaskRepo,
    task_id: int,
    user_id: str,
    *,
    policy: CascadePolicy = CascadePolicy.FORWARD_ONLY,
    now_ms: int,
) -> Task | None:
    """
    Bring a task's completion in line with its subtasks.

    Must run after the triggering subtask write, in the same transaction, so the
    sibling read sees it. Returns the updated task, or None when nothing changed.

    - no subtasks: no effect
    - all subtasks completed: the task is completed (again, if it already was)
    - some incomplete: FORWARD_ONLY leaves the task alone;
      BIDIRECTIONAL reopens it if it was completed
    """
    subtasks = repo.list_subtasks(task_id, user_id)
    if not subtasks:
        return None

    if all(s.is_completed for s in subtasks):
        task = repo.update_task(task_id, user_id, **completion_changes(True, now_ms))
        if task is not None:
            logger.info("Cascade completed task id=%s (%d subtasks done)", task_id, len(subtasks))
        return task

    if policy is not CascadePolicy.BIDIRECTIONAL:
        return None

    task = repo.get_task(task_id, user_id)
    if task is None or not task.is_completed:
        return None

    reopened = repo.update_task(task_id, user_id, **completion_changes(False, now_ms))
    logger.info("Cascade reopened task id=%s (incomplete subtasks remain)", task_id)
    return reopened
