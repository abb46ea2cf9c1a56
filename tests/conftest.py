# tests/conftest.py

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from types import SimpleNamespace

import pytest

from daybook.core.state import AppState
from daybook.tasks.task_models import CascadePolicy
from daybook.tasks.task_store import TaskStore

from .fakes import FixedClock

# Wednesday, mid-morning local time.
NOW = datetime(2024, 6, 12, 10, 30, 0)


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the HTTP app.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="daybook-test",
        data_dir=tmp_path,
        db_path=tmp_path / "daybook.sqlite3",
        cascade_policy="forward_only",
        uncategorized_label="Uncategorized",
        user_header="X-User-Id",
    )


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock(NOW.timestamp())


@pytest.fixture()
def store(settings: SimpleNamespace, clock: FixedClock) -> TaskStore:
    """
    Real SQLite store on a tmp file: its scoping and ordering are part of
    what we want to test.
    """
    return TaskStore(settings.db_path, clock=clock)


@pytest.fixture()
def state(settings: SimpleNamespace, store: TaskStore, clock: FixedClock) -> AppState:
    return AppState(
        settings=settings,
        store=store,
        cascade_policy=CascadePolicy(settings.cascade_policy),
        clock=clock,
    )
