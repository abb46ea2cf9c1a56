# tests/test_config.py

from __future__ import annotations

from pathlib import Path

import pytest

from daybook.cli.bootstrap import create_initial_state
from daybook.config import Settings
from daybook.tasks.task_models import CascadePolicy


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("DATA_DIR", "DB_PATH", "CASCADE_POLICY", "PORT", "USER_HEADER"):
        monkeypatch.delenv(f"DAYBOOK_{name}", raising=False)

    s = Settings.from_env()
    assert s.data_dir == Path(".local/daybook")
    assert s.db_path == Path(".local/daybook") / "daybook.sqlite3"
    assert s.cascade_policy == "forward_only"
    assert s.port == 8000
    assert s.user_header == "X-User-Id"


def test_env_overrides_and_bad_values_fall_back(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("DAYBOOK_DATA_DIR", str(tmp_path))
    monkeypatch.delenv("DAYBOOK_DB_PATH", raising=False)
    monkeypatch.setenv("DAYBOOK_CASCADE_POLICY", "Bidirectional")
    monkeypatch.setenv("DAYBOOK_PORT", "not-a-port")

    s = Settings.from_env()
    assert s.db_path == tmp_path / "daybook.sqlite3"
    assert s.cascade_policy == "bidirectional"
    assert s.port == 8000

    monkeypatch.setenv("DAYBOOK_CASCADE_POLICY", "sometimes")
    assert Settings.from_env().cascade_policy == "forward_only"


def test_bootstrap_wires_store_and_policy(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("DAYBOOK_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.delenv("DAYBOOK_DB_PATH", raising=False)
    monkeypatch.setenv("DAYBOOK_CASCADE_POLICY", "bidirectional")

    state = create_initial_state(settings=Settings.from_env())
    assert state.cascade_policy is CascadePolicy.BIDIRECTIONAL
    assert (tmp_path / "data" / "daybook.sqlite3").exists()
    assert state.store.list_tasks("u1") == []
