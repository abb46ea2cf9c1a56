# tests/test_http.py

from __future__ import annotations

import sqlite3

import pytest
from fastapi.testclient import TestClient

from daybook.api.http import create_app
from daybook.api.procedures import ProcedureRegistry
from daybook.core.state import AppState

USER = {"X-User-Id": "u1"}


@pytest.fixture()
def client(state: AppState) -> TestClient:
    return TestClient(create_app(state))


def test_health(client: TestClient) -> None:
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"


def test_missing_user_header_is_401(client: TestClient) -> None:
    res = client.post("/rpc/task.list", json={})
    assert res.status_code == 401


def test_create_then_get(client: TestClient) -> None:
    res = client.post("/rpc/task.create", json={"title": "Water plants", "isToday": True}, headers=USER)
    assert res.status_code == 200
    task = res.json()["result"]
    assert task["isToday"] is True

    res = client.post("/rpc/task.get", json={"id": task["id"]}, headers=USER)
    assert res.json()["result"]["title"] == "Water plants"

    # Another user sees nothing.
    res = client.post("/rpc/task.get", json={"id": task["id"]}, headers={"X-User-Id": "u2"})
    assert res.status_code == 200
    assert res.json()["result"] is None


def test_empty_body_means_no_input(client: TestClient) -> None:
    res = client.post("/rpc/task.today", headers=USER)
    assert res.status_code == 200
    assert res.json() == {"result": []}


def test_validation_error_is_400_with_fields(client: TestClient) -> None:
    res = client.post("/rpc/task.create", json={"title": ""}, headers=USER)
    assert res.status_code == 400
    body = res.json()["error"]
    assert body["code"] == "BAD_REQUEST"
    assert body["fields"][0]["field"] == "title"


def test_not_found_and_unknown_procedure_are_404(client: TestClient) -> None:
    res = client.post("/rpc/task.update", json={"id": 12345, "title": "x"}, headers=USER)
    assert res.status_code == 404
    assert res.json()["error"]["code"] == "NOT_FOUND"

    res = client.post("/rpc/nope.nothing", json={}, headers=USER)
    assert res.status_code == 404


def test_storage_error_is_opaque_500(state: AppState) -> None:
    registry = ProcedureRegistry()

    def broken(_state, _user_id, _data):
        raise sqlite3.OperationalError("disk I/O error at /secret/path")

    registry.register("debug.broken", broken)
    client = TestClient(create_app(state, registry))

    res = client.post("/rpc/debug.broken", json={}, headers=USER)
    assert res.status_code == 500
    assert "secret" not in res.text
    assert res.json()["error"]["code"] == "INTERNAL_SERVER_ERROR"
