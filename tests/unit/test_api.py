from __future__ import annotations

from pathlib import Path
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from lifepass_troubleshooter.server.app import create_app
from lifepass_troubleshooter.server.session_store import SessionStore
from lifepass_troubleshooter.troubleshooter.telemetry import HttpEventSink
from lifepass_troubleshooter.troubleshooter.workflow.catalog import WorkflowCatalog
from lifepass_troubleshooter.troubleshooter.workflow.events import (
    SESSION_ABANDONED,
    SESSION_COMPLETED,
    WORKFLOW_STARTED,
    MemoryEventSink,
)
from lifepass_troubleshooter.troubleshooter.workflow.models import Workflow


@pytest.fixture
def client(clean_env: Path, card_reader: Workflow, sink: MemoryEventSink) -> TestClient:
    return TestClient(create_app(catalog=WorkflowCatalog([card_reader]), sink=sink))


def _start(client: TestClient) -> str:
    resp = client.post("/api/sessions", json={"workflow_id": "TEST-1"})
    assert resp.status_code == 201
    return resp.json()["session"]["id"]


def test_health(client: TestClient) -> None:
    assert client.get("/api/health").json() == {"status": "ok"}


def test_builtin_catalog_is_served_by_default(clean_env: Path) -> None:
    client = TestClient(create_app(sink=MemoryEventSink()))

    workflows = client.get("/api/workflows").json()
    assert len(workflows) == 11
    assert [w["priority"] for w in workflows] == sorted(w["priority"] for w in workflows)

    assert client.get("/api/stats").json() == {"total": 11, "high_priority": 4, "common": 4}

    payment = client.get("/api/workflows", params={"category": "payment"}).json()
    assert {w["id"] for w in payment} == {"PAY-1", "PAY-2"}


def test_catalog_path_comes_from_settings(
    clean_env: Path, catalog_file: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("TROUBLESHOOTER_CATALOG_PATH", str(catalog_file))
    monkeypatch.setenv("TROUBLESHOOTER_TELEMETRY_BACKEND", "none")

    client = TestClient(create_app())

    assert [w["id"] for w in client.get("/api/workflows").json()] == ["TEST-1"]


def test_unknown_category_is_rejected(client: TestClient) -> None:
    assert client.get("/api/workflows", params={"category": "weather"}).status_code == 422


def test_workflow_detail(client: TestClient) -> None:
    detail = client.get("/api/workflows/TEST-1").json()

    assert detail["start_step_id"] == "reader-on"
    assert detail["steps"]["reset-reader"]["type"] == "action"
    assert detail["steps"]["reset-reader"]["requires_completion"] is True

    assert client.get("/api/workflows/NOPE-1").status_code == 404


def test_session_walkthrough(client: TestClient, sink: MemoryEventSink) -> None:
    created = client.post("/api/sessions", json={"workflow_id": "TEST-1"}).json()
    session_id = created["session"]["id"]
    assert created["step"]["id"] == "reader-on"
    assert created["step_number"] == 1
    assert created["total_steps"] == 4
    assert created["progress"] == 25.0
    assert created["can_go_back"] is False
    assert created["session"]["status"] == "active"

    moved = client.post(
        f"/api/sessions/{session_id}/select-option", json={"option_id": "yes"}
    ).json()
    assert moved["outcome"] == "moved_forward"
    assert moved["step"]["id"] == "reset-reader"
    assert moved["can_continue"] is False

    blocked = client.post(f"/api/sessions/{session_id}/continue")
    assert blocked.status_code == 200
    assert blocked.json()["outcome"] == "blocked"
    assert blocked.json()["step"]["id"] == "reset-reader"

    client.post(f"/api/sessions/{session_id}/toggle-action", json={"action_index": 0})
    toggled = client.post(
        f"/api/sessions/{session_id}/toggle-action", json={"action_index": 1}
    ).json()
    assert toggled["completed_actions"] == [0, 1]
    assert toggled["can_continue"] is True

    done = client.post(f"/api/sessions/{session_id}/continue").json()
    assert done["step"]["type"] == "outcome"

    notes = client.put(f"/api/sessions/{session_id}/notes", json={"notes": "kiosk 2"}).json()
    assert notes["session"]["notes"] == "kiosk 2"

    resolved = client.post(f"/api/sessions/{session_id}/resolve", json={"notes": "reset"}).json()
    assert resolved["session"]["status"] == "resolved"
    assert resolved["session"]["resolution"] == "resolved: reset"
    assert resolved["session"]["completed_at"] is not None

    fetched = client.get(f"/api/sessions/{session_id}").json()
    assert fetched["session"]["resolution"] == "resolved: reset"

    assert client.post(f"/api/sessions/{session_id}/back").status_code == 409
    assert sink.types()[0] == WORKFLOW_STARTED
    assert sink.types()[-1] == SESSION_COMPLETED


def test_back(client: TestClient) -> None:
    session_id = _start(client)
    client.post(f"/api/sessions/{session_id}/select-option", json={"option_id": "no"})

    back = client.post(f"/api/sessions/{session_id}/back").json()

    assert back["outcome"] == "moved_back"
    assert back["step"]["id"] == "reader-on"
    assert client.post(f"/api/sessions/{session_id}/back").json()["outcome"] == "unchanged"


def test_illegal_transitions_are_conflicts(client: TestClient) -> None:
    session_id = _start(client)

    resp = client.post(f"/api/sessions/{session_id}/select-option", json={"option_id": "maybe"})
    assert resp.status_code == 409
    assert "not offered" in resp.json()["detail"]

    assert client.post(f"/api/sessions/{session_id}/continue").status_code == 409
    assert client.post(f"/api/sessions/{session_id}/resolve", json={}).status_code == 409


def test_unknown_ids(client: TestClient) -> None:
    assert client.post("/api/sessions", json={"workflow_id": "NOPE-1"}).status_code == 404
    assert client.get("/api/sessions/session-missing").status_code == 404
    assert client.post("/api/sessions/session-missing/back").status_code == 404


def test_abandon(client: TestClient, sink: MemoryEventSink) -> None:
    session_id = _start(client)

    abandoned = client.delete(f"/api/sessions/{session_id}").json()

    assert abandoned["session"]["status"] == "abandoned"
    assert abandoned["session"]["resolution"] is None
    assert sink.types()[-1] == SESSION_ABANDONED
    assert client.delete(f"/api/sessions/{session_id}").status_code == 409


def test_missing_step_is_reported(
    clean_env: Path, broken_card_reader: Workflow, sink: MemoryEventSink
) -> None:
    client = TestClient(create_app(catalog=WorkflowCatalog([broken_card_reader]), sink=sink))
    session_id = _start(client)
    client.post(f"/api/sessions/{session_id}/select-option", json={"option_id": "yes"})
    client.post(f"/api/sessions/{session_id}/toggle-action", json={"action_index": 0})
    client.post(f"/api/sessions/{session_id}/toggle-action", json={"action_index": 1})

    moved = client.post(f"/api/sessions/{session_id}/continue").json()
    assert moved["step"] is None
    assert moved["session"]["current_step_id"] == "fixed"

    resp = client.post(f"/api/sessions/{session_id}/resolve", json={"notes": "x"})
    assert resp.status_code == 409
    assert resp.json()["detail"] == "Step Not Found"

    assert client.delete(f"/api/sessions/{session_id}").json()["session"]["status"] == "abandoned"


def test_shutdown_closes_the_telemetry_sink(clean_env: Path, card_reader: Workflow) -> None:
    sink = Mock(spec=HttpEventSink)

    with TestClient(create_app(catalog=WorkflowCatalog([card_reader]), sink=sink)) as client:
        _start(client)
        sink.close.assert_not_called()

    sink.close.assert_called_once_with()


def test_session_lifetimes_come_from_settings(
    clean_env: Path, card_reader: Workflow, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("TROUBLESHOOTER_SESSION_IDLE_TIMEOUT_SECONDS", "90")
    monkeypatch.setenv("TROUBLESHOOTER_FINISHED_SESSION_RETENTION_SECONDS", "15")

    app = create_app(catalog=WorkflowCatalog([card_reader]), sink=MemoryEventSink())

    store = app.state.sessions
    assert isinstance(store, SessionStore)
    assert store.idle_timeout_seconds == 90.0
    assert store.finished_retention_seconds == 15.0
