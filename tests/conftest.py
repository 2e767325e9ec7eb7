"""Test configuration and fixtures."""

from __future__ import annotations

import copy
import json
from pathlib import Path

import pytest

from lifepass_troubleshooter.troubleshooter.workflow.catalog import WorkflowCatalog, load_catalog
from lifepass_troubleshooter.troubleshooter.workflow.events import MemoryEventSink
from lifepass_troubleshooter.troubleshooter.workflow.models import Workflow

CARD_READER_WORKFLOW: dict[str, object] = {
    "id": "TEST-1",
    "title": "Card Reader Fault",
    "description": "The kiosk card reader does not respond.",
    "category": "payment",
    "priority": 2,
    "commonality": "medium",
    "estimated_time": "3 min",
    "start_step_id": "reader-on",
    "steps": {
        "reader-on": {
            "id": "reader-on",
            "type": "decision",
            "title": "Is the reader powered on?",
            "options": [
                {"id": "yes", "label": "Yes", "next_step_id": "reset-reader"},
                {"id": "no", "label": "No", "next_step_id": "escalate"},
            ],
        },
        "reset-reader": {
            "id": "reset-reader",
            "type": "action",
            "title": "Reset the reader",
            "actions": ["Unplug the reader.", "Plug it back in."],
            "requires_completion": True,
            "next_step_id": "fixed",
        },
        "fixed": {
            "id": "fixed",
            "type": "outcome",
            "title": "Reader working",
            "resolution_type": "resolved",
        },
        "escalate": {
            "id": "escalate",
            "type": "outcome",
            "title": "Escalate to Line 2",
            "resolution_type": "escalated",
            "follow_up_actions": ["Call Line 2 with the kiosk number."],
        },
    },
}


@pytest.fixture
def card_reader_raw() -> dict:
    """Provide a fresh, mutable copy of the card reader workflow data."""
    return copy.deepcopy(CARD_READER_WORKFLOW)


@pytest.fixture(scope="session")
def catalog() -> WorkflowCatalog:
    """Provide the built-in workflow catalog."""
    return load_catalog()


@pytest.fixture
def card_reader() -> Workflow:
    """Provide a small workflow with every step type and a gated action step."""
    return Workflow.model_validate(CARD_READER_WORKFLOW)


@pytest.fixture
def broken_card_reader(card_reader: Workflow) -> Workflow:
    """Provide the card reader workflow with its `fixed` step missing (bypasses validation)."""
    steps = {key: step for key, step in card_reader.steps.items() if key != "fixed"}
    return Workflow.model_construct(**{**dict(card_reader), "steps": steps})


@pytest.fixture
def sink() -> MemoryEventSink:
    """Provide a sink that records every telemetry event."""
    return MemoryEventSink()


@pytest.fixture
def catalog_file(tmp_path: Path) -> Path:
    """Provide a catalog file holding only the card reader workflow."""
    path = tmp_path / "workflows.json"
    path.write_text(json.dumps([CARD_READER_WORKFLOW]), encoding="utf-8")
    return path


@pytest.fixture
def clean_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run in an empty directory with no troubleshooter settings in the environment."""
    for name in (
        "LOG_LEVEL",
        "TROUBLESHOOTER_CATALOG_PATH",
        "TROUBLESHOOTER_TELEMETRY_BACKEND",
        "TROUBLESHOOTER_TELEMETRY_URL",
        "TROUBLESHOOTER_TELEMETRY_API_KEY",
        "TROUBLESHOOTER_TELEMETRY_TIMEOUT_SECONDS",
        "TROUBLESHOOTER_CORS_ORIGINS",
        "TROUBLESHOOTER_SESSION_IDLE_TIMEOUT_SECONDS",
        "TROUBLESHOOTER_FINISHED_SESSION_RETENTION_SECONDS",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path
