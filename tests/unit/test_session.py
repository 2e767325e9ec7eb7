"""Unit tests for session records and the resolution recorder."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from lifepass_troubleshooter.troubleshooter.workflow.models import Workflow
from lifepass_troubleshooter.troubleshooter.workflow.session import (
    SessionStatus,
    abandon_session,
    complete_session,
    elapsed_ms,
    start_session,
    sync_session,
)
from lifepass_troubleshooter.troubleshooter.workflow.state_machine import (
    IllegalTransitionError,
    NavigationState,
)

STARTED = datetime(2026, 1, 10, 9, 30, tzinfo=UTC)


def test_start_session(card_reader: Workflow) -> None:
    session = start_session(card_reader, now=STARTED)

    assert session.id.startswith("session-")
    assert session.workflow_id == "TEST-1"
    assert session.current_step_id == "reader-on"
    assert session.started_at == STARTED
    assert session.status == SessionStatus.ACTIVE
    assert session.is_completed is False


def test_session_ids_are_unique(card_reader: Workflow) -> None:
    assert start_session(card_reader).id != start_session(card_reader).id


def test_sync_session_follows_navigation_state(card_reader: Workflow) -> None:
    session = start_session(card_reader, now=STARTED)
    state = NavigationState(history=("reader-on", "escalate"), notes="kiosk 3")

    synced = sync_session(session, state)

    assert synced.current_step_id == "escalate"
    assert synced.notes == "kiosk 3"
    assert sync_session(synced, NavigationState(history=("reader-on",))).notes is None


def test_complete_session(card_reader: Workflow) -> None:
    session = start_session(card_reader, now=STARTED)
    state = NavigationState(history=("reader-on", "escalate"), resolution="escalated: called")

    completed = complete_session(session, state, now=STARTED + timedelta(seconds=90))

    assert completed.status == SessionStatus.RESOLVED
    assert completed.resolution == "escalated: called"
    assert completed.completed_at >= completed.started_at
    assert completed.duration_ms == 90_000
    assert completed.current_step_id == "escalate"


def test_completion_never_precedes_start(card_reader: Workflow) -> None:
    session = start_session(card_reader, now=STARTED)
    state = NavigationState(history=("reader-on", "escalate"), resolution="escalated: ")

    completed = complete_session(session, state, now=STARTED - timedelta(minutes=5))

    assert completed.completed_at == STARTED
    assert completed.duration_ms == 0


def test_complete_requires_recorded_resolution(card_reader: Workflow) -> None:
    session = start_session(card_reader, now=STARTED)

    with pytest.raises(IllegalTransitionError, match="No resolution"):
        complete_session(session, NavigationState.start(card_reader), now=STARTED)


def test_abandon_session(card_reader: Workflow) -> None:
    session = start_session(card_reader, now=STARTED)
    state = NavigationState(history=("reader-on", "reset-reader"))

    abandoned = abandon_session(session, state, now=STARTED + timedelta(seconds=2))

    assert abandoned.status == SessionStatus.ABANDONED
    assert abandoned.resolution is None
    assert abandoned.current_step_id == "reset-reader"
    assert abandoned.duration_ms == 2000


def test_completed_session_cannot_finish_again(card_reader: Workflow) -> None:
    session = start_session(card_reader, now=STARTED)
    state = NavigationState.start(card_reader)
    abandoned = abandon_session(session, state, now=STARTED)

    with pytest.raises(IllegalTransitionError, match="already completed"):
        abandon_session(abandoned, state, now=STARTED)


def test_elapsed_ms_is_never_negative() -> None:
    assert elapsed_ms(STARTED, STARTED - timedelta(seconds=1)) == 0
    assert elapsed_ms(STARTED, STARTED + timedelta(milliseconds=1500)) == 1500
