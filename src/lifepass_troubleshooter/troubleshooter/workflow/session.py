"""Troubleshooting session records and the resolution recorder.

A session is created when an operator selects a workflow and is kept in sync
with the navigation state on every move. It becomes a completed session once a
resolution is recorded on an outcome step, or when the operator abandons it.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from .models import Workflow
from .state_machine import IllegalTransitionError, NavigationState


class SessionStatus(str, Enum):
    ACTIVE = "active"
    RESOLVED = "resolved"
    ABANDONED = "abandoned"


class TroubleshootingSession(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    workflow_id: str
    current_step_id: str
    started_at: datetime
    completed_at: datetime | None = None
    notes: str | None = None
    resolution: str | None = None
    status: SessionStatus = Field(default=SessionStatus.ACTIVE)

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None


class CompletedSession(TroubleshootingSession):
    completed_at: datetime

    @property
    def duration_ms(self) -> int:
        return elapsed_ms(self.started_at, self.completed_at)


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


def new_session_id() -> str:
    return f"session-{uuid.uuid4().hex}"


def elapsed_ms(started_at: datetime, until: datetime) -> int:
    return max(0, int((until - started_at).total_seconds() * 1000))


def start_session(workflow: Workflow, *, now: datetime | None = None) -> TroubleshootingSession:
    return TroubleshootingSession(
        id=new_session_id(),
        workflow_id=workflow.id,
        current_step_id=workflow.start_step_id,
        started_at=now or _utc_now(),
    )


def sync_session(
    session: TroubleshootingSession, state: NavigationState
) -> TroubleshootingSession:
    """Reflect the navigation state on the session record."""

    return session.model_copy(
        update={"current_step_id": state.current_step_id, "notes": state.notes or None}
    )


def _finish(
    session: TroubleshootingSession,
    state: NavigationState,
    *,
    status: SessionStatus,
    resolution: str | None,
    now: datetime | None,
) -> CompletedSession:
    if session.is_completed:
        raise IllegalTransitionError(f"Session {session.id} is already completed")
    # Never earlier than the start, even if the wall clock stepped back.
    completed_at = max(now or _utc_now(), session.started_at)
    data = sync_session(session, state).model_dump()
    data.update(completed_at=completed_at, resolution=resolution, status=status)
    return CompletedSession.model_validate(data)


def complete_session(
    session: TroubleshootingSession, state: NavigationState, *, now: datetime | None = None
) -> CompletedSession:
    """Finalize a session whose navigation state recorded a resolution."""

    if state.resolution is None:
        raise IllegalTransitionError("No resolution has been recorded for this session")
    return _finish(
        session, state, status=SessionStatus.RESOLVED, resolution=state.resolution, now=now
    )


def abandon_session(
    session: TroubleshootingSession, state: NavigationState, *, now: datetime | None = None
) -> CompletedSession:
    """Close a session without a resolution (operator went back to selection)."""

    return _finish(session, state, status=SessionStatus.ABANDONED, resolution=None, now=now)
