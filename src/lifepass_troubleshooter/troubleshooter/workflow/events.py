from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

from .models import Option, Workflow
from .session import CompletedSession, TroubleshootingSession

logger = logging.getLogger(__name__)

WORKFLOW_STARTED = "troubleshooting_workflow_started"
DECISION_MADE = "troubleshooting_decision_made"
ACTION_COMPLETED = "troubleshooting_action_completed"
STEP_NAVIGATION = "troubleshooting_step_navigation"
WORKFLOW_COMPLETED = "troubleshooting_workflow_completed"
SESSION_COMPLETED = "troubleshooting_session_completed"
SESSION_ABANDONED = "troubleshooting_session_abandoned"


@dataclass(frozen=True, slots=True)
class TelemetryEvent:
    """A structured observation of one session transition.

    Events are observers only. Nothing downstream may feed back into navigation.
    """

    type: str
    payload: dict[str, object]


class EventSink(Protocol):
    def emit(self, event: str, payload: dict[str, object]) -> None: ...


class NullEventSink:
    def emit(self, event: str, payload: dict[str, object]) -> None:
        return None


class LoggingEventSink:
    """Write each event as a structured log record."""

    def __init__(self, level: int = logging.INFO) -> None:
        self._level = level

    def emit(self, event: str, payload: dict[str, object]) -> None:
        logger.log(self._level, event, extra={"event": event, "properties": payload})


@dataclass
class MemoryEventSink:
    events: list[TelemetryEvent] = field(default_factory=list)

    def emit(self, event: str, payload: dict[str, object]) -> None:
        self.events.append(TelemetryEvent(type=event, payload=dict(payload)))

    def types(self) -> list[str]:
        return [e.type for e in self.events]

    def of_type(self, event: str) -> list[TelemetryEvent]:
        return [e for e in self.events if e.type == event]


def workflow_started(workflow: Workflow, session: TroubleshootingSession) -> TelemetryEvent:
    return TelemetryEvent(
        type=WORKFLOW_STARTED,
        payload={
            "workflow_id": workflow.id,
            "workflow_title": workflow.title,
            "category": workflow.category.value,
            "priority": workflow.priority,
            "session_id": session.id,
        },
    )


def decision_made(
    session: TroubleshootingSession, *, step_id: str, option: Option
) -> TelemetryEvent:
    return TelemetryEvent(
        type=DECISION_MADE,
        payload={
            "session_id": session.id,
            "workflow_id": session.workflow_id,
            "step_id": step_id,
            "decision": option.id,
            "decision_label": option.label,
        },
    )


def action_completed(
    session: TroubleshootingSession, *, step_id: str, action_index: int
) -> TelemetryEvent:
    return TelemetryEvent(
        type=ACTION_COMPLETED,
        payload={
            "session_id": session.id,
            "workflow_id": session.workflow_id,
            "step_id": step_id,
            "action_index": action_index,
        },
    )


def step_navigation(
    session: TroubleshootingSession, *, from_step: str, to_step: str, step_number: int
) -> TelemetryEvent:
    return TelemetryEvent(
        type=STEP_NAVIGATION,
        payload={
            "session_id": session.id,
            "workflow_id": session.workflow_id,
            "from_step": from_step,
            "to_step": to_step,
            "step_number": step_number,
        },
    )


def workflow_completed(
    session: CompletedSession, *, total_steps: int, resolution_type: str, resolution_notes: str
) -> TelemetryEvent:
    return TelemetryEvent(
        type=WORKFLOW_COMPLETED,
        payload={
            "session_id": session.id,
            "workflow_id": session.workflow_id,
            "total_steps": total_steps,
            "resolution_type": resolution_type,
            "resolution_notes": resolution_notes,
        },
    )


def session_completed(session: CompletedSession) -> TelemetryEvent:
    return TelemetryEvent(
        type=SESSION_COMPLETED,
        payload={
            "session_id": session.id,
            "workflow_id": session.workflow_id,
            "duration_ms": session.duration_ms,
            "resolution": session.resolution or "unknown",
        },
    )


def session_abandoned(session: CompletedSession) -> TelemetryEvent:
    return TelemetryEvent(
        type=SESSION_ABANDONED,
        payload={
            "session_id": session.id,
            "workflow_id": session.workflow_id,
            "current_step": session.current_step_id,
            "duration_ms": session.duration_ms,
        },
    )
