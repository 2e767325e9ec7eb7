"""One interactive troubleshooting flow.

The flow owns a single session: the workflow, the session record, the
navigation state and the telemetry sink. Every user action goes through
:func:`advance`; the flow only keeps the session record in sync and reports
what happened to the sink. Telemetry is best-effort: a failing sink is logged
and otherwise ignored.

A flow may be shared between request threads. Every mutating call holds the
flow lock, so concurrent calls on one session are applied one at a time.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime

from .events import (
    EventSink,
    NullEventSink,
    TelemetryEvent,
    action_completed,
    decision_made,
    session_abandoned,
    session_completed,
    step_navigation,
    workflow_completed,
    workflow_started,
)
from .models import ActionStep, DecisionStep, OutcomeStep, Workflow
from .progress import StepPosition, calculate_progress, step_position
from .session import (
    CompletedSession,
    TroubleshootingSession,
    abandon_session,
    complete_session,
    start_session,
    sync_session,
)
from .state_machine import (
    CompleteAction,
    ContinueFromAction,
    GoBack,
    NavigationAction,
    NavigationState,
    RecordResolution,
    SelectOption,
    SessionClosedError,
    Transition,
    TransitionOutcome,
    UpdateNotes,
    advance,
    can_continue,
    can_go_back,
)

logger = logging.getLogger(__name__)

_MOVES = frozenset({TransitionOutcome.MOVED_FORWARD, TransitionOutcome.MOVED_BACK})


class TroubleshootingFlow:
    def __init__(
        self,
        *,
        workflow: Workflow,
        session: TroubleshootingSession,
        state: NavigationState,
        sink: EventSink | None = None,
    ) -> None:
        self._workflow = workflow
        self._session: TroubleshootingSession = session
        self._state = state
        self._sink: EventSink = sink or NullEventSink()
        self._completed: CompletedSession | None = None
        self._lock = threading.RLock()

    @classmethod
    def start(
        cls,
        workflow: Workflow,
        *,
        sink: EventSink | None = None,
        now: datetime | None = None,
    ) -> TroubleshootingFlow:
        session = start_session(workflow, now=now)
        flow = cls(
            workflow=workflow,
            session=session,
            state=NavigationState.start(workflow),
            sink=sink,
        )
        logger.info(
            "Troubleshooting session started",
            extra={"session_id": session.id, "workflow_id": workflow.id},
        )
        flow._emit(workflow_started(workflow, session))
        return flow

    @property
    def lock(self) -> threading.RLock:
        """Held by every mutating call; take it to read a consistent snapshot."""

        return self._lock

    @property
    def workflow(self) -> Workflow:
        return self._workflow

    @property
    def session(self) -> TroubleshootingSession:
        return self._completed or self._session

    @property
    def state(self) -> NavigationState:
        return self._state

    @property
    def current_step(self) -> DecisionStep | ActionStep | OutcomeStep:
        """The step to display; raises ``StepNotFoundError`` on a dangling id."""

        return self._workflow.step(self._state.current_step_id)

    @property
    def progress(self) -> float:
        return calculate_progress(self._state, self._workflow)

    @property
    def position(self) -> StepPosition:
        return step_position(self._state, self._workflow)

    @property
    def is_finished(self) -> bool:
        return self._completed is not None

    @property
    def can_go_back(self) -> bool:
        return not self.is_finished and can_go_back(self._state)

    @property
    def can_continue(self) -> bool:
        return not self.is_finished and can_continue(self._state, self._workflow)

    def select_option(self, option_id: str) -> Transition:
        with self._lock:
            step = self.current_step
            transition = self._apply(SelectOption(option_id))
            if isinstance(step, DecisionStep):
                option = step.option(option_id)
                if option is not None:
                    self._emit(decision_made(self._session, step_id=step.id, option=option))
            self._after_move(step.id, transition)
            return transition

    def toggle_action(self, action_index: int) -> Transition:
        with self._lock:
            step_id = self._state.current_step_id
            transition = self._apply(CompleteAction(action_index))
            # Only marking is reported, not clearing.
            if transition.state.is_action_completed(step_id, action_index):
                self._emit(
                    action_completed(self._session, step_id=step_id, action_index=action_index)
                )
            return transition

    def continue_to_next(self) -> Transition:
        with self._lock:
            from_step = self._state.current_step_id
            transition = self._apply(ContinueFromAction())
            if transition.outcome is TransitionOutcome.BLOCKED:
                logger.debug(
                    "Continue blocked until all actions are completed",
                    extra={"session_id": self._session.id, "step_id": from_step},
                )
            self._after_move(from_step, transition)
            return transition

    def go_back(self) -> Transition:
        with self._lock:
            from_step = self._state.current_step_id
            transition = self._apply(GoBack())
            self._after_move(from_step, transition)
            return transition

    def update_notes(self, text: str) -> Transition:
        with self._lock:
            return self._apply(UpdateNotes(text))

    def complete(
        self, resolution_text: str = "", *, now: datetime | None = None
    ) -> CompletedSession:
        """Record the resolution on the current outcome step and close the session."""

        with self._lock:
            step = self.current_step
            self._apply(RecordResolution(resolution_text))
            completed = complete_session(self._session, self._state, now=now)
            self._completed = completed
            total_steps = len(self._state.history)

        resolution_type = step.resolution_type.value if isinstance(step, OutcomeStep) else ""
        self._emit(
            workflow_completed(
                completed,
                total_steps=total_steps,
                resolution_type=resolution_type,
                resolution_notes=resolution_text,
            )
        )
        self._emit(session_completed(completed))
        logger.info(
            "Troubleshooting session resolved",
            extra={
                "session_id": completed.id,
                "workflow_id": completed.workflow_id,
                "resolution": completed.resolution,
                "duration_ms": completed.duration_ms,
            },
        )
        return completed

    def abandon(self, *, now: datetime | None = None) -> CompletedSession:
        """Leave the session without a resolution (back to workflow selection)."""

        with self._lock:
            self._ensure_open()
            completed = abandon_session(self._session, self._state, now=now)
            self._completed = completed

        self._emit(session_abandoned(completed))
        logger.info(
            "Troubleshooting session abandoned",
            extra={
                "session_id": completed.id,
                "workflow_id": completed.workflow_id,
                "current_step": completed.current_step_id,
            },
        )
        return completed

    def _ensure_open(self) -> None:
        if self._completed is not None:
            raise SessionClosedError(f"Session {self._completed.id} is already finished")

    def _apply(self, action: NavigationAction) -> Transition:
        self._ensure_open()
        transition = advance(state=self._state, workflow=self._workflow, action=action)
        self._state = transition.state
        self._session = sync_session(self._session, self._state)
        logger.debug(
            "Transition applied",
            extra={
                "session_id": self._session.id,
                "action": type(action).__name__,
                "outcome": transition.outcome.value,
                "step_id": self._state.current_step_id,
            },
        )
        return transition

    def _after_move(self, from_step: str, transition: Transition) -> None:
        if transition.outcome not in _MOVES:
            return
        self._emit(
            step_navigation(
                self._session,
                from_step=from_step,
                to_step=transition.state.current_step_id,
                step_number=len(transition.state.history),
            )
        )

    def _emit(self, event: TelemetryEvent) -> None:
        try:
            self._sink.emit(event.type, event.payload)
        except Exception:
            logger.warning("Telemetry sink failed", exc_info=True, extra={"event": event.type})
