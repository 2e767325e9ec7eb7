"""Troubleshooting REST API.

All routes are mounted under `/api`.

Error mapping:
- 404: unknown workflow or session
- 409: illegal transition, closed session, or a step missing from the workflow

Each session handler holds the flow lock while it mutates the session and
renders the response.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from fastapi import APIRouter, HTTPException, Request

from lifepass_troubleshooter.server.models import (
    ApiSession,
    ApiStats,
    ApiWorkflowSummary,
    CreateSessionRequest,
    NotesRequest,
    ResolveRequest,
    SelectOptionRequest,
    ToggleActionRequest,
)
from lifepass_troubleshooter.server.session_store import SessionStore
from lifepass_troubleshooter.troubleshooter.workflow.catalog import WorkflowCatalog
from lifepass_troubleshooter.troubleshooter.workflow.flow import TroubleshootingFlow
from lifepass_troubleshooter.troubleshooter.workflow.models import StepNotFoundError, Workflow
from lifepass_troubleshooter.troubleshooter.workflow.state_machine import (
    IllegalTransitionError,
    Transition,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _catalog(request: Request) -> WorkflowCatalog:
    catalog = getattr(request.app.state, "catalog", None)
    if not isinstance(catalog, WorkflowCatalog):
        raise HTTPException(status_code=500, detail="Workflow catalog not configured")
    return catalog


def _store(request: Request) -> SessionStore:
    store = getattr(request.app.state, "sessions", None)
    if not isinstance(store, SessionStore):
        raise HTTPException(status_code=500, detail="Session store not configured")
    return store


def _workflow_or_404(request: Request, workflow_id: str) -> Workflow:
    try:
        return _catalog(request).get(workflow_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Workflow not found") from None


def _flow_or_404(request: Request, session_id: str) -> TroubleshootingFlow:
    flow = _store(request).get(session_id)
    if flow is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return flow


def _run(flow: TroubleshootingFlow, operation: Callable[[], Transition]) -> ApiSession:
    with flow.lock:
        try:
            transition = operation()
        except StepNotFoundError as e:
            logger.warning(
                "Session points at a missing step",
                extra={"session_id": flow.session.id, "step_id": e.step_id},
            )
            raise HTTPException(status_code=409, detail="Step Not Found") from e
        except IllegalTransitionError as e:
            raise HTTPException(status_code=409, detail=str(e)) from e
        return ApiSession.from_flow(flow, outcome=transition.outcome.value)


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/workflows", response_model=list[ApiWorkflowSummary])
def list_workflows(request: Request, category: str | None = None) -> list[ApiWorkflowSummary]:
    catalog = _catalog(request)
    if category is None:
        workflows = list(catalog)
    else:
        try:
            workflows = catalog.by_category(category)
        except ValueError:
            raise HTTPException(status_code=422, detail=f"Unknown category: {category}") from None
    return [ApiWorkflowSummary.from_workflow(w) for w in workflows]


@router.get("/workflows/{workflow_id}", response_model=Workflow)
def get_workflow(request: Request, workflow_id: str) -> Workflow:
    return _workflow_or_404(request, workflow_id)


@router.get("/stats", response_model=ApiStats)
def stats(request: Request) -> ApiStats:
    counters = _catalog(request).stats()
    return ApiStats(
        total=counters.total,
        high_priority=counters.high_priority,
        common=counters.common,
    )


@router.post("/sessions", response_model=ApiSession, status_code=201)
def create_session(request: Request, payload: CreateSessionRequest) -> ApiSession:
    workflow = _workflow_or_404(request, payload.workflow_id)
    flow = _store(request).create(workflow)
    return ApiSession.from_flow(flow)


@router.get("/sessions/{session_id}", response_model=ApiSession)
def get_session(request: Request, session_id: str) -> ApiSession:
    flow = _flow_or_404(request, session_id)
    with flow.lock:
        return ApiSession.from_flow(flow)


@router.post("/sessions/{session_id}/select-option", response_model=ApiSession)
def select_option(request: Request, session_id: str, payload: SelectOptionRequest) -> ApiSession:
    flow = _flow_or_404(request, session_id)
    return _run(flow, lambda: flow.select_option(payload.option_id))


@router.post("/sessions/{session_id}/toggle-action", response_model=ApiSession)
def toggle_action(request: Request, session_id: str, payload: ToggleActionRequest) -> ApiSession:
    flow = _flow_or_404(request, session_id)
    return _run(flow, lambda: flow.toggle_action(payload.action_index))


@router.post("/sessions/{session_id}/continue", response_model=ApiSession)
def continue_to_next(request: Request, session_id: str) -> ApiSession:
    flow = _flow_or_404(request, session_id)
    return _run(flow, flow.continue_to_next)


@router.post("/sessions/{session_id}/back", response_model=ApiSession)
def go_back(request: Request, session_id: str) -> ApiSession:
    flow = _flow_or_404(request, session_id)
    return _run(flow, flow.go_back)


@router.put("/sessions/{session_id}/notes", response_model=ApiSession)
def update_notes(request: Request, session_id: str, payload: NotesRequest) -> ApiSession:
    flow = _flow_or_404(request, session_id)
    return _run(flow, lambda: flow.update_notes(payload.notes))


@router.post("/sessions/{session_id}/resolve", response_model=ApiSession)
def resolve(request: Request, session_id: str, payload: ResolveRequest) -> ApiSession:
    flow = _flow_or_404(request, session_id)
    with flow.lock:
        try:
            flow.complete(payload.notes)
        except StepNotFoundError as e:
            raise HTTPException(status_code=409, detail="Step Not Found") from e
        except IllegalTransitionError as e:
            raise HTTPException(status_code=409, detail=str(e)) from e
        return ApiSession.from_flow(flow, outcome="resolved")


@router.delete("/sessions/{session_id}", response_model=ApiSession)
def abandon(request: Request, session_id: str) -> ApiSession:
    flow = _flow_or_404(request, session_id)
    with flow.lock:
        try:
            flow.abandon()
        except IllegalTransitionError as e:
            raise HTTPException(status_code=409, detail=str(e)) from e
        return ApiSession.from_flow(flow, outcome="abandoned")
