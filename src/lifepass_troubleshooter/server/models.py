"""Pydantic models for the REST server."""

from __future__ import annotations

from pydantic import BaseModel, Field

from lifepass_troubleshooter.troubleshooter.workflow.flow import TroubleshootingFlow
from lifepass_troubleshooter.troubleshooter.workflow.models import (
    ActionStep,
    DecisionStep,
    IssueCategory,
    IssueCommonality,
    OutcomeStep,
    StepNotFoundError,
    Workflow,
)
from lifepass_troubleshooter.troubleshooter.workflow.session import TroubleshootingSession


class ApiWorkflowSummary(BaseModel):
    id: str
    title: str
    description: str
    category: IssueCategory
    priority: int
    commonality: IssueCommonality
    estimated_time: str
    icon: str = ""
    color: str = ""
    total_steps: int

    @classmethod
    def from_workflow(cls, workflow: Workflow) -> ApiWorkflowSummary:
        return cls(
            id=workflow.id,
            title=workflow.title,
            description=workflow.description,
            category=workflow.category,
            priority=workflow.priority,
            commonality=workflow.commonality,
            estimated_time=workflow.estimated_time,
            icon=workflow.icon,
            color=workflow.color,
            total_steps=workflow.total_steps,
        )


class ApiStats(BaseModel):
    total: int
    high_priority: int
    common: int


class ApiSession(BaseModel):
    """A session together with everything the console renders for it."""

    session: TroubleshootingSession
    step: DecisionStep | ActionStep | OutcomeStep | None = None
    step_number: int
    total_steps: int
    progress: float
    completed_actions: list[int] = Field(default_factory=list)
    can_go_back: bool
    can_continue: bool
    outcome: str | None = None

    @classmethod
    def from_flow(cls, flow: TroubleshootingFlow, *, outcome: str | None = None) -> ApiSession:
        try:
            step = flow.current_step
        except StepNotFoundError:
            step = None

        completed: list[int] = []
        if isinstance(step, ActionStep):
            completed = [
                index
                for index in range(len(step.actions))
                if flow.state.is_action_completed(step.id, index)
            ]

        position = flow.position
        return cls(
            session=flow.session,
            step=step,
            step_number=position.number,
            total_steps=position.total,
            progress=flow.progress,
            completed_actions=completed,
            can_go_back=flow.can_go_back,
            can_continue=step is not None and flow.can_continue,
            outcome=outcome,
        )


class CreateSessionRequest(BaseModel):
    workflow_id: str = Field(min_length=1)


class SelectOptionRequest(BaseModel):
    option_id: str = Field(min_length=1)


class ToggleActionRequest(BaseModel):
    action_index: int = Field(ge=0)


class NotesRequest(BaseModel):
    notes: str = ""


class ResolveRequest(BaseModel):
    notes: str = ""
