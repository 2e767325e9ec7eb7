"""Static workflow definitions.

A workflow is an explicit adjacency structure: a mapping of step id to step,
plus a start step. Steps are a tagged union discriminated by ``type``:

- ``decision``: the operator must pick one of the offered options
- ``action``: a checklist with an optional continuation
- ``outcome``: a terminal node carrying a resolution classification

Graph integrity (start step and every ``next_step_id`` resolve) is validated
when a workflow is constructed, so traversal never meets a dangling edge for
validated data.
"""

from __future__ import annotations

from collections.abc import Iterator
from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class IssueCategory(str, Enum):
    BOOKING = "booking"
    PAYMENT = "payment"
    DEVICE_PICKUP = "device-pickup"
    GATE_ACCESS = "gate-access"
    SMS_VERIFICATION = "sms-verification"
    LOCATION = "location"
    REFUND = "refund"


class IssueCommonality(str, Enum):
    VERY_HIGH = "very high"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    VERY_LOW = "very low"

    @property
    def rank(self) -> int:
        """Ordinal position, 0 for the most common issues."""

        return list(IssueCommonality).index(self)


class ResolutionType(str, Enum):
    RESOLVED = "resolved"
    ESCALATED = "escalated"
    REQUIRES_FOLLOWUP = "requires-followup"
    CANCELLED = "cancelled"


class StepNotFoundError(LookupError):
    """The requested step id does not exist in the workflow.

    This is a workflow-authoring defect. It is never retried: callers should
    leave the session and return to workflow selection.
    """

    def __init__(self, workflow_id: str, step_id: str) -> None:
        super().__init__(f"Step Not Found: {step_id!r} in workflow {workflow_id!r}")
        self.workflow_id = workflow_id
        self.step_id = step_id


class Option(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    label: str
    next_step_id: str
    description: str | None = None


class _StepBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    title: str
    description: str | None = None
    content: str | None = None


class DecisionStep(_StepBase):
    type: Literal["decision"] = "decision"
    options: tuple[Option, ...] = Field(min_length=1)

    def option(self, option_id: str) -> Option | None:
        for option in self.options:
            if option.id == option_id:
                return option
        return None


class ActionStep(_StepBase):
    type: Literal["action"] = "action"
    actions: tuple[str, ...] = ()
    next_step_id: str | None = None
    requires_completion: bool = False


class OutcomeStep(_StepBase):
    type: Literal["outcome"] = "outcome"
    resolution_type: ResolutionType
    follow_up_actions: tuple[str, ...] = ()


Step = Annotated[DecisionStep | ActionStep | OutcomeStep, Field(discriminator="type")]


def outgoing_step_ids(step: DecisionStep | ActionStep | OutcomeStep) -> list[str]:
    """Step ids reachable in one transition from ``step``."""

    match step:
        case DecisionStep(options=options):
            return [option.next_step_id for option in options]
        case ActionStep(next_step_id=next_step_id):
            return [next_step_id] if next_step_id is not None else []
        case OutcomeStep():
            return []


class Workflow(BaseModel):
    """One troubleshooting procedure."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    title: str
    description: str
    category: IssueCategory
    priority: int = Field(ge=1, le=5, description="1 is the highest priority")
    commonality: IssueCommonality
    estimated_time: str
    # Display metadata only; never interpreted here.
    icon: str = ""
    color: str = ""
    start_step_id: str
    steps: dict[str, Step] = Field(min_length=1)

    @model_validator(mode="after")
    def _check_graph(self) -> Workflow:
        problems = self.integrity_problems()
        if problems:
            raise ValueError("; ".join(problems))
        return self

    def integrity_problems(self) -> list[str]:
        """Return every graph-integrity problem, without raising."""

        problems: list[str] = []
        if not self.steps:
            problems.append("workflow has no steps")
        if self.start_step_id not in self.steps:
            problems.append(f"start step {self.start_step_id!r} is not defined")

        for key, step in self.steps.items():
            if step.id != key:
                problems.append(f"step keyed {key!r} declares id {step.id!r}")
            if isinstance(step, DecisionStep):
                seen: set[str] = set()
                for option in step.options:
                    if option.id in seen:
                        problems.append(f"step {key!r} repeats option id {option.id!r}")
                    seen.add(option.id)
            for target in outgoing_step_ids(step):
                if target not in self.steps:
                    problems.append(f"step {key!r} points to undefined step {target!r}")
        return problems

    def step(self, step_id: str) -> DecisionStep | ActionStep | OutcomeStep:
        try:
            return self.steps[step_id]
        except KeyError:
            raise StepNotFoundError(self.id, step_id) from None

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    @property
    def is_high_priority(self) -> bool:
        return self.priority <= 2

    @property
    def is_common(self) -> bool:
        return self.commonality in {IssueCommonality.VERY_HIGH, IssueCommonality.HIGH}

    def iter_outcomes(self) -> Iterator[OutcomeStep]:
        for step in self.steps.values():
            if isinstance(step, OutcomeStep):
                yield step
