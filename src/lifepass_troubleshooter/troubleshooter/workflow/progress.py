from __future__ import annotations

from dataclasses import dataclass

from .models import Workflow
from .state_machine import NavigationState


def calculate_progress(state: NavigationState, workflow: Workflow) -> float:
    """Visited steps over total steps, as a percentage capped at 100.

    This is a coarse indicator, not distance to a terminal step: workflows with
    many alternate branches stay well below 100% until (and even at) an outcome.
    """

    total = len(workflow.steps)
    if total == 0:
        return 0.0
    return min(100.0, 100.0 * len(state.history) / total)


@dataclass(frozen=True, slots=True)
class StepPosition:
    number: int
    total: int
    percent: float

    @property
    def label(self) -> str:
        return f"Step {self.number} of {self.total}"

    @property
    def rounded_percent(self) -> int:
        return round(self.percent)


def step_position(state: NavigationState, workflow: Workflow) -> StepPosition:
    return StepPosition(
        number=len(state.history),
        total=len(workflow.steps),
        percent=calculate_progress(state, workflow),
    )
