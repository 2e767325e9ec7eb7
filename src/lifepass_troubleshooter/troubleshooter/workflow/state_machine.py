"""Navigation state machine for one troubleshooting session.

All navigation goes through :func:`advance`, which is pure: it takes the
current :class:`NavigationState`, the workflow and one user action, and returns
a new state plus what happened. The current step is always the last history
entry, so history and position cannot drift apart.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum

from .models import ActionStep, DecisionStep, OutcomeStep, ResolutionType, Workflow

ActionKey = tuple[str, int]


class IllegalTransitionError(ValueError):
    pass


class SessionClosedError(IllegalTransitionError):
    pass


@dataclass(frozen=True, slots=True)
class NavigationState:
    history: tuple[str, ...]
    completed_actions: frozenset[ActionKey] = field(default_factory=frozenset)
    notes: str = ""
    resolution: str | None = None

    def __post_init__(self) -> None:
        if not self.history:
            raise ValueError("Navigation history must not be empty")

    @staticmethod
    def start(workflow: Workflow, *, notes: str = "") -> NavigationState:
        return NavigationState(history=(workflow.start_step_id,), notes=notes)

    @property
    def current_step_id(self) -> str:
        return self.history[-1]

    @property
    def is_closed(self) -> bool:
        return self.resolution is not None

    def is_action_completed(self, step_id: str, action_index: int) -> bool:
        return (step_id, action_index) in self.completed_actions


@dataclass(frozen=True, slots=True)
class SelectOption:
    option_id: str


@dataclass(frozen=True, slots=True)
class CompleteAction:
    action_index: int


@dataclass(frozen=True, slots=True)
class ContinueFromAction:
    pass


@dataclass(frozen=True, slots=True)
class GoBack:
    pass


@dataclass(frozen=True, slots=True)
class UpdateNotes:
    text: str


@dataclass(frozen=True, slots=True)
class RecordResolution:
    text: str


NavigationAction = (
    SelectOption | CompleteAction | ContinueFromAction | GoBack | UpdateNotes | RecordResolution
)


class TransitionOutcome(str, Enum):
    MOVED_FORWARD = "moved_forward"
    MOVED_BACK = "moved_back"
    ACTION_TOGGLED = "action_toggled"
    NOTES_UPDATED = "notes_updated"
    BLOCKED = "blocked"
    UNCHANGED = "unchanged"
    RESOLVED = "resolved"


@dataclass(frozen=True, slots=True)
class Transition:
    state: NavigationState
    outcome: TransitionOutcome


def format_resolution(resolution_type: ResolutionType | str, text: str) -> str:
    return f"{ResolutionType(resolution_type).value}: {text}"


def can_go_back(state: NavigationState) -> bool:
    return not state.is_closed and len(state.history) > 1


def can_continue(state: NavigationState, workflow: Workflow) -> bool:
    """Whether ``ContinueFromAction`` would move forward right now."""

    if state.is_closed:
        return False
    step = workflow.step(state.current_step_id)
    if not isinstance(step, ActionStep) or step.next_step_id is None:
        return False
    return _required_actions_done(state, step)


def _required_actions_done(state: NavigationState, step: ActionStep) -> bool:
    if not step.requires_completion:
        return True
    return all(state.is_action_completed(step.id, i) for i in range(len(step.actions)))


def _push(state: NavigationState, step_id: str) -> Transition:
    return Transition(
        state=replace(state, history=(*state.history, step_id)),
        outcome=TransitionOutcome.MOVED_FORWARD,
    )


def advance(
    *, state: NavigationState, workflow: Workflow, action: NavigationAction
) -> Transition:
    """Apply one user action.

    Raises:
        SessionClosedError: the session already recorded its resolution.
        StepNotFoundError: the current step is missing from the workflow.
        IllegalTransitionError: the action is not offered on the current step.
    """

    if state.is_closed:
        raise SessionClosedError(f"Session is closed at step {state.current_step_id!r}")

    # These two never need the current step definition.
    match action:
        case GoBack():
            if len(state.history) <= 1:
                return Transition(state=state, outcome=TransitionOutcome.UNCHANGED)
            return Transition(
                state=replace(state, history=state.history[:-1]),
                outcome=TransitionOutcome.MOVED_BACK,
            )
        case UpdateNotes(text=text):
            return Transition(
                state=replace(state, notes=text), outcome=TransitionOutcome.NOTES_UPDATED
            )

    step = workflow.step(state.current_step_id)

    match action, step:
        case SelectOption(option_id=option_id), DecisionStep():
            option = step.option(option_id)
            if option is None:
                raise IllegalTransitionError(
                    f"Option {option_id!r} is not offered on step {step.id!r}"
                )
            return _push(state, option.next_step_id)

        case CompleteAction(action_index=index), ActionStep():
            if not 0 <= index < len(step.actions):
                raise IllegalTransitionError(
                    f"Action index {index} is out of range for step {step.id!r}"
                )
            key = (step.id, index)
            completed = (
                state.completed_actions - {key}
                if key in state.completed_actions
                else state.completed_actions | {key}
            )
            return Transition(
                state=replace(state, completed_actions=completed),
                outcome=TransitionOutcome.ACTION_TOGGLED,
            )

        case ContinueFromAction(), ActionStep():
            if step.next_step_id is None:
                raise IllegalTransitionError(f"Step {step.id!r} has no next step")
            if not _required_actions_done(state, step):
                return Transition(state=state, outcome=TransitionOutcome.BLOCKED)
            return _push(state, step.next_step_id)

        case RecordResolution(text=text), OutcomeStep():
            return Transition(
                state=replace(state, resolution=format_resolution(step.resolution_type, text)),
                outcome=TransitionOutcome.RESOLVED,
            )

    raise IllegalTransitionError(
        f"{type(action).__name__} is not valid on {step.type} step {step.id!r}"
    )
