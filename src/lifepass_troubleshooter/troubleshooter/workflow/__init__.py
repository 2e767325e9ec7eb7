"""Troubleshooting workflow domain.

This package introduces first-class types for:
- Static workflow definitions (decision, action and outcome steps)
- The workflow catalog, validated once at load time
- A pure navigation state machine with backtracking
- Session records, progress and resolution recording
- Telemetry events emitted to an injected sink
"""

from .catalog import CatalogIntegrityError, WorkflowCatalog, load_catalog
from .events import EventSink, LoggingEventSink, MemoryEventSink, NullEventSink
from .flow import TroubleshootingFlow
from .models import (
    ActionStep,
    DecisionStep,
    Option,
    OutcomeStep,
    ResolutionType,
    StepNotFoundError,
    Workflow,
)
from .state_machine import IllegalTransitionError, NavigationState, SessionClosedError, advance

__all__ = [
    "ActionStep",
    "CatalogIntegrityError",
    "DecisionStep",
    "EventSink",
    "IllegalTransitionError",
    "LoggingEventSink",
    "MemoryEventSink",
    "NavigationState",
    "NullEventSink",
    "Option",
    "OutcomeStep",
    "ResolutionType",
    "SessionClosedError",
    "StepNotFoundError",
    "TroubleshootingFlow",
    "Workflow",
    "WorkflowCatalog",
    "advance",
    "load_catalog",
]
