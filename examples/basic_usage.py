#!/usr/bin/env python3
"""Programmatic walk through a troubleshooting workflow.

This demonstrates using the engine directly, without the CLI:

* load the built-in workflow catalog
* start a flow with a logging telemetry sink
* answer decisions, tick actions, and record the resolution

The answers are passed as arguments, e.g.::

    python examples/basic_usage.py GATE-1 --choose yes-worked --resolve "passes separated"
"""

from __future__ import annotations

import argparse
from typing import Sequence

from lifepass_troubleshooter.troubleshooter.config import TroubleshooterSettings
from lifepass_troubleshooter.troubleshooter.logging import configure_logging
from lifepass_troubleshooter.troubleshooter.telemetry import build_event_sink
from lifepass_troubleshooter.troubleshooter.workflow import (
    ActionStep,
    DecisionStep,
    OutcomeStep,
    TroubleshootingFlow,
    load_catalog,
)


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Walk a workflow (programmatic example).")
    parser.add_argument("workflow_id", help='Workflow identifier, e.g. "BOOKING-1"')
    parser.add_argument(
        "--choose",
        action="append",
        default=[],
        help="Option id to pick at the next decision step (repeatable, in order)",
    )
    parser.add_argument("--resolve", default="", help="Resolution notes for the outcome step")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    settings = TroubleshooterSettings()
    configure_logging(settings.log_level)

    catalog = load_catalog(settings.catalog_path)
    workflow = catalog.get(args.workflow_id)
    flow = TroubleshootingFlow.start(workflow, sink=build_event_sink(settings))
    answers = list(args.choose)

    while not isinstance(flow.current_step, OutcomeStep):
        step = flow.current_step
        print(f"{flow.position.label}: {step.title}")
        if isinstance(step, DecisionStep):
            if not answers:
                print("Out of answers; abandoning.")
                flow.abandon()
                return 1
            flow.select_option(answers.pop(0))
        elif isinstance(step, ActionStep):
            for index in range(len(step.actions)):
                if not flow.state.is_action_completed(step.id, index):
                    flow.toggle_action(index)
            if step.next_step_id is None:
                print("Action step has no next step; abandoning.")
                flow.abandon()
                return 1
            flow.continue_to_next()

    completed = flow.complete(args.resolve)
    print(f"Resolved: {completed.resolution} after {completed.duration_ms} ms")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
