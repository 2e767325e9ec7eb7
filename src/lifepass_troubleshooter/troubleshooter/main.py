"""CLI entrypoint for the LifePass troubleshooter.

Browse the workflow catalog, validate catalog files, and walk an operator
through one workflow interactively.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from pydantic import ValidationError

from lifepass_troubleshooter import __version__
from lifepass_troubleshooter.troubleshooter.config import TroubleshooterSettings
from lifepass_troubleshooter.troubleshooter.logging import configure_logging
from lifepass_troubleshooter.troubleshooter.telemetry import build_event_sink
from lifepass_troubleshooter.troubleshooter.workflow.catalog import (
    CatalogIntegrityError,
    WorkflowCatalog,
    find_problems,
    load_catalog,
)
from lifepass_troubleshooter.troubleshooter.workflow.events import EventSink
from lifepass_troubleshooter.troubleshooter.workflow.flow import TroubleshootingFlow
from lifepass_troubleshooter.troubleshooter.workflow.models import (
    ActionStep,
    DecisionStep,
    OutcomeStep,
    StepNotFoundError,
    Workflow,
)
from lifepass_troubleshooter.troubleshooter.workflow.state_machine import TransitionOutcome


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="troubleshooter",
        description="Guided LifePass troubleshooting workflows",
    )
    parser.add_argument(
        "--version", action="version", version=f"lifepass-troubleshooter {__version__}"
    )
    # Options accepted after every subcommand.
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--catalog",
        default=None,
        help="Workflow catalog JSON file (defaults to TROUBLESHOOTER_CATALOG_PATH or built-in)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("list", parents=[common], help="List workflows in priority order")
    subparsers.add_parser("stats", parents=[common], help="Show catalog counters")

    show = subparsers.add_parser("show", parents=[common], help="Print every step of one workflow")
    show.add_argument("workflow_id", help="Workflow identifier, e.g. 'PAY-1'")

    subparsers.add_parser(
        "validate",
        parents=[common],
        help="Validate the catalog (schema and step graph); exit code 1 on problems",
    )

    run = subparsers.add_parser(
        "run", parents=[common], help="Walk through a workflow interactively"
    )
    run.add_argument("workflow_id", help="Workflow identifier, e.g. 'GATE-1'")

    return parser


def _print_workflow_line(workflow: Workflow) -> None:
    print(
        f"P{workflow.priority}  {workflow.commonality.value:<9}  {workflow.estimated_time:>6}  "
        f"{workflow.id:<12}  {workflow.title}"
    )


def _print_workflow(workflow: Workflow) -> None:
    print(f"{workflow.id}: {workflow.title}")
    print(f"  {workflow.description}")
    print(
        f"  category={workflow.category.value} priority={workflow.priority} "
        f"commonality={workflow.commonality.value} time={workflow.estimated_time}"
    )
    print(f"  start: {workflow.start_step_id}")
    for step in workflow.steps.values():
        print(f"\n[{step.type}] {step.id}: {step.title}")
        match step:
            case DecisionStep(options=options):
                for option in options:
                    print(f"  - {option.label} -> {option.next_step_id}")
            case ActionStep():
                for action in step.actions:
                    print(f"  * {action}")
                if step.next_step_id:
                    required = " (all actions required)" if step.requires_completion else ""
                    print(f"  next: {step.next_step_id}{required}")
            case OutcomeStep():
                print(f"  resolution: {step.resolution_type.value}")
                for follow_up in step.follow_up_actions:
                    print(f"  follow-up: {follow_up}")


def _prompt(text: str) -> str | None:
    try:
        return input(text).strip()
    except EOFError:
        return None


def _render(flow: TroubleshootingFlow, step: DecisionStep | ActionStep | OutcomeStep) -> None:
    position = flow.position
    print(f"\n{position.label} ({position.rounded_percent}% complete)")
    print(f"[{step.type.capitalize()}] {step.title}")
    if step.description:
        print(step.description)
    if step.content:
        print(f"  {step.content}")

    match step:
        case DecisionStep(options=options):
            for number, option in enumerate(options, start=1):
                print(f"  {number}. {option.label}")
        case ActionStep():
            for index, action in enumerate(step.actions):
                mark = "x" if flow.state.is_action_completed(step.id, index) else " "
                print(f"  {index + 1}. [{mark}] {action}")
            if step.next_step_id:
                print("  c. Continue to next step")
        case OutcomeStep():
            for follow_up in step.follow_up_actions:
                print(f"  follow-up: {follow_up}")
            return

    hints = ["n notes", "q back to selection"]
    if flow.can_go_back:
        hints.insert(0, "b back")
    print("(" + ", ".join(hints) + ")")


def _handle_choice(
    flow: TroubleshootingFlow, step: DecisionStep | ActionStep | OutcomeStep, choice: str
) -> None:
    if choice == "b":
        if not flow.can_go_back:
            print("Already at the first step.")
            return
        flow.go_back()
        return

    if choice == "n":
        text = _prompt("Session notes: ")
        if text is not None:
            flow.update_notes(text)
        return

    if isinstance(step, ActionStep) and choice == "c" and step.next_step_id:
        if flow.continue_to_next().outcome is TransitionOutcome.BLOCKED:
            print("Complete all actions before continuing.")
        return

    if choice.isdigit():
        index = int(choice) - 1
        if isinstance(step, DecisionStep) and 0 <= index < len(step.options):
            flow.select_option(step.options[index].id)
            return
        if isinstance(step, ActionStep) and 0 <= index < len(step.actions):
            flow.toggle_action(index)
            return

    print("Unrecognised choice.")


def run_workflow(workflow: Workflow, *, sink: EventSink) -> int:
    """Walk one workflow on stdin/stdout. Returns a process exit code."""

    flow = TroubleshootingFlow.start(workflow, sink=sink)
    print(f"{workflow.title} ({workflow.estimated_time})")
    print(workflow.description)

    while True:
        try:
            step = flow.current_step
        except StepNotFoundError as e:
            print(f"Step Not Found: {e.step_id!r} is not part of {workflow.id}.", file=sys.stderr)
            print("Returning to workflow selection.", file=sys.stderr)
            flow.abandon()
            return 1

        _render(flow, step)

        if isinstance(step, OutcomeStep):
            notes = _prompt("Resolution notes (optional, 'q' to start a new issue): ")
            if notes is None or notes == "q":
                flow.abandon()
                print("Session abandoned.")
                return 0
            completed = flow.complete(notes)
            print(f"Session completed: {completed.resolution}")
            return 0

        choice = _prompt("> ")
        if choice is None or choice == "q":
            flow.abandon()
            print("Session abandoned.")
            return 0
        _handle_choice(flow, step, choice.lower())


def _load(settings: TroubleshooterSettings, override: str | None) -> WorkflowCatalog:
    path = Path(override) if override else settings.catalog_path
    return load_catalog(path)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = TroubleshooterSettings()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    configure_logging(settings.log_level)

    try:
        catalog = _load(settings, args.catalog)
    except CatalogIntegrityError as e:
        print(str(e), file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Cannot read catalog: {e}", file=sys.stderr)
        return 2

    if args.command == "validate":
        problems = [
            f"{workflow.id}: {problem}"
            for workflow in catalog
            for problem in find_problems(workflow)
        ]
        if problems:
            print(str(CatalogIntegrityError(problems)), file=sys.stderr)
            return 1
        print(f"Catalog OK: {len(catalog)} workflows")
        return 0

    if args.command == "list":
        for workflow in catalog:
            _print_workflow_line(workflow)
        return 0

    if args.command == "stats":
        stats = catalog.stats()
        print(f"High priority issues: {stats.high_priority}")
        print(f"Common issues: {stats.common}")
        print(f"Total workflows: {stats.total}")
        return 0

    try:
        workflow = catalog.get(args.workflow_id)
    except KeyError:
        print(f"Unknown workflow: {args.workflow_id}", file=sys.stderr)
        return 1

    if args.command == "show":
        _print_workflow(workflow)
        return 0

    if args.command == "run":
        return run_workflow(workflow, sink=build_event_sink(settings))

    parser.error(f"Unknown command: {args.command}")
    return 2
