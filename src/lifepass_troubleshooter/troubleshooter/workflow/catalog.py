"""The workflow catalog.

The catalog is loaded once at startup, validated as a whole, and never mutated
afterwards. The built-in LifePass procedures ship as ``data/workflows.json``.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from importlib import resources
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from .models import IssueCategory, Workflow

logger = logging.getLogger(__name__)

_WORKFLOW_LIST = TypeAdapter(list[Workflow])


class CatalogIntegrityError(ValueError):
    """The catalog data is malformed or its step graph does not resolve."""

    def __init__(self, problems: Sequence[str]) -> None:
        self.problems = list(problems)
        super().__init__("Invalid workflow catalog:\n- " + "\n- ".join(self.problems))


@dataclass(frozen=True, slots=True)
class CatalogStats:
    total: int
    high_priority: int
    common: int


class WorkflowCatalog:
    """Read-only collection of workflows, iterated in priority order."""

    def __init__(self, workflows: Sequence[Workflow]) -> None:
        by_id: dict[str, Workflow] = {}
        duplicates: list[str] = []
        for workflow in workflows:
            if workflow.id in by_id:
                duplicates.append(f"duplicate workflow id {workflow.id!r}")
            by_id[workflow.id] = workflow
        if duplicates:
            raise CatalogIntegrityError(duplicates)

        # Priority first (1 is highest); equal priorities keep authoring order.
        self._ordered = tuple(sorted(by_id.values(), key=lambda w: w.priority))
        self._by_id = by_id

    def __iter__(self) -> Iterator[Workflow]:
        return iter(self._ordered)

    def __len__(self) -> int:
        return len(self._ordered)

    def __contains__(self, workflow_id: object) -> bool:
        return workflow_id in self._by_id

    def get(self, workflow_id: str) -> Workflow:
        try:
            return self._by_id[workflow_id]
        except KeyError:
            raise KeyError(f"Unknown workflow: {workflow_id}") from None

    def by_category(self, category: IssueCategory | str) -> list[Workflow]:
        wanted = IssueCategory(category)
        return [w for w in self._ordered if w.category == wanted]

    def stats(self) -> CatalogStats:
        return CatalogStats(
            total=len(self._ordered),
            high_priority=sum(1 for w in self._ordered if w.is_high_priority),
            common=sum(1 for w in self._ordered if w.is_common),
        )


def find_problems(workflow: Workflow) -> list[str]:
    """Report graph-integrity problems of one workflow without raising."""

    return workflow.integrity_problems()


def _problems_from_validation_error(error: ValidationError) -> list[str]:
    problems: list[str] = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ()))
        message = item.get("msg", "invalid value")
        problems.append(f"{location}: {message}" if location else message)
    return problems


def parse_catalog(raw: object) -> WorkflowCatalog:
    """Validate decoded JSON data into a catalog.

    Raises:
        CatalogIntegrityError: listing every schema or graph problem found.
    """

    try:
        workflows = _WORKFLOW_LIST.validate_python(raw)
    except ValidationError as e:
        raise CatalogIntegrityError(_problems_from_validation_error(e)) from e
    return WorkflowCatalog(workflows)


def _read_builtin_catalog() -> str:
    return (
        resources.files("lifepass_troubleshooter.troubleshooter.workflow")
        .joinpath("data/workflows.json")
        .read_text(encoding="utf-8")
    )


def load_catalog(path: Path | None = None) -> WorkflowCatalog:
    """Load and validate a catalog file (defaults to the built-in catalog)."""

    if path is None:
        text = _read_builtin_catalog()
        source = "builtin"
    else:
        text = path.read_text(encoding="utf-8")
        source = str(path)

    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        raise CatalogIntegrityError([f"{source}: not valid JSON ({e})"]) from e

    catalog = parse_catalog(raw)
    logger.info("Workflow catalog loaded", extra={"source": source, "workflows": len(catalog)})
    return catalog
