"""
Migration plans.

A plan is an ordered list of operations kept in a Python file that defines a
module-level ``plan``:

    from surreal_undo.migrations import InsertDocument, MigrationPlan, UpdateDocuments

    plan = MigrationPlan(
        name="retire_old_status",
        operations=[
            InsertDocument(collection="y", document={"name": "Y1"}, timestamp_field="createdAt"),
            UpdateDocuments(
                collection="z",
                filter={"status": "old"},
                update={"status": "new"},
                timestamp_field="updatedAt",
            ),
        ],
    )
"""

import copy
import importlib.util
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Literal

from ..exceptions import PlanError
from ..store import Document

STRATEGIES = ("journal", "snapshot")


@dataclass
class Operation(ABC):
    """Base class for planned operations on one collection."""

    collection: str

    @abstractmethod
    def describe(self) -> str:
        ...


@dataclass
class InsertDocument(Operation):
    """
    Insert one document.

    Attributes:
        document: Document to insert
        timestamp_field: If set, the run's start instant is written to this
            field. The legacy time-window restore relies on it.
    """

    document: Document = field(default_factory=dict)
    timestamp_field: str | None = None

    def build(self, run_instant: datetime) -> Document:
        document = copy.deepcopy(self.document)
        if self.timestamp_field:
            document[self.timestamp_field] = run_instant
        return document

    def describe(self) -> str:
        return f"Insert into {self.collection}"


@dataclass
class UpdateDocuments(Operation):
    """
    Merge ``update`` into every document of ``collection`` matching ``filter``.

    Attributes:
        filter: Equality filter selecting the documents
        update: Merge document applied to each match
        strategy: "journal" records each document's previous state for undo;
            "snapshot" copies the matched set to a side collection, then runs
            one bulk update
        timestamp_field: If set, the run's start instant is merged into this field
    """

    filter: Document = field(default_factory=dict)
    update: Document = field(default_factory=dict)
    strategy: Literal["journal", "snapshot"] = "journal"
    timestamp_field: str | None = None

    def __post_init__(self) -> None:
        if not self.update and not self.timestamp_field:
            raise ValueError(f"UpdateDocuments on {self.collection} has an empty update")
        if self.strategy not in STRATEGIES:
            raise ValueError(f"Unknown update strategy '{self.strategy}'. Must be one of {STRATEGIES}.")

    def build(self, run_instant: datetime) -> Document:
        instruction = copy.deepcopy(self.update)
        if self.timestamp_field:
            instruction[self.timestamp_field] = run_instant
        return instruction

    def describe(self) -> str:
        return f"Update {self.collection} where {self.filter} ({self.strategy})"


@dataclass
class MigrationPlan:
    """
    Ordered operations of one migration.

    Attributes:
        name: Plan name, used in log lines
        operations: Operations, applied strictly in order
        description: Free text
    """

    name: str
    operations: list[Operation] = field(default_factory=list)
    description: str = ""

    def describe(self) -> str:
        lines = [f"Plan: {self.name}"]
        if self.description:
            lines.append(self.description)
        lines.append(f"Operations ({len(self.operations)}):")
        for i, op in enumerate(self.operations, 1):
            lines.append(f"  {i}. {op.describe()}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"MigrationPlan(name={self.name!r}, operations={len(self.operations)})"


def load_plan(path: Path | str) -> MigrationPlan:
    """
    Import a plan file and return its ``plan``.

    Raises:
        PlanError: If the file is missing, fails to import, or defines no plan
    """
    filepath = Path(path)
    if not filepath.is_file():
        raise PlanError(f"Plan file not found: {filepath}")

    spec = importlib.util.spec_from_file_location(f"_surreal_undo_plan_{filepath.stem}", filepath)
    if not spec or not spec.loader:
        raise PlanError(f"Could not load plan: {filepath}")

    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        raise PlanError(f"Plan {filepath} failed to import: {e}") from e

    plan = getattr(module, "plan", None)
    # Checked by class name so plans importing through another path still load
    if plan is None or type(plan).__name__ != "MigrationPlan":
        raise PlanError(f"Plan file must define a 'plan' variable: {filepath}")

    return plan  # type: ignore[no-any-return]


__all__ = ["Operation", "InsertDocument", "UpdateDocuments", "MigrationPlan", "load_plan"]
