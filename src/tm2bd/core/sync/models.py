"""
Data models for the sync pipeline: stages, plans, counters and results.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from tm2bd.core.tasks.graph import TieredNode
from tm2bd.core.tasks.models import Task


class SyncStage(str, Enum):
    """Stages of a sync run, in execution order."""

    RESOLVE_ORDER = "resolve-order"
    CREATE_EPICS = "create-epics"
    CREATE_CHILDREN = "create-children"
    CREATE_TEST_ISSUES = "create-test-issues"
    WIRE_DEPENDENCIES = "wire-dependencies"
    SYNC_STATUSES = "sync-statuses"
    PERSIST_MAPPING = "persist-mapping"

    @property
    def label(self) -> str:
        """Human-readable stage name."""
        return self.value.replace("-", " ").capitalize()


class OperationKind(str, Enum):
    """Kinds of operations a sync run performs against beads."""

    CREATE_EPIC = "create_epic"
    CREATE_CHILD = "create_child"
    CREATE_TEST = "create_test"
    WIRE_DEPENDENCY = "wire_dependency"


@dataclass(frozen=True)
class PlannedOperation:
    """One operation a sync run would perform, for dry runs."""

    kind: OperationKind
    tier: int
    task_id: int
    title: str
    subtask_id: int | None = None
    depends_on: tuple[int, ...] = ()

    def describe(self) -> str:
        if self.kind == OperationKind.CREATE_EPIC:
            return f'Create epic: #{self.task_id} "{self.title}"'
        if self.kind == OperationKind.CREATE_CHILD:
            return f'Create child: #{self.task_id}.{self.subtask_id} "{self.title}"'
        if self.kind == OperationKind.CREATE_TEST:
            return f'Create test issue: #{self.task_id} "{self.title}"'
        deps = ", ".join(str(d) for d in self.depends_on)
        return f"Wire dependencies: #{self.task_id} depends on [{deps}]"


@dataclass
class SyncPlan:
    """The dependency ordering and planned operations for a task list."""

    ordered: list[TieredNode[Task]] = field(default_factory=list)
    operations: list[PlannedOperation] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def tasks(self) -> list[Task]:
        """Tasks in dependency order."""
        return [entry.node for entry in self.ordered]

    def count(self, kind: OperationKind) -> int:
        return sum(1 for op in self.operations if op.kind == kind)


class WiringCounts(BaseModel):
    """Number of dependencies added by each wiring pass."""

    epic: int = 0
    subtask: int = 0
    test: int = 0

    @property
    def total(self) -> int:
        return self.epic + self.subtask + self.test


class StatusCounts(BaseModel):
    """Outcome of status reconciliation."""

    closed: int = 0
    updated: int = 0
    unchanged: int = 0


class SyncResult(BaseModel):
    """
    Result of a sync run.

    Counts reflect what this run did; entities skipped because a resumed
    mapping already had them are not counted as created.
    """

    epics_created: int = 0
    children_created: int = 0
    test_issues_created: int = 0
    dependencies: WiringCounts = Field(default_factory=WiringCounts)
    statuses: StatusCounts = Field(default_factory=StatusCounts)

    stages_run: list[SyncStage] = Field(default_factory=list)
    stages_skipped: list[SyncStage] = Field(default_factory=list)

    started_at: datetime | None = Field(default=None)
    completed_at: datetime | None = Field(default=None)

    @property
    def duration_seconds(self) -> float | None:
        """Calculate run duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def summary(self) -> str:
        """Generate a human-readable summary of the run."""
        return (
            f"Created {self.epics_created} epics, {self.children_created} child issues "
            f"and {self.test_issues_created} test issues; "
            f"wired {self.dependencies.total} dependencies"
        )
