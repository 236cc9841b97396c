"""
Task data models for task-master task lists.

These models define the structure of a task-master ``tasks.json`` file,
with validation and type safety via Pydantic. Field names follow Python
conventions; the camelCase keys used on disk (``testStrategy``) are
accepted through aliases.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TaskStatus(str, Enum):
    """Task status values used by task-master."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    DONE = "done"
    DEFERRED = "deferred"


class TaskPriority(str, Enum):
    """Task priority levels used by task-master."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


def _coerce_dependency_ids(value: object) -> object:
    """
    Coerce a dependency list into a list of integers.

    task-master sometimes writes dependency ids as strings ("3").
    Anything that cannot be read as an integer is left for Pydantic
    to reject.
    """
    if value is None:
        return []
    if not isinstance(value, list):
        return value

    coerced: list[object] = []
    for item in value:
        if isinstance(item, str) and item.strip().isdigit():
            coerced.append(int(item.strip()))
        else:
            coerced.append(item)
    return coerced


class Subtask(BaseModel):
    """
    A subtask nested under a task.

    Subtask ids are unique within their parent only, and dependencies
    refer to sibling subtask ids.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(..., description="Subtask identifier, unique within its parent")
    title: str = Field(..., description="Subtask title")
    description: str = Field(default="", description="Subtask description")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="Current status")
    dependencies: list[int] = Field(
        default_factory=list,
        description="Ids of sibling subtasks this subtask depends on",
    )
    details: str | None = Field(default=None, description="Implementation notes")

    @field_validator("dependencies", mode="before")
    @classmethod
    def coerce_dependencies(cls, v: object) -> object:
        return _coerce_dependency_ids(v)


class Task(BaseModel):
    """
    A top-level task from a task-master task list.

    Example:
        >>> task = Task(
        ...     id=1,
        ...     title="Setup project",
        ...     description="Initialize the scaffolding",
        ...     priority=TaskPriority.HIGH,
        ... )
        >>> task.has_subtasks
        False
    """

    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(..., gt=0, description="Task identifier, unique within the list")
    title: str = Field(..., description="Task title")
    description: str = Field(default="", description="Task description")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="Current status")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="Priority level")
    dependencies: list[int] = Field(
        default_factory=list,
        description="Ids of other tasks this task depends on",
    )
    complexity: int | None = Field(
        default=None,
        ge=1,
        le=10,
        description="Optional complexity score (1-10)",
    )
    details: str | None = Field(default=None, description="Implementation notes")
    test_strategy: str | None = Field(
        default=None,
        alias="testStrategy",
        description="Verification approach for this task",
    )
    subtasks: list[Subtask] = Field(default_factory=list, description="Nested subtasks")

    @field_validator("dependencies", mode="before")
    @classmethod
    def coerce_dependencies(cls, v: object) -> object:
        return _coerce_dependency_ids(v)

    @field_validator("subtasks", mode="before")
    @classmethod
    def default_subtasks(cls, v: object) -> object:
        return [] if v is None else v

    @property
    def has_subtasks(self) -> bool:
        """Whether this task has at least one subtask."""
        return len(self.subtasks) > 0

    @property
    def has_test_strategy(self) -> bool:
        """Whether this task carries a non-empty test strategy."""
        return bool(self.test_strategy and self.test_strategy.strip())

    def sorted_subtasks(self) -> list[Subtask]:
        """Return subtasks ordered by ascending subtask id."""
        return sorted(self.subtasks, key=lambda s: s.id)


class TaskList(BaseModel):
    """The ``tasks`` collection of a task-master project."""

    tasks: list[Task] = Field(default_factory=list)

    @property
    def subtask_count(self) -> int:
        """Total number of subtasks across all tasks."""
        return sum(len(t.subtasks) for t in self.tasks)

    @property
    def test_strategy_count(self) -> int:
        """Number of tasks carrying a test strategy."""
        return sum(1 for t in self.tasks if t.has_test_strategy)
