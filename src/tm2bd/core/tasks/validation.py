"""
Structural validation of a task list before it is synced.

Checks the invariants the sync pipeline relies on but the schema cannot
express: unique ids, subtask dependencies that stay within their parent,
and acyclic subtask graphs. Top-level dangling references and cycles are
left to resolve_tiers so they surface as graph errors.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

from .graph import DependencyGraphError, resolve_tiers
from .models import Task, TaskList


class TaskValidationError(Exception):
    """Raised when a task list fails structural validation."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        summary = "; ".join(errors[:5])
        if len(errors) > 5:
            summary += f" (and {len(errors) - 5} more)"
        super().__init__(f"Task list is invalid: {summary}")


@dataclass
class ValidationReport:
    """Problems found in a task list."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def raise_for_errors(self) -> None:
        """Raise TaskValidationError if any errors were found."""
        if self.errors:
            raise TaskValidationError(self.errors)


def _duplicates(values: list[int]) -> list[int]:
    return sorted(value for value, count in Counter(values).items() if count > 1)


def _validate_subtasks(task: Task, report: ValidationReport) -> None:
    sibling_ids = [s.id for s in task.subtasks]
    for dup in _duplicates(sibling_ids):
        report.errors.append(f"Task {task.id} has duplicate subtask id {dup}")

    known = set(sibling_ids)
    dangling = False
    for subtask in task.subtasks:
        for dup in _duplicates(subtask.dependencies):
            report.warnings.append(
                f"Subtask {task.id}.{subtask.id} lists dependency {dup} more than once"
            )
        for dep_id in subtask.dependencies:
            if dep_id not in known:
                dangling = True
                report.errors.append(
                    f"Subtask {task.id}.{subtask.id} depends on {dep_id}, "
                    f"which is not a subtask of task {task.id}"
                )

    if dangling or not task.subtasks:
        return

    try:
        resolve_tiers(task.subtasks)
    except DependencyGraphError as e:
        report.errors.append(f"Subtasks of task {task.id}: {e}")


def validate_task_list(task_list: TaskList) -> ValidationReport:
    """
    Validate a task list.

    Errors:
        - duplicate task ids
        - duplicate subtask ids within one parent
        - subtask dependencies on ids that are not siblings
        - cycles among the subtasks of one task

    Warnings:
        - the same id listed more than once in a dependency list

    Args:
        task_list: Parsed task list

    Returns:
        ValidationReport with errors and warnings
    """
    report = ValidationReport()

    for dup in _duplicates([t.id for t in task_list.tasks]):
        report.errors.append(f"Duplicate task id {dup}")

    for task in task_list.tasks:
        for dup in _duplicates(task.dependencies):
            report.warnings.append(f"Task {task.id} lists dependency {dup} more than once")
        _validate_subtasks(task, report)

    return report
