"""
Status reconciliation.

Maps task-master statuses onto beads. New beads issues start open, so
``pending`` needs no action; ``done`` closes the issue; ``in-progress``
and ``deferred`` set the matching beads status. Unknown statuses are left
alone rather than rejected.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from tm2bd.core.beads import BeadsCommandError, IssueTracker
from tm2bd.core.mapping import MappingStore, MissingMappingError
from tm2bd.core.tasks.models import Task, TaskStatus

from .errors import ExternalCallError
from .models import StatusCounts

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatusAction:
    """What to do in beads for a task-master status."""

    status: str | None = None
    close: bool = False

    @property
    def is_noop(self) -> bool:
        return self.status is None and not self.close


_STATUS_ACTIONS: dict[str, StatusAction] = {
    TaskStatus.PENDING.value: StatusAction(),
    TaskStatus.IN_PROGRESS.value: StatusAction(status="in_progress"),
    TaskStatus.DONE.value: StatusAction(close=True),
    TaskStatus.DEFERRED.value: StatusAction(status="deferred"),
}


def map_status(status: TaskStatus | str) -> StatusAction:
    """Map a task-master status to a beads action. Never raises."""
    key = status.value if isinstance(status, TaskStatus) else str(status)
    return _STATUS_ACTIONS.get(key, StatusAction())


def _apply(
    tracker: IssueTracker, issue_id: str, status: TaskStatus | str, entity: str
) -> StatusAction:
    action = map_status(status)
    try:
        if action.close:
            tracker.close(issue_id)
        elif action.status:
            tracker.update_status(issue_id, action.status)
    except BeadsCommandError as e:
        raise ExternalCallError("sync status", entity, e) from e
    if not action.is_noop:
        logger.debug("Applied %s to %s (%s)", action, issue_id, entity)
    return action


def sync_epic_status(task: Task, tracker: IssueTracker, store: MappingStore) -> StatusAction:
    """
    Apply a task's status to its epic.

    Raises:
        MissingMappingError: If the task has no epic
    """
    epic_id = store.get_epic_id(task.id)
    if epic_id is None:
        raise MissingMappingError(f"No beads epic found for task {task.id}", tm_id=task.id)
    return _apply(tracker, epic_id, task.status, f"task {task.id}")


def sync_subtask_status(
    task: Task, tracker: IssueTracker, store: MappingStore
) -> list[StatusAction]:
    """Apply each subtask's status to its child issue, skipping unmapped subtasks."""
    actions: list[StatusAction] = []
    for subtask in task.subtasks:
        child_id = store.get_subtask_id(task.id, subtask.id)
        if child_id is None:
            continue
        actions.append(_apply(tracker, child_id, subtask.status, f"subtask {task.id}.{subtask.id}"))
    return actions


def sync_all_statuses(tasks: list[Task], tracker: IssueTracker, store: MappingStore) -> StatusCounts:
    """Sync every task's epic status and then its subtasks' statuses."""
    counts = StatusCounts()
    for task in tasks:
        for action in [sync_epic_status(task, tracker, store)] + sync_subtask_status(
            task, tracker, store
        ):
            if action.close:
                counts.closed += 1
            elif action.status:
                counts.updated += 1
            else:
                counts.unchanged += 1
    return counts
