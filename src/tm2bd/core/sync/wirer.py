"""
Dependency wiring.

Replays task-master dependency edges as beads "blocked by" relationships.
Three passes run in a fixed order, since later passes rely on the issues
wired by earlier ones existing:

1. epic → epic, from task dependencies
2. child → child, from subtask dependencies within one task
3. test issue → every child of its task, so verification waits for the
   implementation work
"""

from __future__ import annotations

import logging

from tm2bd.core.beads import BeadsCommandError, IssueTracker
from tm2bd.core.mapping import MappingStore, MissingMappingError
from tm2bd.core.tasks.models import Task

from .errors import ExternalCallError
from .models import WiringCounts

logger = logging.getLogger(__name__)


def _unique(ids: list[int]) -> list[int]:
    return list(dict.fromkeys(ids))


def _add_dependency(
    tracker: IssueTracker, blocked_id: str, blocking_id: str, description: str
) -> None:
    try:
        tracker.add_dependency(blocked_id, blocking_id)
    except BeadsCommandError as e:
        raise ExternalCallError("add dependency", description, e) from e
    logger.debug("Wired %s blocked by %s (%s)", blocked_id, blocking_id, description)


def wire_epic_dependencies(tasks: list[Task], tracker: IssueTracker, store: MappingStore) -> int:
    """
    Wire epic-level dependencies.

    Returns:
        Number of dependencies added

    Raises:
        MissingMappingError: If either side of a dependency has no epic
    """
    count = 0
    for task in tasks:
        if not task.dependencies:
            continue

        blocked_id = store.get_epic_id(task.id)
        if blocked_id is None:
            raise MissingMappingError(
                f"Failed to wire epic dependency: no Beads ID found for "
                f'blocked task {task.id} ("{task.title}")',
                tm_id=task.id,
            )

        for dep_id in _unique(task.dependencies):
            blocking_id = store.get_epic_id(dep_id)
            if blocking_id is None:
                raise MissingMappingError(
                    f"Failed to wire epic dependency: no Beads ID found for "
                    f'blocking task {dep_id} (dependency of task {task.id} "{task.title}")',
                    tm_id=dep_id,
                )
            _add_dependency(tracker, blocked_id, blocking_id, f"task {task.id} → task {dep_id}")
            count += 1

    return count


def wire_subtask_dependencies(
    tasks: list[Task], tracker: IssueTracker, store: MappingStore
) -> int:
    """
    Wire dependencies between subtasks of the same task.

    Returns:
        Number of dependencies added

    Raises:
        MissingMappingError: If either side of a dependency has no child
            mapping under the same parent
    """
    count = 0
    for task in tasks:
        for subtask in task.subtasks:
            if not subtask.dependencies:
                continue

            blocked_id = store.get_subtask_id(task.id, subtask.id)
            if blocked_id is None:
                raise MissingMappingError(
                    f"Failed to wire subtask dependency: no Beads ID found for blocked "
                    f'subtask {subtask.id} ("{subtask.title}") of task {task.id} '
                    f'("{task.title}")',
                    tm_id=task.id,
                )

            for dep_id in _unique(subtask.dependencies):
                blocking_id = store.get_subtask_id(task.id, dep_id)
                if blocking_id is None:
                    raise MissingMappingError(
                        f"Failed to wire subtask dependency: no Beads ID found for blocking "
                        f'subtask {dep_id} (dependency of subtask {subtask.id} "{subtask.title}" '
                        f'in task {task.id} "{task.title}")',
                        tm_id=task.id,
                    )
                _add_dependency(
                    tracker,
                    blocked_id,
                    blocking_id,
                    f"subtask {task.id}.{subtask.id} → subtask {task.id}.{dep_id}",
                )
                count += 1

    return count


def wire_test_dependencies(tasks: list[Task], tracker: IssueTracker, store: MappingStore) -> int:
    """
    Make each test issue blocked by every child issue of its task.

    Tasks without a test issue or without subtasks are skipped.

    Returns:
        Number of dependencies added
    """
    count = 0
    for task in tasks:
        if not task.has_subtasks:
            continue
        test_issue_id = store.get_test_issue_id(task.id)
        if test_issue_id is None:
            continue

        for subtask in task.sorted_subtasks():
            child_id = store.get_subtask_id(task.id, subtask.id)
            if child_id is None:
                raise MissingMappingError(
                    f"Subtask ID not found for {task.id}.{subtask.id}", tm_id=task.id
                )
            _add_dependency(
                tracker,
                test_issue_id,
                child_id,
                f"test issue of task {task.id} → subtask {task.id}.{subtask.id}",
            )
            count += 1

    return count


def wire_all_dependencies(
    tasks: list[Task], tracker: IssueTracker, store: MappingStore
) -> WiringCounts:
    """Run the epic, subtask and test passes in order."""
    epics = wire_epic_dependencies(tasks, tracker, store)
    subtasks = wire_subtask_dependencies(tasks, tracker, store)
    tests = wire_test_dependencies(tasks, tracker, store)
    return WiringCounts(epic=epics, subtask=subtasks, test=tests)
