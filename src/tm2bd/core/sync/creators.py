"""
Creation of beads issues from task-master tasks.

Three kinds of issues are created, each with its own creator:

* an **epic** per task (``create_epics``)
* a **child** issue per subtask, under the task's epic (``create_all_children``)
* a **test** issue per task with a test strategy, also under the epic
  (``create_all_test_children``)

Each creator formats the issue body, makes one ``bd create`` call, and
registers the returned id in the mapping store. Entities that already
have a mapping are skipped, so re-running a stage after an interruption
never creates duplicates.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from tm2bd.core.beads import BeadsCommandError, IssueTracker
from tm2bd.core.mapping import MappingStore, MissingMappingError
from tm2bd.core.tasks.models import Subtask, Task, TaskPriority

from .errors import ExternalCallError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]
Checkpoint = Callable[[], None]

TEST_TITLE_PREFIX = "Test: "

_PRIORITY_MAP: dict[TaskPriority, int] = {
    TaskPriority.HIGH: 0,
    TaskPriority.MEDIUM: 1,
    TaskPriority.LOW: 2,
}


# ------------------------------------------------------------------
# Formatting
# ------------------------------------------------------------------


def map_priority(priority: TaskPriority | str) -> int:
    """
    Map a task-master priority to a beads priority ordinal.

    high → 0, medium → 1, low → 2 (lower ordinal is higher priority).

    Raises:
        ValueError: If *priority* is not a task-master priority
    """
    return _PRIORITY_MAP[TaskPriority(priority)]


def format_epic_description(task: Task) -> str:
    """Build the markdown body of the epic created for *task*."""
    parts: list[str] = [f"## Description\n\n{task.description}"]

    if task.details:
        parts.append(f"## Implementation Details\n\n{task.details}")

    if task.test_strategy:
        parts.append(f"## Test Strategy\n\n{task.test_strategy}")

    metadata_lines = [f"- **Task-Master ID:** {task.id}"]
    if task.complexity is not None:
        metadata_lines.append(f"- **Complexity:** {task.complexity}/10")
    metadata_lines.append(f"- **Original Status:** {task.status.value}")
    parts.append("## Metadata\n\n" + "\n".join(metadata_lines))

    return "\n\n".join(parts)


def format_child_description(subtask: Subtask) -> str:
    """Build the body of the child issue created for *subtask*."""
    parts = [subtask.description]
    if subtask.details:
        parts.extend(["", "## Implementation Details", subtask.details])
    return "\n".join(parts)


def format_test_description(test_strategy: str) -> str:
    """Build the body of a test issue."""
    return "\n".join(["## Test Strategy", test_strategy])


def _require_epic(task: Task, store: MappingStore) -> str:
    epic_id = store.get_epic_id(task.id)
    if epic_id is None:
        raise MissingMappingError(f"No epic mapping found for task {task.id}", tm_id=task.id)
    return epic_id


# ------------------------------------------------------------------
# Epics
# ------------------------------------------------------------------


def create_epic(task: Task, tracker: IssueTracker, store: MappingStore) -> str:
    """
    Create the epic for one task and register it.

    Returns:
        The beads id of the new epic
    """
    description = format_epic_description(task)
    priority = map_priority(task.priority)

    try:
        result = tracker.create_epic(task.title, description, priority)
    except BeadsCommandError as e:
        raise ExternalCallError("create epic", f"task {task.id} ({task.title!r})", e) from e

    store.add_epic(task.id, result.id)
    logger.debug("Created epic %s for task %d", result.id, task.id)
    return result.id


def create_epics(
    tasks: list[Task],
    tracker: IssueTracker,
    store: MappingStore,
    on_progress: ProgressCallback | None = None,
    checkpoint: Checkpoint | None = None,
) -> int:
    """
    Create an epic for every task that does not have one yet.

    Tasks are processed in the order given, which should be the tiered
    dependency order.

    Returns:
        Number of epics created
    """
    pending = [t for t in tasks if not store.has_epic(t.id)]
    skipped = len(tasks) - len(pending)
    if skipped:
        logger.info("Skipping %d tasks that already have epics", skipped)

    total = len(pending)
    for current, task in enumerate(pending, start=1):
        create_epic(task, tracker, store)
        if checkpoint:
            checkpoint()
        if on_progress:
            on_progress(current, total)

    return total


# ------------------------------------------------------------------
# Children
# ------------------------------------------------------------------


def _pending_subtasks(task: Task, store: MappingStore) -> list[Subtask]:
    return [
        sub for sub in task.sorted_subtasks() if store.get_subtask_id(task.id, sub.id) is None
    ]


def _create_child(
    task: Task, subtask: Subtask, epic_id: str, tracker: IssueTracker, store: MappingStore
) -> str:
    description = format_child_description(subtask)
    try:
        result = tracker.create_child(epic_id, subtask.title, description)
    except BeadsCommandError as e:
        raise ExternalCallError(
            "create child issue", f"subtask {task.id}.{subtask.id} ({subtask.title!r})", e
        ) from e

    store.add_subtask(task.id, subtask.id, result.id)
    logger.debug("Created child %s for subtask %d.%d", result.id, task.id, subtask.id)
    return result.id


def create_children(
    task: Task, epic_id: str, tracker: IssueTracker, store: MappingStore
) -> list[str]:
    """
    Create child issues for all subtasks of one task.

    Children are created in ascending subtask id order regardless of the
    order in the task file.

    Returns:
        Beads ids of the created children
    """
    return [
        _create_child(task, subtask, epic_id, tracker, store)
        for subtask in _pending_subtasks(task, store)
    ]


def create_all_children(
    tasks: list[Task],
    tracker: IssueTracker,
    store: MappingStore,
    on_progress: ProgressCallback | None = None,
    checkpoint: Checkpoint | None = None,
) -> int:
    """
    Create child issues for the subtasks of every task.

    Raises:
        MissingMappingError: If a task with subtasks has no epic mapping

    Returns:
        Number of child issues created
    """
    total = sum(len(_pending_subtasks(t, store)) for t in tasks if t.has_subtasks)
    current = 0

    for task in tasks:
        if not task.has_subtasks:
            continue
        epic_id = _require_epic(task, store)
        for subtask in _pending_subtasks(task, store):
            _create_child(task, subtask, epic_id, tracker, store)
            current += 1
            if checkpoint:
                checkpoint()
            if on_progress:
                on_progress(current, total)

    return current


# ------------------------------------------------------------------
# Test issues
# ------------------------------------------------------------------


def create_test_child(
    task: Task, epic_id: str, tracker: IssueTracker, store: MappingStore
) -> str | None:
    """
    Create the test issue for a task with a test strategy.

    Returns:
        The beads id of the test issue, or None if the task has no test
        strategy
    """
    if not task.has_test_strategy or task.test_strategy is None:
        return None

    title = f"{TEST_TITLE_PREFIX}{task.title}"
    description = format_test_description(task.test_strategy)
    try:
        result = tracker.create_child(epic_id, title, description)
    except BeadsCommandError as e:
        raise ExternalCallError("create test issue", f"task {task.id} ({task.title!r})", e) from e

    store.set_test_issue_id(task.id, result.id)
    logger.debug("Created test issue %s for task %d", result.id, task.id)
    return result.id


def create_all_test_children(
    tasks: list[Task],
    tracker: IssueTracker,
    store: MappingStore,
    on_progress: ProgressCallback | None = None,
    checkpoint: Checkpoint | None = None,
) -> int:
    """
    Create a test issue for every task that has a test strategy.

    Tasks without a test strategy, and tasks whose test issue already
    exists, are skipped.

    Raises:
        MissingMappingError: If a task with a test strategy has no epic

    Returns:
        Number of test issues created
    """
    pending = [
        t for t in tasks if t.has_test_strategy and store.get_test_issue_id(t.id) is None
    ]

    total = len(pending)
    for current, task in enumerate(pending, start=1):
        epic_id = _require_epic(task, store)
        create_test_child(task, epic_id, tracker, store)
        if checkpoint:
            checkpoint()
        if on_progress:
            on_progress(current, total)

    return total
