"""
Sync orchestrator.

Runs the sync pipeline as a strictly sequential series of stages:

    resolve-order → create-epics → create-children → create-test-issues
        → wire-dependencies → sync-statuses → persist-mapping

Each stage completes before the next begins and any failure aborts the
run. Nothing is rolled back in beads; instead the mapping store is
checkpointed to disk after every creation (when a mapping path is given),
so a resumed run picks up where the failed one stopped without creating
duplicates.

Example:
    >>> store = MappingStore()
    >>> orchestrator = SyncOrchestrator(BeadsClient(project_dir), store, map_path)
    >>> result = orchestrator.run(load_task_file(tasks_path))
    >>> print(result.summary())
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from tm2bd.core.beads import IssueTracker
from tm2bd.core.mapping import MappingStore
from tm2bd.core.tasks.graph import resolve_tiers
from tm2bd.core.tasks.models import Task, TaskList
from tm2bd.core.tasks.validation import validate_task_list

from .creators import TEST_TITLE_PREFIX, create_all_children, create_all_test_children, create_epics
from .models import OperationKind, PlannedOperation, SyncPlan, SyncResult, SyncStage
from .statuses import sync_all_statuses
from .wirer import wire_all_dependencies

logger = logging.getLogger(__name__)

StageProgressCallback = Callable[[SyncStage, int, int], None]

# Stages that are not safe to repeat once an interrupted run completed them;
# creation stages are always re-entered and skip what the store already maps.
_RESUMABLE_STAGES = (SyncStage.WIRE_DEPENDENCIES, SyncStage.SYNC_STATUSES)


def build_plan(task_list: TaskList) -> SyncPlan:
    """
    Validate a task list and compute its dependency-ordered plan.

    Makes no external calls.

    Raises:
        TaskValidationError: If the task list is structurally invalid
        DependencyGraphError: If task dependencies are cyclic or dangling
    """
    report = validate_task_list(task_list)
    for warning in report.warnings:
        logger.warning(warning)
    report.raise_for_errors()

    ordered = resolve_tiers(task_list.tasks)
    operations: list[PlannedOperation] = []

    for entry in ordered:
        task = entry.node
        operations.append(
            PlannedOperation(OperationKind.CREATE_EPIC, entry.tier, task.id, task.title)
        )
        for subtask in task.sorted_subtasks():
            operations.append(
                PlannedOperation(
                    OperationKind.CREATE_CHILD,
                    entry.tier,
                    task.id,
                    subtask.title,
                    subtask_id=subtask.id,
                )
            )
        if task.has_test_strategy:
            operations.append(
                PlannedOperation(
                    OperationKind.CREATE_TEST,
                    entry.tier,
                    task.id,
                    f"{TEST_TITLE_PREFIX}{task.title}",
                )
            )
        if task.dependencies:
            operations.append(
                PlannedOperation(
                    OperationKind.WIRE_DEPENDENCY,
                    entry.tier,
                    task.id,
                    task.title,
                    depends_on=tuple(dict.fromkeys(task.dependencies)),
                )
            )

    return SyncPlan(ordered=ordered, operations=operations, warnings=report.warnings)


class SyncOrchestrator:
    """
    Drives a full sync of a task list into beads.

    The orchestrator owns the mapping store for the duration of a run.
    """

    def __init__(
        self,
        tracker: IssueTracker,
        store: MappingStore | None = None,
        map_path: Path | None = None,
        checkpoint: bool = True,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            tracker: Issue tracker client (normally a BeadsClient)
            store: Mapping store to fill; pass a loaded store to resume
            map_path: Where to persist the mapping. When None the store is
                kept in memory only.
            checkpoint: Save the store after every creation and completed
                stage, not only at the end of the run
        """
        self.tracker = tracker
        self.store = store if store is not None else MappingStore()
        self.map_path = map_path
        self.checkpoint = checkpoint

    def plan(self, task_list: TaskList) -> SyncPlan:
        """Compute the plan for *task_list* without touching beads."""
        return build_plan(task_list)

    def _save_checkpoint(self) -> None:
        if self.map_path is not None and self.checkpoint:
            self.store.save(self.map_path)

    def _run_stage(self, stage: SyncStage, action: Callable[[], Any]) -> Any:
        logger.info("Starting stage: %s", stage.value)
        try:
            value = action()
        except Exception:
            logger.error("Sync aborted during stage %s", stage.value)
            raise
        self.store.mark_stage_complete(stage.value)
        logger.info("Finished stage: %s", stage.value)
        return value

    def run(
        self,
        task_list: TaskList,
        on_progress: StageProgressCallback | None = None,
        precomputed: SyncPlan | None = None,
    ) -> SyncResult:
        """
        Run the whole pipeline.

        Args:
            task_list: Parsed task list
            on_progress: Called as (stage, current, total) after each
                creation
            precomputed: Plan already built for *task_list* by plan(),
                reused by the resolve-order stage instead of rebuilding it

        Returns:
            SyncResult describing what was done

        Raises:
            TaskValidationError, DependencyGraphError: Before any beads call
            MissingMappingError: If a stage finds a required mapping missing
            ExternalCallError: If a beads command fails
        """
        result = SyncResult(started_at=datetime.now(timezone.utc))

        # Stage progress only carries over from a run that was interrupted
        if self.store.is_stage_complete(SyncStage.PERSIST_MAPPING.value):
            logger.info("Previous run completed; all stages will run again")
            self.store.clear_completed_stages()

        def progress(stage: SyncStage) -> Callable[[int, int], None] | None:
            if on_progress is None:
                return None
            return lambda current, total: on_progress(stage, current, total)

        checkpoint = self._save_checkpoint if self.map_path is not None else None

        plan: SyncPlan = self._run_stage(
            SyncStage.RESOLVE_ORDER,
            lambda: precomputed if precomputed is not None else self.plan(task_list),
        )
        result.stages_run.append(SyncStage.RESOLVE_ORDER)
        tasks: list[Task] = plan.tasks

        result.epics_created = self._run_stage(
            SyncStage.CREATE_EPICS,
            lambda: create_epics(
                tasks, self.tracker, self.store, progress(SyncStage.CREATE_EPICS), checkpoint
            ),
        )
        result.stages_run.append(SyncStage.CREATE_EPICS)
        self._save_checkpoint()

        if task_list.subtask_count > 0:
            result.children_created = self._run_stage(
                SyncStage.CREATE_CHILDREN,
                lambda: create_all_children(
                    tasks, self.tracker, self.store, progress(SyncStage.CREATE_CHILDREN), checkpoint
                ),
            )
            result.stages_run.append(SyncStage.CREATE_CHILDREN)
            self._save_checkpoint()
        else:
            result.stages_skipped.append(SyncStage.CREATE_CHILDREN)

        if task_list.test_strategy_count > 0:
            result.test_issues_created = self._run_stage(
                SyncStage.CREATE_TEST_ISSUES,
                lambda: create_all_test_children(
                    tasks,
                    self.tracker,
                    self.store,
                    progress(SyncStage.CREATE_TEST_ISSUES),
                    checkpoint,
                ),
            )
            result.stages_run.append(SyncStage.CREATE_TEST_ISSUES)
            self._save_checkpoint()
        else:
            result.stages_skipped.append(SyncStage.CREATE_TEST_ISSUES)

        for stage in _RESUMABLE_STAGES:
            if self.store.is_stage_complete(stage.value):
                logger.info("Skipping stage %s: already completed in a previous run", stage.value)
                result.stages_skipped.append(stage)
                continue

            if stage == SyncStage.WIRE_DEPENDENCIES:
                result.dependencies = self._run_stage(
                    stage, lambda: wire_all_dependencies(tasks, self.tracker, self.store)
                )
            else:
                result.statuses = self._run_stage(
                    stage, lambda: sync_all_statuses(tasks, self.tracker, self.store)
                )
            result.stages_run.append(stage)
            self._save_checkpoint()

        self.store.mark_stage_complete(SyncStage.PERSIST_MAPPING.value)
        if self.map_path is not None:
            self.store.save(self.map_path)
            logger.info("Mapping saved to %s", self.map_path)
        result.stages_run.append(SyncStage.PERSIST_MAPPING)

        result.completed_at = datetime.now(timezone.utc)
        return result
