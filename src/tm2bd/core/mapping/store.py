"""
Id mapping store.

Records which beads issue was created for each task-master task, subtask
and test strategy. The store is the single source of truth for what has
already been created: the sync pipeline consults it before every
creation, and it is saved to a JSON mapping file so an interrupted sync
can be resumed.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from .models import (
    MAPPING_FILE_VERSION,
    MappingFile,
    MappingStats,
    SubtaskMapping,
    TaskMapping,
)

logger = logging.getLogger(__name__)


class MappingError(Exception):
    """Base exception for mapping store errors."""

    pass


class MissingMappingError(MappingError):
    """Raised when a required mapping entry does not exist."""

    def __init__(self, message: str, tm_id: int | None = None):
        super().__init__(message)
        self.tm_id = tm_id


class MappingLoadError(MappingError):
    """Raised when a mapping file is absent, unreadable or malformed."""

    pass


class MappingSaveError(MappingError):
    """Raised when a mapping file cannot be written."""

    pass


class MappingStore:
    """
    In-memory id mapping with JSON persistence.

    Lookups never raise; they return None for unknown ids. Registering a
    child or test issue requires the parent task to be mapped first.

    Example:
        >>> store = MappingStore()
        >>> store.add_epic(5, "bd-x")
        >>> store.add_subtask(5, 50, "bd-y")
        >>> store.get_subtask_id(5, 50)
        'bd-y'
        >>> store.save(Path("tm2bd-map.json"))
    """

    def __init__(self) -> None:
        self._tasks: list[TaskMapping] = []
        self._by_tm_id: dict[int, TaskMapping] = {}
        self._completed_stages: list[str] = []

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def _require_task(self, task_tm_id: int) -> TaskMapping:
        mapping = self._by_tm_id.get(task_tm_id)
        if mapping is None:
            raise MissingMappingError(f"Task {task_tm_id} not found in mapping", tm_id=task_tm_id)
        return mapping

    def add_epic(self, tm_id: int, beads_id: str) -> None:
        """Register the beads epic created for task *tm_id*."""
        existing = self._by_tm_id.get(tm_id)
        if existing is not None:
            raise MappingError(f"Task {tm_id} is already mapped to {existing.beads_id}")

        mapping = TaskMapping(tm_id=tm_id, beads_id=beads_id)
        self._tasks.append(mapping)
        self._by_tm_id[tm_id] = mapping

    def add_subtask(self, task_tm_id: int, subtask_tm_id: int, beads_id: str) -> None:
        """
        Register the beads child created for subtask *subtask_tm_id* of *task_tm_id*.

        Raises:
            MissingMappingError: If the parent task has no epic mapping
            MappingError: If the subtask is already mapped
        """
        task = self._require_task(task_tm_id)
        for sub in task.subtasks:
            if sub.tm_id == subtask_tm_id:
                raise MappingError(
                    f"Subtask {task_tm_id}.{subtask_tm_id} is already mapped to {sub.beads_id}"
                )
        task.subtasks.append(SubtaskMapping(tm_id=subtask_tm_id, beads_id=beads_id))

    def set_test_issue_id(self, task_tm_id: int, beads_id: str) -> None:
        """
        Register the verification issue created for task *task_tm_id*.

        Raises:
            MissingMappingError: If the task has no epic mapping
        """
        task = self._require_task(task_tm_id)
        task.test_issue_id = beads_id

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_epic_id(self, tm_id: int) -> str | None:
        mapping = self._by_tm_id.get(tm_id)
        return mapping.beads_id if mapping else None

    def has_epic(self, tm_id: int) -> bool:
        return tm_id in self._by_tm_id

    def get_subtask_id(self, task_tm_id: int, subtask_tm_id: int) -> str | None:
        mapping = self._by_tm_id.get(task_tm_id)
        if mapping is None:
            return None
        for sub in mapping.subtasks:
            if sub.tm_id == subtask_tm_id:
                return sub.beads_id
        return None

    def get_subtask_ids(self, task_tm_id: int) -> list[str]:
        """All child issue ids registered for a task, in registration order."""
        mapping = self._by_tm_id.get(task_tm_id)
        return [sub.beads_id for sub in mapping.subtasks] if mapping else []

    def get_test_issue_id(self, task_tm_id: int) -> str | None:
        mapping = self._by_tm_id.get(task_tm_id)
        return mapping.test_issue_id if mapping else None

    def get_stats(self) -> MappingStats:
        """Count epics, child issues and test issues in the store."""
        return MappingStats(
            epic_count=len(self._tasks),
            child_count=sum(len(t.subtasks) for t in self._tasks),
            test_issue_count=sum(1 for t in self._tasks if t.test_issue_id is not None),
        )

    # ------------------------------------------------------------------
    # Stage bookkeeping (used when resuming)
    # ------------------------------------------------------------------

    def mark_stage_complete(self, stage: str) -> None:
        if stage not in self._completed_stages:
            self._completed_stages.append(stage)

    def is_stage_complete(self, stage: str) -> bool:
        return stage in self._completed_stages

    @property
    def completed_stages(self) -> list[str]:
        return list(self._completed_stages)

    def clear_completed_stages(self) -> None:
        """Forget stage progress, e.g. when the run that recorded it finished."""
        self._completed_stages.clear()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_document(self) -> MappingFile:
        """Build the versioned, timestamped mapping document."""
        return MappingFile(
            version=MAPPING_FILE_VERSION,
            generated_at=datetime.now(timezone.utc),
            tasks=[t.model_copy(deep=True) for t in self._tasks],
            completed_stages=list(self._completed_stages),
        )

    @classmethod
    def from_document(cls, document: MappingFile) -> MappingStore:
        """Rebuild a store from a mapping document."""
        store = cls()
        for task in document.tasks:
            store.add_epic(task.tm_id, task.beads_id)
            for sub in task.subtasks:
                store.add_subtask(task.tm_id, sub.tm_id, sub.beads_id)
            if task.test_issue_id is not None:
                store.set_test_issue_id(task.tm_id, task.test_issue_id)
        for stage in document.completed_stages:
            store.mark_stage_complete(stage)
        return store

    def save(self, path: Path) -> None:
        """
        Write the mapping file atomically.

        The document is written to a temporary file next to *path* and then
        moved into place, so a crash mid-write never leaves a truncated file.

        Raises:
            MappingSaveError: If the directory or file cannot be written
        """
        content = self.to_document().model_dump_json(by_alias=True, indent=2)

        temp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            temp_path.write_text(content + "\n", encoding="utf-8")
            temp_path.replace(path)
        except OSError as e:
            if temp_path.is_file():
                temp_path.unlink()
            raise MappingSaveError(f"Cannot write mapping file {path}: {e}") from e

        logger.debug("Saved mapping with %d epics to %s", len(self._tasks), path)

    @classmethod
    def load(cls, path: Path) -> MappingStore:
        """
        Load a mapping file.

        Raises:
            MappingLoadError: If the file is missing, is not UTF-8 JSON, or
                does not match the mapping schema
        """
        try:
            content = path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise MappingLoadError(f"Mapping file not found: {path}") from e
        except OSError as e:
            raise MappingLoadError(f"Cannot read mapping file {path}: {e}") from e
        except UnicodeDecodeError as e:
            raise MappingLoadError(f"Mapping file {path} is not valid UTF-8 text: {e}") from e

        try:
            document = MappingFile.model_validate(json.loads(content))
        except json.JSONDecodeError as e:
            raise MappingLoadError(f"Mapping file {path} is not valid JSON: {e}") from e
        except ValidationError as e:
            raise MappingLoadError(f"Mapping file {path} is malformed:\n{e}") from e

        try:
            store = cls.from_document(document)
        except MappingError as e:
            raise MappingLoadError(f"Mapping file {path} is inconsistent: {e}") from e

        logger.debug("Loaded mapping with %d epics from %s", len(store._tasks), path)
        return store

    @staticmethod
    def exists(path: Path) -> bool:
        """Check whether a mapping file exists at *path*."""
        return path.is_file()
