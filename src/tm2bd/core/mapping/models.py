"""
Data models for the task-master → beads id mapping file.

The on-disk document uses camelCase keys (``tmId``, ``beadsId``,
``generatedAt``...). Unknown keys are ignored when loading so a newer file
can still be read by an older tm2bd.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

MAPPING_FILE_VERSION = "1.0"


class SubtaskMapping(BaseModel):
    """Mapping of one subtask to its beads child issue."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    tm_id: int = Field(..., alias="tmId", description="Subtask id within its parent")
    beads_id: str = Field(..., alias="beadsId", description="Beads child issue id")
    type: Literal["child"] = "child"


class TaskMapping(BaseModel):
    """Mapping of one task to its beads epic, children and test issue."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    tm_id: int = Field(..., alias="tmId", description="Task-master task id")
    beads_id: str = Field(..., alias="beadsId", description="Beads epic id")
    type: Literal["epic"] = "epic"
    subtasks: list[SubtaskMapping] = Field(default_factory=list)
    test_issue_id: str | None = Field(
        default=None,
        alias="testIssueId",
        description="Beads id of the verification issue, if one was created",
    )


class MappingFile(BaseModel):
    """
    The persisted mapping document.

    Example:
        >>> doc = MappingFile(tasks=[TaskMapping(tm_id=1, beads_id="bd-a1")])
        >>> doc.model_dump_json(by_alias=True, indent=2)
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    version: str = Field(default=MAPPING_FILE_VERSION)
    generated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        alias="generatedAt",
    )
    tasks: list[TaskMapping] = Field(default_factory=list)
    completed_stages: list[str] = Field(
        default_factory=list,
        alias="completedStages",
        description="Sync stages that finished in the run that wrote this file",
    )


class MappingStats(BaseModel):
    """Summary counts for a mapping store."""

    epic_count: int = 0
    child_count: int = 0
    test_issue_count: int = 0
