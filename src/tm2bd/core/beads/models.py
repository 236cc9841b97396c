"""
Data models for results returned by the beads CLI.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class IssueKind(str, Enum):
    """Kind of issue created in beads."""

    EPIC = "epic"
    CHILD = "child"


class CreatedIssue(BaseModel):
    """
    Result of a ``bd create`` call.

    ``kind`` is decided by how the issue was created: an issue created
    under a parent is always a child, anything else is an epic.
    """

    id: str = Field(..., description="Beads issue id")
    title: str = Field(..., description="Issue title as stored by beads")
    kind: IssueKind = Field(..., description="Whether this is an epic or a child issue")

    @property
    def is_child(self) -> bool:
        return self.kind == IssueKind.CHILD
