"""
Exceptions raised by the sync pipeline.
"""

from __future__ import annotations


class SyncError(Exception):
    """Base exception for sync pipeline errors."""

    pass


class ExternalCallError(SyncError):
    """
    Raised when a beads command fails during a sync stage.

    Carries the operation that was attempted and the task-master entity it
    was attempted for, so a failure deep in a run can be traced back to
    its source.
    """

    def __init__(self, operation: str, entity: str, cause: Exception):
        self.operation = operation
        self.entity = entity
        self.cause = cause
        super().__init__(f"Failed to {operation} for {entity}: {cause}")
