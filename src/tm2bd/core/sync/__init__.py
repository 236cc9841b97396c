"""
Task-master → beads sync pipeline.

Example:
    >>> from tm2bd.core.sync import SyncOrchestrator
    >>> orchestrator = SyncOrchestrator(client, store, map_path=Path("tm2bd-map.json"))
    >>> result = orchestrator.run(task_list)
"""

from tm2bd.core.sync.errors import ExternalCallError, SyncError
from tm2bd.core.sync.models import (
    OperationKind,
    PlannedOperation,
    StatusCounts,
    SyncPlan,
    SyncResult,
    SyncStage,
    WiringCounts,
)
from tm2bd.core.sync.orchestrator import SyncOrchestrator, build_plan

__all__ = [
    "SyncOrchestrator",
    "build_plan",
    "SyncError",
    "ExternalCallError",
    "SyncStage",
    "SyncPlan",
    "SyncResult",
    "PlannedOperation",
    "OperationKind",
    "WiringCounts",
    "StatusCounts",
]
