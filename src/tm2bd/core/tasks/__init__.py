"""
Task-master task models, loading, validation and dependency ordering.
"""

from .graph import (
    CircularDependencyError,
    DependencyGraphError,
    MissingDependencyError,
    TieredNode,
    find_dependency_cycles,
    find_missing_dependencies,
    resolve_tiers,
)
from .loader import TaskFileError, load_task_file, parse_task_data
from .models import Subtask, Task, TaskList, TaskPriority, TaskStatus
from .validation import TaskValidationError, ValidationReport, validate_task_list

__all__ = [
    # Models
    "Task",
    "Subtask",
    "TaskList",
    "TaskStatus",
    "TaskPriority",
    # Loading
    "TaskFileError",
    "load_task_file",
    "parse_task_data",
    # Validation
    "TaskValidationError",
    "ValidationReport",
    "validate_task_list",
    # Dependency ordering
    "DependencyGraphError",
    "CircularDependencyError",
    "MissingDependencyError",
    "TieredNode",
    "resolve_tiers",
    "find_dependency_cycles",
    "find_missing_dependencies",
]
