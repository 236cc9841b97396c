"""
tm2bd - task-master to beads sync

A CLI tool that migrates task-master task lists into the beads issue
tracker, preserving dependency and status relationships.
"""

__version__ = "1.0.0"

# Re-export core models for convenience
from tm2bd.core.config.models import Tm2bdConfig
from tm2bd.core.tasks.models import Task, TaskPriority, TaskStatus

__all__ = ["Tm2bdConfig", "Task", "TaskStatus", "TaskPriority", "__version__"]
