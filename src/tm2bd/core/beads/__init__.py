"""
Beads issue tracker integration.

The sync pipeline talks to beads only through BeadsClient, which wraps
the `bd` CLI.
"""

from .client import BeadsClient, BeadsCommandError, IssueTracker
from .models import CreatedIssue, IssueKind

__all__ = [
    "BeadsClient",
    "BeadsCommandError",
    "IssueTracker",
    "CreatedIssue",
    "IssueKind",
]
