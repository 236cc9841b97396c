"""
Beads CLI client.

Wraps the beads CLI (`bd`) with the handful of commands the sync
pipeline needs: create an issue, add a blocking dependency, change a
status, and close an issue. Every call runs ``bd`` synchronously in the
project directory; failures are raised as BeadsCommandError and never
retried.
"""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from .models import CreatedIssue, IssueKind

logger = logging.getLogger(__name__)


@runtime_checkable
class IssueTracker(Protocol):
    """
    The operations the sync pipeline performs against the issue tracker.

    BeadsClient is the production implementation; tests substitute an
    in-memory fake.
    """

    def create_epic(self, title: str, description: str, priority: int) -> CreatedIssue:
        """Create a top-level epic and return the created issue."""
        ...

    def create_child(self, parent_id: str, title: str, description: str) -> CreatedIssue:
        """Create a child issue under *parent_id* and return it."""
        ...

    def add_dependency(self, blocked_id: str, blocking_id: str) -> None:
        """Record that *blocked_id* is blocked by *blocking_id*."""
        ...

    def update_status(self, issue_id: str, status: str) -> None:
        """Set a non-closing status."""
        ...

    def close(self, issue_id: str) -> None:
        """Close an issue."""
        ...

    def check_initialized(self) -> bool:
        """Whether the tracker is ready to accept writes."""
        ...


class BeadsCommandError(Exception):
    """Raised when a beads CLI command fails."""

    def __init__(self, message: str, command: list[str] | None = None, stderr: str = ""):
        super().__init__(message)
        self.command = command
        self.stderr = stderr


class BeadsClient:
    """
    Client for the beads CLI (`bd`).

    Example:
        >>> client = BeadsClient(Path("."))
        >>> if client.check_initialized():
        ...     epic = client.create_epic("Setup", "Scaffold the project", priority=0)
        ...     child = client.create_child(epic.id, "Add linting", "")
        ...     client.add_dependency(child.id, epic.id)
    """

    def __init__(
        self,
        project_dir: Path | None = None,
        bd_command: str = "bd",
        timeout: float | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            project_dir: Beads project directory (defaults to current directory)
            bd_command: Name or path of the beads executable
            timeout: Optional per-command timeout in seconds
        """
        self.project_dir = project_dir or Path.cwd()
        self.bd_command = bd_command
        self.timeout = timeout

    def is_available(self) -> bool:
        """Check if the bd CLI is available in PATH."""
        return shutil.which(self.bd_command) is not None

    def check_initialized(self) -> bool:
        """Check whether beads has been initialized in the project directory."""
        return (self.project_dir / ".beads").is_dir()

    def _run_bd(self, args: list[str], expect_json: bool = False) -> Any:
        """
        Run a bd command and optionally parse its JSON output.

        Args:
            args: Command arguments (e.g., ["dep", "add", "bd-2", "bd-1"])
            expect_json: Whether stdout should be parsed as JSON

        Returns:
            Parsed JSON (if expect_json) or the raw stdout

        Raises:
            BeadsCommandError: If the command fails, times out, cannot be
                found, or prints invalid JSON
        """
        cmd = [self.bd_command] + args
        logger.debug("Running bd command: %s", " ".join(cmd))

        try:
            result = subprocess.run(
                cmd,
                cwd=self.project_dir,
                capture_output=True,
                text=True,
                check=True,
                timeout=self.timeout,
            )
        except subprocess.CalledProcessError as e:
            stderr = e.stderr.strip() if e.stderr else ""
            raise BeadsCommandError(
                f"bd command failed: {' '.join(cmd)}\nError: {stderr or e}",
                command=cmd,
                stderr=stderr,
            ) from e
        except subprocess.TimeoutExpired as e:
            raise BeadsCommandError(f"bd command timed out: {' '.join(cmd)}", command=cmd) from e
        except FileNotFoundError as e:
            raise BeadsCommandError(
                f"{self.bd_command} not found in PATH. "
                "Install with: npm install -g @beads/bd OR brew install steveyegge/beads/bd",
                command=cmd,
            ) from e

        stdout = result.stdout or ""
        if stdout:
            logger.debug("bd output: %s", stdout.strip())

        if not expect_json:
            return stdout

        try:
            return json.loads(stdout)
        except json.JSONDecodeError as e:
            raise BeadsCommandError(
                f"Failed to parse bd output as JSON: {e}\n"
                f"Command: {' '.join(cmd)}\n"
                f"Output: {stdout[:200]}",
                command=cmd,
            ) from e

    def create(
        self,
        title: str,
        description: str | None = None,
        kind: str | None = None,
        parent_id: str | None = None,
        priority: int | None = None,
    ) -> CreatedIssue:
        """
        Create an issue.

        Args:
            title: Issue title
            description: Issue body (omitted when empty)
            kind: Beads issue type passed as ``-t`` (e.g., "epic")
            parent_id: Parent issue id; when set the issue is a child
            priority: Priority ordinal (0 is highest)

        Returns:
            CreatedIssue with the id assigned by beads

        Raises:
            BeadsCommandError: If bd fails or returns no id
        """
        args = ["create", title]
        if kind:
            args.extend(["-t", kind])
        if priority is not None:
            args.extend(["-p", str(priority)])
        if parent_id:
            args.extend(["--parent", parent_id])
        args.append("--json")
        if description:
            args.extend(["-d", description])

        result = self._run_bd(args, expect_json=True)

        # Some bd versions wrap the created issue in a one-element list
        if isinstance(result, list) and len(result) == 1:
            result = result[0]
        if not isinstance(result, dict) or result.get("id") is None:
            raise BeadsCommandError(
                f"bd create did not return an issue id: {str(result)[:200]}",
                command=[self.bd_command] + args,
            )

        return CreatedIssue(
            id=str(result["id"]),
            title=str(result.get("title", title)),
            kind=IssueKind.CHILD if parent_id else IssueKind.EPIC,
        )

    def create_epic(self, title: str, description: str, priority: int) -> CreatedIssue:
        """Create a top-level epic."""
        return self.create(title, description=description, kind="epic", priority=priority)

    def create_child(self, parent_id: str, title: str, description: str) -> CreatedIssue:
        """Create a child issue under *parent_id*."""
        return self.create(title, description=description, parent_id=parent_id)

    def add_dependency(self, blocked_id: str, blocking_id: str) -> None:
        """Record that *blocked_id* cannot proceed until *blocking_id* is resolved."""
        self._run_bd(["dep", "add", blocked_id, blocking_id])

    def update_status(self, issue_id: str, status: str) -> None:
        """Set a non-closing status on an issue."""
        self._run_bd(["update", issue_id, "-s", status])

    def close(self, issue_id: str) -> None:
        """Close an issue."""
        self._run_bd(["close", issue_id])
