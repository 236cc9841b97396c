"""
Standardized error handling and exit codes for the tm2bd CLI.

This module provides consistent error messaging with actionable guidance
and standardized exit codes.
"""

from enum import IntEnum
from pathlib import Path

from rich.console import Console
from rich.markup import escape

console = Console(stderr=True)


class ExitCode(IntEnum):
    """Standard exit codes for tm2bd operations."""

    SUCCESS = 0
    """Operation completed successfully."""

    GENERAL_ERROR = 1
    """Sync failed part-way (beads command or mapping failure)."""

    USER_ERROR = 2
    """User configuration or input error (actionable by user)."""


def print_error(
    problem: str,
    *,
    reason: str | None = None,
    solution: str | None = None,
) -> None:
    """
    Print a standardized error message with actionable guidance.

    Args:
        problem: Brief description of what went wrong
        reason: Optional explanation of why it happened
        solution: Optional command or action to fix it

    Example:
        >>> print_error(
        ...     "Beads is not initialized",
        ...     reason="No .beads/ directory in /work/project",
        ...     solution="bd init",
        ... )
    """
    console.print(f"[red]Error:[/red] {escape(problem)}")

    if reason:
        console.print(f"[dim]{escape(reason)}[/dim]")

    if solution:
        console.print(f"[cyan]→ Try:[/cyan] {escape(solution)}")


def print_beads_not_initialized_error(project_dir: Path) -> None:
    """Print error when beads has not been initialized in the project."""
    print_error(
        "Beads is not initialized in this project",
        reason=f"No .beads/ directory found in {project_dir}",
        solution="bd init  # or pass --project to point at your beads project",
    )


def print_mapping_exists_error(map_path: Path) -> None:
    """Print error when a mapping file from a previous sync already exists."""
    print_error(
        f"Mapping file already exists at {map_path}",
        reason="A previous sync wrote this file; syncing again would create duplicate issues",
        solution="tm2bd sync --resume  # or --force to start over",
    )


def print_sync_failed_error(error: Exception, map_path: Path, checkpointed: bool) -> None:
    """Print error when the sync pipeline aborted part-way."""
    if checkpointed:
        print_error(
            f"Sync failed: {error}",
            reason="Issues created before the failure remain in beads "
            f"and are recorded in {map_path}",
            solution=f"tm2bd sync --resume --map-file {map_path}",
        )
    else:
        print_error(
            f"Sync failed: {error}",
            reason="Issues created before the failure remain in beads but were not "
            "recorded (checkpointing is disabled)",
            solution="Remove the partial issues in beads, then re-run tm2bd sync --force",
        )
