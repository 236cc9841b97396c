"""
tm2bd CLI - Main application entry point.

This module sets up the Typer CLI application with its subcommands.
"""

import typer
from rich.console import Console

from tm2bd import __version__
from tm2bd.cli import sync

# Create the main Typer app
app = typer.Typer(
    name="tm2bd",
    help="Sync task-master tasks into the beads issue tracker",
    no_args_is_help=True,
    add_completion=False,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"tm2bd version {__version__}")
        raise typer.Exit(0)


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show tm2bd version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """
    tm2bd - task-master to beads sync.

    Creates one beads epic per task-master task, one child issue per
    subtask and one test issue per test strategy, then wires dependencies
    and carries statuses across.

    Quick Start:
        1. bd init                   # Initialize beads in your project
        2. tm2bd sync --dry-run      # Preview what will be created
        3. tm2bd sync                # Run the sync
    """


@app.command()
def version() -> None:
    """Show tm2bd version and exit."""
    console.print(f"tm2bd version {__version__}")
    raise typer.Exit(0)


app.add_typer(sync.app, name="sync")


def cli_main() -> None:
    """Main CLI entry point."""
    app()


__all__ = ["app", "cli_main"]
