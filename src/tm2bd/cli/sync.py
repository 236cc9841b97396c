"""
tm2bd CLI - Sync command.

Reads a task-master tasks.json and creates matching beads epics, child
issues and test issues, then wires dependencies and statuses.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from tm2bd.cli.errors import (
    ExitCode,
    print_beads_not_initialized_error,
    print_error,
    print_mapping_exists_error,
    print_sync_failed_error,
)
from tm2bd.core.beads import BeadsClient
from tm2bd.core.config import load_config
from tm2bd.core.mapping import MappingError, MappingLoadError, MappingStore
from tm2bd.core.sync import (
    OperationKind,
    SyncError,
    SyncOrchestrator,
    SyncPlan,
    SyncResult,
    SyncStage,
)
from tm2bd.core.tasks import (
    DependencyGraphError,
    TaskFileError,
    TaskList,
    TaskValidationError,
    load_task_file,
)

console = Console()
app = typer.Typer(
    name="sync",
    help="Sync task-master tasks into beads",
    no_args_is_help=False,
)

_PROGRESS_LABELS = {
    SyncStage.CREATE_EPICS: ("Creating epics...", "Epic"),
    SyncStage.CREATE_CHILDREN: ("Creating child issues...", "Child"),
    SyncStage.CREATE_TEST_ISSUES: ("Creating test issues...", "Test"),
}


def setup_logging(verbose: bool = False) -> None:
    """
    Configure logging for the sync command.

    Args:
        verbose: If True, enable DEBUG level logging (including every bd command)
    """
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def _print_progress(stage: SyncStage, current: int, total: int) -> None:
    header, noun = _PROGRESS_LABELS.get(stage, (stage.label, "Item"))
    if current == 1:
        console.print(f"\n[blue]{header}[/blue]")
    console.print(f"  [green]{noun} {current}/{total} created[/green]")


def _print_tiers(plan: SyncPlan) -> None:
    table = Table(title="Dependency order", show_lines=False)
    table.add_column("Tier", justify="right", style="cyan")
    table.add_column("ID", justify="right")
    table.add_column("Title")
    table.add_column("Depends on", style="dim")
    for entry in plan.ordered:
        task = entry.node
        deps = ", ".join(str(d) for d in task.dependencies)
        table.add_row(str(entry.tier), str(task.id), escape(task.title), deps)
    console.print(table)


def _print_dry_run(plan: SyncPlan, task_list: TaskList) -> None:
    console.print("\n[yellow]--- DRY RUN ---[/yellow]\n")
    console.print("The following operations would be performed:\n")

    for op in plan.operations:
        if op.kind == OperationKind.CREATE_EPIC:
            console.print(f"  [cyan][Tier {op.tier}][/cyan] {escape(op.describe())}")
        else:
            console.print(f"    [dim]{escape(op.describe())}[/dim]")

    console.print("\n[yellow]--- END DRY RUN ---[/yellow]")
    console.print(
        f"\n[green]Would create {len(task_list.tasks)} epics, "
        f"{task_list.subtask_count} children and "
        f"{task_list.test_strategy_count} test issues, and wire dependencies.[/green]"
    )


def _print_summary(result: SyncResult, map_path: Path) -> None:
    console.print(f"\n[green]Mapping saved to {map_path}[/green]")
    if result.stages_skipped:
        skipped = ", ".join(stage.value for stage in result.stages_skipped)
        console.print(f"[dim]Skipped stages: {skipped}[/dim]")
    console.print(f"\n[bold green]Sync complete![/bold green] {result.summary()}.")


@app.callback(invoke_without_command=True)
def sync(
    ctx: typer.Context,
    tasks: Path | None = typer.Option(
        None,
        "--tasks",
        help="Path to tasks.json file [default: .taskmaster/tasks/tasks.json]",
    ),
    project: Path | None = typer.Option(
        None,
        "--project",
        help="Beads project directory [default: .]",
    ),
    map_file: Path | None = typer.Option(
        None,
        "--map-file",
        help="Path for the ID mapping file [default: tm2bd-map.json]",
    ),
    tag: str | None = typer.Option(
        None,
        "--tag",
        help="task-master tag to sync [default: master]",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Show what would be created without making changes",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        help="Overwrite an existing mapping file",
    ),
    resume: bool = typer.Option(
        False,
        "--resume",
        help="Resume a previously interrupted sync using the existing mapping",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output",
    ),
) -> None:
    """
    Sync task-master tasks into beads as epics, children and dependencies.

    Examples:
        tm2bd sync                          # Sync .taskmaster/tasks/tasks.json
        tm2bd sync --dry-run                # Show the plan only
        tm2bd sync --resume                 # Continue an interrupted sync
        tm2bd sync --tasks t.json --force   # Start over with a new mapping
    """
    if ctx.invoked_subcommand is not None:
        return

    setup_logging(verbose)
    config = load_config()

    tasks_path = (tasks or Path(config.tasks_file)).resolve()
    project_path = (project or Path(config.project_dir)).resolve()
    map_path = (map_file or Path(config.map_file)).resolve()
    tag_name = tag or config.tag

    if verbose:
        console.print(f"[dim]Tasks file : {tasks_path}[/dim]")
        console.print(f"[dim]Project dir: {project_path}[/dim]")
        console.print(f"[dim]Map file   : {map_path}[/dim]")

    client = BeadsClient(
        project_dir=project_path,
        bd_command=config.bd_command,
        timeout=config.command_timeout,
    )

    if not dry_run and not client.check_initialized():
        print_beads_not_initialized_error(project_path)
        raise typer.Exit(ExitCode.USER_ERROR)

    # Idempotency guard: a mapping file means issues were already created
    map_exists = MappingStore.exists(map_path)
    if map_exists and not dry_run and not force and not resume:
        print_mapping_exists_error(map_path)
        raise typer.Exit(ExitCode.USER_ERROR)

    if resume and map_exists:
        console.print("[yellow]Resuming from existing mapping file...[/yellow]")
        try:
            store = MappingStore.load(map_path)
        except MappingLoadError as e:
            print_error(str(e), solution="tm2bd sync --force  # to start over")
            raise typer.Exit(ExitCode.USER_ERROR)
    else:
        if resume:
            console.print("[yellow]No mapping file found, starting a fresh sync.[/yellow]")
        store = MappingStore()

    console.print("[blue]Parsing tasks.json...[/blue]")
    try:
        task_list = load_task_file(tasks_path, tag=tag_name)
    except TaskFileError as e:
        print_error(str(e), solution="tm2bd sync --tasks <path-to-tasks.json>")
        raise typer.Exit(ExitCode.USER_ERROR)

    console.print(
        f"[green]Found {len(task_list.tasks)} tasks and "
        f"{task_list.subtask_count} subtasks.[/green]"
    )

    orchestrator = SyncOrchestrator(
        client, store, map_path=None if dry_run else map_path, checkpoint=config.checkpoint
    )

    console.print("[blue]Sorting tasks by dependency order...[/blue]")
    try:
        plan = orchestrator.plan(task_list)
    except (TaskValidationError, DependencyGraphError) as e:
        print_error(str(e), reason="Fix the task dependencies in tasks.json and try again")
        raise typer.Exit(ExitCode.USER_ERROR)

    if verbose:
        _print_tiers(plan)

    if dry_run:
        _print_dry_run(plan, task_list)
        return

    try:
        result = orchestrator.run(task_list, on_progress=_print_progress, precomputed=plan)
    except (SyncError, MappingError) as e:
        print_sync_failed_error(e, map_path, checkpointed=config.checkpoint)
        if verbose:
            console.print_exception()
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    _print_summary(result, map_path)
