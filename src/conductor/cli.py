"""CLI entry point for the plan conductor."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import TYPE_CHECKING

import click
from rich.console import Console
from rich.table import Table

from conductor import __version__

if TYPE_CHECKING:
    from conductor.delegation.models import MultiActionPlan, WorkResult
    from conductor.engine.lifecycle import Task
    from conductor.service import Conductor

console = Console()

STATUS_COLORS = {"pending": "dim", "running": "yellow", "completed": "green", "failed": "red"}


@click.group()
@click.version_option(version=__version__, prog_name="conductor")
def main() -> None:
    """Plan conductor — dependency-ordered plan execution with capability routing."""


def _get_conductor() -> Conductor:
    from conductor.config import Settings, configure_logging
    from conductor.service import Conductor

    settings = Settings.from_env()
    configure_logging(settings.log_level)
    return Conductor.from_settings(settings)


def _load_plan(plan_file: Path) -> MultiActionPlan:
    from conductor.delegation.models import MultiActionPlan
    from conductor.exceptions import PlanValidationError

    try:
        return MultiActionPlan.from_dict(json.loads(plan_file.read_text()))
    except json.JSONDecodeError as exc:
        raise click.ClickException(f"Plan file is not valid JSON: {exc}") from exc
    except PlanValidationError as exc:
        raise click.ClickException(f"Invalid plan: {exc}") from exc


@main.command()
@click.argument("plan_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def run(ctx: click.Context, plan_file: Path) -> None:
    """Execute a plan bucket by bucket, in order."""
    from conductor.exceptions import ConductorError

    plan = _load_plan(plan_file)
    conductor = _get_conductor()
    console.print(f"[bold cyan]Plan:[/bold cyan] {plan.name} ({len(plan.actions)} actions)")

    failed = False
    try:
        asyncio.run(conductor.run_plan(plan))
    except ConductorError as exc:
        failed = True
        console.print(f"[red]Plan failed:[/red] {exc}")

    _print_tasks(conductor.store.get_all())
    if failed:
        ctx.exit(1)


@main.command()
@click.argument("plan_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--parallel", is_flag=True, help="Delegate all units of work concurrently")
def workflow(plan_file: Path, parallel: bool) -> None:
    """Decompose a plan and delegate its units of work."""
    plan = _load_plan(plan_file)
    conductor = _get_conductor()
    mode = "parallel" if parallel else "sequential"
    console.print(f"[bold cyan]Workflow ({mode}):[/bold cyan] {plan.name}")

    results = asyncio.run(conductor.run_workflow(plan, parallel=parallel))
    _print_results(results)


@main.command()
@click.argument("text")
def infer(text: str) -> None:
    """Show the capabilities inferred from a piece of text."""
    from conductor.delegation.decomposer import infer_from_text

    console.print(", ".join(infer_from_text(text)))


@main.command()
def executors() -> None:
    """List configured executors."""
    conductor = _get_conductor()
    descriptors = conductor.registry.get_all()

    if not descriptors:
        console.print("[dim]No executors configured.[/dim]")
        return

    table = Table(title="Executors")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Capabilities", style="green")
    table.add_column("Availability", style="yellow")

    for descriptor in descriptors:
        table.add_row(
            descriptor.id,
            descriptor.name,
            ", ".join(descriptor.capabilities),
            str(descriptor.availability),
        )

    console.print(table)


def _print_tasks(tasks: list[Task]) -> None:
    """Print a task status table."""
    if not tasks:
        console.print("[dim]No tasks.[/dim]")
        return

    table = Table(title="Tasks")
    table.add_column("Task", style="cyan", max_width=40)
    table.add_column("Kind")
    table.add_column("Status")
    table.add_column("Error", max_width=50)

    for task in tasks:
        color = STATUS_COLORS.get(str(task.status), "dim")
        indent = "  " if task.parent_id else ""
        table.add_row(
            f"{indent}{task.name}",
            str(task.kind),
            f"[{color}]{task.status}[/{color}]",
            task.error or "",
        )

    console.print(table)


def _print_results(results: list[WorkResult]) -> None:
    """Print delegation results."""
    if not results:
        console.print("[dim]No delegated actions in plan.[/dim]")
        return

    table = Table(title="Results")
    table.add_column("#")
    table.add_column("Status")
    table.add_column("Task")
    table.add_column("Output / Error", max_width=60)

    for idx, result in enumerate(results):
        status = "[green]ok[/green]" if result.success else "[red]failed[/red]"
        detail = str(result.output) if result.success else (result.error or "")
        table.add_row(str(idx), status, result.task_id or "-", detail[:200])

    console.print(table)
