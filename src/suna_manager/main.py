# noqa: D401
"""CLI entry point for the Suna service manager."""

from __future__ import annotations

import json
from collections import deque
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from . import __version__
from .config import ManagerSettings
from .lock import LockHeldError
from .logging import configure_logging, get_logger
from .orchestrator import LifecycleReport, Orchestrator
from .registry import build_orchestrator, build_units
from .reporting import StatusReporter

app = typer.Typer(
    name="suna-manager",
    help="Suna Service Manager - start, stop, restart and inspect the local Suna stack",
    add_completion=False,
)

console = Console()
LOGGER = get_logger(__name__)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"Suna Service Manager version {__version__}")
        raise typer.Exit()


def _settings(ctx: typer.Context) -> ManagerSettings:
    return ctx.obj


def _orchestrator(ctx: typer.Context, reporter: StatusReporter) -> Orchestrator:
    orchestrator = build_orchestrator(_settings(ctx))
    orchestrator.set_callbacks(on_begin=reporter.print_begin, on_result=reporter.print_result)
    return orchestrator


def _print_access(settings: ManagerSettings) -> None:
    console.print(f"[blue]ℹ[/blue]  Access Suna at: {settings.frontend_url}")
    console.print(f"[blue]ℹ[/blue]  Backend API at: {settings.backend_url}")
    console.print(f"[blue]ℹ[/blue]  Logs are available in: {settings.resolved_log_dir}")


def _finish_start(settings: ManagerSettings, reporter: StatusReporter, report: LifecycleReport) -> None:
    reporter.print_summary(report)
    if not report.ok:
        raise typer.Exit(1)
    _print_access(settings)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    root: Optional[Path] = typer.Option(
        None,
        "--root",
        "-r",
        help="Suna checkout containing backend/ and frontend/ (defaults to SUNA_ROOT or cwd)",
    ),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-V",
        help="Enable verbose logging",
    ),
) -> None:
    """Suna Service Manager - start, stop, restart and inspect the local Suna stack."""
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_usage(), markup=False)
        console.print("Commands: start | stop | restart | status | logs")
        raise typer.Exit(2)

    try:
        settings = ManagerSettings(root_dir=root) if root else ManagerSettings()
    except ValidationError as e:
        console.print(f"[red]Invalid configuration:[/red]\n{escape(str(e))}")
        raise typer.Exit(1)

    configure_logging("DEBUG" if verbose else settings.log_level, json_output=settings.log_json)
    LOGGER.debug("Loaded settings", root=str(settings.root_dir))
    ctx.obj = settings


@app.command()
def start(ctx: typer.Context) -> None:
    """Start all services in dependency order."""
    settings = _settings(ctx)
    reporter = StatusReporter(console)
    reporter.print_banner("Starting Suna Services")

    try:
        report = _orchestrator(ctx, reporter).start_all()
    except LockHeldError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    _finish_start(settings, reporter, report)


@app.command()
def stop(ctx: typer.Context) -> None:
    """Stop all services in reverse order."""
    reporter = StatusReporter(console)
    reporter.print_banner("Stopping Suna Services")

    try:
        report = _orchestrator(ctx, reporter).stop_all()
    except LockHeldError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    reporter.print_summary(report)


@app.command()
def restart(ctx: typer.Context) -> None:
    """Stop all services, pause, then start them again."""
    settings = _settings(ctx)
    reporter = StatusReporter(console)
    reporter.print_banner("Restarting Suna Services")

    try:
        report = _orchestrator(ctx, reporter).restart_all()
    except LockHeldError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    _finish_start(settings, reporter, report)


@app.command()
def status(
    ctx: typer.Context,
    as_json: bool = typer.Option(
        False,
        "--json",
        help="Print status as JSON",
    ),
) -> None:
    """Show the status of every service."""
    report = build_orchestrator(_settings(ctx), use_lock=False).status_all()

    if as_json:
        console.print_json(json.dumps(report.to_dict()))
        return

    StatusReporter(console).print_status(report)


@app.command()
def logs(
    ctx: typer.Context,
    unit: str = typer.Argument(..., help="Service name (supabase, redis, backend, worker, frontend)"),
    lines: int = typer.Option(
        50,
        "--lines",
        "-n",
        min=1,
        help="Number of lines to show",
    ),
) -> None:
    """Show the tail of a service's log file."""
    units = {u.name: u for u in build_units(_settings(ctx))}
    if unit not in units:
        console.print(f"[red]Unknown service: {escape(unit)}[/red] (choose from {', '.join(units)})")
        raise typer.Exit(1)

    log_file = units[unit].log_sink
    if not log_file.exists():
        console.print(f"[yellow]No log file yet at {escape(str(log_file))}[/yellow]")
        return

    with open(log_file, "r", errors="replace") as f:
        tail = deque(f, maxlen=lines)
    console.print(f"[dim]{escape(str(log_file))}[/dim]")
    for line in tail:
        console.out(line.rstrip("\n"), highlight=False)


if __name__ == "__main__":
    app()
