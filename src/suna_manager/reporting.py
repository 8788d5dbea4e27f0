# noqa: D401
"""Rich rendering of status and lifecycle reports."""

from __future__ import annotations

from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .orchestrator import Action, LifecycleReport, UnitResult
from .types import OperatingMode, StartOutcome, StatusReport, StopOutcome, UnitDefinition, UnitStatus

STATUS_STYLES = {
    UnitStatus.RUNNING: "green",
    UnitStatus.STOPPED: "red",
    UnitStatus.UNKNOWN: "yellow",
}

RESULT_MESSAGES = {
    StartOutcome.STARTED: "{name} started",
    StartOutcome.ALREADY_RUNNING: "{name} is already running",
    StopOutcome.STOPPED: "{name} stopped",
    StopOutcome.NOT_RUNNING: "{name} is not running",
}


class StatusReporter:
    """Renders reports to a rich console."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    def build_status_table(self, report: StatusReport) -> Table:
        """Build the status table for a status pass."""
        table = Table(title="Suna Services Status")
        table.add_column("Service", style="cyan")
        table.add_column("Status")
        table.add_column("PID", justify="right")

        if report.mode == OperatingMode.REMOTE:
            table.add_row("Supabase", "[blue]Cloud (managed externally)[/blue]", "-")

        for unit in report.units:
            style = STATUS_STYLES[unit.status]
            status = f"[{style}]{unit.status.value.capitalize()}[/{style}]"
            if unit.detail:
                status += f" [dim]({unit.detail})[/dim]"
            table.add_row(unit.display_name, status, str(unit.pid) if unit.pid else "-")

        return table

    def print_status(self, report: StatusReport) -> None:
        self.console.print(self.build_status_table(report))
        self.console.print(f"[dim]{report.running_count}/{len(report.units)} services running[/dim]")

    def print_banner(self, title: str) -> None:
        self.console.rule(f"[bold blue]{title}")

    def print_begin(self, unit: UnitDefinition, action: Action) -> None:
        verb = "Starting" if action == Action.START else "Stopping"
        self.console.print(f"[blue]ℹ[/blue]  {verb} {unit.display_name}...")

    def print_result(self, result: UnitResult) -> None:
        name = result.unit.display_name
        if result.error is not None:
            if result.action == Action.START:
                self.console.print(f"[red]✗[/red]  Failed to start {name}: {escape(result.error)}")
            else:
                self.console.print(f"[yellow]![/yellow]  Error stopping {name}: {escape(result.error)}")
            return
        if result.outcome is None:
            return
        self.console.print(f"[green]✓[/green]  {RESULT_MESSAGES[result.outcome].format(name=name)}")

    def print_summary(self, report: LifecycleReport) -> None:
        """Print the closing line of a start or stop pass."""
        if report.action == Action.STOP:
            if report.errors:
                self.console.print(
                    f"[yellow]All Suna services stopped with {len(report.errors)} error(s)[/yellow]"
                )
            else:
                self.console.print("[bold green]All Suna services stopped[/bold green]")
            return

        if report.ok:
            self.console.print("[bold green]All Suna services started successfully![/bold green]")
        else:
            self.console.print(f"[bold red]Startup aborted: {report.failed_unit} failed[/bold red]")
            if report.failure is not None and not report.failure.retryable:
                self.console.print("[dim]Fix the configuration above before retrying.[/dim]")


__all__ = ["StatusReporter", "STATUS_STYLES"]
