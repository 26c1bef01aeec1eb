"""Cleanup report formatting and display."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from src.models.cleanup_report import CleanupReport, RunMode, RunStatus
from src.models.decision import DecisionAction

if TYPE_CHECKING:
    from src.cleanup.engine import PairEvaluation

STATUS_STYLES = {
    RunStatus.COMPLETED: "green",
    RunStatus.PARTIAL: "yellow",
    RunStatus.FAILED: "red",
    RunStatus.CANCELLED: "magenta",
}


def format_bytes(size: Optional[int]) -> str:
    """Human-readable size, or "n/a" when unknown."""
    if size is None:
        return "n/a"
    value = float(size)
    for unit in ("B", "KiB", "MiB", "GiB", "TiB"):
        if value < 1024 or unit == "TiB":
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} TiB"


class CleanupReporter:
    """Format and display cleanup reports and previews."""

    def __init__(self, console: Optional[Console] = None):
        """Initialize cleanup reporter.

        Args:
            console: Rich console instance (creates new one if not provided)
        """
        self.console = console or Console()

    def display(self, report: CleanupReport) -> None:
        """Display a cleanup report."""
        style = STATUS_STYLES[report.status]
        mode_note = " (dry run, nothing deleted)" if report.mode == RunMode.DRY_RUN else ""

        self.console.print()
        self.console.print(
            Panel(
                f"[bold]Cleanup Report[/bold]{mode_note}\n"
                f"Run: {report.run_id}\n"
                f"Status: [{style}]{report.status.value.upper()}[/{style}]\n"
                f"Started: {report.started_at.strftime('%Y-%m-%d %H:%M:%S UTC')}  "
                f"Duration: {report.duration_seconds:.1f}s",
                style="cyan",
            )
        )

        table = Table(title="Summary by Kind", show_header=True, header_style="bold magenta")
        table.add_column("Kind", style="cyan")
        table.add_column("Deleted", justify="right", style="green")
        table.add_column("Planned", justify="right", style="yellow")
        table.add_column("Failed", justify="right", style="red")
        table.add_column("Skipped", justify="right")
        table.add_column("Protected", justify="right", style="blue")

        for kind in sorted(report.per_kind_summary):
            counts = report.per_kind_summary[kind]
            table.add_row(
                kind,
                str(counts.deleted),
                str(counts.planned),
                str(counts.failed),
                str(counts.skipped),
                str(counts.protected),
            )

        self.console.print(table)

        label = "Estimated storage to free" if report.mode == RunMode.DRY_RUN else "Estimated storage freed"
        self.console.print(f"{label}: {format_bytes(report.total_storage_freed_estimate)}")

        if report.errors:
            self.console.print()
            self.console.print(f"[bold red]Errors ({len(report.errors)}):[/bold red]")
            for error in report.errors:
                where = "/".join(part for part in (error.kind, error.environment, error.identifier) if part)
                self.console.print(f"  • [red]{where}[/red]: {error.message}" if where else f"  • {error.message}")

    def display_preview(self, evaluations: Sequence[PairEvaluation], show_retained: bool = False) -> None:
        """Display evaluation decisions without any cleanup outcome.

        Args:
            evaluations: Per-pair evaluations from CleanupEngine.preview
            show_retained: Also list retained resources
        """
        table = Table(title="Retention Preview", show_header=True, header_style="bold magenta")
        table.add_column("Kind", style="cyan")
        table.add_column("Env")
        table.add_column("Identifier")
        table.add_column("Action")
        table.add_column("Reason")

        delete_count = 0
        for evaluation in evaluations:
            if evaluation.unavailable:
                table.add_row(
                    evaluation.kind.value,
                    evaluation.environment.value,
                    "-",
                    "[red]ERROR[/red]",
                    evaluation.error or "",
                )
                continue

            for decision in evaluation.decisions:
                if decision.action == DecisionAction.DELETE:
                    delete_count += 1
                    action = "[red]DELETE[/red]"
                elif show_retained:
                    action = "[green]RETAIN[/green]"
                else:
                    continue

                table.add_row(
                    evaluation.kind.value,
                    evaluation.environment.value,
                    decision.resource.identifier,
                    action,
                    decision.reason.value,
                )

        self.console.print(table)
        self.console.print(f"\n{delete_count} resource(s) would be deleted")
