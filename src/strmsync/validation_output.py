from __future__ import annotations

from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .validation import ValidationIssue, ValidationReport


class ValidationFormatter:
    """Formats validation reports as rich panels, one per severity."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    def format_report(self, report: ValidationReport) -> None:
        if report.errors:
            self._format_issues(report.errors, severity="error", header_text="Validation Errors")
        if report.warnings:
            self._format_issues(report.warnings, severity="warning", header_text="Validation Warnings")

        if not report.errors and not report.warnings:
            self.console.print("[bold green]✓ Configuration passed validation.[/bold green]")
        elif not report.errors:
            self.console.print("[bold green]✓ Configuration passed validation (with warnings).[/bold green]")

    def _format_issues(self, issues: List[ValidationIssue], *, severity: str, header_text: str) -> None:
        style = "red" if severity == "error" else "yellow"
        panel = Panel(
            self._create_issues_table(issues),
            title=f"[bold]{header_text}: {len(issues)} {severity}(s) detected[/bold]",
            border_style=style,
            padding=(1, 2),
        )
        self.console.print(panel)

    @staticmethod
    def _create_issues_table(issues: List[ValidationIssue]) -> Table:
        table = Table(show_header=False, show_edge=False, pad_edge=False, box=None, padding=(0, 1))
        table.add_column("Path", style="cyan", overflow="fold")
        table.add_column("Message", overflow="fold")
        for issue in sorted(issues, key=lambda item: (item.path, item.code)):
            table.add_row(issue.path, f"{issue.message} [dim]({issue.code})[/dim]")
        return table
