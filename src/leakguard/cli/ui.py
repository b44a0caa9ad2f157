"""
UI components module for the LeakGuard CLI.

Renders scan results, rule validation reports and cache statistics with Rich.
"""

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from leakguard.core.patterns import BatchValidationResult
from leakguard.infrastructure.result_cache import CacheStats
from leakguard.services.scan_models import ScanResult

SEVERITY_STYLES = {
    "critical": "bold red",
    "high": "red",
    "medium": "yellow",
    "low": "cyan",
    "info": "dim",
}


def render_findings(result: ScanResult, console: Console) -> None:
    """
    Render findings as a table, most severe first.

    Args:
        result: Completed scan result.
        console: Rich Console instance for output.
    """
    if not result.findings:
        console.print("[green]No secrets found.[/green]")
        return

    table = Table(
        title="Findings",
        title_style="bold cyan",
        border_style="blue",
        show_header=True,
        header_style="bold white",
    )
    table.add_column("Severity", no_wrap=True)
    table.add_column("Rule", style="green")
    table.add_column("Location", style="cyan")
    table.add_column("Confidence", justify="right")
    table.add_column("Context", style="dim")

    ordered = sorted(
        result.findings,
        key=lambda f: (f.severity.rank, f.file_path, f.line, f.column),
    )
    for finding in ordered:
        severity = finding.severity.value
        table.add_row(
            Text(severity.upper(), style=SEVERITY_STYLES.get(severity, "")),
            Text(finding.rule_name),
            Text(f"{finding.file_path}:{finding.line}:{finding.column}"),
            f"{finding.confidence:.2f}",
            Text(finding.context),
        )

    console.print(table)


def render_scan_errors(result: ScanResult, console: Console) -> None:
    """Render per-file errors, if any."""
    if not result.errors:
        return

    table = Table(title="Errors", title_style="bold yellow", border_style="yellow")
    table.add_column("Path", style="white")
    table.add_column("Kind", style="yellow", no_wrap=True)
    table.add_column("Message", style="dim")
    for error in result.errors:
        table.add_row(Text(error.path), error.kind.value, Text(error.message))
    console.print(table)


def render_scan_summary(result: ScanResult, console: Console) -> None:
    """Render the scan counters and per-severity totals in a panel."""
    summary = Table.grid(padding=1)
    summary.add_column(style="bold")
    summary.add_column()
    summary.add_row("Files Scanned:", str(result.files_scanned))
    summary.add_row("From Cache:", str(result.files_cached))
    summary.add_row("Files Skipped:", str(result.files_skipped))
    summary.add_row("Files Ignored:", str(result.files_ignored))
    summary.add_row("Errors:", str(len(result.errors)))
    for severity, count in result.summary().items():
        if count:
            summary.add_row(f"{severity.capitalize()}:", Text(str(count), style=SEVERITY_STYLES[severity]))
    summary.add_row("Duration:", f"{result.duration_seconds:.2f}s")
    if result.cancelled:
        summary.add_row("Status:", Text("cancelled", style="yellow"))

    border = "red" if result.findings else "green"
    console.print(Panel(summary, title="Scan Summary", border_style=border, expand=False))


def render_validation(batch: BatchValidationResult, console: Console, show_warnings: bool = True) -> None:
    """
    Render a rule validation report.

    Args:
        batch: Validation outcome of the loaded rules.
        console: Rich Console instance for output.
        show_warnings: Whether to list heuristic warnings.
    """
    grid = Table.grid(padding=1)
    grid.add_column(style="bold")
    grid.add_column()
    grid.add_row("Rules:", str(len(batch.entries)))
    grid.add_row("Valid:", Text(str(batch.valid_count), style="green"))
    grid.add_row("Invalid:", Text(str(batch.invalid_count), style="red" if batch.invalid_count else ""))
    grid.add_row("With Warnings:", str(batch.warning_count))
    console.print(Panel(grid, title="Rule Validation", border_style="blue", expand=False))

    if batch.invalid_count:
        table = Table(title="Invalid Rules", title_style="bold red", border_style="red")
        table.add_column("Rule", style="white", no_wrap=True)
        table.add_column("Errors", style="red")
        for result in batch.invalid_results:
            table.add_row(Text(result.pattern_id), Text("\n".join(result.errors)))
        console.print(table)

    if show_warnings and batch.warning_count:
        table = Table(title="Warnings", title_style="bold yellow", border_style="yellow")
        table.add_column("Rule", style="white", no_wrap=True)
        table.add_column("Warnings", style="yellow")
        for pattern, result in batch.entries:
            if result.warnings:
                table.add_row(Text(pattern.id), Text("\n".join(result.warnings)))
        console.print(table)


def render_cache_stats(stats: CacheStats, file_size: int, console: Console) -> None:
    """Render cache statistics in a panel."""
    grid = Table.grid(padding=1)
    grid.add_column(style="bold")
    grid.add_column()
    grid.add_row("Entries:", str(stats.total_entries))
    grid.add_row("Expired Entries:", str(stats.expired_entries))
    grid.add_row("Estimated Size:", f"{stats.cache_size} bytes")
    grid.add_row("File Size:", f"{file_size} bytes")
    console.print(Panel(grid, title="Cache Statistics", border_style="blue", expand=False))


def render_error(message: str, console: Console) -> None:
    """
    Render an error message in a visually distinct red panel.

    Args:
        message: Error message to display.
        console: Rich Console instance for output.
    """
    error_text = Text()
    error_text.append("Error: ", style="bold red")
    error_text.append(message, style="red")

    console.print(
        Panel(
            error_text,
            border_style="red",
            title="[bold red]Error[/bold red]",
            expand=False,
        )
    )


def render_warning(message: str, console: Console) -> None:
    """Render a warning message in yellow."""
    warning_text = Text()
    warning_text.append("Warning: ", style="yellow")
    warning_text.append(message)
    console.print(warning_text)
