"""Rich terminal output for telemetry summaries."""
from __future__ import annotations

from rich.console import Console
from rich.table import Table

from cmdproxy.telemetry.analysis import TelemetryAnalysis

TOP_ERRORS = 10


def render_analysis(analysis: TelemetryAnalysis, file=None) -> None:
    """Print a telemetry summary.

    Args:
        analysis: Result of telemetry.analysis.analyze().
        file: Output stream. Default stdout.
    """
    c = Console(file=file, highlight=False)

    if analysis.runs == 0 and not analysis.versions:
        c.print("  No telemetry recorded yet.", style="dim")
        c.print("  Enable it with: cmdproxy config set telemetry on", style="dim")
        return

    c.print()
    c.print("  [bold]rustc stats[/bold]")
    c.print(f"  Runs:        {analysis.runs}")
    c.print(f"  Successful:  [green]{analysis.successful_runs}[/green]")
    c.print(f"  Failed:      [red]{analysis.failed_runs}[/red]")
    c.print(f"  Mean time:   {analysis.mean_duration_ms} ms")

    if analysis.error_counts:
        table = Table(title="Most frequent errors", title_justify="left")
        table.add_column("Code", style="bold")
        table.add_column("Count", justify="right")
        for code, count in analysis.error_counts[:TOP_ERRORS]:
            table.add_row(code, str(count))
        c.print()
        c.print(table)

    if analysis.versions:
        c.print()
        c.print("  [bold]Versions seen[/bold]")
        for version in analysis.versions:
            c.print(f"  {version}")
    c.print()
