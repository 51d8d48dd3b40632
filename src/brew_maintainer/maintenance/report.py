"""
maintenance/report.py — Terminal summary of a maintenance pass

Rendered with rich after the pass so an interactive run ends with a
readable summary; launchd runs get the same content in the log file.
"""

from __future__ import annotations

from rich import box
from rich.console import Console
from rich.table import Table

from brew_maintainer.maintenance.maintainer import MaintenanceReport

_REASON_LABELS = {
    "execution_failed": "[red]failed[/]",
    "input_requested":  "[yellow]needs input[/]",
    "timeout":          "[yellow]timed out[/]",
}


def render_report(report: MaintenanceReport, console: Console) -> None:
    outdated = len(report.outdated)
    failed = len(report.failed_upgrades)

    if outdated == 0:
        console.print("[green]✓ Everything is up to date.[/]")
    else:
        console.print(
            f"[bold]{outdated}[/] outdated package(s): "
            f"[green]{report.upgraded_count} upgraded[/], "
            f"{'[red]' if failed else '[dim]'}{failed} failed[/]"
        )

    if failed:
        table = Table(
            title="Failed upgrades",
            box=box.ROUNDED,
            border_style="dim",
        )
        table.add_column("Package", style="cyan bold", no_wrap=True)
        table.add_column("Installed", no_wrap=True)
        table.add_column("Available", no_wrap=True)
        table.add_column("Reason", no_wrap=True)

        for failure in report.failed_upgrades:
            pkg = failure.package
            table.add_row(
                pkg.name,
                ", ".join(pkg.installed_versions) or "—",
                pkg.current_version,
                _REASON_LABELS.get(failure.reason, failure.reason),
            )
        console.print(table)

    if report.phase_durations_ms:
        timings = "  ".join(
            f"{phase} {ms / 1000:.1f}s" for phase, ms in report.phase_durations_ms.items()
        )
        console.print(f"[dim]{timings}[/]")
