"""
Report generation

Pure aggregation of check results into a Report, plus the JSON summary and
the console tally.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from rich.console import Console
from rich.table import Table

from hostdeploy.models.results import CheckResult, CheckStatus, Report


def build_report(results: Iterable[CheckResult], escalated: bool = False) -> Report:
    """
    Count results by status.

    success_rate is a percentage of passed checks, 0.0 when nothing ran.
    """
    passed = failed = warnings = 0
    for result in results:
        if result.status is CheckStatus.PASS:
            passed += 1
        elif result.status is CheckStatus.FAIL:
            failed += 1
        else:
            warnings += 1

    total = passed + failed + warnings
    success_rate = round(passed / total * 100, 2) if total else 0.0

    return Report(
        total=total,
        passed=passed,
        failed=failed,
        warnings=warnings,
        success_rate=success_rate,
        escalated=escalated,
    )


def summary_dict(
    report: Report,
    host: str,
    container: str,
    validation_log: Optional[str] = None,
    timestamp: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Machine-readable summary of one validation run."""
    timestamp = timestamp or datetime.now(timezone.utc)
    return {
        "timestamp": timestamp.strftime("%Y-%m-%dT%H:%M:%SZ"),
        "server": host,
        "container": container,
        "results": report.to_dict(),
        "validation_log": validation_log,
    }


def write_summary(
    report: Report,
    path: Path,
    host: str,
    container: str,
    validation_log: Optional[str] = None,
) -> Path:
    """Write the JSON summary and return its path."""
    path = Path(path)
    data = summary_dict(report, host, container, validation_log)
    path.write_text(json.dumps(data, indent=2) + "\n")
    return path


def render_report(report: Report, console: Console) -> None:
    """Print the human-readable tally and verdict."""
    table = Table(title="Validation Summary", title_justify="left", padding=(0, 1))
    table.add_column("Metric", style="cyan", no_wrap=True)
    table.add_column("Value")

    table.add_row("Total Tests", str(report.total))
    table.add_row("Passed", f"[green]{report.passed}[/green]")
    table.add_row("Failed", f"[red]{report.failed}[/red]")
    table.add_row("Warnings", f"[yellow]{report.warnings}[/yellow]")
    table.add_row("Success Rate", f"{report.success_rate:.1f}%")

    console.print()
    console.print(table)
    console.print()

    if report.escalated:
        console.print("[yellow]⚠ Validation stopped early: container not running[/yellow]")

    if report.is_healthy:
        console.print("[bold green]✓ ALL VALIDATIONS PASSED![/bold green]")
        console.print("[dim]Deployment is healthy and ready for production[/dim]")
    else:
        console.print("[bold red]✗ VALIDATION FAILED[/bold red]")
        console.print(f"[dim]{report.failed} test(s) failed. Please review the logs.[/dim]")
