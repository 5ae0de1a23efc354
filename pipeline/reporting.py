"""Console rendering for gap reports and run summaries."""

from __future__ import annotations

from typing import Optional

from rich.console import Console
from rich.table import Table

from core import GapReport, RunSummary
from utils.logger import console as default_console


def print_gap_report(report: GapReport, *, top: int = 20, console: Optional[Console] = None) -> None:
    console = console or default_console
    coverage = report.covered_buckets / report.total_buckets if report.total_buckets else 0.0

    console.print("\n[bold blue]📊 Coverage gap analysis[/bold blue]")
    console.print(
        f"  Buckets: {report.covered_buckets}/{report.total_buckets} covered ({coverage:.0%}), "
        f"target {report.target_per_bucket} per bucket"
    )
    console.print(f"  Questions needed: [bold]{report.questions_needed}[/bold]\n")

    for title, totals in (
        ("By unit", report.by_unit),
        ("By difficulty", {f"D{k}": v for k, v in report.by_difficulty.items()}),
        ("By question type", report.by_question_type),
    ):
        table = Table(title=title, show_header=True)
        table.add_column("Group")
        table.add_column("Needed", justify="right")
        for name, needed in sorted(totals.items(), key=lambda kv: -kv[1]):
            table.add_row(str(name), str(needed))
        console.print(table)

    if top > 0 and report.entries:
        table = Table(title=f"Top {min(top, len(report.entries))} gaps", show_header=True)
        table.add_column("Priority")
        table.add_column("Skill node")
        table.add_column("D", justify="right")
        table.add_column("Type")
        table.add_column("Lang")
        table.add_column("Have", justify="right")
        table.add_column("Need", justify="right")
        for entry in report.entries[:top]:
            table.add_row(
                entry.priority.value,
                entry.key.skill_node,
                str(entry.key.difficulty),
                entry.key.question_type.value,
                entry.key.language.value,
                str(entry.current_count),
                str(entry.deficit),
            )
        console.print(table)


def print_run_summary(summary: RunSummary, *, console: Optional[Console] = None) -> None:
    console = console or default_console
    table = Table(title="Run summary", show_header=False)
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Stop reason", summary.stop_reason or "-")
    table.add_row("Rounds", str(summary.rounds))
    table.add_row("Succeeded", str(summary.succeeded))
    table.add_row("Failed", str(summary.failed))
    table.add_row("Success rate", f"{summary.success_rate:.1%}")
    for name, count in sorted(summary.outcomes.items()):
        table.add_row(f"  {name}", str(count))
    if summary.orphaned_job_ids:
        table.add_row("Orphaned jobs", ", ".join(summary.orphaned_job_ids))
    console.print(table)
