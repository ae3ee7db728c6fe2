"""Markdown and terminal rendering for recaps."""

from datetime import UTC

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from devrecap.services.git.stats import most_active_day
from devrecap.services.orchestrator import BatchReport, RepoOutcome, RepoStatus
from devrecap.services.summarizer.types import SummaryPayload

_STATUS_STYLES = {
    RepoStatus.SUCCEEDED: "green",
    RepoStatus.SKIPPED: "yellow",
    RepoStatus.FAILED: "red",
}


def format_size(num_bytes: int) -> str:
    if num_bytes < 1024:
        return f"{num_bytes} B"
    if num_bytes < 1024 * 1024:
        return f"{num_bytes / 1024:.2f} KB"
    return f"{num_bytes / (1024 * 1024):.2f} MB"


def _format_number(n: int) -> str:
    return f"{n:,}"


def summary_to_markdown(payload: SummaryPayload) -> str:
    lines = [f"# {payload.repository}", "", "## Summary", "", payload.narrative, ""]

    if payload.achievements:
        lines += ["## Key Achievements", ""]
        lines += [f"- {a}" for a in payload.achievements]
        lines.append("")

    if payload.presentation_tips:
        lines += ["## Presentation Tips", ""]
        lines += [f"{i}. {tip}" for i, tip in enumerate(payload.presentation_tips, start=1)]
        lines.append("")

    generated = payload.generated_at.astimezone(UTC)
    lines.append(f"*Generated at: {generated:%Y-%m-%d %H:%M:%S} UTC*")
    return "\n".join(lines) + "\n"


def _outcome_detail(outcome: RepoOutcome) -> str:
    if outcome.reason:
        return outcome.reason
    if outcome.from_cache:
        return "cached"
    return ""


def report_to_markdown(report: BatchReport) -> str:
    """Whole-run report: header, per-repository summaries, then problems."""
    authors = ", ".join(report.authors) if report.authors else "any"
    parts = [
        "# Dev Recap",
        "",
        f"- Period: {report.since:%Y-%m-%d} to {report.until:%Y-%m-%d}",
        f"- Authors: {authors}",
        f"- Repositories: {report.succeeded} summarized, "
        f"{report.skipped} skipped, {report.failed} failed",
        "",
    ]

    for outcome in report.outcomes:
        if outcome.status != RepoStatus.SUCCEEDED:
            continue
        if outcome.payload is not None:
            # Demote the summary's headings one level under the report title
            body = summary_to_markdown(outcome.payload)
            parts.append("\n".join("#" + line if line.startswith("#") else line for line in body.splitlines()))
            parts.append("")
        elif outcome.stats is not None:
            stats = outcome.stats
            parts += [
                f"## {outcome.repository.name}",
                "",
                f"{stats.total_commits} commits, {stats.total_files_changed} files, "
                f"+{stats.total_insertions}/-{stats.total_deletions}",
                "",
            ]

    problems = [o for o in report.outcomes if o.status == RepoStatus.FAILED]
    if problems:
        parts += ["## Failed", ""]
        parts += [f"- {o.repository.name}: {o.reason}" for o in problems]
        parts.append("")

    return "\n".join(parts)


def render_report(report: BatchReport, console: Console | None = None) -> None:
    """Render a BatchReport to the terminal using rich."""
    console = console or Console()

    authors = ", ".join(report.authors) if report.authors else "any author"
    title = "dev-recap (dry run)" if report.dry_run else "dev-recap"
    console.print(Panel(
        Text(
            f"{title}\nPeriod: {report.since:%Y-%m-%d} ~ {report.until:%Y-%m-%d}\nAuthors: {authors}",
            justify="center",
        ),
        style="bold cyan",
    ))
    console.print()

    for warning in report.warnings:
        console.print(f"[bold yellow]Warning:[/bold yellow] {warning}")
    if report.warnings:
        console.print()

    for outcome in report.outcomes:
        if outcome.payload is not None:
            console.print(Markdown(summary_to_markdown(outcome.payload)))
            console.print()

    table = Table(show_header=True, header_style="bold")
    table.add_column("Repository")
    table.add_column("Status")
    table.add_column("Commits", justify="right")
    table.add_column("+/-", justify="right")
    table.add_column("Busiest day")
    table.add_column("Detail")

    for outcome in report.outcomes:
        stats = outcome.stats
        busiest = most_active_day(stats) if stats else None
        style = _STATUS_STYLES[outcome.status]
        table.add_row(
            outcome.repository.name,
            f"[{style}]{outcome.status.value}[/{style}]",
            _format_number(stats.total_commits) if stats else "-",
            f"+{_format_number(stats.total_insertions)}/-{_format_number(stats.total_deletions)}" if stats else "-",
            f"{busiest[0]} ({busiest[1]})" if busiest else "-",
            _outcome_detail(outcome),
        )
    console.print(table)
    console.print()

    summary = (
        f"{report.succeeded} succeeded ({report.cache_hits} cached), "
        f"{report.skipped} skipped, {report.failed} failed in {report.duration_seconds}s"
    )
    if report.cancelled:
        summary += " [yellow](cancelled)[/yellow]"
    console.print(f"[bold]{summary}[/bold]")
