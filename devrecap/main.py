"""dev-recap command line interface."""

import asyncio
import logging
import signal
import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from devrecap import __version__
from devrecap.config import Settings, default_config_path, load_settings, write_default_config
from devrecap.core.exceptions import DevRecapError
from devrecap.services.cache import SqliteCacheStore
from devrecap.services.git import CommitExtractor, FilterCriteria
from devrecap.services.orchestrator import BatchReport, RecapOrchestrator
from devrecap.services.renderer import format_size, render_report, report_to_markdown

console = Console()
err_console = Console(stderr=True)

logger = logging.getLogger(__name__)


def setup_logging(verbosity: int = 0) -> None:
    """Configure application logging. Logs go to stderr; stdout is for the report."""
    # Format: timestamp - level - logger name - message
    log_format = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"
    date_format = "%H:%M:%S"

    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format=log_format,
        datefmt=date_format,
        stream=sys.stderr,
        force=True,
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("anthropic").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)


def _as_utc(value: datetime | None) -> datetime | None:
    # click.DateTime yields naive datetimes; dates on the command line are UTC
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


def _split_authors(value: str | None) -> list[str]:
    if not value:
        return []
    return [a.strip() for a in value.split(",") if a.strip()]


def build_criteria(
    settings: Settings,
    author: str | None,
    authors: str | None,
    days: int | None,
    since: datetime | None,
    until: datetime | None,
    now: datetime | None = None,
    git_email: str | None = None,
) -> FilterCriteria:
    """
    Turn CLI options into FilterCriteria. --until is inclusive of the whole day.

    Author precedence: --authors, --author, default_author_email from the
    config, then git's user.email (git_email). With none of them any author
    matches.
    """
    if days is not None and (since or until):
        raise click.UsageError("Cannot specify both --days and --since/--until. Choose one.")

    emails = _split_authors(authors)
    if not emails:
        single = author or settings.default_author_email or git_email
        emails = [single] if single else []

    since_dt = _as_utc(since)
    until_dt = _as_utc(until)

    if since_dt is not None or until_dt is not None:
        end = until_dt + timedelta(days=1) if until_dt else (now or datetime.now(UTC))
        start = since_dt or end - timedelta(days=settings.default_timespan_days)
        return FilterCriteria.between(
            start, end, authors=emails, match_committer=settings.match_committer
        )

    return FilterCriteria.days_back(
        days if days is not None else settings.default_timespan_days,
        authors=emails,
        now=now,
        match_committer=settings.match_committer,
    )


def _load(config_file: Path | None, **overrides: object) -> Settings:
    clean = {k: v for k, v in overrides.items() if v is not None}
    return load_settings(config_file, **clean)


async def _run_recap(
    orchestrator: RecapOrchestrator,
    criteria: FilterCriteria,
    root: Path,
    dry_run: bool,
) -> BatchReport:
    loop = asyncio.get_running_loop()
    handler_installed = False
    try:
        # First Ctrl-C stops new summaries; the report still prints
        loop.add_signal_handler(signal.SIGINT, orchestrator.cancel)
        handler_installed = True
    except (NotImplementedError, RuntimeError):
        pass

    try:
        return await orchestrator.run(criteria, root=root, dry_run=dry_run)
    finally:
        if handler_installed:
            loop.remove_signal_handler(signal.SIGINT)
        if isinstance(orchestrator.cache, SqliteCacheStore):
            await orchestrator.cache.close()


@click.group(invoke_without_command=True)
@click.option("-p", "--path", "path", type=click.Path(file_okay=False, path_type=Path), default=None,
              help="Directory to scan for git repositories (default: current directory).")
@click.option("-a", "--author", default=None, help="Author email to filter commits.")
@click.option("--authors", default=None, help="Comma-separated author emails (team mode).")
@click.option("-d", "--days", type=click.IntRange(min=1), default=None, help="Number of days to look back.")
@click.option("--since", type=click.DateTime(formats=["%Y-%m-%d"]), default=None, help="Start date (YYYY-MM-DD).")
@click.option("--until", type=click.DateTime(formats=["%Y-%m-%d"]), default=None,
              help="End date, inclusive (YYYY-MM-DD).")
@click.option("-c", "--config", "config_file", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Config file (default: ~/.config/dev-recap/config.toml).")
@click.option("-o", "--output", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Write the report to this markdown file.")
@click.option("--no-cache", is_flag=True, help="Do not read or write the summary cache.")
@click.option("--dry-run", is_flag=True, help="Show what would be summarized without calling the API.")
@click.option("--max-depth", type=click.IntRange(min=0), default=None, help="Maximum directory scan depth.")
@click.option("-v", "--verbose", count=True, help="Increase log verbosity (-v, -vv).")
@click.version_option(__version__, prog_name="dev-recap")
@click.pass_context
def cli(
    ctx: click.Context,
    path: Path | None,
    author: str | None,
    authors: str | None,
    days: int | None,
    since: datetime | None,
    until: datetime | None,
    config_file: Path | None,
    output: Path | None,
    no_cache: bool,
    dry_run: bool,
    max_depth: int | None,
    verbose: int,
) -> None:
    """AI-powered git commit summarizer for Demo Day presentations."""
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_file"] = config_file

    if ctx.invoked_subcommand is not None:
        return

    root = (path or Path.cwd()).expanduser()
    if not root.is_dir():
        err_console.print(f"[red]Error:[/red] {root} is not a directory")
        sys.exit(1)

    try:
        settings = _load(
            config_file,
            cache_enabled=False if no_cache else None,
            max_scan_depth=max_depth,
        )
        git_email = None
        if not (author or authors or settings.default_author_email):
            git_email = CommitExtractor().user_email(root)
            if git_email:
                logger.info(f"No author given; using git user.email {git_email}")
        criteria = build_criteria(settings, author, authors, days, since, until, git_email=git_email)
        if not dry_run:
            settings.validate_for_run()
    except DevRecapError as e:
        err_console.print(f"[red]Error:[/red] {e.message}")
        sys.exit(1)

    cache = SqliteCacheStore(settings.cache_db_path) if settings.cache_enabled and not dry_run else None
    orchestrator = RecapOrchestrator(settings=settings, cache=cache)

    err_console.print(f"Scanning [bold]{root}[/bold] for {criteria.author_label()} "
                      f"from {criteria.since:%Y-%m-%d} to {criteria.until:%Y-%m-%d}")

    try:
        report = asyncio.run(_run_recap(orchestrator, criteria, root, dry_run))
    except DevRecapError as e:
        err_console.print(f"[red]Error:[/red] {e.message}")
        sys.exit(1)
    except KeyboardInterrupt:
        err_console.print("[yellow]Cancelled[/yellow]")
        sys.exit(130)

    if not report.outcomes:
        console.print("No git repositories found.")
        return

    render_report(report, console)

    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(report_to_markdown(report), encoding="utf-8")
        console.print(f"Saved to {output}")


@cli.command()
@click.option("--force", is_flag=True, help="Overwrite an existing config file.")
@click.pass_context
def init(ctx: click.Context, force: bool) -> None:
    """Create a starter config file."""
    target = ctx.obj.get("config_file") or default_config_path()
    try:
        path = write_default_config(target, force=force)
    except DevRecapError as e:
        err_console.print(f"[red]Error:[/red] {e.message}")
        sys.exit(1)

    console.print(f"[green]✓[/green] Created config file at: {path}")
    console.print("\nTo authenticate, either:")
    console.print("  1. Set the ANTHROPIC_API_KEY environment variable")
    console.print("  2. Set anthropic_api_key in the config file")


@cli.command("config")
@click.pass_context
def show_config(ctx: click.Context) -> None:
    """Show the effective configuration (API key masked)."""
    try:
        settings = _load(ctx.obj.get("config_file"))
    except DevRecapError as e:
        err_console.print(f"[red]Error:[/red] {e.message}")
        sys.exit(1)

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("setting", style="dim")
    table.add_column("value", style="bold")
    table.add_row("config file", str(ctx.obj.get("config_file") or default_config_path()))
    table.add_row("anthropic_api_key", settings.masked_api_key())
    table.add_row("model", settings.model)
    table.add_row("default_author_email", settings.default_author_email or "-")
    table.add_row("default_timespan_days", str(settings.default_timespan_days))
    table.add_row("match_committer", str(settings.match_committer))
    table.add_row("exclude_patterns", ", ".join(settings.exclude_patterns))
    table.add_row("max_scan_depth", str(settings.max_scan_depth) if settings.max_scan_depth is not None else "unlimited")
    table.add_row("cache_enabled", str(settings.cache_enabled))
    table.add_row("cache_ttl_hours", str(settings.cache_ttl_hours))
    table.add_row("cache_dir", str(settings.cache_dir))
    table.add_row("max_concurrency", str(settings.max_concurrency))
    console.print(table)


@cli.command("clear-cache")
@click.pass_context
def clear_cache(ctx: click.Context) -> None:
    """Delete every cached summary."""
    settings = _load(ctx.obj.get("config_file"))
    if not settings.cache_db_path.exists():
        console.print("Cache does not exist")
        return

    async def _clear() -> None:
        store = SqliteCacheStore(settings.cache_db_path)
        try:
            await store.invalidate_all()
        finally:
            await store.close()

    try:
        asyncio.run(_clear())
    except DevRecapError as e:
        err_console.print(f"[red]Error:[/red] {e.message}")
        sys.exit(1)
    console.print(f"[green]✓[/green] Cache cleared: {settings.cache_db_path}")


@cli.command("cache-stats")
@click.option("--purge-expired", is_flag=True, help="Remove expired entries first.")
@click.pass_context
def cache_stats(ctx: click.Context, purge_expired: bool) -> None:
    """Show cache entry count and size."""
    settings = _load(ctx.obj.get("config_file"))
    if not settings.cache_db_path.exists():
        console.print("Cache does not exist")
        return

    async def _stats():
        store = SqliteCacheStore(settings.cache_db_path)
        try:
            removed = await store.purge_expired() if purge_expired else 0
            return removed, await store.stats()
        finally:
            await store.close()

    try:
        removed, stats = asyncio.run(_stats())
    except DevRecapError as e:
        err_console.print(f"[red]Error:[/red] {e.message}")
        sys.exit(1)

    console.print(f"Cache file: {settings.cache_db_path}")
    if purge_expired:
        console.print(f"Expired entries removed: {removed}")
    console.print(f"Total entries: {stats.entry_count}")
    console.print(f"Database size: {format_size(stats.approximate_size)}")


if __name__ == "__main__":
    cli()
