"""Recap orchestrator.

Scans a root for repositories, extracts and aggregates each one's filtered
commits, and produces a summary per repository through the cache and the
summarizer. Repositories are processed concurrently up to
settings.max_concurrency; a failure in one never affects another, except
for fatal summarizer failures (bad credentials or request) which abort the
whole run.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Protocol

from devrecap.config import Settings, settings as default_settings
from devrecap.core.exceptions import (
    CacheError,
    FatalSummarizerError,
    NoCommitsFound,
    RepositoryError,
    RunCancelled,
)
from devrecap.services.cache import CacheStore, compute_cache_key
from devrecap.services.git import (
    CommitExtractor,
    CommitRecord,
    FilterCriteria,
    Repository,
    RepositoryScanner,
    RepoStats,
    ScanResult,
    aggregate,
    aggregate_by_author,
    link_references,
    parse_remote_url,
    repo_name,
)
from devrecap.services.summarizer import (
    RecapSummarizer,
    SummaryPayload,
    SummaryRequest,
    SummaryResult,
    call_with_retry,
)

logger = logging.getLogger(__name__)


class Summarizer(Protocol):
    async def summarize(self, request: SummaryRequest) -> SummaryResult: ...


class RepoStatus(str, Enum):
    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class AnalyzedRepository:
    """A repository with its filtered commits and their aggregates."""

    repository: Repository
    commits: list[CommitRecord]
    stats: RepoStats
    author_stats: dict[str, RepoStats] = field(default_factory=dict)

    @property
    def commit_hashes(self) -> list[str]:
        return [c.hash for c in self.commits]


@dataclass
class RepoOutcome:
    """What happened to one repository in a run."""

    repository: Repository
    status: RepoStatus
    payload: SummaryPayload | None = None
    stats: RepoStats | None = None
    from_cache: bool = False
    reason: str | None = None
    attempts: int = 0


@dataclass
class BatchReport:
    """Summary of a run (for display and the markdown report)."""

    since: datetime
    until: datetime
    authors: list[str]
    root: Path | None = None
    outcomes: list[RepoOutcome] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    dry_run: bool = False
    cancelled: bool = False
    duration_seconds: float = 0.0

    def _count(self, status: RepoStatus) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    @property
    def succeeded(self) -> int:
        return self._count(RepoStatus.SUCCEEDED)

    @property
    def skipped(self) -> int:
        return self._count(RepoStatus.SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(RepoStatus.FAILED)

    @property
    def cache_hits(self) -> int:
        return sum(1 for o in self.outcomes if o.from_cache)


class RecapOrchestrator:
    """Coordinates scanning, extraction, caching and summarization."""

    def __init__(
        self,
        settings: Settings | None = None,
        summarizer: Summarizer | None = None,
        cache: CacheStore | None = None,
        scanner: RepositoryScanner | None = None,
        extractor: CommitExtractor | None = None,
        sleep=asyncio.sleep,
    ):
        self.settings = settings or default_settings
        self._summarizer = summarizer
        # Disabled caching means no store at all, not a store that is skipped
        self.cache = cache if self.settings.cache_enabled else None
        self.scanner = scanner or RepositoryScanner(
            exclude_patterns=self.settings.exclude_patterns,
            max_depth=self.settings.max_scan_depth,
        )
        self.extractor = extractor or CommitExtractor()
        self._sleep = sleep
        self._cancelled = False
        self._fatal: FatalSummarizerError | None = None

    @property
    def summarizer(self) -> Summarizer:
        if self._summarizer is None:
            self.settings.validate_for_run()
            self._summarizer = RecapSummarizer(
                api_key=self.settings.anthropic_api_key,
                model=self.settings.model,
                max_tokens=self.settings.max_tokens,
                timeout=self.settings.request_timeout_seconds,
            )
        return self._summarizer

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """
        Stop starting new summarization calls. Calls in flight may finish.

        Applies to the run in progress, or to the next run when called
        between runs.
        """
        if not self._cancelled:
            logger.info("Cancellation requested; no new summaries will be started")
        self._cancelled = True

    # ─────────────────────────────────────────────────────────────
    # Per-repository steps
    # ─────────────────────────────────────────────────────────────

    def scan(self, root: Path) -> ScanResult:
        result = self.scanner.scan(Path(root))
        logger.info(f"Found {len(result.repositories)} repositories under {root}")
        for warning in result.warnings:
            logger.warning(f"Scan: {warning}")
        return result

    def analyze_repository(self, path: Path, criteria: FilterCriteria) -> AnalyzedRepository:
        """
        Extract, aggregate and describe one repository. Blocking (runs git).

        Raises:
            RepositoryReadError: history could not be read
            NoCommitsFound: nothing matched the filter
        """
        path = Path(path)
        commits = self.extractor.extract(path, criteria)
        if not commits:
            raise NoCommitsFound(path, criteria.author_label())

        remote_url = self.extractor.remote_url(path)
        repository = Repository(
            path=path,
            name=repo_name(path),
            remote_url=remote_url,
            github_info=parse_remote_url(remote_url, self.settings.github_hosts),
        )
        return AnalyzedRepository(
            repository=repository,
            commits=commits,
            stats=aggregate(commits),
            author_stats=aggregate_by_author(commits) if criteria.is_team else {},
        )

    def cache_key(self, analyzed: AnalyzedRepository, criteria: FilterCriteria) -> str:
        return compute_cache_key(analyzed.repository.path, analyzed.commit_hashes, criteria)

    def build_request(self, analyzed: AnalyzedRepository, criteria: FilterCriteria) -> SummaryRequest:
        references = sorted({n for c in analyzed.commits for n in c.references})
        pr_links = {
            number: url
            for number, url in link_references(references, analyzed.repository.github_info)
            if url
        }
        return SummaryRequest(
            repository=analyzed.repository.name,
            since=criteria.since,
            until=criteria.until,
            authors=sorted(criteria.author_emails),
            commits=analyzed.commits,
            stats=analyzed.stats,
            remote_url=analyzed.repository.remote_url,
            pr_links=pr_links,
            author_stats=analyzed.author_stats,
        )

    async def summarize(self, analyzed: AnalyzedRepository, criteria: FilterCriteria) -> RepoOutcome:
        """
        Cached summary for one analyzed repository.

        A hit makes no external call. A miss calls the summarizer (with
        retries) and stores only a successful result.

        Raises:
            FatalSummarizerError: authentication or bad-request failure
            RunCancelled: cancel() was called before the call started
        """
        repository = analyzed.repository
        key = self.cache_key(analyzed, criteria)

        if self.cache is not None:
            try:
                cached = await self.cache.lookup(key)
            except CacheError as e:
                logger.warning(f"{repository.name}: {e}; treating as cache miss")
                cached = None
            if cached is not None:
                logger.info(f"{repository.name}: using cached summary")
                return RepoOutcome(
                    repository=repository,
                    status=RepoStatus.SUCCEEDED,
                    payload=cached,
                    stats=analyzed.stats,
                    from_cache=True,
                )

        request = self.build_request(analyzed, criteria)
        summarizer = self.summarizer
        result, attempts = await call_with_retry(
            lambda: summarizer.summarize(request),
            max_attempts=self.settings.summary_max_attempts,
            operation_name=f"Summary for {repository.name}",
            sleep=self._sleep,
            should_stop=lambda: self._cancelled,
        )

        if not result.succeeded:
            kind = result.failure.value if result.failure else "unknown"
            if result.failure is not None and result.failure.fatal:
                raise FatalSummarizerError(
                    f"Summarizer rejected the request ({kind}): {result.message}",
                    kind=kind,
                    attempts=attempts,
                )
            return RepoOutcome(
                repository=repository,
                status=RepoStatus.FAILED,
                stats=analyzed.stats,
                reason=f"Summary failed after {attempts} attempt(s) ({kind}): {result.message}",
                attempts=attempts,
            )

        payload = result.payload
        assert payload is not None
        if self.cache is not None:
            try:
                await self.cache.put(key, payload, self.settings.cache_ttl_hours * 3600)
            except CacheError as e:
                logger.warning(f"{repository.name}: summary not cached: {e}")

        logger.info(f"{repository.name}: summary generated")
        return RepoOutcome(
            repository=repository,
            status=RepoStatus.SUCCEEDED,
            payload=payload,
            stats=analyzed.stats,
            attempts=attempts,
        )

    # ─────────────────────────────────────────────────────────────
    # Batch
    # ─────────────────────────────────────────────────────────────

    async def run(
        self,
        criteria: FilterCriteria,
        root: Path | None = None,
        paths: list[Path] | None = None,
        dry_run: bool = False,
    ) -> BatchReport:
        """
        Process every repository under root (or the given paths).

        Returns a BatchReport with one outcome per repository, in path order.

        Raises:
            FatalSummarizerError: a summarization call failed fatally
            ConfigurationError: no usable API key and no summarizer injected
        """
        start = time.monotonic()
        self._fatal = None
        report = BatchReport(
            since=criteria.since,
            until=criteria.until,
            authors=sorted(criteria.author_emails),
            root=Path(root) if root is not None else None,
            dry_run=dry_run,
        )

        if paths is None:
            if root is None:
                raise ValueError("Either root or paths is required")
            scan = await asyncio.to_thread(self.scan, Path(root))
            report.warnings.extend(scan.warnings)
            paths = scan.repositories

        if criteria.is_empty_window:
            logger.info("Time window is empty; every repository will be skipped")

        if not dry_run and paths:
            # Surface configuration problems before any repository work starts
            _ = self.summarizer

        semaphore = asyncio.Semaphore(self.settings.max_concurrency)

        async def process(path: Path) -> RepoOutcome:
            async with semaphore:
                return await self._process_repository(path, criteria, dry_run)

        outcomes = await asyncio.gather(*(process(p) for p in paths))
        report.outcomes = sorted(outcomes, key=lambda o: str(o.repository.path))
        report.errors.extend(o.reason for o in report.outcomes if o.status == RepoStatus.FAILED and o.reason)
        report.cancelled = self._cancelled
        report.duration_seconds = round(time.monotonic() - start, 2)

        # Cancellation and fatal errors end this run only; the next run starts clean
        fatal, self._fatal = self._fatal, None
        self._cancelled = False
        if fatal is not None:
            raise fatal

        logger.info(
            f"Completed: {report.succeeded} succeeded ({report.cache_hits} from cache), "
            f"{report.skipped} skipped, {report.failed} failed "
            f"({report.duration_seconds}s)"
        )
        return report

    async def _process_repository(self, path: Path, criteria: FilterCriteria, dry_run: bool) -> RepoOutcome:
        placeholder = Repository(path=Path(path), name=repo_name(Path(path)))

        if self._cancelled:
            return RepoOutcome(repository=placeholder, status=RepoStatus.SKIPPED, reason="Run cancelled")

        try:
            analyzed = await asyncio.to_thread(self.analyze_repository, path, criteria)
        except NoCommitsFound as e:
            logger.debug(f"{placeholder.name}: {e.message}")
            return RepoOutcome(repository=placeholder, status=RepoStatus.SKIPPED, reason=e.message)
        except RepositoryError as e:
            logger.error(f"{placeholder.name}: {e.message}")
            return RepoOutcome(repository=placeholder, status=RepoStatus.FAILED, reason=e.message)

        if dry_run:
            return RepoOutcome(
                repository=analyzed.repository,
                status=RepoStatus.SUCCEEDED,
                stats=analyzed.stats,
            )

        try:
            return await self.summarize(analyzed, criteria)
        except RunCancelled:
            return RepoOutcome(
                repository=analyzed.repository,
                status=RepoStatus.SKIPPED,
                stats=analyzed.stats,
                reason="Run cancelled",
            )
        except FatalSummarizerError as e:
            if self._fatal is None:
                self._fatal = e
                logger.error(f"Aborting run: {e.message}")
            self.cancel()
            return RepoOutcome(
                repository=analyzed.repository,
                status=RepoStatus.FAILED,
                stats=analyzed.stats,
                reason=e.message,
                attempts=e.attempts,
            )
        except Exception as e:
            logger.exception(f"{analyzed.repository.name}: unexpected error")
            return RepoOutcome(
                repository=analyzed.repository,
                status=RepoStatus.FAILED,
                stats=analyzed.stats,
                reason=f"Unexpected error: {e}",
            )
