"""Data types for local git repositories and the commits read from them."""

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path


@dataclass(frozen=True)
class GitHubRepoInfo:
    """Owner/name pair parsed from a remote URL."""

    owner: str
    name: str
    host: str = "github.com"

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    def pr_url(self, number: int) -> str:
        return f"https://{self.host}/{self.owner}/{self.name}/pull/{number}"


@dataclass(frozen=True)
class Author:
    """Commit identity (author or committer)."""

    name: str
    email: str


@dataclass(frozen=True)
class CommitRecord:
    """A single commit that passed the filter, with first-parent diff stats."""

    hash: str
    short_hash: str
    author: Author
    timestamp: datetime  # Aware, in the commit's own UTC offset
    subject: str
    body: str | None = None
    files_changed: tuple[str, ...] = ()
    insertions: int = 0
    deletions: int = 0
    references: tuple[int, ...] = ()  # PR/issue numbers, ascending
    committer: Author | None = None


@dataclass
class Repository:
    """A discovered git root and what we know about its remote."""

    path: Path
    name: str
    remote_url: str | None = None
    github_info: GitHubRepoInfo | None = None


@dataclass(frozen=True)
class FilterCriteria:
    """Which commits to include: author identity plus a [since, until) window.

    An empty author set matches everyone. More than one email is team mode.
    A window with since >= until is empty, not an error.
    """

    since: datetime
    until: datetime
    author_emails: frozenset[str] = frozenset()
    match_committer: bool = False

    def __post_init__(self) -> None:
        # Naive datetimes are read as UTC so comparisons with commit timestamps work
        if self.since.tzinfo is None:
            object.__setattr__(self, "since", self.since.replace(tzinfo=UTC))
        if self.until.tzinfo is None:
            object.__setattr__(self, "until", self.until.replace(tzinfo=UTC))
        object.__setattr__(
            self,
            "author_emails",
            frozenset(e.strip().lower() for e in self.author_emails if e and e.strip()),
        )

    @classmethod
    def days_back(
        cls,
        days: int,
        authors: list[str] | tuple[str, ...] | frozenset[str] | None = None,
        now: datetime | None = None,
        match_committer: bool = False,
    ) -> "FilterCriteria":
        until = now or datetime.now(UTC)
        return cls(
            since=until - timedelta(days=days),
            until=until,
            author_emails=frozenset(authors or ()),
            match_committer=match_committer,
        )

    @classmethod
    def between(
        cls,
        since: datetime,
        until: datetime | None = None,
        authors: list[str] | tuple[str, ...] | frozenset[str] | None = None,
        match_committer: bool = False,
    ) -> "FilterCriteria":
        return cls(
            since=since,
            until=until or datetime.now(UTC),
            author_emails=frozenset(authors or ()),
            match_committer=match_committer,
        )

    @property
    def is_empty_window(self) -> bool:
        return self.since >= self.until

    @property
    def is_team(self) -> bool:
        return len(self.author_emails) > 1

    def contains(self, timestamp: datetime) -> bool:
        return self.since <= timestamp < self.until

    def matches_author(self, author: Author, committer: Author | None = None) -> bool:
        if not self.author_emails:
            return True
        if author.email.lower() in self.author_emails:
            return True
        if self.match_committer and committer is not None:
            return committer.email.lower() in self.author_emails
        return False

    def author_label(self) -> str:
        if not self.author_emails:
            return "any"
        return ", ".join(sorted(self.author_emails))

    def normalized(self) -> dict[str, object]:
        """Stable, JSON-serializable form used in cache keys."""
        return {
            "authors": sorted(self.author_emails),
            "since": self.since.astimezone(UTC).isoformat(),
            "until": self.until.astimezone(UTC).isoformat(),
            "match_committer": self.match_committer,
        }


@dataclass
class RepoStats:
    """Aggregate counters over a set of commits."""

    total_commits: int = 0
    total_files_changed: int = 0  # Distinct paths across the commit set
    total_insertions: int = 0
    total_deletions: int = 0
    referenced_commits: int = 0  # Commits carrying at least one reference
    pr_count: int = 0  # Distinct reference numbers
    commit_frequency: dict[str, int] = field(default_factory=dict)  # YYYY-MM-DD -> count

    @property
    def net_lines_changed(self) -> int:
        return self.total_insertions - self.total_deletions


@dataclass
class ScanResult:
    """Repositories found under a root, plus non-fatal problems hit on the way."""

    root: Path
    repositories: list[Path] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
