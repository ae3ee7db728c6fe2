"""
Commit statistics aggregation.

Pure reductions over CommitRecord sequences, no git or LLM involvement.
Every function is order-independent so results are identical however
extraction was batched.
"""

from collections import Counter
from collections.abc import Iterable

from devrecap.services.git.types import CommitRecord, RepoStats


def commit_date_key(commit: CommitRecord) -> str:
    """Calendar date of a commit in its own UTC offset (YYYY-MM-DD)."""
    return commit.timestamp.date().isoformat()


def aggregate(commits: Iterable[CommitRecord]) -> RepoStats:
    """Reduce a commit set into RepoStats."""
    stats = RepoStats()
    files: set[str] = set()
    references: set[int] = set()
    frequency: Counter[str] = Counter()

    for commit in commits:
        stats.total_commits += 1
        stats.total_insertions += commit.insertions
        stats.total_deletions += commit.deletions
        files.update(commit.files_changed)
        if commit.references:
            stats.referenced_commits += 1
            references.update(commit.references)
        frequency[commit_date_key(commit)] += 1

    stats.total_files_changed = len(files)
    stats.pr_count = len(references)
    stats.commit_frequency = dict(sorted(frequency.items()))
    return stats


def aggregate_by_author(commits: Iterable[CommitRecord]) -> dict[str, RepoStats]:
    """Team mode: RepoStats per author email (lower-cased)."""
    grouped: dict[str, list[CommitRecord]] = {}
    for commit in commits:
        grouped.setdefault(commit.author.email.lower(), []).append(commit)
    return {email: aggregate(group) for email, group in sorted(grouped.items())}


def summarize_file_changes(commits: Iterable[CommitRecord]) -> dict[str, int]:
    """How many commits touched each file."""
    changes: Counter[str] = Counter()
    for commit in commits:
        changes.update(set(commit.files_changed))
    return dict(changes)


def most_changed_files(commits: Iterable[CommitRecord], limit: int = 10) -> list[tuple[str, int]]:
    """Files touched by the most commits, ties broken by path."""
    changes = summarize_file_changes(commits)
    ranked = sorted(changes.items(), key=lambda item: (-item[1], item[0]))
    return ranked[:limit]


def most_active_day(stats: RepoStats) -> tuple[str, int] | None:
    """Date with the most commits (earliest date wins a tie)."""
    if not stats.commit_frequency:
        return None
    return min(stats.commit_frequency.items(), key=lambda item: (-item[1], item[0]))


def average_commits_per_day(stats: RepoStats) -> float:
    """Average commits over the days that had any activity."""
    if not stats.commit_frequency:
        return 0.0
    return stats.total_commits / len(stats.commit_frequency)
