"""
Commit extraction for a single repository.

Two passes over `git log`:
1. A cheap listing (hash, identities, committer date) filtered in Python
   by author email and the [since, until) window.
2. Full records (message + numstat) for the selected hashes only, with
   merges diffed against their first parent.

Zero matches is an empty list. A missing or unreadable repository raises
RepositoryReadError, which the orchestrator records and moves past.
"""

import logging
import re
from datetime import datetime
from pathlib import Path

from devrecap.core.exceptions import RepositoryReadError
from devrecap.services.git.constants import (
    BINARY_NUMSTAT_MARKER,
    DEFAULT_REMOTE,
    FIELD_SEPARATOR,
    LOG_FIELDS,
    LOG_FORMAT,
    RECORD_SEPARATOR,
    SHORT_HASH_LENGTH,
)
from devrecap.services.git.references import extract_references
from devrecap.services.git.runner import GitRunner
from devrecap.services.git.types import Author, CommitRecord, FilterCriteria

logger = logging.getLogger(__name__)

_LISTING_FORMAT = "%x1f".join(["%H", "%ae", "%ce", "%cI"])
_BRACED_RENAME = re.compile(r"\{([^{}]*) => ([^{}]*)\}")


def normalize_numstat_path(path: str) -> str:
    """
    Resolve numstat rename notation to the new path.

    `src/{old => new}/file.py` -> `src/new/file.py`
    `old.py => new.py` -> `new.py`
    """
    p = path.strip()
    if " => " not in p:
        return p
    if "{" in p:
        p = _BRACED_RENAME.sub(lambda m: m.group(2), p)
        # `{ => sub}/f` and `{old => }/f` leave doubled or leading slashes
        p = re.sub(r"/{2,}", "/", p).lstrip("/")
        return p
    return p.split(" => ")[-1].strip()


def split_message(message: str) -> tuple[str, str | None]:
    """Split a raw commit message into subject line and optional body."""
    lines = message.strip("\n").splitlines()
    if not lines:
        return "", None
    subject = lines[0].strip()
    rest = lines[1:]
    while rest and not rest[0].strip():
        rest.pop(0)
    body = "\n".join(rest).rstrip()
    return subject, body or None


def parse_timestamp(value: str) -> datetime:
    """Parse git's strict ISO 8601 date, keeping its UTC offset."""
    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def parse_numstat(lines: list[str]) -> tuple[tuple[str, ...], int, int]:
    """
    Sum numstat lines into (files, insertions, deletions).

    Binary files count as changed files but contribute no lines.
    """
    files: list[str] = []
    seen: set[str] = set()
    insertions = 0
    deletions = 0

    for line in lines:
        parts = line.split("\t", 2)
        if len(parts) < 3:
            continue
        added_s, deleted_s, raw_path = parts
        path = normalize_numstat_path(raw_path)
        if not path:
            continue

        if added_s == BINARY_NUMSTAT_MARKER or deleted_s == BINARY_NUMSTAT_MARKER:
            added, deleted = 0, 0
        else:
            try:
                added, deleted = int(added_s), int(deleted_s)
            except ValueError:
                continue

        insertions += added
        deletions += deleted
        if path not in seen:
            seen.add(path)
            files.append(path)

    return tuple(files), insertions, deletions


class CommitExtractor:
    """Read filtered, normalized commits from a local repository."""

    def __init__(self, git: GitRunner | None = None):
        self.git = git or GitRunner()

    def extract(self, repo_path: Path, criteria: FilterCriteria) -> list[CommitRecord]:
        """
        Extract commits matching criteria, newest first.

        Raises:
            RepositoryReadError: path is gone, not a repository, or git failed
        """
        repo_path = Path(repo_path)
        self._ensure_readable(repo_path)

        if criteria.is_empty_window:
            logger.debug(f"Empty window for {repo_path}, nothing to extract")
            return []

        if not self.git.has_head(repo_path):
            logger.debug(f"{repo_path} has no commits yet")
            return []

        hashes = self._select_hashes(repo_path, criteria)
        if not hashes:
            return []

        commits = self._read_commits(repo_path, hashes)
        # git's walk order is topological-ish; callers rely on strict newest-first
        commits.sort(key=lambda c: c.timestamp, reverse=True)
        logger.debug(f"Extracted {len(commits)} commits from {repo_path}")
        return commits

    def remote_url(self, repo_path: Path, remote: str = DEFAULT_REMOTE) -> str | None:
        """URL of the given remote, or None when not configured."""
        return self.git.config_value(Path(repo_path), f"remote.{remote}.url")

    def user_email(self, repo_path: Path) -> str | None:
        """Configured git user.email for a repository (falls back to global config)."""
        return self.git.config_value(Path(repo_path), "user.email")

    def _ensure_readable(self, repo_path: Path) -> None:
        if not repo_path.is_dir():
            raise RepositoryReadError(repo_path, "directory no longer exists")
        if not self.git.is_repository(repo_path):
            raise RepositoryReadError(repo_path, "not a git repository")

    def _select_hashes(self, repo_path: Path, criteria: FilterCriteria) -> list[str]:
        result = self.git.run(repo_path, "log", "--no-color", f"--format={_LISTING_FORMAT}", "HEAD")
        if not result.ok:
            raise RepositoryReadError(repo_path, result.stderr or f"git log exited {result.code}")

        selected: list[str] = []
        for line in result.stdout.splitlines():
            parts = line.split(FIELD_SEPARATOR)
            if len(parts) != 4:
                continue
            sha, author_email, committer_email, date_s = parts
            try:
                timestamp = parse_timestamp(date_s)
            except ValueError:
                logger.warning(f"Unparseable commit date {date_s!r} for {sha[:SHORT_HASH_LENGTH]} in {repo_path}")
                continue

            if not criteria.contains(timestamp):
                continue
            if not criteria.matches_author(
                Author(name="", email=author_email),
                Author(name="", email=committer_email),
            ):
                continue
            selected.append(sha)

        return selected

    def _read_commits(self, repo_path: Path, hashes: list[str]) -> list[CommitRecord]:
        result = self.git.run(
            repo_path,
            "log",
            "--no-color",
            "--no-walk=unsorted",
            "--stdin",
            "--numstat",
            "--diff-merges=first-parent",
            f"--format={LOG_FORMAT}",
            stdin="\n".join(hashes) + "\n",
        )
        if not result.ok:
            raise RepositoryReadError(repo_path, result.stderr or f"git log exited {result.code}")

        commits: list[CommitRecord] = []
        for record in result.stdout.split(RECORD_SEPARATOR):
            if not record.strip():
                continue
            commit = self._parse_record(record)
            if commit is not None:
                commits.append(commit)
        return commits

    def _parse_record(self, record: str) -> CommitRecord | None:
        parts = record.split(FIELD_SEPARATOR, len(LOG_FIELDS))
        if len(parts) < len(LOG_FIELDS):
            logger.warning(f"Skipping malformed git log record: {record[:80]!r}")
            return None

        sha, author_name, author_email, committer_name, committer_email, date_s, message = parts[:7]
        numstat_block = parts[7] if len(parts) > 7 else ""

        try:
            timestamp = parse_timestamp(date_s)
        except ValueError:
            return None

        subject, body = split_message(message)
        files, insertions, deletions = parse_numstat(
            [line for line in numstat_block.splitlines() if line.strip()]
        )

        return CommitRecord(
            hash=sha.strip(),
            short_hash=sha.strip()[:SHORT_HASH_LENGTH],
            author=Author(name=author_name or "Unknown", email=author_email),
            committer=Author(name=committer_name or "Unknown", email=committer_email),
            timestamp=timestamp,
            subject=subject,
            body=body,
            files_changed=files,
            insertions=insertions,
            deletions=deletions,
            references=extract_references(subject, body),
        )
