"""Exceptions for dev-recap.

Scan-level problems are not exceptions: they are collected as warnings on the
ScanResult. Everything else derives from DevRecapError so the CLI can report
it uniformly.
"""

from pathlib import Path


class DevRecapError(Exception):
    """Base error for dev-recap."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConfigurationError(DevRecapError):
    """Invalid or missing configuration. Aborts the whole run."""


class RepositoryError(DevRecapError):
    """A problem confined to a single repository; the batch continues."""

    def __init__(self, path: Path, message: str):
        self.path = path
        super().__init__(message)


class RepositoryReadError(RepositoryError):
    """History could not be read (missing, corrupt, or git failed)."""

    def __init__(self, path: Path, reason: str):
        self.reason = reason
        super().__init__(path, f"Cannot read repository at {path}: {reason}")


class NoCommitsFound(RepositoryError):
    """No commits matched the filter in the time window."""

    def __init__(self, path: Path, author: str):
        self.author = author
        super().__init__(path, f"No commits found for author {author} in timespan")


class SummarizerError(DevRecapError):
    """The summarization call failed for one repository after all attempts."""

    def __init__(self, message: str, kind: str | None = None, attempts: int = 0):
        self.kind = kind
        self.attempts = attempts
        super().__init__(message)


class FatalSummarizerError(SummarizerError):
    """Authentication or malformed-request failure. Not retried; aborts the run."""


class CacheError(DevRecapError):
    """The cache store could not be read or written."""


class RunCancelled(DevRecapError):
    """The run was cancelled; no further summarization calls are started."""
