"""Input/output types for recap summarization.

The summarizer never raises for API problems; it returns a SummaryResult
whose failure kind says whether another attempt can help.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from devrecap.services.git.types import CommitRecord, RepoStats


@dataclass
class SummaryPayload:
    """Generated recap for one repository. This is what the cache stores."""

    repository: str
    narrative: str
    achievements: list[str] = field(default_factory=list)
    presentation_tips: list[str] = field(default_factory=list)
    generated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        return {
            "repository": self.repository,
            "narrative": self.narrative,
            "achievements": list(self.achievements),
            "presentation_tips": list(self.presentation_tips),
            "generated_at": self.generated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SummaryPayload":
        generated_at = data.get("generated_at")
        return cls(
            repository=data["repository"],
            narrative=data.get("narrative", ""),
            achievements=list(data.get("achievements", [])),
            presentation_tips=list(data.get("presentation_tips", [])),
            generated_at=(
                datetime.fromisoformat(generated_at) if generated_at else datetime.now(UTC)
            ),
        )


@dataclass
class SummaryRequest:
    """Everything the model sees about one repository's activity."""

    repository: str
    since: datetime
    until: datetime
    authors: list[str]  # Empty means any author
    commits: list[CommitRecord]  # Newest first
    stats: RepoStats
    remote_url: str | None = None
    pr_links: dict[int, str] = field(default_factory=dict)  # Reference -> URL when known
    author_stats: dict[str, RepoStats] = field(default_factory=dict)  # Team mode only


class FailureKind(str, Enum):
    """Why a summarization attempt failed."""

    AUTH = "auth"
    BAD_REQUEST = "bad_request"
    RATE_LIMIT = "rate_limit"
    TIMEOUT = "timeout"
    NETWORK = "network"
    SERVER = "server"
    MALFORMED_RESPONSE = "malformed_response"

    @property
    def retryable(self) -> bool:
        return self in RETRYABLE_KINDS

    @property
    def fatal(self) -> bool:
        """Credentials or request shape are wrong; no other repository will fare better."""
        return self in (FailureKind.AUTH, FailureKind.BAD_REQUEST)


RETRYABLE_KINDS = frozenset(
    {
        FailureKind.RATE_LIMIT,
        FailureKind.TIMEOUT,
        FailureKind.NETWORK,
        FailureKind.SERVER,
        FailureKind.MALFORMED_RESPONSE,
    }
)


@dataclass
class SummaryResult:
    """Outcome of one summarization attempt: a payload or a typed failure."""

    payload: SummaryPayload | None = None
    failure: FailureKind | None = None
    message: str = ""

    @classmethod
    def ok(cls, payload: SummaryPayload) -> "SummaryResult":
        return cls(payload=payload)

    @classmethod
    def failed(cls, kind: FailureKind, message: str) -> "SummaryResult":
        return cls(failure=kind, message=message)

    @property
    def succeeded(self) -> bool:
        return self.payload is not None

    @property
    def retryable(self) -> bool:
        return self.failure is not None and self.failure.retryable
