"""Persisted summary cache model."""

from sqlalchemy import Index, Text
from sqlmodel import Field, SQLModel


class SummaryCacheEntry(SQLModel, table=True):
    """
    One cached recap, keyed by the content fingerprint of its input.

    Expiry is not stored as a deadline: created_at + ttl_seconds is compared
    with the store's clock at lookup time, so a changed TTL setting only
    affects entries written afterwards.
    """

    __tablename__ = "summary_cache"
    __table_args__ = (Index("ix_summary_cache_created_at", "created_at"),)

    key: str = Field(primary_key=True, max_length=128)
    payload: str = Field(  # type: ignore[call-overload]
        sa_type=Text,
        nullable=False,
        description="SummaryPayload serialized as JSON",
    )
    created_at: float = Field(nullable=False, description="Unix timestamp of the write")
    ttl_seconds: float = Field(nullable=False)

    def is_expired(self, now: float) -> bool:
        return now - self.created_at >= self.ttl_seconds
