"""
Persistent summary cache in a local SQLite file.

One row per key in the `summary_cache` table. Writes are upserts
(last write wins). The schema is created on first use.
"""

import asyncio
import logging
import time
from pathlib import Path

from sqlalchemy import delete, func, select
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

from devrecap.core.exceptions import CacheError
from devrecap.models.summary_cache import SummaryCacheEntry
from devrecap.services.cache.store import (
    CacheStats,
    Clock,
    deserialize_payload,
    serialize_payload,
)
from devrecap.services.summarizer.types import SummaryPayload

logger = logging.getLogger(__name__)


class SqliteCacheStore:
    """CacheStore backed by SQLite through async SQLAlchemy and aiosqlite."""

    def __init__(self, db_path: Path, clock: Clock = time.time):
        self.db_path = Path(db_path)
        self.clock = clock
        self._engine: AsyncEngine | None = None
        self._session_maker: sessionmaker | None = None  # type: ignore[type-arg]
        self._schema_ready = False
        self._schema_lock = asyncio.Lock()

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._engine = create_async_engine(
                f"sqlite+aiosqlite:///{self.db_path}",
                echo=False,
                future=True,
            )
            self._session_maker = sessionmaker(  # type: ignore[call-overload]
                self._engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autocommit=False,
                autoflush=False,
            )
        return self._engine

    async def _ensure_schema(self) -> None:
        if self._schema_ready:
            return
        # Concurrent first calls must not race to create the table
        async with self._schema_lock:
            if self._schema_ready:
                return
            async with self.engine.begin() as conn:
                await conn.run_sync(
                    lambda sync_conn: SQLModel.metadata.create_all(
                        sync_conn, tables=[SummaryCacheEntry.__table__]  # type: ignore[attr-defined]
                    )
                )
            self._schema_ready = True

    async def _session(self) -> AsyncSession:
        await self._ensure_schema()
        assert self._session_maker is not None
        session: AsyncSession = self._session_maker()
        return session

    async def lookup(self, key: str) -> SummaryPayload | None:
        try:
            async with await self._session() as db:
                result = await db.execute(
                    select(SummaryCacheEntry).where(SummaryCacheEntry.key == key)  # type: ignore[arg-type]
                )
                row = result.scalars().first()
                if row is None:
                    logger.debug(f"Cache MISS: {key}")
                    return None

                if row.is_expired(self.clock()):
                    logger.debug(f"Cache EXPIRED: {key}")
                    await db.delete(row)
                    await db.commit()
                    return None

                logger.debug(f"Cache HIT: {key}")
                return deserialize_payload(row.payload)
        except SQLAlchemyError as e:
            raise CacheError(f"Cache lookup failed: {e}") from e

    async def put(self, key: str, payload: SummaryPayload, ttl: float) -> None:
        values = {
            "key": key,
            "payload": serialize_payload(payload),
            "created_at": self.clock(),
            "ttl_seconds": float(ttl),
        }
        stmt = insert(SummaryCacheEntry).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["key"],
            set_={
                "payload": stmt.excluded.payload,
                "created_at": stmt.excluded.created_at,
                "ttl_seconds": stmt.excluded.ttl_seconds,
            },
        )
        try:
            async with await self._session() as db:
                await db.execute(stmt)
                await db.commit()
        except SQLAlchemyError as e:
            raise CacheError(f"Cache write failed: {e}") from e

    async def invalidate_all(self) -> None:
        try:
            async with await self._session() as db:
                await db.execute(delete(SummaryCacheEntry))
                await db.commit()
        except SQLAlchemyError as e:
            raise CacheError(f"Cache clear failed: {e}") from e
        logger.info(f"Cleared summary cache at {self.db_path}")

    async def stats(self) -> CacheStats:
        try:
            async with await self._session() as db:
                result = await db.execute(
                    select(
                        func.count(SummaryCacheEntry.key),  # type: ignore[arg-type]
                        func.coalesce(func.sum(func.length(SummaryCacheEntry.payload)), 0),
                    )
                )
                count, payload_bytes = result.one()
        except SQLAlchemyError as e:
            raise CacheError(f"Cache stats failed: {e}") from e

        size = self.db_path.stat().st_size if self.db_path.exists() else int(payload_bytes)
        return CacheStats(entry_count=int(count), approximate_size=size)

    async def purge_expired(self) -> int:
        now = self.clock()
        try:
            async with await self._session() as db:
                result = await db.execute(
                    delete(SummaryCacheEntry).where(
                        now - SummaryCacheEntry.created_at >= SummaryCacheEntry.ttl_seconds  # type: ignore[operator]
                    )
                )
                await db.commit()
        except SQLAlchemyError as e:
            raise CacheError(f"Cache purge failed: {e}") from e
        removed = int(result.rowcount or 0)
        if removed:
            logger.info(f"Purged {removed} expired cache entries")
        return removed

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_maker = None
            self._schema_ready = False
            self._schema_lock = asyncio.Lock()
