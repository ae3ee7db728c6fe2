"""
Summary cache stores.

The orchestrator depends on the CacheStore protocol only; which backend is
used (or none) is decided by the caller. Keys are opaque here: stores never
derive them.

An expired entry behaves exactly like a missing one. Expiry is evaluated
against the store's clock when the entry is read, and the read that finds
it expired also evicts it.
"""

import json
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from cachetools import TLRUCache  # type: ignore[import-untyped]

from devrecap.services.summarizer.types import SummaryPayload

logger = logging.getLogger(__name__)

Clock = Callable[[], float]

DEFAULT_MEMORY_MAXSIZE = 10_000


@dataclass
class CacheStats:
    """Entry count and approximate storage footprint in bytes."""

    entry_count: int = 0
    approximate_size: int = 0


@runtime_checkable
class CacheStore(Protocol):
    """Key -> SummaryPayload storage with per-entry time-to-live."""

    async def lookup(self, key: str) -> SummaryPayload | None: ...

    async def put(self, key: str, payload: SummaryPayload, ttl: float) -> None: ...

    async def invalidate_all(self) -> None: ...

    async def stats(self) -> CacheStats: ...

    async def purge_expired(self) -> int: ...


def serialize_payload(payload: SummaryPayload) -> str:
    return json.dumps(payload.to_dict(), sort_keys=True)


def deserialize_payload(raw: str) -> SummaryPayload:
    data: dict[str, Any] = json.loads(raw)
    return SummaryPayload.from_dict(data)


@dataclass(frozen=True)
class _MemoryEntry:
    raw: str
    ttl: float


def _entry_deadline(_key: str, entry: _MemoryEntry, now: float) -> float:
    return now + entry.ttl


class MemoryCacheStore:
    """
    In-process store for a single run (or tests).

    Backed by a TLRUCache so each entry carries its own TTL; the clock is
    injectable. Payloads are held as JSON so a hit never aliases the object
    that was written.
    """

    def __init__(self, clock: Clock = time.time, maxsize: int = DEFAULT_MEMORY_MAXSIZE):
        self._cache: TLRUCache[str, _MemoryEntry] = TLRUCache(
            maxsize=maxsize, ttu=_entry_deadline, timer=clock
        )
        self._lock = threading.Lock()

    async def lookup(self, key: str) -> SummaryPayload | None:
        with self._lock:
            # Drops every expired entry, including this key if it has lapsed
            self._cache.expire()
            entry = self._cache.get(key)
        if entry is None:
            logger.debug(f"Cache MISS: {key}")
            return None
        logger.debug(f"Cache HIT: {key}")
        return deserialize_payload(entry.raw)

    async def put(self, key: str, payload: SummaryPayload, ttl: float) -> None:
        entry = _MemoryEntry(raw=serialize_payload(payload), ttl=float(ttl))
        with self._lock:
            # A non-positive TTL is never stored; drop any previous value too
            self._cache.pop(key, None)
            self._cache[key] = entry

    async def invalidate_all(self) -> None:
        with self._lock:
            self._cache.clear()
        logger.debug("Cleared in-memory summary cache")

    async def stats(self) -> CacheStats:
        with self._lock:
            self._cache.expire()
            entries = list(self._cache.values())
        return CacheStats(
            entry_count=len(entries),
            approximate_size=sum(len(e.raw.encode("utf-8")) for e in entries),
        )

    async def purge_expired(self) -> int:
        with self._lock:
            before = self._cache.currsize
            self._cache.expire()
            return before - self._cache.currsize
