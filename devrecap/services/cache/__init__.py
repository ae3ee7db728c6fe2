"""
Summary cache package.

Usage: `from devrecap.services.cache import SqliteCacheStore, compute_cache_key`

Module structure:
- store.py: CacheStore protocol, CacheStats, in-memory store
- sqlite_store.py: Persistent store (SQLite via aiosqlite)
- fingerprint.py: Cache key derivation
"""

from devrecap.services.cache.fingerprint import compute_cache_key
from devrecap.services.cache.sqlite_store import SqliteCacheStore
from devrecap.services.cache.store import CacheStats, CacheStore, MemoryCacheStore

__all__ = [
    "CacheStats",
    "CacheStore",
    "MemoryCacheStore",
    "SqliteCacheStore",
    "compute_cache_key",
]
