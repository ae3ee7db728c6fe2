"""
Cache key derivation.

A key identifies the exact input a summary was produced from: the
repository location, the set of selected commit hashes, and the filter
that selected them. Any change to one of those yields a different key;
ordering of the hashes does not.
"""

import hashlib
import json
from collections.abc import Iterable
from pathlib import Path

from devrecap.services.git.types import FilterCriteria

KEY_PREFIX = "summary_"


def canonical_repo_path(path: Path | str) -> str:
    """Absolute, symlink-resolved path so the same repository always hashes alike."""
    return str(Path(path).expanduser().resolve())


def compute_cache_key(
    repo_path: Path | str,
    commit_hashes: Iterable[str],
    criteria: FilterCriteria,
) -> str:
    """
    Deterministic key for one repository's summary input.

    The components are serialized as canonical JSON before hashing, so no
    concatenation of different inputs can produce the same byte string.

    Returns:
        "summary_" followed by a full SHA-256 hex digest
    """
    data = {
        "repo": canonical_repo_path(repo_path),
        "commits": sorted(set(commit_hashes)),
        "filter": criteria.normalized(),
    }
    json_str = json.dumps(data, sort_keys=True, separators=(",", ":"))
    return KEY_PREFIX + hashlib.sha256(json_str.encode("utf-8")).hexdigest()
