"""
Repository discovery.

Walks a directory tree and returns the directories that are git roots.
Unreadable directories and symlink cycles are recorded as warnings and
skipped; a scan never aborts because of one bad subtree.
"""

import fnmatch
import logging
import os
from pathlib import Path

from devrecap.services.git.constants import GIT_METADATA_NAME, HARD_MAX_DEPTH
from devrecap.services.git.types import ScanResult

logger = logging.getLogger(__name__)


def is_git_root(path: Path) -> bool:
    """
    Check whether path holds git metadata.

    A `.git` directory must look like a repository (contain HEAD); a `.git`
    file is a worktree or submodule pointer and must start with `gitdir:`.
    """
    marker = path / GIT_METADATA_NAME
    try:
        if marker.is_dir():
            return (marker / "HEAD").exists()
        if marker.is_file():
            with open(marker, encoding="utf-8", errors="replace") as f:
                return f.read(64).startswith("gitdir:")
    except OSError:
        return False
    return False


def repo_name(path: Path) -> str:
    """Repository display name (the directory name)."""
    return path.name or "unknown"


class RepositoryScanner:
    """Find git repositories below a root directory."""

    def __init__(self, exclude_patterns: list[str] | None = None, max_depth: int | None = None):
        """
        Args:
            exclude_patterns: Directory names or glob patterns matched against
                single path segments (e.g. "node_modules", "*.egg-info").
            max_depth: How many levels below the root to examine (root is 0).
                None means unbounded, capped at HARD_MAX_DEPTH.
        """
        self.exclude_patterns = list(exclude_patterns or [])
        self.max_depth = HARD_MAX_DEPTH if max_depth is None else min(max_depth, HARD_MAX_DEPTH)

    def should_exclude(self, name: str) -> bool:
        """True if a directory name matches an exclude pattern exactly or by glob."""
        return any(name == pattern or fnmatch.fnmatch(name, pattern) for pattern in self.exclude_patterns)

    def scan(self, root: Path) -> ScanResult:
        """
        Scan root for repositories.

        Once a directory is recognized as a repository its subtree is not
        descended, so nested checkouts are not reported twice.

        Returns:
            ScanResult with repositories sorted by path and any warnings
        """
        root = Path(root).expanduser().absolute()
        result = ScanResult(root=root)

        if not root.is_dir():
            result.warnings.append(f"Scan root is not a directory: {root}")
            return result

        visited: set[Path] = set()
        stack: list[tuple[Path, int]] = [(root, 0)]

        while stack:
            path, depth = stack.pop()

            try:
                resolved = path.resolve()
            except OSError as e:
                result.warnings.append(f"Cannot resolve {path}: {e}")
                continue

            if resolved in visited:
                result.warnings.append(f"Skipping already visited directory (symlink cycle?): {path}")
                continue
            visited.add(resolved)

            if is_git_root(path):
                result.repositories.append(path)
                continue

            if depth >= self.max_depth:
                continue

            try:
                with os.scandir(path) as entries:
                    children = sorted(
                        (entry for entry in entries if self._is_candidate(entry)),
                        key=lambda entry: entry.name,
                        reverse=True,
                    )
            except PermissionError:
                logger.warning(f"Permission denied, skipping: {path}")
                result.warnings.append(f"Permission denied: {path}")
                continue
            except OSError as e:
                logger.warning(f"Cannot read directory {path}: {e}")
                result.warnings.append(f"Cannot read directory {path}: {e}")
                continue

            for entry in children:
                stack.append((Path(entry.path), depth + 1))

        result.repositories.sort()
        logger.debug(f"Scanned {root}: {len(result.repositories)} repositories, {len(result.warnings)} warnings")
        return result

    def _is_candidate(self, entry: os.DirEntry[str]) -> bool:
        name = entry.name
        # Hidden directories (including .git itself) are never descended
        if name.startswith("."):
            return False
        if self.should_exclude(name):
            return False
        try:
            return entry.is_dir(follow_symlinks=True)
        except OSError:
            return False
