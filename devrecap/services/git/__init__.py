"""
Local git service package.

Usage: `from devrecap.services.git import CommitExtractor, RepositoryScanner`

Module structure:
- scanner.py: Repository discovery under a root directory
- extractor.py: Filtered commit extraction with first-parent diff stats
- references.py: PR/issue reference detection and remote URL parsing
- stats.py: Pure aggregation over commit sets
- runner.py: git executable wrapper
- types.py: Data types
- constants.py: Log format and limits
"""

from devrecap.services.git.extractor import CommitExtractor
from devrecap.services.git.references import extract_references, link_references, parse_remote_url
from devrecap.services.git.runner import GitResult, GitRunner
from devrecap.services.git.scanner import RepositoryScanner, is_git_root, repo_name
from devrecap.services.git.stats import aggregate, aggregate_by_author
from devrecap.services.git.types import (
    Author,
    CommitRecord,
    FilterCriteria,
    GitHubRepoInfo,
    Repository,
    RepoStats,
    ScanResult,
)

__all__ = [
    # Services
    "CommitExtractor",
    "RepositoryScanner",
    "GitRunner",
    "GitResult",
    # Functions
    "aggregate",
    "aggregate_by_author",
    "extract_references",
    "link_references",
    "parse_remote_url",
    "is_git_root",
    "repo_name",
    # Types
    "Author",
    "CommitRecord",
    "FilterCriteria",
    "GitHubRepoInfo",
    "Repository",
    "RepoStats",
    "ScanResult",
]
