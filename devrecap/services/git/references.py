"""
Pull request / issue reference detection and remote URL parsing.

Reference numbers are always kept. Links are only produced when the
repository's remote resolves to an owner/name pair on a recognized host;
an unparseable remote silently leaves the numbers unlinked.
"""

import re

from devrecap.services.git.types import GitHubRepoInfo

# Order does not matter: all matches are unioned
REFERENCE_PATTERNS = [
    re.compile(r"Merge pull request #(\d+)"),
    re.compile(r"PR#(\d+)"),
    re.compile(r"GH-(\d+)"),
    re.compile(r"#(\d+)"),
]

DEFAULT_HOSTS = ("github.com",)

# owner/name after the host; name may end in .git and/or a trailing slash
_PATH_PART = r"(?P<owner>[A-Za-z0-9_.-]+)/(?P<name>[A-Za-z0-9_.-]+?)(?:\.git)?/?$"

_URL_PATTERNS = [
    # https://host/owner/name(.git), http://, ssh://git@host/owner/name, git://host/owner/name
    re.compile(r"^(?:https?|ssh|git)://(?:[^@/]+@)?(?P<host>[^/:]+)(?::\d+)?/" + _PATH_PART),
    # scp-like: git@host:owner/name(.git)
    re.compile(r"^[^@/]+@(?P<host>[^:/]+):" + _PATH_PART),
]


def extract_references(subject: str, body: str | None = None) -> tuple[int, ...]:
    """
    Extract PR/issue numbers from commit text.

    Matches `#123`, `GH-123`, `PR#123` and `Merge pull request #123`
    across subject and body.

    Returns:
        Deduplicated reference numbers in ascending order
    """
    text = subject if not body else f"{subject}\n{body}"
    numbers: set[int] = set()
    for pattern in REFERENCE_PATTERNS:
        for match in pattern.finditer(text):
            numbers.add(int(match.group(1)))
    return tuple(sorted(numbers))


def parse_remote_url(url: str | None, hosts: list[str] | tuple[str, ...] = DEFAULT_HOSTS) -> GitHubRepoInfo | None:
    """
    Parse owner/name from a remote URL.

    Handles:
    - https://github.com/owner/repo(.git)
    - git@github.com:owner/repo(.git)
    - ssh://git@github.com/owner/repo(.git)
    - git://github.com/owner/repo(.git)

    Returns None for unrecognized hosts and malformed URLs.
    """
    if not url:
        return None

    url = url.strip()
    allowed = {h.lower() for h in hosts}

    for pattern in _URL_PATTERNS:
        match = pattern.match(url)
        if not match:
            continue
        host = match.group("host").lower()
        if host not in allowed:
            return None
        owner = match.group("owner")
        name = match.group("name")
        if not owner or not name or name in (".", ".."):
            return None
        return GitHubRepoInfo(owner=owner, name=name, host=host)

    return None


def link_references(
    references: tuple[int, ...] | list[int],
    github_info: GitHubRepoInfo | None,
) -> list[tuple[int, str | None]]:
    """Pair each reference number with its PR URL, or None when the remote is unknown."""
    return [(number, github_info.pr_url(number) if github_info else None) for number in references]
