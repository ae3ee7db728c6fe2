"""
Thin wrapper around the git executable.

All repository reads go through GitRunner so tests and callers can swap it,
and so every invocation has the same environment, encoding and timeout.
"""

import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path

from devrecap.services.git.constants import GIT_COMMAND_TIMEOUT

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GitResult:
    """Outcome of one git invocation."""

    code: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.code == 0


class GitRunner:
    """Run git commands inside a repository."""

    def __init__(self, executable: str = "git", timeout: float = GIT_COMMAND_TIMEOUT):
        self.executable = executable
        self.timeout = timeout

    def run(self, repo_path: Path, *args: str, stdin: str | None = None) -> GitResult:
        """
        Run `git <args>` with repo_path as the working directory.

        Never raises for a non-zero exit; callers inspect GitResult.code.
        A missing executable, unreadable cwd or timeout is reported as code -1.
        """
        cmd = [self.executable, *args]
        env = {
            **os.environ,
            # Stable, untranslated output and no pager or credential prompts
            "LC_ALL": "C",
            "GIT_PAGER": "cat",
            "GIT_TERMINAL_PROMPT": "0",
        }
        try:
            proc = subprocess.run(
                cmd,
                cwd=str(repo_path),
                env=env,
                input=stdin.encode("utf-8") if stdin is not None else None,
                capture_output=True,
                check=False,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            logger.warning(f"git {args[0] if args else ''} timed out after {self.timeout}s in {repo_path}")
            return GitResult(-1, "", f"timed out after {self.timeout}s")
        except OSError as e:
            return GitResult(-1, "", str(e))

        # Commit messages are not guaranteed to be valid UTF-8
        stdout = proc.stdout.decode("utf-8", errors="replace")
        stderr = proc.stderr.decode("utf-8", errors="replace").strip()
        return GitResult(proc.returncode, stdout, stderr)

    def is_repository(self, path: Path) -> bool:
        """True if git recognizes path as the top of a work tree or a bare repo."""
        result = self.run(path, "rev-parse", "--is-inside-work-tree", "--is-bare-repository")
        return result.ok and "true" in result.stdout

    def has_head(self, repo_path: Path) -> bool:
        """False for a freshly initialized repository with no commits."""
        return self.run(repo_path, "rev-parse", "--verify", "--quiet", "HEAD").ok

    def config_value(self, repo_path: Path, key: str) -> str | None:
        result = self.run(repo_path, "config", "--get", key)
        value = result.stdout.strip()
        return value if result.ok and value else None
