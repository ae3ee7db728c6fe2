"""Root conftest: shared fixtures for dev-recap tests.

Provides:
- Isolation from the developer's real config file, cache and API keys
- Fixed-date git repository builder (tests/helpers/git_repo.py)
- Settings and fake-clock fixtures
"""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path

# Must be set before devrecap.config builds its module-level settings
os.environ["DEVRECAP_CONFIG_FILE"] = str(Path(tempfile.gettempdir()) / "devrecap-tests-no-such-config.toml")

import pytest  # noqa: E402

from devrecap.config import Settings  # noqa: E402
from tests.helpers.git_repo import GitRepoBuilder  # noqa: E402

_KEY_VARS = (
    "ANTHROPIC_API_KEY",
    "ANTHROPIC_AUTH_TOKEN",
    "CLAUDE_API_KEY",
    "DEVRECAP_ANTHROPIC_API_KEY",
)


# ─────────────────────────────────────────────────────────────────────────────
# Environment isolation
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Never read real credentials or write to the real cache directory."""
    for var in _KEY_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("DEVRECAP_CACHE_DIR", str(tmp_path / "cache"))
    # The developer's git identity must not leak in as the default author
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(tmp_path / "gitconfig"))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")


# ─────────────────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────────────────


class FakeClock:
    """Manually advanced time source for cache TTL tests."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    return Settings(
        anthropic_api_key="sk-ant-test-key-0000",
        cache_dir=tmp_path / "cache",
        cache_ttl_hours=24,
        max_concurrency=2,
        summary_max_attempts=3,
    )


@pytest.fixture
def repo_builder(tmp_path: Path):
    """Factory: repo_builder("name") -> GitRepoBuilder under tmp_path/work."""
    if shutil.which("git") is None:
        pytest.skip("git executable not available")

    def _make(name: str = "project", parent: Path | None = None) -> GitRepoBuilder:
        return GitRepoBuilder.init((parent or tmp_path / "work") / name)

    return _make
