"""Tests for CommitExtractor against real repositories built in tmp_path.

Every commit is created with explicit GIT_AUTHOR_DATE / GIT_COMMITTER_DATE
so window filtering is deterministic.
"""

from datetime import UTC, datetime, timedelta, timezone

import pytest

from devrecap.core.exceptions import RepositoryReadError
from devrecap.services.git.extractor import (
    CommitExtractor,
    normalize_numstat_path,
    parse_numstat,
    parse_timestamp,
    split_message,
)
from devrecap.services.git.types import FilterCriteria
from tests.helpers.git_repo import requires_git

ALICE = ("Alice", "alice@example.com")
BOB = ("Bob", "bob@example.com")

MARCH = FilterCriteria.between(
    datetime(2024, 3, 1, tzinfo=UTC),
    datetime(2024, 4, 1, tzinfo=UTC),
)


def _march(authors=None, match_committer=False) -> FilterCriteria:
    return FilterCriteria.between(
        MARCH.since, MARCH.until, authors=authors, match_committer=match_committer
    )


# ─────────────────────────────────────────────────────────────────────────────
# Pure parsing helpers
# ─────────────────────────────────────────────────────────────────────────────


class TestParsingHelpers:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("src/app.py", "src/app.py"),
            ("old.py => new.py", "new.py"),
            ("src/{old => new}/mod.py", "src/new/mod.py"),
            ("src/{ => sub}/mod.py", "src/sub/mod.py"),
            ("src/{sub => }/mod.py", "src/mod.py"),
        ],
    )
    def test_normalize_numstat_path(self, raw, expected):
        assert normalize_numstat_path(raw) == expected

    def test_parse_numstat_counts_binary_as_file_without_lines(self):
        files, insertions, deletions = parse_numstat(
            ["3\t1\tsrc/app.py", "-\t-\tassets/logo.png", "2\t0\tsrc/app.py"]
        )
        assert files == ("src/app.py", "assets/logo.png")
        assert insertions == 5
        assert deletions == 1

    def test_split_message(self):
        assert split_message("Subject\n\nBody line 1\nBody line 2\n") == (
            "Subject",
            "Body line 1\nBody line 2",
        )
        assert split_message("Only subject\n") == ("Only subject", None)

    def test_parse_timestamp_keeps_offset(self):
        ts = parse_timestamp("2024-03-05T10:00:00+02:00")
        assert ts.utcoffset() == timedelta(hours=2)
        assert parse_timestamp("2024-03-05T10:00:00Z").tzinfo is not None


# ─────────────────────────────────────────────────────────────────────────────
# Extraction from real repositories
# ─────────────────────────────────────────────────────────────────────────────


@requires_git
class TestCommitExtractor:
    """Tests for CommitExtractor.extract()."""

    def test_author_filter_selects_three_of_five(self, repo_builder):
        repo = repo_builder("team")
        repo.commit("A1", {"a1.txt": "1\n"}, date="2024-03-01T09:00:00+00:00", author=ALICE)
        repo.commit("B1", {"b1.txt": "1\n"}, date="2024-03-02T09:00:00+00:00", author=BOB)
        repo.commit("A2", {"a2.txt": "1\n"}, date="2024-03-03T09:00:00+00:00", author=ALICE)
        repo.commit("B2", {"b2.txt": "1\n"}, date="2024-03-04T09:00:00+00:00", author=BOB)
        repo.commit("A3", {"a3.txt": "1\n"}, date="2024-03-05T09:00:00+00:00", author=ALICE)

        commits = CommitExtractor().extract(repo.path, _march(["Alice@Example.COM"]))

        assert [c.subject for c in commits] == ["A3", "A2", "A1"]
        assert all(c.author.email == "alice@example.com" for c in commits)
        assert all(c.committer is not None for c in commits)

    def test_empty_author_set_matches_everyone(self, repo_builder):
        repo = repo_builder()
        repo.commit("A1", date="2024-03-01T09:00:00+00:00", author=ALICE)
        repo.commit("B1", date="2024-03-02T09:00:00+00:00", author=BOB)

        assert len(CommitExtractor().extract(repo.path, _march())) == 2

    def test_committer_match_is_opt_in(self, repo_builder):
        repo = repo_builder()
        repo.commit("Rebased", date="2024-03-02T09:00:00+00:00", author=BOB, committer=ALICE)

        extractor = CommitExtractor()
        assert extractor.extract(repo.path, _march(["alice@example.com"])) == []
        matched = extractor.extract(repo.path, _march(["alice@example.com"], match_committer=True))
        assert [c.subject for c in matched] == ["Rebased"]

    def test_window_is_half_open(self, repo_builder):
        repo = repo_builder()
        repo.commit("before", date="2024-02-29T23:59:59+00:00")
        repo.commit("at-since", date="2024-03-01T00:00:00+00:00")
        repo.commit("at-until", date="2024-04-01T00:00:00+00:00")

        commits = CommitExtractor().extract(repo.path, MARCH)

        assert [c.subject for c in commits] == ["at-since"]

    def test_window_compares_instants_across_offsets(self, repo_builder):
        repo = repo_builder()
        # 2024-03-01T01:00+02:00 is 2024-02-29T23:00Z, outside March in UTC
        repo.commit("early-east", date="2024-03-01T01:00:00+02:00")
        repo.commit("inside", date="2024-03-10T12:00:00-05:00")

        commits = CommitExtractor().extract(repo.path, MARCH)

        assert [c.subject for c in commits] == ["inside"]
        assert commits[0].timestamp.utcoffset() == timedelta(hours=-5)

    def test_inverted_window_returns_empty(self, repo_builder):
        repo = repo_builder()
        repo.commit("A1", date="2024-03-05T09:00:00+00:00")
        inverted = FilterCriteria.between(MARCH.until, MARCH.since)

        assert CommitExtractor().extract(repo.path, inverted) == []

    def test_diff_stats_and_binary_files(self, repo_builder):
        repo = repo_builder()
        repo.commit("base", {"src/app.py": "a\nb\n"}, date="2024-03-01T09:00:00+00:00")
        repo.commit(
            "update",
            {"src/app.py": "a\nB\nc\n", "assets/logo.png": b"\x89PNG\x00\x01\x02\x03"},
            date="2024-03-02T09:00:00+00:00",
        )

        latest = CommitExtractor().extract(repo.path, MARCH)[0]

        assert latest.subject == "update"
        assert set(latest.files_changed) == {"src/app.py", "assets/logo.png"}
        assert latest.insertions == 2
        assert latest.deletions == 1

    def test_merge_commit_is_diffed_against_first_parent(self, repo_builder):
        repo = repo_builder()
        repo.commit("base", {"base.txt": "base\n"}, date="2024-03-01T09:00:00+00:00")
        main_branch = repo.current_branch()
        repo.git("checkout", "-q", "-b", "feature")
        repo.commit("feature work", {"feature.txt": "one\ntwo\n"}, date="2024-03-02T09:00:00+00:00")
        repo.git("checkout", "-q", main_branch)
        repo.commit("main work", {"main.txt": "main\n"}, date="2024-03-03T09:00:00+00:00")
        repo.merge("feature", "Merge pull request #7 from dev/feature", date="2024-03-04T09:00:00+00:00")

        commits = CommitExtractor().extract(repo.path, MARCH)
        merge = commits[0]

        assert merge.subject == "Merge pull request #7 from dev/feature"
        assert merge.files_changed == ("feature.txt",)
        assert merge.insertions == 2
        assert merge.references == (7,)
        assert len(commits) == 4

    def test_message_body_and_references(self, repo_builder):
        repo = repo_builder()
        repo.commit(
            "Fix login redirect (#42)\n\nFollow-up to GH-43.",
            date="2024-03-02T09:00:00+00:00",
        )

        commit = CommitExtractor().extract(repo.path, MARCH)[0]

        assert commit.subject == "Fix login redirect (#42)"
        assert commit.body == "Follow-up to GH-43."
        assert commit.references == (42, 43)
        assert commit.short_hash == commit.hash[:7]

    def test_repository_without_commits(self, repo_builder):
        repo = repo_builder("fresh")
        assert CommitExtractor().extract(repo.path, MARCH) == []

    def test_missing_directory_raises(self, tmp_path):
        with pytest.raises(RepositoryReadError):
            CommitExtractor().extract(tmp_path / "gone", MARCH)

    def test_broken_repository_raises(self, tmp_path):
        broken = tmp_path / "broken"
        broken.mkdir()
        (broken / ".git").write_text("gitdir: /nonexistent/devrecap/.git\n")

        with pytest.raises(RepositoryReadError) as exc_info:
            CommitExtractor().extract(broken, MARCH)
        assert exc_info.value.path == broken

    def test_user_email_prefers_repository_config(self, repo_builder, tmp_path):
        (tmp_path / "gitconfig").write_text("[user]\n\temail = global@example.com\n")
        repo = repo_builder()
        extractor = CommitExtractor()

        assert extractor.user_email(repo.path) == "dev@example.com"
        assert extractor.user_email(tmp_path) == "global@example.com"

    def test_remote_url(self, repo_builder):
        repo = repo_builder()
        extractor = CommitExtractor()
        assert extractor.remote_url(repo.path) is None

        repo.set_remote("git@github.com:acme/widgets.git")
        assert extractor.remote_url(repo.path) == "git@github.com:acme/widgets.git"


class TestFilterCriteria:
    def test_naive_datetimes_are_utc(self):
        criteria = FilterCriteria(since=datetime(2024, 3, 1), until=datetime(2024, 3, 2))
        assert criteria.since.tzinfo == UTC

    def test_days_back(self):
        now = datetime(2024, 3, 15, tzinfo=UTC)
        criteria = FilterCriteria.days_back(14, authors=["Dev@Example.com "], now=now)
        assert criteria.since == datetime(2024, 3, 1, tzinfo=UTC)
        assert criteria.author_emails == frozenset({"dev@example.com"})
        assert not criteria.is_team

    def test_normalized_is_offset_independent(self):
        east = timezone(timedelta(hours=2))
        a = FilterCriteria(since=datetime(2024, 3, 1, 2, tzinfo=east), until=datetime(2024, 3, 2, tzinfo=UTC))
        b = FilterCriteria(since=datetime(2024, 3, 1, 0, tzinfo=UTC), until=datetime(2024, 3, 2, tzinfo=UTC))
        assert a.normalized() == b.normalized()
