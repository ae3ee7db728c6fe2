"""Unit tests for commit statistics aggregation."""

from datetime import UTC, datetime, timedelta, timezone

from devrecap.services.git.stats import (
    aggregate,
    aggregate_by_author,
    average_commits_per_day,
    most_active_day,
    most_changed_files,
)
from devrecap.services.git.types import Author, RepoStats
from tests.helpers.factories import make_commit


def _sample_commits():
    return [
        make_commit(
            timestamp=datetime(2024, 3, 1, 9, tzinfo=UTC),
            files_changed=("a.py", "b.py"),
            insertions=10,
            deletions=1,
            references=(42,),
        ),
        make_commit(
            timestamp=datetime(2024, 3, 1, 17, tzinfo=UTC),
            files_changed=("a.py",),
            insertions=5,
            deletions=5,
            references=(42, 43),
        ),
        make_commit(
            timestamp=datetime(2024, 3, 3, 11, tzinfo=UTC),
            files_changed=("logo.png",),
            insertions=0,
            deletions=0,
            author=Author(name="Bob", email="Bob@Example.com"),
        ),
    ]


class TestAggregate:
    """Tests for aggregate()."""

    def test_counts(self):
        stats = aggregate(_sample_commits())

        assert stats.total_commits == 3
        assert stats.total_files_changed == 3  # Distinct paths
        assert stats.total_insertions == 15
        assert stats.total_deletions == 6
        assert stats.net_lines_changed == 9
        assert stats.referenced_commits == 2
        assert stats.pr_count == 2
        assert stats.commit_frequency == {"2024-03-01": 2, "2024-03-03": 1}

    def test_order_independent(self):
        commits = _sample_commits()
        assert aggregate(commits) == aggregate(list(reversed(commits)))

    def test_empty(self):
        assert aggregate([]) == RepoStats()

    def test_frequency_uses_commit_local_date(self):
        plus_nine = timezone(timedelta(hours=9))
        commit = make_commit(timestamp=datetime(2024, 3, 2, 1, 0, tzinfo=plus_nine))
        assert aggregate([commit]).commit_frequency == {"2024-03-02": 1}


class TestHelpers:
    def test_aggregate_by_author_groups_by_lowercased_email(self):
        by_author = aggregate_by_author(_sample_commits())

        assert set(by_author) == {"dev@example.com", "bob@example.com"}
        assert by_author["dev@example.com"].total_commits == 2

    def test_most_changed_files(self):
        assert most_changed_files(_sample_commits(), limit=2) == [("a.py", 2), ("b.py", 1)]

    def test_most_active_day_prefers_earliest_on_tie(self):
        stats = RepoStats(commit_frequency={"2024-03-02": 2, "2024-03-01": 2})
        assert most_active_day(stats) == ("2024-03-01", 2)
        assert most_active_day(RepoStats()) is None

    def test_average_commits_per_day(self):
        assert average_commits_per_day(aggregate(_sample_commits())) == 1.5
        assert average_commits_per_day(RepoStats()) == 0.0
