"""Unit tests for cache key derivation."""

from datetime import UTC, datetime

from devrecap.services.cache.fingerprint import KEY_PREFIX, compute_cache_key
from devrecap.services.git.types import FilterCriteria

CRITERIA = FilterCriteria.between(
    datetime(2024, 3, 1, tzinfo=UTC),
    datetime(2024, 3, 15, tzinfo=UTC),
    authors=["dev@example.com"],
)


class TestComputeCacheKey:
    """Tests for compute_cache_key()."""

    def test_deterministic_and_order_independent(self, tmp_path):
        a = compute_cache_key(tmp_path, ["abc", "def"], CRITERIA)
        b = compute_cache_key(tmp_path, ["def", "abc"], CRITERIA)

        assert a == b
        assert a.startswith(KEY_PREFIX)
        assert len(a) == len(KEY_PREFIX) + 64

    def test_changes_with_commit_set(self, tmp_path):
        assert compute_cache_key(tmp_path, ["abc"], CRITERIA) != compute_cache_key(
            tmp_path, ["abc", "def"], CRITERIA
        )

    def test_changes_with_path(self, tmp_path):
        assert compute_cache_key(tmp_path / "a", ["abc"], CRITERIA) != compute_cache_key(
            tmp_path / "b", ["abc"], CRITERIA
        )

    def test_changes_with_filter(self, tmp_path):
        other_window = FilterCriteria.between(
            CRITERIA.since, datetime(2024, 3, 16, tzinfo=UTC), authors=["dev@example.com"]
        )
        other_author = FilterCriteria.between(CRITERIA.since, CRITERIA.until, authors=["bob@example.com"])

        base = compute_cache_key(tmp_path, ["abc"], CRITERIA)
        assert base != compute_cache_key(tmp_path, ["abc"], other_window)
        assert base != compute_cache_key(tmp_path, ["abc"], other_author)

    def test_no_concatenation_collisions(self, tmp_path):
        assert compute_cache_key(tmp_path / "ab", ["c"], CRITERIA) != compute_cache_key(
            tmp_path / "a", ["bc"], CRITERIA
        )
        assert compute_cache_key(tmp_path, ["ab", "c"], CRITERIA) != compute_cache_key(
            tmp_path, ["a", "bc"], CRITERIA
        )

    def test_equivalent_paths_share_a_key(self, tmp_path):
        (tmp_path / "repo").mkdir()
        direct = compute_cache_key(tmp_path / "repo", ["abc"], CRITERIA)
        dotted = compute_cache_key(tmp_path / "repo" / ".." / "repo", ["abc"], CRITERIA)
        assert direct == dotted
