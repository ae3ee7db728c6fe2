"""Unit tests for PR/issue reference detection and remote URL parsing."""

import pytest

from devrecap.services.git.references import extract_references, link_references, parse_remote_url
from devrecap.services.git.types import GitHubRepoInfo


class TestExtractReferences:
    """Tests for extract_references()."""

    def test_union_across_subject_and_body_is_deduplicated(self):
        refs = extract_references("Fix login redirect (#42)", "Follow-up to GH-43.\nAlso PR#42.")
        assert refs == (42, 43)

    def test_merge_pull_request_subject(self):
        assert extract_references("Merge pull request #128 from dev/feature") == (128,)

    def test_no_references(self):
        assert extract_references("Refactor session store", None) == ()

    def test_result_is_sorted(self):
        assert extract_references("Closes #9, #3 and GH-5") == (3, 5, 9)


class TestParseRemoteUrl:
    """Tests for parse_remote_url()."""

    @pytest.mark.parametrize(
        "url",
        [
            "https://github.com/acme/widgets.git",
            "https://github.com/acme/widgets",
            "git@github.com:acme/widgets.git",
            "ssh://git@github.com/acme/widgets.git",
            "git://github.com/acme/widgets",
        ],
    )
    def test_recognized_forms(self, url):
        info = parse_remote_url(url)
        assert info == GitHubRepoInfo(owner="acme", name="widgets")

    def test_unknown_host_returns_none(self):
        assert parse_remote_url("https://gitlab.com/acme/widgets.git") is None

    def test_extra_host_is_accepted_when_configured(self):
        info = parse_remote_url("git@git.acme.internal:team/api.git", hosts=["git.acme.internal"])
        assert info is not None
        assert info.full_name == "team/api"
        assert info.pr_url(7) == "https://git.acme.internal/team/api/pull/7"

    @pytest.mark.parametrize("url", [None, "", "not a url", "https://github.com/only-owner"])
    def test_malformed_returns_none(self, url):
        assert parse_remote_url(url) is None


class TestLinkReferences:
    def test_links_when_remote_known(self):
        info = GitHubRepoInfo(owner="acme", name="widgets")
        assert link_references((42, 43), info) == [
            (42, "https://github.com/acme/widgets/pull/42"),
            (43, "https://github.com/acme/widgets/pull/43"),
        ]

    def test_numbers_kept_without_remote(self):
        assert link_references((42,), None) == [(42, None)]
