"""Tests for repository URL normalisation and parsing."""

from __future__ import annotations

import pytest

from lockscope.core.repo_url import normalize_repo_url, parse_repo_url, repo_host


class TestNormalizeRepoUrl:
    @pytest.mark.parametrize(
        "raw",
        [
            "git@github.com:owner/repo.git",
            "git+https://github.com/owner/repo.git",
            "git://github.com/owner/repo.git",
            "git+ssh://git@github.com/owner/repo.git",
            "ssh://git@github.com:22/owner/repo.git",
            "https://github.com/owner/repo",
            "https://github.com/owner/repo/",
        ],
    )
    def test_github_forms(self, raw):
        assert normalize_repo_url(raw) == "https://github.com/owner/repo"

    def test_gitlab_subgroup_kept(self):
        assert (
            normalize_repo_url("git+https://gitlab.com/group/sub/project.git")
            == "https://gitlab.com/group/sub/project"
        )

    def test_empty_and_garbage(self):
        assert normalize_repo_url(None) is None
        assert normalize_repo_url("") is None
        assert normalize_repo_url("not a url") is None

    def test_non_http_scheme_rejected(self):
        assert normalize_repo_url("svn://example.com/repo") is None


class TestRepoHost:
    def test_strips_www(self):
        assert repo_host("https://www.github.com/a/b") == "github.com"

    def test_lowercases(self):
        assert repo_host("https://GitLab.com/a/b") == "gitlab.com"


class TestParseRepoUrl:
    def test_owner_repo(self):
        assert parse_repo_url("https://github.com/owner/repo") == ("owner", "repo")

    def test_extra_path_ignored(self):
        assert parse_repo_url("https://github.com/owner/repo/tree/main") == ("owner", "repo")

    def test_dot_git_stripped(self):
        assert parse_repo_url("https://bitbucket.org/team/thing.git") == ("team", "thing")

    def test_too_short_raises(self):
        with pytest.raises(ValueError):
            parse_repo_url("https://github.com/owner")
