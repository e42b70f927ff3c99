"""Tests for source-host lookups (GitHub, GitLab, Bitbucket) over a mocked transport."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import httpx
import pytest

from lockscope.engines.enrichment.hosts import (
    BitbucketLookup,
    GitHubApiLookup,
    GitHubRelayLookup,
    GitLabLookup,
    HostDispatcher,
    fetch_github_activity,
)
from lockscope.engines.enrichment.models import HostActivity
from lockscope.exceptions import UpstreamError

# ── helpers ──────────────────────────────────────────────────────────────


def _client(routes: dict[str, httpx.Response], seen: list[httpx.Request] | None = None):
    """AsyncClient answering by ``METHOD path``; anything else is a 404."""

    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        key = f"{request.method} {request.url.host}{request.url.raw_path.decode()}"
        key = key.split("?", 1)[0]
        return routes.get(key, httpx.Response(404))

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


GITHUB_REPO = "GET api.github.com/repos/owner/repo"
GITHUB_COMMITS = "GET api.github.com/repos/owner/repo/commits/trunk"


# ── GitHub ───────────────────────────────────────────────────────────────


class TestGitHub:
    @pytest.mark.anyio()
    async def test_fetch_activity(self):
        seen: list[httpx.Request] = []
        routes = {
            GITHUB_REPO: httpx.Response(
                200, json={"default_branch": "trunk", "stargazers_count": 321, "archived": True}
            ),
            GITHUB_COMMITS: httpx.Response(
                200, json={"commit": {"committer": {"date": "2025-06-01T08:00:00Z"}}}
            ),
        }
        async with _client(routes, seen) as client:
            data = await fetch_github_activity(client, "owner", "repo", token="tok")
        assert data == {
            "lastCommitDate": "2025-06-01T08:00:00Z",
            "starCount": 321,
            "isArchived": True,
        }
        assert seen[0].headers["Authorization"] == "Bearer tok"

    @pytest.mark.anyio()
    async def test_default_branch_falls_back_to_main(self):
        seen: list[httpx.Request] = []
        routes = {GITHUB_REPO: httpx.Response(200, json={})}
        async with _client(routes, seen) as client:
            with pytest.raises(UpstreamError, match="Failed to fetch commits: 404"):
                await fetch_github_activity(client, "owner", "repo")
        assert seen[1].url.path.endswith("/commits/main")
        assert "Authorization" not in seen[0].headers

    @pytest.mark.anyio()
    async def test_repo_failure_carries_status(self):
        routes = {GITHUB_REPO: httpx.Response(403)}
        async with _client(routes) as client:
            with pytest.raises(UpstreamError) as exc_info:
                await fetch_github_activity(client, "owner", "repo")
        assert exc_info.value.status_code == 403
        assert str(exc_info.value) == "Failed to fetch repo info: 403"

    @pytest.mark.anyio()
    async def test_api_lookup_swallows_status_errors(self):
        async with _client({}) as client:
            activity = await GitHubApiLookup(client).lookup("owner", "repo")
        assert activity == HostActivity()

    @pytest.mark.anyio()
    async def test_api_lookup_keeps_repo_fields_when_commits_fail(self):
        routes = {
            GITHUB_REPO: httpx.Response(
                200, json={"default_branch": "trunk", "stargazers_count": 42, "archived": True}
            ),
            GITHUB_COMMITS: httpx.Response(404),
        }
        async with _client(routes) as client:
            activity = await GitHubApiLookup(client, token="tok").lookup("owner", "repo")
        assert activity == HostActivity(last_commit_at=None, star_count=42, archived=True)

    @pytest.mark.anyio()
    async def test_api_lookup_full(self):
        seen: list[httpx.Request] = []
        routes = {
            GITHUB_REPO: httpx.Response(200, json={"default_branch": "trunk"}),
            GITHUB_COMMITS: httpx.Response(
                200, json=[{"commit": {"committer": {"date": "2025-06-01T08:00:00Z"}}}]
            ),
        }
        async with _client(routes, seen) as client:
            activity = await GitHubApiLookup(client, token="tok").lookup("owner", "repo")
        assert activity.last_commit_at == datetime(2025, 6, 1, 8, tzinfo=timezone.utc)
        assert activity.star_count is None
        assert activity.archived is False
        assert all(r.headers["Authorization"] == "Bearer tok" for r in seen)

    @pytest.mark.anyio()
    async def test_relay_lookup(self):
        seen: list[httpx.Request] = []
        routes = {
            "POST relay.local/api/github-commit": httpx.Response(
                200,
                json={
                    "lastCommitDate": "2024-01-02T00:00:00Z",
                    "starCount": 5,
                    "isArchived": False,
                },
            )
        }
        async with _client(routes, seen) as client:
            activity = await GitHubRelayLookup(client, "http://relay.local/").lookup("o", "r")
        assert json.loads(seen[0].content) == {"owner": "o", "repo": "r"}
        assert activity.last_commit_at == datetime(2024, 1, 2, tzinfo=timezone.utc)
        assert activity.star_count == 5
        assert activity.archived is False

    @pytest.mark.anyio()
    async def test_relay_non_success_leaves_unknown(self):
        routes = {"POST relay.local/api/github-commit": httpx.Response(500, json={"error": "x"})}
        async with _client(routes) as client:
            activity = await GitHubRelayLookup(client, "http://relay.local").lookup("o", "r")
        assert activity == HostActivity()


# ── GitLab ───────────────────────────────────────────────────────────────


class TestGitLab:
    @pytest.mark.anyio()
    async def test_project_then_commits(self):
        seen: list[httpx.Request] = []
        routes = {
            "GET gitlab.com/api/v4/projects/group%2Fproj": httpx.Response(
                200, json={"star_count": 12, "default_branch": "develop"}
            ),
            "GET gitlab.com/api/v4/projects/group%2Fproj/repository/commits": httpx.Response(
                200, json=[{"committed_date": "2025-02-03T04:05:06.000+00:00"}]
            ),
        }
        async with _client(routes, seen) as client:
            activity = await GitLabLookup(client).lookup("group", "proj")
        assert activity.star_count == 12
        assert activity.last_commit_at == datetime(2025, 2, 3, 4, 5, 6, tzinfo=timezone.utc)
        assert activity.archived is None
        assert seen[1].url.params["ref_name"] == "develop"
        assert seen[1].url.params["per_page"] == "1"

    @pytest.mark.anyio()
    async def test_project_missing(self):
        async with _client({}) as client:
            assert await GitLabLookup(client).lookup("group", "proj") == HostActivity()

    @pytest.mark.anyio()
    async def test_commits_failure_keeps_stars(self):
        routes = {
            "GET gitlab.com/api/v4/projects/group%2Fproj": httpx.Response(
                200, json={"star_count": 3}
            ),
        }
        async with _client(routes) as client:
            activity = await GitLabLookup(client).lookup("group", "proj")
        assert activity.star_count == 3
        assert activity.last_commit_at is None


# ── Bitbucket ────────────────────────────────────────────────────────────


class TestBitbucket:
    @pytest.mark.anyio()
    async def test_repo_then_branch_commits(self):
        routes = {
            "GET api.bitbucket.org/2.0/repositories/team/thing": httpx.Response(
                200, json={"mainbranch": {"name": "master"}}
            ),
            "GET api.bitbucket.org/2.0/repositories/team/thing/commits/master": httpx.Response(
                200, json={"values": [{"date": "2023-11-11T11:11:11+00:00"}]}
            ),
        }
        async with _client(routes) as client:
            activity = await BitbucketLookup(client).lookup("team", "thing")
        assert activity.last_commit_at == datetime(2023, 11, 11, 11, 11, 11, tzinfo=timezone.utc)
        assert activity.star_count is None

    @pytest.mark.anyio()
    async def test_no_main_branch_uses_commits_root(self):
        seen: list[httpx.Request] = []
        routes = {
            "GET api.bitbucket.org/2.0/repositories/team/thing": httpx.Response(200, json={}),
            "GET api.bitbucket.org/2.0/repositories/team/thing/commits": httpx.Response(
                200, json={"values": []}
            ),
        }
        async with _client(routes, seen) as client:
            activity = await BitbucketLookup(client).lookup("team", "thing")
        assert activity == HostActivity()
        assert seen[1].url.path.endswith("/thing/commits")


# ── dispatch ─────────────────────────────────────────────────────────────


class TestDispatcher:
    @pytest.mark.anyio()
    async def test_unknown_host_is_none(self):
        async with _client({}) as client:
            dispatcher = HostDispatcher.default(client)
            assert await dispatcher.lookup("https://git.example.org/a/b") is None

    @pytest.mark.anyio()
    async def test_unparseable_path_is_none(self):
        async with _client({}) as client:
            assert await HostDispatcher.default(client).lookup("https://github.com/owner") is None

    @pytest.mark.anyio()
    async def test_routes_by_host(self):
        calls: list[tuple[str, str, str]] = []

        class _Recorder:
            def __init__(self, label: str) -> None:
                self.label = label

            async def lookup(self, owner: str, repo: str) -> HostActivity:
                calls.append((self.label, owner, repo))
                return HostActivity(star_count=1)

        dispatcher = HostDispatcher({"github.com": _Recorder("gh"), "gitlab.com": _Recorder("gl")})
        await dispatcher.lookup("https://www.github.com/a/b")
        await dispatcher.lookup("https://gitlab.com/c/d")
        assert calls == [("gh", "a", "b"), ("gl", "c", "d")]

    @pytest.mark.anyio()
    async def test_relay_selected_when_configured(self):
        seen: list[httpx.Request] = []
        async with _client({}, seen) as client:
            dispatcher = HostDispatcher.default(client, relay_url="http://relay.local")
            await dispatcher.lookup("https://github.com/o/r")
        assert seen[0].url.path == "/api/github-commit"
        assert seen[0].method == "POST"
