"""Source-host lookups — last commit, stars and archived flag per repository.

Three providers are supported, chosen by the repository hostname:

* ``github.com``    — one call to the relay (which keeps the API token
  server-side), or the same two-step lookup in process when no relay
  is configured;
* ``gitlab.com``    — project, then commits on its default branch;
* ``bitbucket.org`` — repository, then commits on its main branch.

A non-success status at any step leaves the affected fields unknown.
Transport errors propagate to the caller.
"""

from __future__ import annotations

from typing import Any, Protocol
from urllib.parse import quote

import httpx
import structlog

from lockscope.core.repo_url import parse_repo_url, repo_host
from lockscope.engines.enrichment.metadata import parse_datetime
from lockscope.engines.enrichment.models import HostActivity
from lockscope.exceptions import UpstreamError

log = structlog.get_logger("lockscope.engine")

GITHUB_API = "https://api.github.com"
GITLAB_API = "https://gitlab.com/api/v4"
BITBUCKET_API = "https://api.bitbucket.org/2.0"


class HostLookup(Protocol):
    """Interface that every source-host provider must satisfy."""

    async def lookup(self, owner: str, repo: str) -> HostActivity: ...


def _int_or_none(value: Any) -> int | None:
    return value if isinstance(value, int) and not isinstance(value, bool) else None


def _json_or_none(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return None


def _json_dict(resp: httpx.Response) -> dict[str, Any]:
    data = _json_or_none(resp)
    return data if isinstance(data, dict) else {}


# ── GitHub ────────────────────────────────────────────────────────────────


def _github_headers(token: str | None) -> dict[str, str]:
    headers = {"Accept": "application/vnd.github+json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def _github_repo_base(api_base: str, owner: str, repo: str) -> str:
    return f"{api_base}/repos/{quote(owner, safe='')}/{quote(repo, safe='')}"


def _github_commits_url(base: str, repo_data: dict[str, Any]) -> str:
    default_branch = repo_data.get("default_branch") or "main"
    return f"{base}/commits/{quote(default_branch, safe='')}"


def _github_commit_date(commit_resp: httpx.Response) -> str | None:
    commit_data = _json_or_none(commit_resp)
    latest = commit_data[0] if isinstance(commit_data, list) and commit_data else commit_data
    if not isinstance(latest, dict):
        return None
    return ((latest.get("commit") or {}).get("committer") or {}).get("date")


async def fetch_github_activity(
    client: httpx.AsyncClient,
    owner: str,
    repo: str,
    *,
    token: str | None = None,
    api_base: str = GITHUB_API,
) -> dict[str, Any]:
    """Repository lookup, then the latest commit on its default branch.

    Returns ``{"lastCommitDate", "starCount", "isArchived"}``. Raises
    :class:`UpstreamError` with the upstream status on a non-success
    response.
    """
    headers = _github_headers(token)
    base = _github_repo_base(api_base, owner, repo)
    repo_resp = await client.get(base, headers=headers)
    if not repo_resp.is_success:
        raise UpstreamError(
            repo_resp.status_code, f"Failed to fetch repo info: {repo_resp.status_code}"
        )
    repo_data = _json_dict(repo_resp)

    commit_resp = await client.get(_github_commits_url(base, repo_data), headers=headers)
    if not commit_resp.is_success:
        raise UpstreamError(
            commit_resp.status_code, f"Failed to fetch commits: {commit_resp.status_code}"
        )

    return {
        "lastCommitDate": _github_commit_date(commit_resp),
        "starCount": _int_or_none(repo_data.get("stargazers_count")),
        "isArchived": bool(repo_data.get("archived") or False),
    }


def _activity_from_relay(data: Any) -> HostActivity:
    if not isinstance(data, dict):
        return HostActivity()
    archived = data.get("isArchived")
    return HostActivity(
        last_commit_at=parse_datetime(data.get("lastCommitDate")),
        star_count=_int_or_none(data.get("starCount")),
        archived=archived if isinstance(archived, bool) else None,
    )


class GitHubRelayLookup:
    """POST ``{owner, repo}`` to the relay's ``/api/github-commit`` endpoint."""

    def __init__(self, client: httpx.AsyncClient, relay_url: str) -> None:
        self._client = client
        self._endpoint = f"{relay_url.rstrip('/')}/api/github-commit"

    async def lookup(self, owner: str, repo: str) -> HostActivity:
        resp = await self._client.post(self._endpoint, json={"owner": owner, "repo": repo})
        if not resp.is_success:
            log.debug("hosts.github_relay_status", repo=f"{owner}/{repo}", status=resp.status_code)
            return HostActivity()
        return _activity_from_relay(_json_or_none(resp))


class GitHubApiLookup:
    """In-process equivalent of the relay, for standalone use.

    Unlike the relay, a failed commits call keeps the star count and
    archived flag from the repository call.
    """

    def __init__(
        self, client: httpx.AsyncClient, token: str | None = None, api_base: str = GITHUB_API
    ) -> None:
        self._client = client
        self._headers = _github_headers(token)
        self._api_base = api_base

    async def lookup(self, owner: str, repo: str) -> HostActivity:
        base = _github_repo_base(self._api_base, owner, repo)
        repo_resp = await self._client.get(base, headers=self._headers)
        if not repo_resp.is_success:
            log.debug("hosts.github_status", repo=f"{owner}/{repo}", status=repo_resp.status_code)
            return HostActivity()
        repo_data = _json_dict(repo_resp)

        commit_resp = await self._client.get(
            _github_commits_url(base, repo_data), headers=self._headers
        )
        last_commit_at = None
        if commit_resp.is_success:
            last_commit_at = parse_datetime(_github_commit_date(commit_resp))
        else:
            log.debug(
                "hosts.github_commits_status",
                repo=f"{owner}/{repo}",
                status=commit_resp.status_code,
            )
        return HostActivity(
            last_commit_at=last_commit_at,
            star_count=_int_or_none(repo_data.get("stargazers_count")),
            archived=bool(repo_data.get("archived") or False),
        )


# ── GitLab ────────────────────────────────────────────────────────────────


class GitLabLookup:
    """Project metadata (default branch, stars), then the branch's latest commit."""

    def __init__(self, client: httpx.AsyncClient, api_base: str = GITLAB_API) -> None:
        self._client = client
        self._api_base = api_base

    async def lookup(self, owner: str, repo: str) -> HostActivity:
        project = quote(f"{owner}/{repo}", safe="")
        project_resp = await self._client.get(f"{self._api_base}/projects/{project}")
        if not project_resp.is_success:
            return HostActivity()
        data = _json_dict(project_resp)
        stars = _int_or_none(data.get("star_count"))

        params: dict[str, Any] = {"per_page": 1}
        if data.get("default_branch"):
            params["ref_name"] = data["default_branch"]
        commits_resp = await self._client.get(
            f"{self._api_base}/projects/{project}/repository/commits", params=params
        )
        last_commit_at = None
        if commits_resp.is_success:
            commits = _json_or_none(commits_resp)
            if isinstance(commits, list) and commits and isinstance(commits[0], dict):
                last_commit_at = parse_datetime(commits[0].get("committed_date"))
        return HostActivity(last_commit_at=last_commit_at, star_count=stars)


# ── Bitbucket ─────────────────────────────────────────────────────────────


class BitbucketLookup:
    """Repository metadata (main branch), then the branch's latest commit."""

    def __init__(self, client: httpx.AsyncClient, api_base: str = BITBUCKET_API) -> None:
        self._client = client
        self._api_base = api_base

    async def lookup(self, owner: str, repo: str) -> HostActivity:
        base = f"{self._api_base}/repositories/{quote(owner, safe='')}/{quote(repo, safe='')}"
        repo_resp = await self._client.get(base)
        if not repo_resp.is_success:
            return HostActivity()
        data = _json_dict(repo_resp)
        mainbranch = data.get("mainbranch")
        branch = mainbranch.get("name") if isinstance(mainbranch, dict) else None

        commits_url = f"{base}/commits/{quote(branch, safe='')}" if branch else f"{base}/commits"
        commits_resp = await self._client.get(commits_url, params={"pagelen": 1})
        if not commits_resp.is_success:
            return HostActivity()
        values = _json_dict(commits_resp).get("values")
        if isinstance(values, list) and values and isinstance(values[0], dict):
            return HostActivity(last_commit_at=parse_datetime(values[0].get("date")))
        return HostActivity()


# ── dispatch ──────────────────────────────────────────────────────────────


class HostDispatcher:
    """Route a repository URL to the lookup registered for its hostname."""

    def __init__(self, lookups: dict[str, HostLookup]) -> None:
        self._lookups = dict(lookups)

    @classmethod
    def default(
        cls,
        client: httpx.AsyncClient,
        *,
        relay_url: str | None = None,
        github_token: str | None = None,
    ) -> HostDispatcher:
        github: HostLookup
        if relay_url:
            github = GitHubRelayLookup(client, relay_url)
        else:
            github = GitHubApiLookup(client, token=github_token)
        return cls(
            {
                "github.com": github,
                "gitlab.com": GitLabLookup(client),
                "bitbucket.org": BitbucketLookup(client),
            }
        )

    async def lookup(self, repo_url: str) -> HostActivity | None:
        """Host activity for *repo_url*, or None when no provider applies."""
        host = repo_host(repo_url)
        provider = self._lookups.get(host or "")
        if provider is None:
            return None
        try:
            owner, repo = parse_repo_url(repo_url)
        except ValueError:
            return None
        return await provider.lookup(owner, repo)
