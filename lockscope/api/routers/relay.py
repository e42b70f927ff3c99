"""Relay router — forward GitHub and npm audit calls, keeping credentials server-side."""

from __future__ import annotations

import httpx
import structlog
from fastapi import APIRouter, Depends

from lockscope.api.deps import get_http_client, get_settings
from lockscope.api.schemas.relay import (
    AuditRequest,
    AuditResponse,
    GitHubCommitRequest,
    GitHubCommitResponse,
)
from lockscope.core.config import Settings
from lockscope.engines.enrichment.audit import report_to_dict, summarize_audit
from lockscope.engines.enrichment.hosts import fetch_github_activity
from lockscope.engines.enrichment.registry_client import RegistryClient
from lockscope.exceptions import InvalidRequestError, UpstreamError

log = structlog.get_logger("lockscope.api")

router = APIRouter()


@router.post(
    "/github-commit",
    response_model=GitHubCommitResponse,
    response_model_by_alias=True,
)
async def github_commit(
    body: GitHubCommitRequest,
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
) -> GitHubCommitResponse:
    if not body.owner.strip() or not body.repo.strip():
        raise InvalidRequestError("Missing owner or repo")
    log.debug("relay.github_lookup", repo=f"{body.owner}/{body.repo}")
    try:
        data = await fetch_github_activity(
            client, body.owner, body.repo, token=settings.github_token
        )
    except httpx.HTTPError as exc:
        log.error("relay.github_failed", repo=f"{body.owner}/{body.repo}", error=str(exc))
        raise UpstreamError(500, "Internal server error") from exc
    return GitHubCommitResponse.model_validate(data)


@router.post(
    "/npm-vulnerabilities",
    response_model=AuditResponse,
    response_model_by_alias=True,
)
async def npm_vulnerabilities(
    body: AuditRequest,
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
) -> AuditResponse:
    log.debug("relay.audit", packages=len(body.packages))
    registry = RegistryClient(client, settings)
    try:
        raw = await registry.quick_audit(body.packages)
    except httpx.HTTPStatusError as exc:
        status = exc.response.status_code
        raise UpstreamError(status, f"NPM audit API failed: {status}") from exc
    except (httpx.HTTPError, ValueError) as exc:
        log.error("relay.audit_failed", packages=len(body.packages), error=str(exc))
        raise UpstreamError(500, "Failed to perform audit") from exc
    return AuditResponse.model_validate(report_to_dict(summarize_audit(raw)))
