"""Registry payload decoding — pure, no network access."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from lockscope.core.repo_url import normalize_repo_url
from lockscope.engines.enrichment.models import RegistryInfo


def parse_datetime(value: Any) -> datetime | None:
    """Parse an ISO-8601 datetime string, returning None on failure.

    Naive values are taken as UTC.
    """
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _license(payload: dict[str, Any]) -> str:
    """``license`` is either an SPDX string or a legacy ``{"type": ...}`` object."""
    value = payload.get("license")
    if isinstance(value, dict):
        value = value.get("type")
    if isinstance(value, str) and value.strip():
        return value.strip()
    return "unknown"


def _size(payload: dict[str, Any]) -> int | None:
    dist = payload.get("dist")
    if not isinstance(dist, dict):
        return None
    size = _as_int(dist.get("unpackedSize"))
    if size is None:
        size = _as_int(dist.get("size"))
    return size


def git_repository_url(payload: dict[str, Any]) -> str | None:
    """Normalised web URL of a ``git``-type ``repository`` entry, if any."""
    repository = payload.get("repository")
    if not isinstance(repository, dict) or repository.get("type") != "git":
        return None
    url = repository.get("url")
    return normalize_repo_url(url) if isinstance(url, str) else None


def select_version_payload(document: dict[str, Any], version: str | None) -> dict[str, Any]:
    """Payload for *version*, falling back to the ``latest`` dist-tag."""
    versions = document.get("versions")
    if not isinstance(versions, dict):
        return {}
    if version and isinstance(versions.get(version), dict):
        return versions[version]
    latest = latest_tag(document)
    if latest and isinstance(versions.get(latest), dict):
        return versions[latest]
    return {}


def latest_tag(document: dict[str, Any]) -> str | None:
    tags = document.get("dist-tags")
    if not isinstance(tags, dict):
        return None
    latest = tags.get("latest")
    return latest if isinstance(latest, str) else None


def parse_registry_metadata(document: dict[str, Any], version: str | None) -> RegistryInfo:
    """Reduce a full registry document to the fields we display."""
    payload = select_version_payload(document, version)
    homepage = payload.get("homepage")
    return RegistryInfo(
        latest_version=latest_tag(document),
        license=_license(payload),
        homepage=homepage if isinstance(homepage, str) and homepage else None,
        repository_url=git_repository_url(payload),
        size=_size(payload),
    )
