"""Repository URL utilities."""

from __future__ import annotations

import re
from urllib.parse import urlsplit

# git@host:owner/repo (scp-like SSH shorthand, no scheme)
_SCP_LIKE_RE = re.compile(r"^(?:[\w.-]+@)?(?P<host>[\w.-]+):(?P<path>(?!//)[^\s]+)$")


def normalize_repo_url(url: str | None) -> str | None:
    """Turn a ``repository.url`` from registry metadata into a web URL.

    Handles:
      - git+https://github.com/owner/repo.git
      - git://github.com/owner/repo.git
      - git@github.com:owner/repo.git
      - git+ssh://git@github.com/owner/repo.git

    Returns None when the result is not a well-formed http(s) URL.
    """
    if not url:
        return None

    candidate = url.strip()
    if candidate.startswith("git+"):
        candidate = candidate[len("git+") :]

    if candidate.startswith("git://"):
        candidate = "https://" + candidate[len("git://") :]
    elif candidate.startswith("ssh://"):
        rest = candidate[len("ssh://") :]
        if "@" in rest.split("/", 1)[0]:
            rest = rest.split("@", 1)[1]
        # ssh://host:port/path: drop the port
        host, _, path = rest.partition("/")
        candidate = f"https://{host.split(':', 1)[0]}/{path}"
    elif "://" not in candidate:
        match = _SCP_LIKE_RE.match(candidate)
        if match is None:
            return None
        candidate = f"https://{match.group('host')}/{match.group('path')}"

    candidate = candidate.rstrip("/")
    if candidate.endswith(".git"):
        candidate = candidate[:-4]

    try:
        parts = urlsplit(candidate)
    except ValueError:
        return None
    if parts.scheme not in ("http", "https") or not parts.hostname:
        return None
    return candidate


def repo_host(repo_url: str) -> str | None:
    """Lower-cased hostname of a normalised repository URL."""
    try:
        host = urlsplit(repo_url).hostname
    except ValueError:
        return None
    if host and host.startswith("www."):
        host = host[len("www.") :]
    return host


def parse_repo_url(repo_url: str) -> tuple[str, str]:
    """Extract (owner, repo) from a normalised repository URL.

    Raises ValueError if the URL has fewer than two path segments.
    """
    result = _extract_owner_repo(repo_url)
    if result is None:
        raise ValueError(f"cannot parse repository URL: {repo_url!r}")
    return result


def _extract_owner_repo(repo_url: str) -> tuple[str, str] | None:
    """Extract the first two path segments of *repo_url*.

    ``https://github.com/owner/repo/tree/main`` yields ``("owner", "repo")``.
    """
    try:
        path = urlsplit(repo_url.strip()).path
    except ValueError:
        return None
    parts = [p for p in path.split("/") if p]
    if len(parts) < 2:
        return None
    repo = parts[1]
    if repo.endswith(".git"):
        repo = repo[:-4]
    if not repo:
        return None
    return parts[0], repo
