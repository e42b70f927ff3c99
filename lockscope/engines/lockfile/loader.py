"""Lockfile loading — text or parsed document to the canonical package list."""

from __future__ import annotations

import json
from typing import Any

import structlog

from lockscope.engines.lockfile.extractor import ExtractionContext, extract_candidates
from lockscope.engines.lockfile.models import PackageRecord
from lockscope.engines.lockfile.resolver import resolve
from lockscope.exceptions import EmptyLockfileError, InvalidLockfileError

log = structlog.get_logger("lockscope.engine")


def extract_packages(document: Any) -> list[PackageRecord]:
    """Canonical, deduplicated, ordered packages of a parsed lockfile.

    Never raises: malformed shapes simply yield fewer packages.
    """
    ctx = ExtractionContext()
    candidates = list(extract_candidates(document, ctx))
    return resolve(candidates, ctx.explicit_names)


def load_lockfile(text: str) -> list[PackageRecord]:
    """Parse *text* and extract its packages.

    Raises :class:`InvalidLockfileError` for unparseable input and
    :class:`EmptyLockfileError` when nothing could be extracted.
    """
    try:
        document = json.loads(text)
    except (json.JSONDecodeError, RecursionError) as exc:
        log.info("lockfile.invalid_json", error=str(exc))
        raise InvalidLockfileError(str(exc)) from exc

    packages = extract_packages(document)
    if not packages:
        raise EmptyLockfileError()
    log.info(
        "lockfile.loaded",
        packages=len(packages),
        explicit=sum(1 for p in packages if p.explicit),
        lockfile_version=document.get("lockfileVersion") if isinstance(document, dict) else None,
    )
    return packages
