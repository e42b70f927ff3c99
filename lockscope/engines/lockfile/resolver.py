"""Identity & merge resolver — fold candidates into canonical package records."""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from lockscope.engines.lockfile.models import PACKAGES, PackageRecord

log = structlog.get_logger("lockscope.engine")

_SCALAR_FIELDS = ("path", "resolved", "integrity")
_FLAG_FIELDS = ("dev", "optional", "peer", "extraneous")
_LIST_FIELDS = ("dependencies", "requires", "peer_dependencies", "bundled_dependencies")


def _union(existing: list[str], incoming: list[str]) -> list[str]:
    if not incoming:
        return existing
    if not existing:
        return list(incoming)
    return sorted(set(existing) | set(incoming))


def merge_fields(target: PackageRecord, source: PackageRecord) -> None:
    """Merge *source* into *target* in place.

    Scalars keep the first non-empty value, tri-state flags are filled
    only while unset, list fields are unioned and re-sorted, ``raw`` is
    shallow-merged with *source* winning on conflicts, origins are unioned.
    Identity fields are never touched.
    """
    target.origins |= source.origins

    for name in _SCALAR_FIELDS:
        if not getattr(target, name) and getattr(source, name):
            setattr(target, name, getattr(source, name))

    for name in _FLAG_FIELDS:
        if getattr(target, name) is None and getattr(source, name) is not None:
            setattr(target, name, getattr(source, name))

    for name in _LIST_FIELDS:
        setattr(target, name, _union(getattr(target, name), getattr(source, name)))

    target.raw = {**target.raw, **source.raw}


class CanonicalIndex:
    """Canonical records keyed by id, with a per-name index.

    The name index keeps insertion order, so a version-less candidate
    always matches the earliest same-named record.
    """

    def __init__(self) -> None:
        self._records: dict[str, PackageRecord] = {}
        self._by_name: dict[str, list[str]] = {}

    def __len__(self) -> int:
        return len(self._records)

    def records(self) -> list[PackageRecord]:
        return list(self._records.values())

    def find_match(self, candidate: PackageRecord) -> PackageRecord | None:
        """First record with the same name whose version matches.

        A candidate without a version matches any same-named record.
        """
        for record_id in self._by_name.get(candidate.name, ()):
            existing = self._records[record_id]
            if not candidate.version or existing.version == candidate.version:
                return existing
        return None

    def add(self, candidate: PackageRecord) -> PackageRecord:
        """Fold *candidate* in; returns the canonical record it landed in."""
        existing = self.find_match(candidate) or self._records.get(candidate.id)
        if existing is None:
            self._records[candidate.id] = candidate
            self._by_name.setdefault(candidate.name, []).append(candidate.id)
            return candidate
        merge_fields(existing, candidate)
        return existing


def _sort_key(record: PackageRecord) -> tuple[str, str]:
    return record.name, record.version or ""


def resolve(
    candidates: Iterable[PackageRecord],
    explicit_names: Iterable[str] = (),
) -> list[PackageRecord]:
    """Fold *candidates* into the canonical, ordered package list.

    1. merge every candidate into the canonical index;
    2. keep records attested by the package-path table;
    3. collapse residual ``(name, version)`` duplicates;
    4. sort by name, then version (absent first);
    5. flag explicit records, on the surviving representatives only.
    """
    index = CanonicalIndex()
    count = 0
    for candidate in candidates:
        index.add(candidate)
        count += 1

    deduped: dict[tuple[str, str], PackageRecord] = {}
    for record in index.records():
        if PACKAGES not in record.origins:
            continue
        existing = deduped.get(record.key)
        if existing is None:
            deduped[record.key] = record
        else:
            merge_fields(existing, record)

    result = sorted(deduped.values(), key=_sort_key)

    explicit = frozenset(explicit_names)
    for record in result:
        record.explicit = record.name in explicit

    log.debug(
        "resolver.done",
        candidates=count,
        canonical=len(index),
        packages=len(result),
    )
    return result
