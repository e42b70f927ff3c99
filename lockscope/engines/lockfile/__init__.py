"""Lockfile engine — extract and deduplicate packages from a package-lock document."""

from lockscope.engines.lockfile.extractor import ExtractionContext, extract_candidates
from lockscope.engines.lockfile.loader import extract_packages, load_lockfile
from lockscope.engines.lockfile.models import EnrichmentState, Origin, PackageRecord
from lockscope.engines.lockfile.resolver import CanonicalIndex, merge_fields, resolve

__all__ = [
    "CanonicalIndex",
    "EnrichmentState",
    "ExtractionContext",
    "Origin",
    "PackageRecord",
    "extract_candidates",
    "extract_packages",
    "load_lockfile",
    "merge_fields",
    "resolve",
]
