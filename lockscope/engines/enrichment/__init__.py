"""Enrichment engine — registry, source-host and audit lookups."""

from lockscope.engines.enrichment.audit import DirectAudit, RelayAudit, summarize_audit
from lockscope.engines.enrichment.hosts import HostDispatcher, fetch_github_activity
from lockscope.engines.enrichment.models import (
    Advisory,
    AuditReport,
    HostActivity,
    PackageAdvisories,
    RegistryInfo,
)
from lockscope.engines.enrichment.orchestrator import EnrichmentOrchestrator, Generation
from lockscope.engines.enrichment.registry_client import RegistryClient

__all__ = [
    "Advisory",
    "AuditReport",
    "DirectAudit",
    "EnrichmentOrchestrator",
    "Generation",
    "HostActivity",
    "HostDispatcher",
    "PackageAdvisories",
    "RegistryClient",
    "RegistryInfo",
    "RelayAudit",
    "fetch_github_activity",
    "summarize_audit",
]
