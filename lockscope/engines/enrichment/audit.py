"""Quick audit — sources and response summarisation."""

from __future__ import annotations

from typing import Any, Protocol

import httpx

from lockscope.engines.enrichment.models import (
    SEVERITY_ORDER,
    Advisory,
    AuditReport,
    PackageAdvisories,
)
from lockscope.engines.enrichment.registry_client import RegistryClient

MAX_ADVISORIES = 10


def summarize_audit(data: dict[str, Any]) -> AuditReport:
    """Fold a raw quick-audit response into an :class:`AuditReport`.

    Each vulnerable package lists its advisories under ``via``; string
    entries there name another vulnerable package and are skipped. The
    package's severity is the highest among its advisories.
    """
    vulnerabilities = data.get("vulnerabilities")
    if not isinstance(vulnerabilities, dict):
        vulnerabilities = {}
    metadata = data.get("metadata")
    if not isinstance(metadata, dict):
        metadata = {}

    report = AuditReport(metadata=metadata)

    for pkg_name, vuln_data in vulnerabilities.items():
        if not isinstance(vuln_data, dict):
            continue
        via = vuln_data.get("via")
        if not isinstance(via, list):
            continue

        peak = "info"
        pkg_vulns: list[dict[str, Any]] = []
        for advisory in via:
            if not isinstance(advisory, dict):
                continue
            if "title" not in advisory or "severity" not in advisory:
                continue
            severity = str(advisory["severity"])
            if severity in report.summary:
                report.summary[severity] += 1
            if SEVERITY_ORDER.get(severity, -1) > SEVERITY_ORDER[peak]:
                peak = severity

            advisory_id = advisory.get("id", advisory.get("source"))
            pkg_vulns.append({"id": advisory_id, "title": advisory["title"]})
            report.advisories.append(
                Advisory(
                    id=advisory_id,
                    severity=severity,
                    title=str(advisory["title"]),
                    description=advisory.get("description"),
                    url=advisory.get("url"),
                )
            )

        if pkg_vulns:
            report.by_package[pkg_name] = PackageAdvisories(
                count=len(pkg_vulns), severity=peak, vulnerabilities=pkg_vulns
            )

    total = metadata.get("vulnerabilities")
    if isinstance(total, dict):
        # npm v7+ reports a per-severity breakdown here
        total = total.get("total")
    report.vulnerabilities = total if isinstance(total, int) and total else len(vulnerabilities)
    report.advisories = report.advisories[:MAX_ADVISORIES]
    return report


def report_to_dict(report: AuditReport) -> dict[str, Any]:
    """JSON shape served by the audit relay endpoint."""
    return {
        "vulnerabilities": report.vulnerabilities,
        "advisories": [
            {
                "id": a.id,
                "severity": a.severity,
                "title": a.title,
                "description": a.description,
                "url": a.url,
            }
            for a in report.advisories
        ],
        "advisoriesByPackage": {
            name: {
                "count": pkg.count,
                "severity": pkg.severity,
                "vulnerabilities": pkg.vulnerabilities,
            }
            for name, pkg in report.by_package.items()
        },
        "summary": dict(report.summary),
        "metadata": report.metadata,
    }


def report_from_dict(data: dict[str, Any]) -> AuditReport:
    """Inverse of :func:`report_to_dict`, tolerant of missing keys."""
    by_package: dict[str, PackageAdvisories] = {}
    raw_by_package = data.get("advisoriesByPackage")
    if isinstance(raw_by_package, dict):
        for name, entry in raw_by_package.items():
            if not isinstance(entry, dict):
                continue
            count = entry.get("count")
            by_package[name] = PackageAdvisories(
                count=count if isinstance(count, int) else 0,
                severity=str(entry.get("severity") or "info"),
                vulnerabilities=list(entry.get("vulnerabilities") or []),
            )

    advisories = [
        Advisory(
            id=a.get("id"),
            severity=str(a.get("severity") or "info"),
            title=str(a.get("title") or ""),
            description=a.get("description"),
            url=a.get("url"),
        )
        for a in data.get("advisories") or []
        if isinstance(a, dict)
    ]

    report = AuditReport(
        advisories=advisories,
        by_package=by_package,
        metadata=data.get("metadata") if isinstance(data.get("metadata"), dict) else {},
    )
    summary = data.get("summary")
    if isinstance(summary, dict):
        for key in report.summary:
            value = summary.get(key)
            if isinstance(value, int):
                report.summary[key] = value
    total = data.get("vulnerabilities")
    report.vulnerabilities = total if isinstance(total, int) else len(by_package)
    return report


# ── sources ───────────────────────────────────────────────────────────────


class AuditSource(Protocol):
    """Where the batch audit of one generation is sent."""

    async def fetch(self, packages: dict[str, str]) -> AuditReport: ...


class DirectAudit:
    """Call the registry's quick-audit endpoint and summarise locally."""

    def __init__(self, registry: RegistryClient) -> None:
        self._registry = registry

    async def fetch(self, packages: dict[str, str]) -> AuditReport:
        return summarize_audit(await self._registry.quick_audit(packages))


class RelayAudit:
    """POST to the relay's ``/api/npm-vulnerabilities``, which summarises server-side."""

    def __init__(self, client: httpx.AsyncClient, relay_url: str) -> None:
        self._client = client
        self._endpoint = f"{relay_url.rstrip('/')}/api/npm-vulnerabilities"

    async def fetch(self, packages: dict[str, str]) -> AuditReport:
        resp = await self._client.post(self._endpoint, json={"packages": packages})
        resp.raise_for_status()
        data = resp.json()
        if not isinstance(data, dict):
            raise ValueError("unexpected relay audit payload")
        return report_from_dict(data)
