"""Enrichment orchestrator — concurrent per-package lookups with cancellation.

Each call to :meth:`EnrichmentOrchestrator.start` opens a new
:class:`Generation` over a fixed list of records. Every record with a
resolved location gets its own task (registry lookup, then at most one
source-host lookup); records without one become ``local-only`` at once.
One extra task sends the batch audit.

Starting a new generation cancels the previous one. Cancelling aborts
the in-flight httpx requests, and every write is re-checked against the
generation and the record state after each await, so nothing from a
superseded generation reaches the records.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence

import httpx
import structlog

from lockscope.core.config import Settings
from lockscope.core.http import create_http_client
from lockscope.engines.enrichment.audit import AuditSource, DirectAudit, RelayAudit
from lockscope.engines.enrichment.hosts import HostDispatcher
from lockscope.engines.enrichment.metadata import parse_registry_metadata
from lockscope.engines.enrichment.models import AuditReport, HostActivity, RegistryInfo
from lockscope.engines.enrichment.registry_client import RegistryClient
from lockscope.engines.lockfile.models import PackageRecord

log = structlog.get_logger("lockscope.engine")

UpdateCallback = Callable[[int, PackageRecord], None]


def apply_registry_info(
    record: PackageRecord, info: RegistryInfo, activity: HostActivity | None
) -> None:
    """Copy whatever was gathered onto *record* (fields left None stay unknown)."""
    record.latest_version = info.latest_version
    record.license = info.license
    record.homepage = info.homepage
    record.repository_url = info.repository_url
    record.size = info.size
    if activity is not None:
        record.last_commit_at = activity.last_commit_at
        record.star_count = activity.star_count
        record.archived = activity.archived


def apply_advisories(record: PackageRecord, report: AuditReport) -> bool:
    """Attach the audit breakdown for *record*; True if anything was written."""
    entry = report.by_package.get(record.name)
    if entry is None:
        return False
    record.vulnerability_count = entry.count
    record.vulnerability_severity = entry.severity
    return True


class Generation:
    """One input document's worth of enrichment work.

    The record list is fixed when the generation opens; each index is
    written only by the task that owns it.
    """

    def __init__(self, token: int, records: Sequence[PackageRecord]) -> None:
        self.token = token
        self.records: list[PackageRecord] = list(records)
        self.audit: AuditReport | None = None
        self._tasks: list[asyncio.Task[None]] = []
        self._callbacks: list[UpdateCallback] = []
        self._cancelled = False

    # ── state ──────────────────────────────────────────────────────────────

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def progress(self) -> tuple[int, int]:
        """``(done, total)`` — records that reached a terminal state."""
        done = sum(1 for r in self.records if r.is_done)
        return done, len(self.records)

    @property
    def finished(self) -> bool:
        return all(task.done() for task in self._tasks)

    def can_write(self, index: int) -> bool:
        """Writes are allowed only while active and only to pending records."""
        return not self._cancelled and self.records[index].state == "pending"

    # ── subscribers ────────────────────────────────────────────────────────

    def on_update(self, callback: UpdateCallback) -> None:
        self._callbacks.append(callback)

    def publish(self, index: int) -> None:
        if self._cancelled:
            return
        record = self.records[index]
        for callback in self._callbacks:
            callback(index, record)

    # ── lifecycle ──────────────────────────────────────────────────────────

    def add_task(self, task: asyncio.Task[None]) -> None:
        self._tasks.append(task)

    def cancel(self) -> None:
        """Abort every in-flight lookup; later results are discarded."""
        if self._cancelled:
            return
        self._cancelled = True
        pending = 0
        for task in self._tasks:
            if not task.done():
                task.cancel()
                pending += 1
        log.info("enrichment.generation_cancelled", generation=self.token, in_flight=pending)

    async def wait(self) -> None:
        """Wait until every task of this generation has finished or been cancelled."""
        if not self._tasks:
            return
        results = await asyncio.gather(*self._tasks, return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException) and not isinstance(
                result, asyncio.CancelledError
            ):
                log.error(
                    "enrichment.task_crashed",
                    generation=self.token,
                    error=f"{type(result).__name__}: {result}",
                )


class EnrichmentOrchestrator:
    """Drive registry, source-host and audit lookups for package records."""

    def __init__(
        self,
        registry: RegistryClient,
        hosts: HostDispatcher,
        audit: AuditSource | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._registry = registry
        self._hosts = hosts
        self._audit = audit
        self._client = client  # owned, closed by close()
        self._token = 0
        self._current: Generation | None = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> EnrichmentOrchestrator:
        """Build an orchestrator owning one shared httpx client.

        With a relay configured, GitHub lookups and the audit go through
        it; otherwise both are performed directly.
        """
        client = create_http_client(settings, transport=transport)
        registry = RegistryClient(client, settings)
        hosts = HostDispatcher.default(
            client, relay_url=settings.relay_url, github_token=settings.github_token
        )
        audit: AuditSource
        if settings.relay_url:
            audit = RelayAudit(client, settings.relay_url)
        else:
            audit = DirectAudit(registry)
        return cls(registry, hosts, audit, client=client)

    # ── lifecycle ──────────────────────────────────────────────────────────

    @property
    def current(self) -> Generation | None:
        return self._current

    def cancel(self) -> None:
        if self._current is not None:
            self._current.cancel()

    async def close(self) -> None:
        """Detach: cancel the active generation and release the client."""
        current = self._current
        self.cancel()
        if current is not None:
            await current.wait()
        if self._client is not None:
            await self._client.aclose()

    async def __aenter__(self) -> EnrichmentOrchestrator:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # ── public ─────────────────────────────────────────────────────────────

    def start(
        self,
        records: Sequence[PackageRecord],
        on_update: UpdateCallback | None = None,
    ) -> Generation:
        """Open a new generation over *records*, superseding the current one.

        Must be called from a running event loop. Local-only records are
        settled (and published) before this returns; every other pending
        record gets a lookup task.
        """
        self.cancel()
        self._token += 1
        generation = Generation(self._token, records)
        self._current = generation
        if on_update is not None:
            generation.on_update(on_update)

        lookups = 0
        for index, record in enumerate(generation.records):
            if record.state != "pending":
                continue
            if record.is_local_only:
                record.transition("local-only")
                generation.publish(index)
                continue
            record.loading = True
            generation.add_task(
                asyncio.create_task(
                    self._enrich(generation, index),
                    name=f"enrich-{generation.token}-{record.name}",
                )
            )
            lookups += 1

        if self._audit is not None and lookups:
            generation.add_task(
                asyncio.create_task(self._run_audit(generation), name=f"audit-{generation.token}")
            )

        log.info(
            "enrichment.generation_started",
            generation=generation.token,
            packages=len(generation.records),
            lookups=lookups,
        )
        return generation

    async def run(
        self,
        records: Sequence[PackageRecord],
        on_update: UpdateCallback | None = None,
    ) -> Generation:
        """:meth:`start`, then wait for the generation to settle."""
        generation = self.start(records, on_update)
        await generation.wait()
        return generation

    # ── internal ───────────────────────────────────────────────────────────

    async def lookup(self, record: PackageRecord) -> tuple[RegistryInfo, HostActivity | None]:
        """Registry lookup, then the source-host lookup if a repository is known."""
        document = await self._registry.fetch_package(record.name)
        info = parse_registry_metadata(document, record.version)
        activity = None
        if info.repository_url:
            activity = await self._hosts.lookup(info.repository_url)
        return info, activity

    async def _enrich(self, generation: Generation, index: int) -> None:
        record = generation.records[index]
        bound = log.bind(package=record.name, version=record.version, generation=generation.token)
        try:
            info, activity = await self.lookup(record)
        except Exception as exc:
            if not generation.can_write(index):
                return
            record.transition("resolved-with-error")
            generation.publish(index)
            bound.warning("enrichment.package_failed", error=f"{type(exc).__name__}: {exc}")
            return

        if not generation.can_write(index):
            return
        apply_registry_info(record, info, activity)
        if generation.audit is not None:
            apply_advisories(record, generation.audit)
        record.transition("resolved")
        generation.publish(index)
        bound.debug("enrichment.package_resolved", latest=info.latest_version)

    async def _run_audit(self, generation: Generation) -> None:
        assert self._audit is not None
        packages = {r.name: r.version for r in generation.records if r.resolved and r.version}
        if not packages:
            return
        try:
            report = await self._audit.fetch(packages)
        except Exception as exc:
            if not generation.cancelled:
                log.warning(
                    "enrichment.audit_failed",
                    generation=generation.token,
                    error=f"{type(exc).__name__}: {exc}",
                )
            return

        if generation.cancelled:
            return
        generation.audit = report
        for index, record in enumerate(generation.records):
            if record.state == "resolved" and apply_advisories(record, report):
                generation.publish(index)
        log.info(
            "enrichment.audit_done",
            generation=generation.token,
            vulnerabilities=report.vulnerabilities,
            packages=len(report.by_package),
        )
