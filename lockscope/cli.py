"""CLI entry point: lockscope.

Subcommands:
    lockscope scan package-lock.json            # inventory + enrichment, table output
    lockscope scan package-lock.json --json     # same, as JSON
    lockscope scan package-lock.json --offline  # inventory only, no network
    cat package-lock.json | lockscope scan -    # read from stdin
"""

from __future__ import annotations

import asyncio
import json
import os
import sys
from datetime import datetime, timezone
from typing import Any

import click

from lockscope.core.config import Settings
from lockscope.core.logging import setup_logging
from lockscope.engines.classification import (
    commit_age,
    display_order,
    format_age,
    outdated_severity,
    staleness,
)
from lockscope.engines.enrichment.orchestrator import EnrichmentOrchestrator
from lockscope.engines.lockfile.loader import load_lockfile
from lockscope.engines.lockfile.models import PackageRecord
from lockscope.exceptions import LockfileError


def _package_row(record: PackageRecord, now: datetime) -> dict[str, Any]:
    """JSON-ready view of one record with its derived labels."""
    age = format_age(commit_age(record.last_commit_at, now)) if record.last_commit_at else None
    return {
        "name": record.name,
        "version": record.version,
        "explicit": record.explicit,
        "state": record.state,
        "path": record.path,
        "resolved": record.resolved,
        "integrity": record.integrity,
        "dev": record.dev,
        "optional": record.optional,
        "peer": record.peer,
        "extraneous": record.extraneous,
        "dependencies": record.dependencies,
        "requires": record.requires,
        "peer_dependencies": record.peer_dependencies,
        "bundled_dependencies": record.bundled_dependencies,
        "sources": sorted(record.origins),
        "latest_version": record.latest_version,
        "license": record.license,
        "homepage": record.homepage,
        "repository_url": record.repository_url,
        "last_commit_at": record.last_commit_at.isoformat() if record.last_commit_at else None,
        "last_commit_age": age,
        "star_count": record.star_count,
        "archived": record.archived,
        "size": record.size,
        "vulnerability_count": record.vulnerability_count,
        "vulnerability_severity": record.vulnerability_severity,
        "outdated_severity": outdated_severity(record.version, record.latest_version),
        "staleness": staleness(record.last_commit_at, now),
    }


def _flags(row: dict[str, Any]) -> str:
    flags = []
    if row["explicit"]:
        flags.append("explicit")
    if row["dev"]:
        flags.append("dev")
    if row["optional"]:
        flags.append("optional")
    if row["peer"]:
        flags.append("peer")
    if row["archived"]:
        flags.append("ARCHIVED")
    if row["state"] == "local-only":
        flags.append("local")
    elif row["state"] == "resolved-with-error":
        flags.append("lookup-failed")
    return ",".join(flags)


def _print_table(rows: list[dict[str, Any]]) -> None:
    header = (
        "NAME",
        "VERSION",
        "LATEST",
        "OUTDATED",
        "LAST COMMIT",
        "STARS",
        "LICENSE",
        "VULNS",
        "FLAGS",
    )
    lines = [header]
    for row in rows:
        vulns = ""
        if row["vulnerability_count"]:
            vulns = f"{row['vulnerability_count']} ({row['vulnerability_severity']})"
        lines.append(
            (
                row["name"],
                row["version"] or "-",
                row["latest_version"] or "-",
                row["outdated_severity"],
                row["last_commit_age"] or "-",
                "" if row["star_count"] is None else str(row["star_count"]),
                row["license"] or "-",
                vulns,
                _flags(row),
            )
        )
    widths = [max(len(line[i]) for line in lines) for i in range(len(header))]
    for line in lines:
        click.echo("  ".join(cell.ljust(w) for cell, w in zip(line, widths)).rstrip())


async def _enrich(packages: list[PackageRecord], settings: Settings) -> None:
    async with EnrichmentOrchestrator.from_settings(settings) as orchestrator:

        def _report(_index: int, _record: PackageRecord) -> None:
            generation = orchestrator.current
            if generation is None:
                return
            done, total = generation.progress()
            click.echo(f"\rEnriched {done}/{total}", err=True, nl=False)

        await orchestrator.run(packages, on_update=_report)
        click.echo("", err=True)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging")
def main(verbose: bool) -> None:
    """lockscope: npm lockfile inventory with freshness and vulnerability signals."""
    level = "DEBUG" if verbose else os.environ.get("LOCKSCOPE_LOG_LEVEL", "WARNING")
    setup_logging(level=level)


@main.command()
@click.argument("lockfile", type=click.File("r", encoding="utf-8"))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("--offline", is_flag=True, help="Skip registry, source-host and audit lookups")
@click.option(
    "--relay-url",
    default=None,
    help="Base URL of a lockscope relay (overrides LOCKSCOPE_RELAY_URL)",
)
@click.option("--timeout", type=float, default=None, help="Per-request timeout in seconds")
def scan(
    lockfile: Any,
    as_json: bool,
    offline: bool,
    relay_url: str | None,
    timeout: float | None,
) -> None:
    """Inventory the packages of LOCKFILE ('-' for stdin)."""
    try:
        packages = load_lockfile(lockfile.read())
    except LockfileError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if not offline:
        settings = Settings.from_env().with_overrides(relay_url=relay_url, timeout=timeout)
        asyncio.run(_enrich(packages, settings))

    now = datetime.now(timezone.utc)
    rows = [_package_row(p, now) for p in display_order(packages)]
    if as_json:
        click.echo(json.dumps(rows, indent=2))
        return

    explicit = sum(1 for r in rows if r["explicit"])
    click.echo(f"Packages ({len(rows)}, {explicit} explicit)\n")
    _print_table(rows)


if __name__ == "__main__":
    main()
