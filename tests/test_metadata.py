"""Tests for registry payload decoding and quick-audit summarisation."""

from __future__ import annotations

from datetime import datetime, timezone

from lockscope.engines.enrichment.audit import report_from_dict, report_to_dict, summarize_audit
from lockscope.engines.enrichment.metadata import (
    git_repository_url,
    parse_datetime,
    parse_registry_metadata,
    select_version_payload,
)

# ── helpers ──────────────────────────────────────────────────────────────


def _document(**version_fields) -> dict:
    payload = {
        "license": "MIT",
        "homepage": "https://example.com/a",
        "repository": {"type": "git", "url": "git+https://github.com/owner/a.git"},
        "dist": {"unpackedSize": 2048, "size": 512},
    }
    payload.update(version_fields)
    return {
        "name": "a",
        "dist-tags": {"latest": "2.0.0"},
        "versions": {
            "1.0.0": payload,
            "2.0.0": {"license": "Apache-2.0"},
        },
    }


def _advisory(title: str, severity: str, **extra) -> dict:
    return {"title": title, "severity": severity, **extra}


# ── registry metadata ────────────────────────────────────────────────────


class TestRegistryMetadata:
    def test_declared_version_fields(self):
        info = parse_registry_metadata(_document(), "1.0.0")
        assert info.latest_version == "2.0.0"
        assert info.license == "MIT"
        assert info.homepage == "https://example.com/a"
        assert info.repository_url == "https://github.com/owner/a"
        assert info.size == 2048

    def test_falls_back_to_latest_payload(self):
        info = parse_registry_metadata(_document(), "9.9.9")
        assert info.license == "Apache-2.0"
        assert info.repository_url is None

    def test_legacy_license_object(self):
        info = parse_registry_metadata(_document(license={"type": "BSD-3-Clause"}), "1.0.0")
        assert info.license == "BSD-3-Clause"

    def test_missing_license_is_unknown(self):
        info = parse_registry_metadata(_document(license=None), "1.0.0")
        assert info.license == "unknown"

    def test_size_falls_back_to_packed_size(self):
        info = parse_registry_metadata(_document(dist={"size": 512}), "1.0.0")
        assert info.size == 512

    def test_non_git_repository_ignored(self):
        assert git_repository_url({"repository": {"type": "svn", "url": "https://x/y/z"}}) is None
        assert git_repository_url({"repository": "github:owner/a"}) is None

    def test_document_without_versions(self):
        assert select_version_payload({"name": "a"}, "1.0.0") == {}
        info = parse_registry_metadata({}, "1.0.0")
        assert info.latest_version is None
        assert info.license == "unknown"


class TestParseDatetime:
    def test_zulu(self):
        assert parse_datetime("2025-03-01T10:00:00Z") == datetime(
            2025, 3, 1, 10, 0, tzinfo=timezone.utc
        )

    def test_naive_is_utc(self):
        assert parse_datetime("2025-03-01T10:00:00").tzinfo == timezone.utc

    def test_invalid(self):
        assert parse_datetime("yesterday") is None
        assert parse_datetime(None) is None
        assert parse_datetime(17) is None


# ── audit ────────────────────────────────────────────────────────────────


class TestSummarizeAudit:
    def test_per_package_peak_severity(self):
        data = {
            "vulnerabilities": {
                "minimist": {
                    "via": [
                        _advisory("Prototype Pollution", "moderate", source=1179),
                        _advisory("Prototype Pollution 2", "critical", source=1180),
                    ]
                },
                "mkdirp": {"via": ["minimist"]},
            },
            "metadata": {"vulnerabilities": {"total": 2, "critical": 1}},
        }
        report = summarize_audit(data)
        assert report.vulnerabilities == 2
        assert set(report.by_package) == {"minimist"}
        entry = report.by_package["minimist"]
        assert entry.count == 2
        assert entry.severity == "critical"
        assert entry.vulnerabilities[0] == {"id": 1179, "title": "Prototype Pollution"}
        assert report.summary["critical"] == 1
        assert report.summary["moderate"] == 1

    def test_count_falls_back_to_package_count(self):
        data = {"vulnerabilities": {"a": {"via": [_advisory("x", "low")]}, "b": {"via": []}}}
        assert summarize_audit(data).vulnerabilities == 2

    def test_advisories_capped(self):
        via = [_advisory(f"issue {i}", "low", id=i) for i in range(15)]
        report = summarize_audit({"vulnerabilities": {"a": {"via": via}}})
        assert len(report.advisories) == 10
        assert report.by_package["a"].count == 15

    def test_malformed_entries_skipped(self):
        data = {
            "vulnerabilities": {
                "a": "nope",
                "b": {"via": "nope"},
                "c": {"via": [{"title": "no severity"}, 3]},
            }
        }
        report = summarize_audit(data)
        assert report.by_package == {}

    def test_empty_response(self):
        report = summarize_audit({})
        assert report.vulnerabilities == 0
        assert report.advisories == []

    def test_wire_round_trip(self):
        report = summarize_audit(
            {"vulnerabilities": {"a": {"via": [_advisory("x", "high", url="https://gh/adv")]}}}
        )
        wire = report_to_dict(report)
        assert wire["advisoriesByPackage"]["a"]["severity"] == "high"
        assert wire["advisories"][0]["url"] == "https://gh/adv"
        back = report_from_dict(wire)
        assert back.by_package["a"].count == 1
        assert back.summary["high"] == 1
        assert back.vulnerabilities == report.vulnerabilities

    def test_from_dict_tolerates_missing_keys(self):
        back = report_from_dict({})
        assert back.by_package == {}
        assert back.vulnerabilities == 0
