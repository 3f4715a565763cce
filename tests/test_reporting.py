"""Tests for audit and drill report rendering."""

import json

import pytest

from snapkeep.audit import AuditItem, HealthReport, HealthStatus, StaleSnapshot
from snapkeep.core.reporting import (
    format_bytes,
    generate_json_report,
    generate_markdown_report,
    report_to_dict,
    save_report,
)
from snapkeep.drill import DrillFailure, DrillReport


@pytest.fixture
def health_report():
    return HealthReport(
        total_snapshots=3,
        healthy=1,
        items=[
            AuditItem("/b/a.backup.1", HealthStatus.HEALTHY),
            AuditItem("/b/b.backup.1", HealthStatus.CORRUPTED, "expected aaaa, got bbbb"),
            AuditItem("/b/c.backup.1", HealthStatus.MISSING_METADATA),
        ],
        corrupted=["/b/b.backup.1"],
        missing_metadata=["/b/c.backup.1"],
        stale=[StaleSnapshot("/etc/a", "/b/a.backup.1", 40, "20260101_000000")],
        checked_at="2026-02-10T00:00:00+00:00",
    )


@pytest.fixture
def drill_report():
    return DrillReport(
        total_tested=4,
        successful=3,
        failed=[DrillFailure("/b/x.backup.1", "/etc/x", "Checksum mismatch - backup is corrupted")],
        diverged=["/etc/y"],
        duration_ms=12,
    )


class TestFormatBytes:

    @pytest.mark.parametrize("size,expected", [
        (0, "0 B"),
        (512, "512.00 B"),
        (1536, "1.50 KB"),
        (5 * 1024 * 1024, "5.00 MB"),
    ])
    def test_units(self, size, expected):
        assert format_bytes(size) == expected


class TestHealthReport:

    def test_dict_form(self, health_report):
        data = report_to_dict(health_report)
        assert data['is_healthy'] is False
        assert data['items'][1]['status'] == "Corrupted"
        assert data['stale'][0]['days_since_backup'] == 40

    def test_json_is_parseable(self, health_report):
        data = json.loads(generate_json_report(health_report))
        assert data['corrupted'] == ["/b/b.backup.1"]

    def test_markdown_sections(self, health_report):
        text = generate_markdown_report(health_report)
        assert text.startswith("# Backup Health Check Report")
        assert "Issues detected" in text
        assert "## Corrupted Backups" in text
        assert "## Missing Metadata" in text
        assert "40 days old" in text

    def test_healthy_markdown(self):
        report = HealthReport(total_snapshots=1, healthy=1,
                              items=[AuditItem("/b/a.backup.1", HealthStatus.HEALTHY)])
        text = generate_markdown_report(report)
        assert "All backups are healthy" in text
        assert "## Corrupted Backups" not in text


class TestDrillReport:

    def test_dict_form(self, drill_report):
        data = report_to_dict(drill_report)
        assert data['passed'] is False
        assert data['success_rate'] == 75.0
        assert data['failed'][0]['original_path'] == "/etc/x"

    def test_markdown(self, drill_report):
        text = generate_markdown_report(drill_report)
        assert "**Success rate**: 75.0%" in text
        assert "### `/b/x.backup.1`" in text
        assert "## Diverged Originals" in text


class TestSaveReport:

    def test_save_markdown(self, tmp_path, drill_report):
        path = save_report(drill_report, tmp_path / "out" / "drill.md")
        assert path.read_text().startswith("# Backup Restoration Drill Report")

    def test_save_json(self, tmp_path, health_report):
        path = save_report(health_report, tmp_path / "health.json", format='json')
        assert json.loads(path.read_text())['healthy'] == 1

    def test_unknown_format(self, tmp_path, health_report):
        with pytest.raises(ValueError):
            save_report(health_report, tmp_path / "x", format='html')
