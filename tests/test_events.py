"""Tests for the append-only event journal."""

import json
import logging
from unittest.mock import patch

import pytest

from snapkeep.core.errors import SnapshotIOError
from snapkeep.core.models import Event, EventType, Severity
from snapkeep.events import EventLog, should_alert


def _event(severity=Severity.INFO, event_type=EventType.CREATED):
    return Event(
        timestamp="2026-01-01T00:00:00+00:00",
        event_type=event_type,
        file_path="/etc/fstab",
        details="Backup created",
        severity=severity,
    )


class TestAppend:

    def test_one_json_object_per_line(self, tmp_path):
        log = EventLog(tmp_path / "journal.log")
        log.append(_event())
        log.append(_event(Severity.CRITICAL, EventType.CORRUPTED))

        lines = (tmp_path / "journal.log").read_text().splitlines()
        assert len(lines) == 2
        first = json.loads(lines[0])
        assert first == {
            'timestamp': "2026-01-01T00:00:00+00:00",
            'event_type': "Created",
            'file_path': "/etc/fstab",
            'details': "Backup created",
            'severity': "Info",
        }
        assert json.loads(lines[1])['event_type'] == "Corrupted"

    def test_creates_parent_directory(self, tmp_path):
        log = EventLog(tmp_path / "deep" / "state" / "journal.log")
        log.append(_event())
        assert (tmp_path / "deep" / "state" / "journal.log").exists()

    def test_append_never_rewrites(self, tmp_path):
        path = tmp_path / "journal.log"
        path.write_text('{"existing": true}\n')

        EventLog(path).append(_event())

        lines = path.read_text().splitlines()
        assert lines[0] == '{"existing": true}'
        assert len(lines) == 2

    def test_append_failure_raises(self, tmp_path):
        log = EventLog(tmp_path / "journal.log")
        with patch("builtins.open", side_effect=PermissionError(13, "Permission denied")):
            with pytest.raises(SnapshotIOError) as exc_info:
                log.append(_event())
        assert exc_info.value.exit_code == 13


class TestEmit:

    def test_emit_returns_and_journals(self, tmp_path):
        log = EventLog(tmp_path / "journal.log")

        event = log.emit(EventType.RESTORED, "/etc/hosts", "Restored from backup")

        assert event.event_type == EventType.RESTORED
        assert event.severity == Severity.INFO
        assert event.file_path == "/etc/hosts"
        assert "T" in event.timestamp
        recorded = json.loads((tmp_path / "journal.log").read_text())
        assert recorded['details'] == "Restored from backup"

    def test_journal_failure_is_logged_not_raised(self, tmp_path, caplog):
        # Parent "directory" is a regular file, so the journal cannot be created
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        log = EventLog(blocker / "journal.log")

        with caplog.at_level(logging.WARNING, logger="snapkeep.events"):
            event = log.emit(EventType.FAILED, "/etc/fstab", "copy failed", Severity.CRITICAL)

        assert event.severity == Severity.CRITICAL
        assert any(
            getattr(record, 'error_code', None) == 'EV-01' for record in caplog.records
        )


class TestShouldAlert:

    @pytest.mark.parametrize("severity,expected", [
        (Severity.INFO, False),
        (Severity.WARNING, True),
        (Severity.CRITICAL, True),
    ])
    def test_alert_on_warning_and_critical(self, severity, expected):
        assert should_alert(_event(severity)) is expected
        assert _event(severity).should_alert() is expected
