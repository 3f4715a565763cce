"""Tests for the restoration drill."""

from pathlib import Path
from unittest.mock import patch

from snapkeep.core.checksum import ChecksumEngine
from snapkeep.core.errors import SnapshotIOError
from snapkeep.core.layout import sidecar_path
from snapkeep.core.models import Manual
from snapkeep.drill import UNKNOWN_ORIGINAL, RestorationDrill


def _drill(config, events):
    return RestorationDrill(config.backup_root, events)


class TestDrillOutcomes:

    def test_intact_store_passes(self, store, config, events, make_file, journal):
        store.create_snapshot(make_file("a.conf", b"a"), Manual())
        store.create_snapshot(make_file("b.conf", b"b"), Manual())

        report = _drill(config, events).run()

        assert report.total_tested == 2
        assert report.successful == 2
        assert report.failed == []
        assert report.passed
        assert report.success_rate == 100.0
        assert report.duration_ms >= 0
        assert journal()[-1]['event_type'] == "DrillPassed"
        assert journal()[-1]['severity'] == "Info"

    def test_corrupted_snapshot_fails(self, store, config, events, make_file, journal):
        snapshot = store.create_snapshot(make_file(content=b"0123456789"), Manual())
        Path(snapshot.snapshot_path).write_bytes(b"garbage")

        report = _drill(config, events).run()

        assert report.successful == 0
        assert len(report.failed) == 1
        failure = report.failed[0]
        assert failure.snapshot_path == snapshot.snapshot_path
        assert failure.original_path == snapshot.original_path
        assert "corrupted" in failure.error
        assert not report.passed
        assert journal()[-1]['event_type'] == "DrillFailed"
        assert journal()[-1]['severity'] == "Warning"

    def test_diverged_original_still_succeeds(self, store, config, events, make_file):
        original = make_file(content=b"v1")
        snapshot = store.create_snapshot(original, Manual())
        original.write_bytes(b"v2")

        report = _drill(config, events).run()

        assert report.successful == 1
        assert report.passed
        assert report.diverged == [snapshot.original_path]

    def test_missing_original_still_succeeds(self, store, config, events, make_file):
        original = make_file()
        store.create_snapshot(original, Manual())
        original.unlink()

        report = _drill(config, events).run()

        assert report.successful == 1
        assert report.diverged == []

    def test_unloadable_sidecar_reports_unknown_original(self, store, config, events, make_file):
        snapshot = store.create_snapshot(make_file(), Manual())
        sidecar_path(snapshot.snapshot_path).unlink()

        report = _drill(config, events).run()

        assert len(report.failed) == 1
        assert report.failed[0].original_path == UNKNOWN_ORIGINAL

    def test_unreadable_snapshot_fails_with_known_original(self, store, config, events, make_file):
        unreadable = store.create_snapshot(make_file("a.conf", b"a"), Manual())
        store.create_snapshot(make_file("b.conf", b"b"), Manual())
        real_digest = ChecksumEngine.digest_file

        def failing_digest(self, path):
            if str(path) == unreadable.snapshot_path:
                raise SnapshotIOError(f"Failed to checksum {path}: I/O error")
            return real_digest(self, path)

        with patch.object(ChecksumEngine, "digest_file", failing_digest):
            report = _drill(config, events).run()

        assert report.total_tested == 2
        assert report.successful == 1
        assert len(report.failed) == 1
        failure = report.failed[0]
        assert failure.snapshot_path == unreadable.snapshot_path
        assert failure.original_path == unreadable.original_path
        assert "Failed to calculate checksum" in failure.error

    def test_empty_store(self, config, events):
        report = _drill(config, events).run()

        assert report.total_tested == 0
        assert report.success_rate == 0.0
        assert report.passed


class TestDrillIsReadOnly:

    def test_nothing_written(self, store, config, events, make_file):
        original = make_file(content=b"v1")
        store.create_snapshot(original, Manual())
        original.write_bytes(b"v2")
        before = sorted(p.name for p in config.backup_root.rglob("*"))

        RestorationDrill.from_config(config, events).run()

        assert original.read_bytes() == b"v2"
        assert sorted(p.name for p in config.backup_root.rglob("*")) == before
