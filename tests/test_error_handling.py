"""
Error handling test suite for snapkeep.

Covers:
1. Error taxonomy and advisory exit codes
2. Atomic writes (no half-written sidecars or restored files)
3. Logging context and error codes
"""

import json
import logging
import os
from unittest.mock import patch

import pytest

from snapkeep.core.atomic_write import (
    AtomicWriteError,
    atomic_copy,
    atomic_write,
    atomic_write_bytes,
)
from snapkeep.core.config import ConfigValidationError
from snapkeep.core.errors import (
    EXIT_CONFIG_ERROR,
    EXIT_DATA_ERROR,
    EXIT_IO_ERROR,
    EXIT_NO_SUCH_FILE,
    EXIT_PERMISSION_DENIED,
    ConflictError,
    IntegrityMismatchError,
    NotARegularFileError,
    NotFoundError,
    SerializationError,
    SnapshotError,
    SnapshotIOError,
)
from snapkeep.core.logger import (
    ERROR_CODES,
    ColoredFormatter,
    ContextFilter,
    JSONFormatter,
    LogContext,
    setup_from_config,
    setup_logger,
)


class TestErrorTaxonomy:
    """Every failure is a SnapshotError with a usable message."""

    @pytest.mark.parametrize("error,exit_code", [
        (NotFoundError("/etc/x"), EXIT_NO_SUCH_FILE),
        (NotARegularFileError("/etc"), EXIT_NO_SUCH_FILE),
        (IntegrityMismatchError("/b", "a" * 64, "b" * 64), EXIT_DATA_ERROR),
        (SerializationError("bad sidecar"), EXIT_DATA_ERROR),
        (SnapshotIOError("disk gone"), EXIT_IO_ERROR),
    ])
    def test_exit_codes(self, error, exit_code):
        assert isinstance(error, SnapshotError)
        assert error.exit_code == exit_code

    def test_conflict_carries_both_digests(self):
        error = ConflictError("/etc/hosts", "a" * 64, "b" * 64)
        assert error.recorded == "a" * 64
        assert error.current == "b" * 64
        assert "modified since backup" in str(error)
        assert "force" in error.suggestion

    def test_mismatch_message_is_abbreviated(self):
        error = IntegrityMismatchError("/b", "a" * 64, "b" * 64)
        assert "a" * 16 in str(error)
        assert "a" * 17 not in str(error)

    def test_permission_error_maps_to_13(self):
        error = SnapshotIOError.from_os_error(
            "read", "/etc/shadow", PermissionError(13, "Permission denied")
        )
        assert error.exit_code == EXIT_PERMISSION_DENIED
        assert "Permission denied" in str(error)

    def test_other_os_errors_map_to_io(self):
        error = SnapshotIOError.from_os_error("read", "/x", OSError(5, "I/O error"))
        assert error.exit_code == EXIT_IO_ERROR
        assert "I/O error" in str(error)

    def test_serialization_error_names_path(self):
        error = SerializationError("Invalid JSON", path="/b/x.backup.json")
        assert "/b/x.backup.json" in str(error)

    def test_config_validation_exit_code(self):
        assert ConfigValidationError(["bad"]).exit_code == EXIT_CONFIG_ERROR


class TestAtomicWrite:
    """Temp-then-rename writes."""

    def test_atomic_write_creates_file(self, tmp_path):
        test_file = tmp_path / "meta.backup.json"
        result = atomic_write(test_file, '{"checksum": "abc"}')

        assert result is True
        assert test_file.read_text() == '{"checksum": "abc"}'
        assert [p.name for p in tmp_path.iterdir()] == ["meta.backup.json"]

    def test_atomic_write_bytes_creates_parents(self, tmp_path):
        target = tmp_path / "a" / "b" / "blob"
        atomic_write_bytes(target, b"\x00\x01")
        assert target.read_bytes() == b"\x00\x01"

    def test_existing_file_untouched_on_failure(self, tmp_path):
        target = tmp_path / "existing.conf"
        target.write_text("original")

        with patch("snapkeep.core.atomic_write.os.replace", side_effect=OSError(28, "No space left")):
            with pytest.raises(AtomicWriteError):
                atomic_write(target, "replacement")

        assert target.read_text() == "original"
        # Temp file is cleaned up
        assert [p.name for p in tmp_path.iterdir()] == ["existing.conf"]

    def test_disk_full_message(self, tmp_path):
        import errno
        error = OSError(errno.ENOSPC, "No space left on device")
        with patch("snapkeep.core.atomic_write.os.fsync", side_effect=error):
            with pytest.raises(AtomicWriteError) as exc_info:
                atomic_write(tmp_path / "x", "data")
        assert "Disk full" in str(exc_info.value)

    def test_atomic_write_error_is_io_error(self):
        assert issubclass(AtomicWriteError, SnapshotIOError)

    def test_atomic_copy_keeps_permissions(self, tmp_path):
        source = tmp_path / "snapshot"
        source.write_bytes(b"restored contents")
        target = tmp_path / "live.conf"
        target.write_bytes(b"old")
        os.chmod(target, 0o600)

        atomic_copy(source, target, chunk_size=4)

        assert target.read_bytes() == b"restored contents"
        assert (target.stat().st_mode & 0o777) == 0o600

    def test_atomic_copy_missing_source(self, tmp_path):
        target = tmp_path / "live.conf"
        target.write_text("keep me")
        with pytest.raises(FileNotFoundError):
            atomic_copy(tmp_path / "absent", target)
        assert target.read_text() == "keep me"


class TestLogging:
    """Structured logging with context fields."""

    def _record(self, **extra):
        record = logging.LogRecord(
            "snapkeep.store", logging.WARNING, __file__, 1, "Checksum mismatch", None, None
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_error_codes_defined(self):
        for code in ("BK-01", "BK-02", "BK-03", "BK-04", "BK-05", "BK-06", "BK-07",
                     "EV-01", "CFG-01"):
            assert code in ERROR_CODES, f"Missing error code: {code}"

    def test_context_filter_fills_defaults(self):
        record = self._record()
        ContextFilter(LogContext(operation="audit")).filter(record)
        assert record.operation == "audit"
        assert record.snapshot_path is None
        assert record.error_code is None

    def test_context_filter_keeps_explicit_values(self):
        record = self._record(operation="restore")
        ContextFilter(LogContext(operation="audit")).filter(record)
        assert record.operation == "restore"

    def test_json_formatter(self):
        record = self._record(snapshot_path="/b/x", error_code="BK-02")
        entry = json.loads(JSONFormatter().format(record))
        assert entry['level'] == "WARNING"
        assert entry['logger'] == "snapkeep.store"
        assert entry['snapshot_path'] == "/b/x"
        assert entry['error_code'] == "BK-02"
        assert 'original_path' not in entry

    def test_colored_formatter_without_colors(self):
        record = self._record(operation="create", error_code="BK-01")
        line = ColoredFormatter(use_colors=False).format(record)
        assert line.startswith("WARNING [create]")
        assert "[BK-01: Copy failed]" in line

    def test_setup_logger_writes_json_file(self, tmp_path):
        log_file = tmp_path / "logs" / "snapkeep.log"
        logger = setup_logger("snapkeep.test_setup", log_file=log_file,
                              level="DEBUG", console=False)
        try:
            logger.info("hello", extra={'operation': 'drill'})
            for handler in logger.handlers:
                handler.flush()

            entry = json.loads(log_file.read_text().splitlines()[0])
            assert entry['message'] == "hello"
            assert entry['operation'] == "drill"
        finally:
            for handler in logger.handlers:
                handler.close()
            logger.handlers.clear()

    def test_child_records_get_context(self, tmp_path):
        """Records propagated from child loggers pass through the handler filter."""
        log_file = tmp_path / "snapkeep.log"
        parent = setup_logger("snapkeep.test_parent", log_file=log_file, console=False)
        try:
            logging.getLogger("snapkeep.test_parent.child").info("from child")
            for handler in parent.handlers:
                handler.flush()

            entry = json.loads(log_file.read_text().splitlines()[0])
            assert entry['logger'] == "snapkeep.test_parent.child"
        finally:
            for handler in parent.handlers:
                handler.close()
            parent.handlers.clear()

    def test_setup_from_config(self, tmp_path, config):
        config.log_level = "WARNING"
        config.log_file = tmp_path / "snapkeep.log"
        logger = setup_from_config(config)
        try:
            assert logger.name == "snapkeep"
            assert logger.level == logging.WARNING
            assert len(logger.handlers) == 2
        finally:
            for handler in logger.handlers:
                handler.close()
            logger.handlers.clear()
            logger.setLevel(logging.NOTSET)
