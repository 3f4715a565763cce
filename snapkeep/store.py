"""
Snapshot store: create, list and restore single-file snapshots.

Every snapshot is a byte copy plus a JSON sidecar recording the SHA-256
digest captured at creation time. Copies are verified immediately after
they are written, and restores refuse to clobber a live file that has
diverged from the snapshot unless forced.

Usage:
    from snapkeep import BackupStore, EventLog, Manual, default_config

    config = default_config()
    store = BackupStore(config, EventLog(config.journal_path))
    snapshot = store.create_snapshot("/etc/fstab", Manual())
    store.restore_snapshot(snapshot.snapshot_path, force=True)
"""

import json
import logging
import shutil
from dataclasses import dataclass, replace
from pathlib import Path
from typing import List, Optional, Union

from snapkeep.core.atomic_write import atomic_copy, atomic_write
from snapkeep.core.checksum import ChecksumEngine, short
from snapkeep.core.config import KeeperConfig
from snapkeep.core.errors import (
    ConflictError,
    IntegrityMismatchError,
    NotARegularFileError,
    NotFoundError,
    SerializationError,
    SnapshotError,
    SnapshotIOError,
)
from snapkeep.core.layout import (
    backup_dir_for,
    format_timestamp,
    SIDECAR_SUFFIX,
    is_sidecar_name,
    iter_snapshot_files,
    normalize_original,
    sidecar_path,
    snapshot_timestamp,
    unique_snapshot_path,
)
from snapkeep.core.models import (
    EventType,
    PreSystemChange,
    Reason,
    Severity,
    Snapshot,
)
from snapkeep.events import EventLog
from snapkeep.retention import RetentionPolicy

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass
class RestoreResult:
    """What a restore did (or would do, for a dry run)."""
    snapshot_path: str
    target_path: str
    dry_run: bool
    pre_restore_snapshot: Optional[Snapshot] = None


@dataclass
class StoreStats:
    """Totals across the whole store."""
    total_snapshots: int = 0
    total_size_bytes: int = 0
    oldest: Optional[str] = None
    newest: Optional[str] = None


def load_sidecar(snapshot_path: PathLike) -> Snapshot:
    """
    Load the sidecar record for a snapshot.

    Raises:
        NotFoundError: If the sidecar does not exist
        SerializationError: If the sidecar is not a valid record
        SnapshotIOError: If the sidecar cannot be read
    """
    meta_path = sidecar_path(snapshot_path)
    try:
        text = meta_path.read_text(encoding='utf-8')
    except FileNotFoundError:
        raise NotFoundError(meta_path, what="Sidecar metadata")
    except UnicodeDecodeError as e:
        raise SerializationError(f"Sidecar is not valid UTF-8: {e}", meta_path) from e
    except OSError as e:
        raise SnapshotIOError.from_os_error("read", meta_path, e) from e

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise SerializationError(
            f"Failed to parse backup metadata at line {e.lineno}: {e.msg}", meta_path
        ) from e

    try:
        return Snapshot.from_dict(data)
    except SerializationError as e:
        raise SerializationError(e.message, meta_path) from e


class BackupStore:
    """Owns the on-disk snapshot layout under ``config.backup_root``."""

    def __init__(
        self,
        config: KeeperConfig,
        events: Optional[EventLog] = None,
        checksum: Optional[ChecksumEngine] = None,
        retention: Optional[RetentionPolicy] = None
    ):
        self.config = config
        self.root = Path(config.backup_root)
        self.events = events or EventLog(config.journal_path)
        self.checksum = checksum or ChecksumEngine(config.chunk_size)
        self.retention = retention or RetentionPolicy(config.max_snapshots)

    def backup_dir(self, original_path: PathLike) -> Path:
        return backup_dir_for(self.root, original_path)

    # -------------------------------------------------------------------------
    # create
    # -------------------------------------------------------------------------

    def create_snapshot(
        self,
        original_path: PathLike,
        reason: Reason,
        dry_run: bool = False
    ) -> Snapshot:
        """
        Snapshot one regular file.

        Args:
            original_path: File to copy
            reason: Why the snapshot is being taken
            dry_run: Compute digest and paths only; touch nothing

        Returns:
            The Snapshot record (would-be record for a dry run)

        Raises:
            NotFoundError: If the file does not exist
            NotARegularFileError: If the path is not an ordinary file
            IntegrityMismatchError: If the copy does not match the source
            SnapshotIOError: If reading, copying or writing metadata fails
        """
        return self._create(original_path, reason, dry_run=dry_run)

    def _create(
        self,
        original_path: PathLike,
        reason: Reason,
        dry_run: bool = False,
        protected: tuple = ()
    ) -> Snapshot:
        """Create a snapshot; ``protected`` snapshots survive the retention pass."""
        source = Path(normalize_original(original_path))

        if not source.exists():
            raise NotFoundError(source, what="Source file")
        if not source.is_file():
            raise NotARegularFileError(source)

        try:
            size_bytes = source.stat().st_size
        except OSError as e:
            raise SnapshotIOError.from_os_error("stat", source, e) from e

        checksum = self.checksum.digest_file(source)
        backup_dir = self.backup_dir(source)
        snapshot_path = unique_snapshot_path(backup_dir, source.name, format_timestamp())

        snapshot = Snapshot(
            original_path=str(source),
            snapshot_path=str(snapshot_path),
            timestamp=snapshot_timestamp(snapshot_path),
            reason=reason,
            checksum=checksum,
            size_bytes=size_bytes,
        )

        if dry_run:
            logger.info(
                f"[DRY-RUN] Would create backup: {snapshot_path}",
                extra={'original_path': str(source), 'operation': 'create'}
            )
            return snapshot

        logger.debug(
            f"Creating backup: {source} -> {snapshot_path}",
            extra={'original_path': str(source), 'operation': 'create'}
        )

        try:
            backup_dir.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, snapshot_path)
        except OSError as e:
            logger.error(
                f"Failed to create backup at {snapshot_path}: {e}",
                extra={'original_path': str(source), 'error_code': 'BK-01'}
            )
            self._discard_copy(snapshot_path)
            raise SnapshotIOError.from_os_error("create backup at", snapshot_path, e) from e

        # A copy without a sidecar must not outlive a failed create
        try:
            # Record what was actually captured, not what was read before the copy
            checksum = self._verify_copy(source, snapshot_path, str(source), cleanup=snapshot_path)
            size_bytes = snapshot_path.stat().st_size
            snapshot = replace(snapshot, checksum=checksum, size_bytes=size_bytes)
            self._write_sidecar(snapshot)
        except IntegrityMismatchError:
            raise
        except OSError as e:
            self._discard_copy(snapshot_path)
            raise SnapshotIOError.from_os_error("stat", snapshot_path, e) from e
        except SnapshotError:
            self._discard_copy(snapshot_path)
            raise

        logger.info(
            f"Created backup: {snapshot_path} (reason: {reason.description()})",
            extra={'snapshot_path': str(snapshot_path), 'operation': 'create'}
        )

        self.retention.enforce(backup_dir, protected=(snapshot_path,) + tuple(protected))

        self.events.emit(
            EventType.CREATED,
            str(source),
            f"Backup created: {size_bytes} bytes, checksum {short(checksum)}",
            Severity.INFO,
        )

        return snapshot

    def _verify_copy(
        self,
        source: Path,
        copy: Path,
        event_path: str,
        cleanup: Optional[Path] = None
    ) -> str:
        """Both sides must hash identically right after the copy. Returns the digest."""
        expected = self.checksum.digest_file(source)
        actual = self.checksum.digest_file(copy)
        if expected == actual:
            logger.debug(f"Backup verified successfully: {copy}")
            return actual

        logger.error(
            f"Verification failed: checksums don't match "
            f"(source {short(expected)}, copy {short(actual)})",
            extra={'snapshot_path': str(copy), 'error_code': 'BK-02'}
        )
        if cleanup is not None and self.config.remove_failed_copies:
            try:
                cleanup.unlink()
            except OSError as e:
                logger.warning(f"Could not remove failed copy {cleanup}: {e}")

        self.events.emit(
            EventType.FAILED,
            event_path,
            f"Integrity mismatch after copy to {copy}: "
            f"expected {short(expected)}, got {short(actual)}",
            Severity.CRITICAL,
        )
        raise IntegrityMismatchError(copy, expected, actual)

    def _discard_copy(self, copy: Path):
        try:
            copy.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            logger.warning(
                f"Could not remove incomplete backup {copy}: {e}",
                extra={'snapshot_path': str(copy), 'error_code': 'BK-01'}
            )
            return
        logger.debug(f"Removed incomplete backup: {copy}")

    def _write_sidecar(self, snapshot: Snapshot):
        meta_path = sidecar_path(snapshot.snapshot_path)
        content = json.dumps(snapshot.to_dict(), indent=2)
        atomic_write(meta_path, content)

    # -------------------------------------------------------------------------
    # read
    # -------------------------------------------------------------------------

    def get_snapshot(self, snapshot_path: PathLike) -> Snapshot:
        """
        Load one snapshot's record.

        Raises:
            NotFoundError: If the snapshot or its sidecar is missing
            SerializationError: If the sidecar is malformed
        """
        path = Path(snapshot_path)
        if not path.exists():
            raise NotFoundError(path, what="Backup file")
        return load_sidecar(path)

    def list_snapshots(self, original_path: PathLike) -> List[Snapshot]:
        """
        All readable snapshots of one original, newest first.

        Unreadable sidecars are skipped (the auditor reports them).
        """
        backup_dir = self.backup_dir(original_path)
        if not backup_dir.is_dir():
            return []

        snapshots = []
        for entry in backup_dir.iterdir():
            if not is_sidecar_name(entry.name):
                continue
            snapshot_file = entry.with_name(entry.name[:-len(SIDECAR_SUFFIX)])
            try:
                snapshots.append(load_sidecar(snapshot_file))
            except (SerializationError, SnapshotIOError, NotFoundError) as e:
                logger.warning(
                    f"Skipping unreadable sidecar: {e}",
                    extra={'snapshot_path': str(snapshot_file), 'error_code': 'BK-05'}
                )

        snapshots.sort(key=lambda s: s.timestamp, reverse=True)
        return snapshots

    def stats(self) -> StoreStats:
        """Snapshot count, total size and oldest/newest timestamps."""
        stats = StoreStats()
        for path in iter_snapshot_files(self.root):
            stats.total_snapshots += 1
            try:
                stats.total_size_bytes += path.stat().st_size
            except OSError:
                continue
            try:
                snapshot = load_sidecar(path)
            except (SerializationError, SnapshotIOError, NotFoundError):
                continue
            if stats.oldest is None or snapshot.timestamp < stats.oldest:
                stats.oldest = snapshot.timestamp
            if stats.newest is None or snapshot.timestamp > stats.newest:
                stats.newest = snapshot.timestamp
        return stats

    # -------------------------------------------------------------------------
    # restore
    # -------------------------------------------------------------------------

    def restore_snapshot(
        self,
        snapshot_path: PathLike,
        dry_run: bool = False,
        force: bool = False
    ) -> RestoreResult:
        """
        Copy a snapshot back over its original file.

        The current original (if any) is snapshotted first with reason
        PreSystemChange, so a restore can itself be undone.

        Raises:
            NotFoundError: If the snapshot or its sidecar is missing
            SerializationError: If the sidecar is malformed
            ConflictError: If the live original diverged and force is False
            IntegrityMismatchError: If the restored file does not match
            SnapshotIOError: If the copy fails
        """
        backup = Path(snapshot_path)
        if not backup.exists():
            raise NotFoundError(backup, what="Backup file")

        snapshot = load_sidecar(backup)
        original = Path(snapshot.original_path)

        if original.exists() and not force:
            current = self.checksum.digest_file(original)
            if current != snapshot.checksum:
                logger.warning(
                    f"Refusing to overwrite modified file {original}",
                    extra={'snapshot_path': str(backup), 'error_code': 'BK-03'}
                )
                raise ConflictError(original, snapshot.checksum, current)

        result = RestoreResult(
            snapshot_path=str(backup),
            target_path=str(original),
            dry_run=dry_run,
        )

        if dry_run:
            logger.info(
                f"[DRY-RUN] Would restore: {backup} -> {original}",
                extra={'snapshot_path': str(backup), 'operation': 'restore'}
            )
            return result

        # Never overwrite the live file with a snapshot that is itself damaged
        stored = self.checksum.digest_file(backup)
        if stored != snapshot.checksum:
            logger.error(
                "Backup no longer matches its recorded checksum",
                extra={'snapshot_path': str(backup), 'error_code': 'BK-07'}
            )
            self.events.emit(
                EventType.CORRUPTED,
                str(original),
                f"Refused restore from corrupted backup {backup}",
                Severity.CRITICAL,
            )
            raise IntegrityMismatchError(backup, snapshot.checksum, stored)

        if original.exists():
            result.pre_restore_snapshot = self._create(
                original,
                PreSystemChange(),
                protected=(backup,),
            )
            logger.info(
                f"Created pre-restore backup: {result.pre_restore_snapshot.snapshot_path}",
                extra={'original_path': str(original), 'operation': 'restore'}
            )

        try:
            atomic_copy(backup, original)
        except OSError as e:
            raise SnapshotIOError.from_os_error("restore backup to", original, e) from e

        restored = self.checksum.digest_file(original)
        if restored != snapshot.checksum:
            logger.error(
                "Restored file does not match backup checksum",
                extra={'original_path': str(original), 'error_code': 'BK-02'}
            )
            self.events.emit(
                EventType.FAILED,
                str(original),
                f"Integrity mismatch after restore from {backup}: "
                f"expected {short(snapshot.checksum)}, got {short(restored)}",
                Severity.CRITICAL,
            )
            raise IntegrityMismatchError(original, snapshot.checksum, restored)

        logger.info(
            f"Successfully restored: {original}",
            extra={'snapshot_path': str(backup), 'operation': 'restore'}
        )

        self.events.emit(
            EventType.RESTORED,
            str(original),
            f"Restored from backup: {backup}",
            Severity.INFO,
        )

        return result
