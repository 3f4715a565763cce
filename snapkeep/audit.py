"""
Integrity audit over the whole snapshot store.

Walks every snapshot file, re-hashes it and compares against the digest
recorded in its sidecar. Nothing is modified; one bad snapshot never
stops the scan.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import List, Optional

from snapkeep.core.checksum import ChecksumEngine
from snapkeep.core.config import DEFAULT_STALE_AFTER_DAYS, KeeperConfig
from snapkeep.core.errors import SnapshotError
from snapkeep.core.layout import iter_snapshot_files, parse_timestamp, sidecar_path
from snapkeep.core.models import EventType, Severity
from snapkeep.events import EventLog
from snapkeep.store import load_sidecar

logger = logging.getLogger(__name__)


class HealthStatus(str, Enum):
    HEALTHY = "Healthy"
    CORRUPTED = "Corrupted"
    MISSING_METADATA = "MissingMetadata"
    ERROR = "Error"


@dataclass
class AuditItem:
    snapshot_path: str
    status: HealthStatus
    detail: str = ""


@dataclass
class StaleSnapshot:
    original_path: str
    snapshot_path: str
    days_since_backup: int
    timestamp: str


@dataclass
class HealthReport:
    """
    Result of one audit run.

    ``healthy`` counts Healthy items; ``stale`` is a separate, overlapping
    list of healthy snapshots older than the stale threshold.
    """
    total_snapshots: int = 0
    healthy: int = 0
    items: List[AuditItem] = field(default_factory=list)
    corrupted: List[str] = field(default_factory=list)
    missing_metadata: List[str] = field(default_factory=list)
    stale: List[StaleSnapshot] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    checked_at: str = ""

    @property
    def is_healthy(self) -> bool:
        return is_healthy(self)


def is_healthy(report: HealthReport) -> bool:
    """No corruption, no errors, and at least one healthy snapshot."""
    return not report.corrupted and not report.errors and report.healthy > 0


class IntegrityAuditor:
    """Classifies every stored snapshot's health."""

    def __init__(
        self,
        backup_root: Path,
        events: EventLog,
        checksum: Optional[ChecksumEngine] = None,
        stale_after_days: int = DEFAULT_STALE_AFTER_DAYS
    ):
        self.backup_root = Path(backup_root)
        self.events = events
        self.checksum = checksum or ChecksumEngine()
        self.stale_after_days = stale_after_days

    @classmethod
    def from_config(cls, config: KeeperConfig, events: EventLog) -> 'IntegrityAuditor':
        return cls(
            config.backup_root,
            events,
            checksum=ChecksumEngine(config.chunk_size),
            stale_after_days=config.stale_after_days,
        )

    def run(self, now: Optional[datetime] = None) -> HealthReport:
        now = now or datetime.now(timezone.utc)
        report = HealthReport(checked_at=now.isoformat())

        if not self.backup_root.is_dir():
            report.warnings.append(
                "No backup directory found. No backups have been created yet."
            )
        else:
            for path in iter_snapshot_files(self.backup_root):
                report.total_snapshots += 1
                self._check(path, report, now)

        self._emit_summary(report)
        return report

    def _check(self, path: Path, report: HealthReport, now: datetime):
        path_str = str(path)

        if not sidecar_path(path).exists():
            report.missing_metadata.append(path_str)
            report.items.append(AuditItem(path_str, HealthStatus.MISSING_METADATA))
            logger.warning(
                "Backup has no sidecar metadata",
                extra={'snapshot_path': path_str, 'error_code': 'BK-06'}
            )
            return

        try:
            snapshot = load_sidecar(path)
        except SnapshotError as e:
            message = f"Failed to load metadata for {path}: {e}"
            report.errors.append(message)
            report.items.append(AuditItem(path_str, HealthStatus.ERROR, str(e)))
            return

        try:
            current = self.checksum.digest_file(path)
        except SnapshotError as e:
            message = f"Failed to verify {path}: {e}"
            report.errors.append(message)
            report.items.append(AuditItem(path_str, HealthStatus.ERROR, str(e)))
            return

        if current != snapshot.checksum:
            report.corrupted.append(path_str)
            report.items.append(AuditItem(
                path_str,
                HealthStatus.CORRUPTED,
                f"expected {snapshot.checksum[:16]}, got {current[:16]}"
            ))
            logger.error(
                f"Corrupted backup detected: {path}",
                extra={'snapshot_path': path_str, 'error_code': 'BK-07'}
            )
            self.events.emit(
                EventType.CORRUPTED,
                snapshot.original_path,
                f"Backup checksum mismatch: {path}",
                Severity.CRITICAL,
            )
            return

        report.healthy += 1
        report.items.append(AuditItem(path_str, HealthStatus.HEALTHY))

        try:
            age_days = (now - parse_timestamp(snapshot.timestamp)).days
        except ValueError:
            report.warnings.append(
                f"Unparseable timestamp {snapshot.timestamp!r} for {path}"
            )
            return

        if age_days > self.stale_after_days:
            report.stale.append(StaleSnapshot(
                original_path=snapshot.original_path,
                snapshot_path=path_str,
                days_since_backup=age_days,
                timestamp=snapshot.timestamp,
            ))

    def _emit_summary(self, report: HealthReport):
        summary = (
            f"{report.healthy}/{report.total_snapshots} healthy, "
            f"{len(report.corrupted)} corrupted, "
            f"{len(report.missing_metadata)} missing metadata, "
            f"{len(report.errors)} errors"
        )
        if is_healthy(report):
            self.events.emit(
                EventType.HEALTH_CHECK_PASSED, str(self.backup_root), summary, Severity.INFO
            )
        else:
            severity = Severity.CRITICAL if report.corrupted else Severity.WARNING
            self.events.emit(
                EventType.HEALTH_CHECK_FAILED, str(self.backup_root), summary, severity
            )
