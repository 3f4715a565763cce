"""
snapkeep - verified snapshots of single configuration files.

Take a snapshot before a risky change, prove later that the recovered
bytes are exactly what was saved, and audit the whole store for
corruption without touching it.
"""

from snapkeep.core import (
    Manual,
    PrePackageOperation,
    PreServiceOperation,
    PreFstabModification,
    PreSystemChange,
    Snapshot,
    Event,
    EventType,
    Severity,
    KeeperConfig,
    default_config,
    load_config,
    SnapshotError,
    NotFoundError,
    NotARegularFileError,
    IntegrityMismatchError,
    ConflictError,
    SnapshotIOError,
    SerializationError,
)
from snapkeep.events import EventLog, should_alert
from snapkeep.retention import RetentionPolicy, RetentionResult
from snapkeep.store import BackupStore, RestoreResult, StoreStats
from snapkeep.audit import IntegrityAuditor, HealthReport, HealthStatus, is_healthy
from snapkeep.drill import RestorationDrill, DrillReport, DrillFailure

__version__ = "0.1.0"
__license__ = "MIT"

__all__ = [
    # Components
    "BackupStore",
    "RetentionPolicy",
    "IntegrityAuditor",
    "RestorationDrill",
    "EventLog",
    # Results
    "RestoreResult",
    "RetentionResult",
    "StoreStats",
    "HealthReport",
    "HealthStatus",
    "DrillReport",
    "DrillFailure",
    "is_healthy",
    "should_alert",
    # Model
    "Manual",
    "PrePackageOperation",
    "PreServiceOperation",
    "PreFstabModification",
    "PreSystemChange",
    "Snapshot",
    "Event",
    "EventType",
    "Severity",
    # Config
    "KeeperConfig",
    "default_config",
    "load_config",
    # Errors
    "SnapshotError",
    "NotFoundError",
    "NotARegularFileError",
    "IntegrityMismatchError",
    "ConflictError",
    "SnapshotIOError",
    "SerializationError",
    # Version info
    "__version__",
    "__license__",
]
