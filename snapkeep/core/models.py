"""
Data model for snapshots and journal events.

Snapshot records are immutable once written. Reason is a closed set of
variants; two of them carry the name of the operation being guarded.
"""

from dataclasses import dataclass, asdict, fields
from enum import Enum
from typing import Dict, Any, Type

from .errors import SerializationError


# =============================================================================
# Reason variants
# =============================================================================

class Reason:
    """Base class for the closed set of snapshot reasons."""

    def description(self) -> str:
        raise NotImplementedError

    @property
    def type_name(self) -> str:
        return type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        data = {'type': self.type_name}
        data.update(asdict(self))
        return data


@dataclass(frozen=True)
class Manual(Reason):
    def description(self) -> str:
        return "Manual backup"


@dataclass(frozen=True)
class PrePackageOperation(Reason):
    operation: str

    def description(self) -> str:
        return f"Before package operation: {self.operation}"


@dataclass(frozen=True)
class PreServiceOperation(Reason):
    operation: str

    def description(self) -> str:
        return f"Before service operation: {self.operation}"


@dataclass(frozen=True)
class PreFstabModification(Reason):
    def description(self) -> str:
        return "Before fstab modification"


@dataclass(frozen=True)
class PreSystemChange(Reason):
    def description(self) -> str:
        return "Before system change"


REASON_TYPES: Dict[str, Type[Reason]] = {
    cls.__name__: cls
    for cls in (Manual, PrePackageOperation, PreServiceOperation,
                PreFstabModification, PreSystemChange)
}


def reason_from_dict(data: Any) -> Reason:
    """
    Rebuild a Reason from its tagged dict form.

    Raises:
        SerializationError: If the tag is unknown or the payload is wrong
    """
    if not isinstance(data, dict):
        raise SerializationError(f"Reason must be an object, got {type(data).__name__}")

    type_name = data.get('type')
    cls = REASON_TYPES.get(type_name)
    if cls is None:
        raise SerializationError(f"Unknown reason type: {type_name!r}")

    kwargs = {}
    for f in fields(cls):
        value = data.get(f.name)
        if not isinstance(value, str):
            raise SerializationError(
                f"Reason {type_name} requires string field '{f.name}'"
            )
        kwargs[f.name] = value
    return cls(**kwargs)


# =============================================================================
# Snapshot record
# =============================================================================

@dataclass(frozen=True)
class Snapshot:
    """
    Sidecar record describing one snapshot.

    Attributes:
        original_path: Path of the file that was snapshotted
        snapshot_path: Path of the byte copy
        timestamp: UTC creation time, YYYYMMDD_HHMMSS[_NNN]
        reason: Why the snapshot was taken
        checksum: SHA-256 hex digest of the copy at creation time
        size_bytes: Size of the copy in bytes
    """
    original_path: str
    snapshot_path: str
    timestamp: str
    reason: Reason
    checksum: str
    size_bytes: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'original_path': self.original_path,
            'backup_path': self.snapshot_path,
            'timestamp': self.timestamp,
            'reason': self.reason.to_dict(),
            'checksum': self.checksum,
            'size_bytes': self.size_bytes,
        }

    @classmethod
    def from_dict(cls, data: Any) -> 'Snapshot':
        if not isinstance(data, dict):
            raise SerializationError(
                f"Sidecar must be a JSON object, got {type(data).__name__}"
            )

        for key in ('original_path', 'backup_path', 'timestamp', 'checksum'):
            if not isinstance(data.get(key), str):
                raise SerializationError(f"Sidecar field '{key}' missing or not a string")

        size = data.get('size_bytes')
        if not isinstance(size, int) or isinstance(size, bool) or size < 0:
            raise SerializationError("Sidecar field 'size_bytes' must be a non-negative integer")

        if 'reason' not in data:
            raise SerializationError("Sidecar field 'reason' missing")

        return cls(
            original_path=data['original_path'],
            snapshot_path=data['backup_path'],
            timestamp=data['timestamp'],
            reason=reason_from_dict(data['reason']),
            checksum=data['checksum'],
            size_bytes=size,
        )


# =============================================================================
# Events
# =============================================================================

class EventType(str, Enum):
    CREATED = "Created"
    RESTORED = "Restored"
    CORRUPTED = "Corrupted"
    FAILED = "Failed"
    HEALTH_CHECK_PASSED = "HealthCheckPassed"
    HEALTH_CHECK_FAILED = "HealthCheckFailed"
    DRILL_PASSED = "DrillPassed"
    DRILL_FAILED = "DrillFailed"


class Severity(str, Enum):
    INFO = "Info"
    WARNING = "Warning"
    CRITICAL = "Critical"


@dataclass(frozen=True)
class Event:
    """One journal entry. Appended once, never mutated."""
    timestamp: str
    event_type: EventType
    file_path: str
    details: str
    severity: Severity

    def should_alert(self) -> bool:
        return self.severity in (Severity.WARNING, Severity.CRITICAL)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'timestamp': self.timestamp,
            'event_type': self.event_type.value,
            'file_path': self.file_path,
            'details': self.details,
            'severity': self.severity.value,
        }
