"""
snapkeep core - leaf infrastructure shared by the store, auditor and drill.

Digests, data model, error taxonomy, on-disk layout, atomic writes,
configuration, logging and report rendering.
"""

from .errors import (
    SnapshotError,
    NotFoundError,
    NotARegularFileError,
    IntegrityMismatchError,
    ConflictError,
    SnapshotIOError,
    SerializationError,
)
from .models import (
    Reason,
    Manual,
    PrePackageOperation,
    PreServiceOperation,
    PreFstabModification,
    PreSystemChange,
    reason_from_dict,
    Snapshot,
    Event,
    EventType,
    Severity,
)
from .checksum import ChecksumEngine, DEFAULT_CHUNK_SIZE
from .layout import sanitize, sidecar_path
from .atomic_write import AtomicWriteError, atomic_write, atomic_write_bytes, atomic_copy
from .config import (
    KeeperConfig,
    ConfigError,
    ConfigValidationError,
    ValidationResult,
    default_config,
    validate_config,
    load_config,
    load_config_strict,
)
from .logger import setup_logger, setup_from_config
from .reporting import (
    format_bytes,
    report_to_dict,
    health_report_to_dict,
    drill_report_to_dict,
    generate_json_report,
    generate_markdown_report,
    save_report,
)

__all__ = [
    # Errors
    'SnapshotError',
    'NotFoundError',
    'NotARegularFileError',
    'IntegrityMismatchError',
    'ConflictError',
    'SnapshotIOError',
    'SerializationError',
    'AtomicWriteError',

    # Model
    'Reason',
    'Manual',
    'PrePackageOperation',
    'PreServiceOperation',
    'PreFstabModification',
    'PreSystemChange',
    'reason_from_dict',
    'Snapshot',
    'Event',
    'EventType',
    'Severity',

    # Digests and layout
    'ChecksumEngine',
    'DEFAULT_CHUNK_SIZE',
    'sanitize',
    'sidecar_path',

    # Atomic writes
    'atomic_write',
    'atomic_write_bytes',
    'atomic_copy',

    # Config
    'KeeperConfig',
    'ConfigError',
    'ConfigValidationError',
    'ValidationResult',
    'default_config',
    'validate_config',
    'load_config',
    'load_config_strict',

    # Logging
    'setup_logger',
    'setup_from_config',

    # Reporting
    'format_bytes',
    'report_to_dict',
    'health_report_to_dict',
    'drill_report_to_dict',
    'generate_json_report',
    'generate_markdown_report',
    'save_report',
]
