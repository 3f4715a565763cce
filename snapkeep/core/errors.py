"""
Error taxonomy for snapkeep.

Every create/restore failure surfaces as one of these exceptions. Each
carries a human-readable message, an optional suggestion and an advisory
exit code (sysexits.h style) for the orchestration layer; the core itself
never terminates the process.

Usage:
    from snapkeep.core.errors import NotFoundError, ConflictError

    try:
        store.restore_snapshot(path)
    except ConflictError as e:
        print(e.suggestion)
"""

from typing import Optional


# Advisory exit codes, following sysexits.h
EXIT_GENERAL_ERROR = 1
EXIT_NO_SUCH_FILE = 2
EXIT_PERMISSION_DENIED = 13
EXIT_DATA_ERROR = 65
EXIT_IO_ERROR = 74
EXIT_CONFIG_ERROR = 78


class SnapshotError(Exception):
    """Base class for all snapkeep errors."""

    exit_code = EXIT_GENERAL_ERROR

    def __init__(
        self,
        message: str,
        suggestion: Optional[str] = None,
        exit_code: Optional[int] = None
    ):
        self.message = message
        self.suggestion = suggestion
        if exit_code is not None:
            self.exit_code = exit_code
        super().__init__(message)


class NotFoundError(SnapshotError):
    """Source file, snapshot or sidecar does not exist."""

    exit_code = EXIT_NO_SUCH_FILE

    def __init__(self, path, what: str = "File"):
        self.path = str(path)
        super().__init__(
            f"{what} does not exist: {path}",
            suggestion="Check that the file path is correct"
        )


class NotARegularFileError(SnapshotError):
    """Path exists but is a directory, device, socket, etc."""

    exit_code = EXIT_NO_SUCH_FILE

    def __init__(self, path):
        self.path = str(path)
        super().__init__(
            f"Path is not a regular file: {path}",
            suggestion="Only single regular files can be snapshotted"
        )


class IntegrityMismatchError(SnapshotError):
    """Digest mismatch right after a copy."""

    exit_code = EXIT_DATA_ERROR

    def __init__(self, path, expected: str, actual: str):
        self.path = str(path)
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Integrity check failed for {path}: "
            f"expected {expected[:16]}, got {actual[:16]}",
            suggestion="The source may have changed during the copy; retry the operation"
        )


class ConflictError(SnapshotError):
    """Unforced restore blocked because the live original diverged."""

    def __init__(self, original_path, recorded: str, current: str):
        self.original_path = str(original_path)
        self.recorded = recorded
        self.current = current
        super().__init__(
            f"Original file has been modified since backup: {original_path}",
            suggestion="Use force to override and overwrite the current contents"
        )


class SnapshotIOError(SnapshotError):
    """Permission, read or write failure."""

    exit_code = EXIT_IO_ERROR

    @classmethod
    def from_os_error(cls, action: str, path, error: OSError) -> 'SnapshotIOError':
        """Wrap an OSError raised while performing ``action`` on ``path``."""
        if isinstance(error, PermissionError):
            return cls(
                f"Permission denied: cannot {action} {path}",
                suggestion="Check file/directory permissions or run with elevated privileges",
                exit_code=EXIT_PERMISSION_DENIED
            )
        return cls(f"Failed to {action} {path}: {error}")


class SerializationError(SnapshotError):
    """Malformed sidecar record."""

    exit_code = EXIT_DATA_ERROR

    def __init__(self, message: str, path=None):
        self.path = str(path) if path is not None else None
        if path is not None:
            message = f"{message} ({path})"
        super().__init__(
            message,
            suggestion="The sidecar metadata is malformed; the snapshot cannot be trusted"
        )
