"""
Atomic file writing utilities.

Prevents half-written sidecars and config files from:
- Ctrl+C interrupts
- Disk full errors
- Power failures

Uses the write-to-temp-then-rename pattern which is atomic on POSIX systems.

Usage:
    from snapkeep.core.atomic_write import atomic_write, atomic_copy

    # Sidecar record
    atomic_write(Path("nginx.conf.backup.20260101_120000.backup.json"), json_text)

    # Overwrite a live file with a snapshot's bytes
    atomic_copy(snapshot_path, Path("/etc/nginx/nginx.conf"))
"""

import errno
import os
import shutil
import tempfile
from pathlib import Path
from typing import Union

from .errors import SnapshotIOError
from .layout import TEMP_PREFIX


class AtomicWriteError(SnapshotIOError):
    """Error during atomic write operation."""
    pass


def _translate_os_error(file_path: Path, e: OSError) -> AtomicWriteError:
    if e.errno == errno.ENOSPC:
        return AtomicWriteError(
            f"Disk full: Cannot write to {file_path}. "
            f"Free up space and try again."
        )
    if e.errno == errno.EACCES or isinstance(e, PermissionError):
        return AtomicWriteError(
            f"Permission denied: Cannot write to {file_path}. "
            f"Check file/directory permissions.",
            exit_code=13
        )
    return AtomicWriteError(f"Write error for {file_path}: {e}")


def _discard(temp_path: Path):
    if temp_path and temp_path.exists():
        try:
            temp_path.unlink()
        except OSError:
            pass  # Leftover .tmp_ files are ignored by the store walkers


def _replace_from_temp(file_path: Path, fill) -> bool:
    """Create a temp file beside ``file_path``, let ``fill`` write it, then rename."""
    temp_path = None

    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)

        # Same directory ensures same filesystem for the rename
        temp_fd, temp_path_str = tempfile.mkstemp(
            prefix=f"{TEMP_PREFIX}{file_path.name}_",
            dir=file_path.parent,
            suffix=".tmp"
        )
        temp_path = Path(temp_path_str)

        try:
            with os.fdopen(temp_fd, 'wb') as f:
                fill(f)
                f.flush()
                os.fsync(f.fileno())
        except OSError as e:
            raise _translate_os_error(file_path, e) from e

        # Preserve original file permissions if it exists
        if file_path.exists():
            try:
                os.chmod(temp_path, file_path.stat().st_mode)
            except OSError:
                pass  # Non-critical, continue with default permissions

        os.replace(temp_path, file_path)
        return True

    except AtomicWriteError:
        _discard(temp_path)
        raise

    except OSError as e:
        _discard(temp_path)
        raise _translate_os_error(file_path, e) from e


def atomic_write_bytes(file_path: Union[str, Path], data: bytes) -> bool:
    """
    Write bytes atomically.

    Raises:
        AtomicWriteError: If write fails (with descriptive message)
    """
    return _replace_from_temp(Path(file_path), lambda f: f.write(data))


def atomic_write(
    file_path: Union[str, Path],
    content: str,
    encoding: str = 'utf-8'
) -> bool:
    """
    Write text atomically.

    Args:
        file_path: Path to file to write
        content: Content to write
        encoding: Text encoding (default: utf-8)

    Returns:
        True if write succeeded

    Raises:
        AtomicWriteError: If write fails (with descriptive message)

    Example:
        >>> atomic_write(Path("meta.backup.json"), '{"checksum": "..."}')
        True
    """
    return atomic_write_bytes(file_path, content.encode(encoding))


def atomic_copy(
    source: Union[str, Path],
    target: Union[str, Path],
    chunk_size: int = 64 * 1024
) -> bool:
    """
    Copy ``source`` over ``target`` atomically.

    Readers of ``target`` see either the old or the new contents, never
    a truncated mix. The target's permission bits are kept when it exists.

    Raises:
        FileNotFoundError: If source does not exist
        AtomicWriteError: If the copy cannot be written
    """
    source = Path(source)
    target = Path(target)

    with open(source, 'rb') as src:
        return _replace_from_temp(
            target,
            lambda dst: shutil.copyfileobj(src, dst, chunk_size)
        )
