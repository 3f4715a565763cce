"""
On-disk layout of the snapshot store.

    <root>/<sanitize(original_path)>/<basename>.backup.<timestamp>
    <root>/<sanitize(original_path)>/<basename>.backup.<timestamp>.backup.json

The backup directory for an original is derived from its path on every
access; nothing about the grouping is persisted.
"""

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional, Union


SNAPSHOT_MARKER = ".backup."
SIDECAR_SUFFIX = ".backup.json"
TEMP_PREFIX = ".tmp_"
TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
TIMESTAMP_LENGTH = 15  # len("20260101_120000")


def sanitize(original_path: Union[str, Path]) -> str:
    """
    Flatten a path into a single directory name.

    >>> sanitize("/etc/nginx/nginx.conf")
    'etc_nginx_nginx.conf'
    """
    flattened = str(original_path).replace('/', '_').replace('\\', '_')
    return flattened.lstrip('_')


def normalize_original(original_path: Union[str, Path]) -> str:
    """Absolute form of an original path (symlinks are not resolved)."""
    return os.path.abspath(os.fspath(original_path))


def backup_dir_for(root: Path, original_path: Union[str, Path]) -> Path:
    return Path(root) / sanitize(normalize_original(original_path))


def sidecar_path(snapshot_path: Union[str, Path]) -> Path:
    snapshot_path = Path(snapshot_path)
    return snapshot_path.with_name(snapshot_path.name + SIDECAR_SUFFIX)


def is_snapshot_name(name: str) -> bool:
    """Snapshot byte copies only; sidecars and temp files are excluded."""
    return (
        SNAPSHOT_MARKER in name
        and not name.endswith(SIDECAR_SUFFIX)
        and not name.startswith(TEMP_PREFIX)
    )


def is_sidecar_name(name: str) -> bool:
    return name.endswith(SIDECAR_SUFFIX) and not name.startswith(TEMP_PREFIX)


def format_timestamp(moment: Optional[datetime] = None) -> str:
    moment = moment or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(timestamp: str) -> datetime:
    """
    Parse a snapshot timestamp (collision counter suffix ignored).

    Raises:
        ValueError: If the timestamp is not YYYYMMDD_HHMMSS[...]
    """
    parsed = datetime.strptime(timestamp[:TIMESTAMP_LENGTH], TIMESTAMP_FORMAT)
    return parsed.replace(tzinfo=timezone.utc)


def unique_snapshot_path(backup_dir: Path, basename: str, timestamp: str) -> Path:
    """
    First free snapshot path for ``timestamp``.

    Snapshots taken within the same second get a zero-padded counter so
    names stay unique and sort in creation order. The counter always goes
    past the highest one on disk, so a name freed by retention is never
    reused.
    """
    stem = f"{basename}{SNAPSHOT_MARKER}{timestamp}"
    highest = -1
    if backup_dir.is_dir():
        for entry in backup_dir.iterdir():
            name = entry.name
            if name.endswith(SIDECAR_SUFFIX):
                name = name[:-len(SIDECAR_SUFFIX)]
            if name == stem:
                highest = max(highest, 0)
            elif name.startswith(stem + "_") and name[len(stem) + 1:].isdigit():
                highest = max(highest, int(name[len(stem) + 1:]))

    if highest < 0:
        return backup_dir / stem
    return backup_dir / f"{stem}_{highest + 1:03d}"


def snapshot_timestamp(snapshot_path: Union[str, Path]) -> str:
    """Timestamp portion of a snapshot filename."""
    name = Path(snapshot_path).name
    return name.rsplit(SNAPSHOT_MARKER, 1)[-1]


def iter_snapshot_files(root: Path) -> Iterator[Path]:
    """
    Walk the whole store, yielding snapshot files in sorted order.

    Directory symlinks are not followed.
    """
    root = Path(root)
    if not root.is_dir():
        return
    for dirpath, dirnames, filenames in os.walk(root, followlinks=False):
        dirnames.sort()
        for name in sorted(filenames):
            if not is_snapshot_name(name):
                continue
            path = Path(dirpath) / name
            if path.is_file():
                yield path


def list_snapshot_files(backup_dir: Path):
    """Snapshot files directly inside one backup directory."""
    backup_dir = Path(backup_dir)
    if not backup_dir.is_dir():
        return []
    return [
        entry for entry in backup_dir.iterdir()
        if is_snapshot_name(entry.name) and entry.is_file()
    ]
