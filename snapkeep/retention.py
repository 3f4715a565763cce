"""
Retention pruning for one backup directory.

Keeps the newest ``max_snapshots`` snapshot files (by modification time)
and deletes the rest together with their sidecars. Pruning is best-effort:
a failed deletion is logged and recorded, never raised.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List

from snapkeep.core.config import DEFAULT_MAX_SNAPSHOTS
from snapkeep.core.layout import list_snapshot_files, sidecar_path

logger = logging.getLogger(__name__)


@dataclass
class RetentionResult:
    """Outcome of one pruning pass."""
    kept: List[Path] = field(default_factory=list)
    removed: List[Path] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def _sort_key(path: Path):
    try:
        mtime = path.stat().st_mtime_ns
    except OSError:
        mtime = 0
    return (mtime, path.name)


class RetentionPolicy:
    """Bounds the number of snapshots kept per original file."""

    def __init__(self, max_snapshots: int = DEFAULT_MAX_SNAPSHOTS):
        if max_snapshots < 1:
            raise ValueError(f"max_snapshots must be at least 1, got {max_snapshots}")
        self.max_snapshots = max_snapshots

    def enforce(
        self,
        backup_dir: Path,
        protected: Iterable[Path] = ()
    ) -> RetentionResult:
        """
        Prune ``backup_dir`` down to ``max_snapshots`` entries.

        Protected snapshots are never deleted but still count toward the
        limit; the next-oldest unprotected snapshot goes instead.
        """
        result = RetentionResult()
        protected_set = {Path(p).resolve() for p in protected}

        snapshots = sorted(list_snapshot_files(backup_dir), key=_sort_key, reverse=True)
        excess = len(snapshots) - self.max_snapshots
        if excess <= 0:
            result.kept = snapshots
            return result

        # Walk oldest-first, picking unprotected victims
        victims = set()
        for snapshot in reversed(snapshots):
            if len(victims) >= excess:
                break
            if snapshot.resolve() not in protected_set:
                victims.add(snapshot)

        for snapshot in snapshots:
            if snapshot not in victims:
                result.kept.append(snapshot)
                continue

            logger.debug(
                f"Removing old backup: {snapshot}",
                extra={'snapshot_path': str(snapshot), 'operation': 'retention'}
            )
            removed = True
            for target in (snapshot, sidecar_path(snapshot)):
                try:
                    target.unlink()
                except FileNotFoundError:
                    continue
                except OSError as e:
                    removed = False
                    message = f"Failed to remove {target}: {e}"
                    result.warnings.append(message)
                    logger.warning(
                        message,
                        extra={'snapshot_path': str(snapshot), 'error_code': 'BK-04'}
                    )
            if removed:
                result.removed.append(snapshot)

        if result.removed:
            logger.info(
                f"Cleaned up {len(result.removed)} old backup(s)",
                extra={'operation': 'retention'}
            )
        return result
