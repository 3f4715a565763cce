"""
Append-only event journal.

Each significant operation (snapshot created, restored, corruption found,
health check and drill outcomes) is appended as one JSON line. The journal
is never rewritten, rotated or compacted here.

Alert delivery lives outside this package; ``should_alert`` is the only
signal handed to it.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Union

from snapkeep.core.errors import SnapshotIOError
from snapkeep.core.models import Event, EventType, Severity

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.CRITICAL: logging.ERROR,
}


def should_alert(event: Event) -> bool:
    """True for Warning and Critical events."""
    return event.should_alert()


class EventLog:
    """JSON-lines journal at a fixed path."""

    def __init__(self, journal_path: Union[str, Path]):
        self.journal_path = Path(journal_path)

    def append(self, event: Event):
        """
        Append one event as a single line.

        Raises:
            SnapshotIOError: If the journal cannot be written
        """
        line = json.dumps(event.to_dict())
        try:
            self.journal_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.journal_path, 'a', encoding='utf-8') as f:
                f.write(line + '\n')
        except OSError as e:
            raise SnapshotIOError.from_os_error("append to journal", self.journal_path, e) from e

    def emit(
        self,
        event_type: EventType,
        file_path: Union[str, Path],
        details: str,
        severity: Severity = Severity.INFO
    ) -> Event:
        """
        Build, journal and log an event.

        A journal write failure is logged and does not propagate; the
        operation that produced the event has already completed.
        """
        event = Event(
            timestamp=datetime.now(timezone.utc).isoformat(),
            event_type=event_type,
            file_path=str(file_path),
            details=details,
            severity=severity,
        )

        try:
            self.append(event)
        except SnapshotIOError as e:
            logger.warning(
                f"Could not journal {event_type.value} event: {e}",
                extra={'error_code': 'EV-01'}
            )

        logger.log(
            _LOG_LEVELS[severity],
            f"Backup event {event_type.value}: {details}",
            extra={'operation': 'event', 'original_path': str(file_path)}
        )
        return event
