"""
Logging for snapkeep.

Provides structured logging with:
- Console output (colorized if supported)
- File output (JSON format for parsing)
- Context tracking (snapshot and original paths, operation)
- Error categorization

Usage:
    from snapkeep.core.logger import setup_logger

    # Setup at start
    logger = setup_logger("snapkeep", log_file=Path("snapkeep.log"))

    # Modules log under the package hierarchy
    logging.getLogger("snapkeep.store").warning(
        "Integrity mismatch",
        extra={"snapshot_path": "...", "error_code": "BK-02"}
    )
"""

import logging
import json
import sys
from pathlib import Path
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Union
from dataclasses import dataclass, asdict


ROOT_LOGGER_NAME = "snapkeep"

ERROR_CODES = {
    # Snapshot store
    "BK-01": "Copy failed",
    "BK-02": "Integrity mismatch after copy",
    "BK-03": "Restore conflict",
    "BK-04": "Retention deletion failed",
    "BK-05": "Malformed sidecar",
    "BK-06": "Missing sidecar",
    "BK-07": "Snapshot corrupted",

    # Journal
    "EV-01": "Journal write failed",

    # Configuration
    "CFG-01": "Invalid configuration",
}

CONTEXT_FIELDS = ('snapshot_path', 'original_path', 'operation', 'error_code')


@dataclass
class LogContext:
    """Context information for log entries."""
    snapshot_path: Optional[str] = None
    original_path: Optional[str] = None
    operation: Optional[str] = None
    error_code: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict, excluding None values."""
        return {k: v for k, v in asdict(self).items() if v is not None}


class ContextFilter(logging.Filter):
    """Add context information to log records."""

    def __init__(self, default_context: Optional[LogContext] = None):
        super().__init__()
        self.context = default_context or LogContext()

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in self.context.to_dict().items():
            if not hasattr(record, key):
                setattr(record, key, value)

        for field in CONTEXT_FIELDS:
            if not hasattr(record, field):
                setattr(record, field, None)

        return True


class ColoredFormatter(logging.Formatter):
    """Colorized console formatter."""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
        'RESET': '\033[0m',
    }

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors and sys.stdout.isatty()

    def format(self, record: logging.LogRecord) -> str:
        level = record.levelname

        parts = []
        if self.use_colors:
            color = self.COLORS.get(level, '')
            reset = self.COLORS['RESET']
            parts.append(f"{color}{level}{reset}")
        else:
            parts.append(level)

        if getattr(record, 'operation', None):
            parts.append(f"[{record.operation}]")
        if getattr(record, 'snapshot_path', None):
            parts.append(f"({record.snapshot_path})")
        elif getattr(record, 'original_path', None):
            parts.append(f"({record.original_path})")

        parts.append(record.getMessage())

        error_code = getattr(record, 'error_code', None)
        if error_code:
            error_desc = ERROR_CODES.get(error_code, "Unknown error")
            parts.append(f"[{error_code}: {error_desc}]")

        return ' '.join(parts)


class JSONFormatter(logging.Formatter):
    """JSON formatter for file logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name,
        }

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_entry[field] = value

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_entry)


def setup_logger(
    name: str = ROOT_LOGGER_NAME,
    log_file: Optional[Path] = None,
    level: Union[int, str] = logging.INFO,
    console: bool = True,
    use_colors: bool = True
) -> logging.Logger:
    """
    Setup logger with file and console output.

    Args:
        name: Logger name
        log_file: Path to log file (JSON lines)
        level: Logging level (int or name such as "DEBUG")
        console: Enable console output
        use_colors: Use ANSI colors in console

    Returns:
        Configured logger instance

    Example:
        >>> logger = setup_logger("snapkeep", log_file=Path("keep.log"))
        >>> logger.info("Starting drill", extra={"operation": "drill"})
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    logger = logging.getLogger(name)
    logger.setLevel(level)

    logger.handlers.clear()
    logger.filters.clear()

    context_filter = ContextFilter()

    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.addFilter(context_filter)
        console_handler.setFormatter(ColoredFormatter(use_colors))
        logger.addHandler(console_handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.addFilter(context_filter)
        file_handler.setFormatter(JSONFormatter())
        logger.addHandler(file_handler)

    return logger


def setup_from_config(config) -> logging.Logger:
    """Configure the package logger from a KeeperConfig."""
    return setup_logger(
        ROOT_LOGGER_NAME,
        log_file=config.log_file,
        level=config.log_level,
    )
