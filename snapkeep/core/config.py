"""
Configuration for snapkeep.

The backup root and journal path are always explicit values handed to
the store; only ``default_config`` looks at the home directory.

Config file layout (TOML shown; YAML and JSON use the same keys):

    [storage]
    backup_root = "~/.snapkeep/backups"
    journal_path = "~/.snapkeep/backup_events.log"

    [retention]
    max_snapshots = 10

    [audit]
    stale_after_days = 30

    [integrity]
    chunk_size = 8192
    remove_failed_copies = false

    [logging]
    level = "INFO"
    file = "~/.snapkeep/snapkeep.log"

Usage:
    config, result = load_config(Path("snapkeep.toml"))
    result.raise_if_invalid().log_warnings()
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .checksum import DEFAULT_CHUNK_SIZE
from .errors import EXIT_CONFIG_ERROR

logger = logging.getLogger(__name__)

MAX_CONFIG_FILE_SIZE = 1024 * 1024
MAX_PATH_LENGTH = 4096
MAX_CHUNK_SIZE = 64 * 1024 * 1024

DEFAULT_MAX_SNAPSHOTS = 10
DEFAULT_STALE_AFTER_DAYS = 30
DEFAULT_HOME_DIR = ".snapkeep"

LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')

KNOWN_KEYS = {
    'storage': {'backup_root', 'journal_path'},
    'retention': {'max_snapshots'},
    'audit': {'stale_after_days'},
    'integrity': {'chunk_size', 'remove_failed_copies'},
    'logging': {'level', 'file'},
}


class ConfigError(Exception):
    """Configuration error for a single key."""

    def __init__(self, key: str, message: str, value: Any = None, suggestion: str = None):
        self.key = key
        self.value = value
        self.suggestion = suggestion
        full_message = f"Config error at '{key}': {message}"
        if value is not None:
            full_message += f" (got: {value!r})"
        if suggestion:
            full_message += f". Suggestion: {suggestion}"
        super().__init__(full_message)


class ConfigValidationError(Exception):
    """Raised when configuration validation fails with one or more errors."""

    exit_code = EXIT_CONFIG_ERROR

    def __init__(self, errors: List[str], warnings: List[str] = None):
        self.errors = errors
        self.warnings = warnings or []
        message = f"Configuration validation failed with {len(errors)} error(s):\n"
        message += "\n".join(f"  - {err}" for err in errors[:20])
        if len(errors) > 20:
            message += f"\n  ... and {len(errors) - 20} more errors"
        super().__init__(message)


@dataclass
class KeeperConfig:
    """Resolved settings for one snapkeep store."""
    backup_root: Path
    journal_path: Path
    max_snapshots: int = DEFAULT_MAX_SNAPSHOTS
    stale_after_days: int = DEFAULT_STALE_AFTER_DAYS
    chunk_size: int = DEFAULT_CHUNK_SIZE
    remove_failed_copies: bool = False
    log_level: str = 'INFO'
    log_file: Optional[Path] = None

    def __post_init__(self):
        self.backup_root = Path(self.backup_root)
        self.journal_path = Path(self.journal_path)
        if self.log_file is not None:
            self.log_file = Path(self.log_file)


@dataclass
class ValidationResult:
    """Result of configuration validation."""
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    config: Optional[KeeperConfig] = None

    def __bool__(self) -> bool:
        return self.is_valid

    def raise_if_invalid(self) -> 'ValidationResult':
        """Raise ConfigValidationError if validation failed."""
        if not self.is_valid:
            raise ConfigValidationError(self.errors, self.warnings)
        return self

    def log_warnings(self) -> 'ValidationResult':
        for warning in self.warnings:
            logger.warning(f"Config warning: {warning}", extra={'error_code': 'CFG-01'})
        return self


def default_config(home: Optional[Path] = None) -> KeeperConfig:
    """Config rooted at ``~/.snapkeep`` (or ``home/.snapkeep``)."""
    base = Path(home) if home is not None else Path.home()
    base = base / DEFAULT_HOME_DIR
    return KeeperConfig(
        backup_root=base / "backups",
        journal_path=base / "backup_events.log",
    )


def validate_path_value(value: Any, key_name: str) -> Path:
    """
    Validate a path string from config and expand ``~``.

    Raises:
        ConfigError: If the value is not a usable path
    """
    if not isinstance(value, (str, Path)):
        raise ConfigError(
            key_name,
            f"Must be a string, got {type(value).__name__}",
            value,
            f'Use {key_name.split(".")[-1]} = "path/to/dir"'
        )

    path_str = str(value)
    if not path_str.strip():
        raise ConfigError(key_name, "Path is empty", value)

    if '\x00' in path_str:
        raise ConfigError(
            key_name,
            "Path contains null byte (security violation)",
            path_str,
            "Remove null characters from path"
        )

    if '\n' in path_str or '\r' in path_str:
        raise ConfigError(
            key_name,
            "Path contains newline characters (malformed config)",
            path_str,
            "Remove newline characters from path"
        )

    if len(path_str) > MAX_PATH_LENGTH:
        raise ConfigError(
            key_name,
            f"Path exceeds maximum length of {MAX_PATH_LENGTH} characters",
            f"...{path_str[-50:]}",
            "Use a shorter path"
        )

    return Path(os.path.expanduser(path_str))


def validate_int_range(
    value: Any,
    key_name: str,
    min_val: int,
    max_val: Optional[int] = None
) -> int:
    """
    Validate an integer within [min_val, max_val].

    Raises:
        ConfigError: If value is invalid or out of range
    """
    if value is None:
        raise ConfigError(key_name, "Value cannot be None")

    if isinstance(value, str):
        raise ConfigError(
            key_name,
            "Must be a number, got string",
            value,
            f"Remove quotes: use {key_name.split('.')[-1]} = {value}"
        )

    if not isinstance(value, int) or isinstance(value, bool):
        raise ConfigError(
            key_name,
            f"Must be an integer, got {type(value).__name__}",
            value
        )

    if value < min_val:
        raise ConfigError(
            key_name,
            f"Value too low (minimum is {min_val})",
            value,
            f"Increase to at least {min_val}"
        )

    if max_val is not None and value > max_val:
        raise ConfigError(
            key_name,
            f"Value too high (maximum is {max_val})",
            value,
            f"Decrease to at most {max_val}"
        )

    return value


def validate_bool(value: Any, key_name: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(
            key_name,
            f"Must be true or false, got {type(value).__name__}",
            value
        )
    return value


def validate_config(
    raw: Any,
    defaults: Optional[KeeperConfig] = None
) -> ValidationResult:
    """
    Validate a parsed config mapping and build a KeeperConfig.

    Missing sections and keys fall back to ``defaults`` (``default_config()``
    when not given). Every problem is collected; nothing is raised.
    """
    errors: List[str] = []
    warnings: List[str] = []

    def add_error(err: ConfigError):
        msg = f"[{err.key}] {err}"
        errors.append(msg)

    if raw is None:
        errors.append("[config] Configuration is None (file may be empty)")
        return ValidationResult(is_valid=False, errors=errors)

    if not isinstance(raw, dict):
        errors.append(
            f"[config] Configuration must be a mapping, got {type(raw).__name__}"
        )
        return ValidationResult(is_valid=False, errors=errors)

    base = defaults or default_config()
    values: Dict[str, Any] = {
        'backup_root': base.backup_root,
        'journal_path': base.journal_path,
        'max_snapshots': base.max_snapshots,
        'stale_after_days': base.stale_after_days,
        'chunk_size': base.chunk_size,
        'remove_failed_copies': base.remove_failed_copies,
        'log_level': base.log_level,
        'log_file': base.log_file,
    }

    sections: Dict[str, Dict[str, Any]] = {}
    for name, section in raw.items():
        if name not in KNOWN_KEYS:
            warnings.append(f"[{name}] Unknown section ignored")
            continue
        if not isinstance(section, dict):
            errors.append(
                f"[{name}] Must be a section/mapping, got {type(section).__name__}"
            )
            continue
        for key in section:
            if key not in KNOWN_KEYS[name]:
                warnings.append(f"[{name}.{key}] Unknown key ignored")
        sections[name] = section

    storage = sections.get('storage', {})
    for key in ('backup_root', 'journal_path'):
        if key in storage:
            try:
                values[key] = validate_path_value(storage[key], f'storage.{key}')
            except ConfigError as e:
                add_error(e)

    retention = sections.get('retention', {})
    if 'max_snapshots' in retention:
        try:
            values['max_snapshots'] = validate_int_range(
                retention['max_snapshots'], 'retention.max_snapshots', 1
            )
        except ConfigError as e:
            add_error(e)

    audit = sections.get('audit', {})
    if 'stale_after_days' in audit:
        try:
            values['stale_after_days'] = validate_int_range(
                audit['stale_after_days'], 'audit.stale_after_days', 0
            )
        except ConfigError as e:
            add_error(e)

    integrity = sections.get('integrity', {})
    if 'chunk_size' in integrity:
        try:
            values['chunk_size'] = validate_int_range(
                integrity['chunk_size'], 'integrity.chunk_size', 1, MAX_CHUNK_SIZE
            )
        except ConfigError as e:
            add_error(e)
    if 'remove_failed_copies' in integrity:
        try:
            values['remove_failed_copies'] = validate_bool(
                integrity['remove_failed_copies'], 'integrity.remove_failed_copies'
            )
        except ConfigError as e:
            add_error(e)

    log_section = sections.get('logging', {})
    if 'level' in log_section:
        level = log_section['level']
        if not isinstance(level, str) or level.upper() not in LOG_LEVELS:
            add_error(ConfigError(
                'logging.level',
                "Unknown log level",
                level,
                f"Use one of: {', '.join(LOG_LEVELS)}"
            ))
        else:
            values['log_level'] = level.upper()
    if 'file' in log_section:
        try:
            values['log_file'] = validate_path_value(log_section['file'], 'logging.file')
        except ConfigError as e:
            add_error(e)

    if errors:
        return ValidationResult(is_valid=False, errors=errors, warnings=warnings)

    return ValidationResult(
        is_valid=True,
        warnings=warnings,
        config=KeeperConfig(**values)
    )


def _parse_config_file(config_path: Path) -> Tuple[Any, Optional[str]]:
    """Parse by extension. Returns (data, parse_error)."""
    suffix = config_path.suffix.lower()

    if suffix in ('.yaml', '.yml'):
        import yaml
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                return yaml.safe_load(f), None
        except yaml.YAMLError as e:
            return None, f"YAML parse error: {e}"

    if suffix == '.toml':
        try:
            import tomllib
        except ImportError:
            import toml as tomllib
        try:
            return tomllib.loads(config_path.read_text(encoding='utf-8')), None
        except Exception as e:
            return None, f"TOML parse error: {e}"

    if suffix == '.json':
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                return json.load(f), None
        except json.JSONDecodeError as e:
            return None, f"JSON parse error at line {e.lineno}: {e.msg}"

    raise ValueError(
        f"Unsupported config format: {suffix}. "
        f"Use .toml, .yaml, .yml, or .json"
    )


def load_config(
    config_path: Path,
    defaults: Optional[KeeperConfig] = None
) -> Tuple[Optional[KeeperConfig], ValidationResult]:
    """
    Load and validate a configuration file.

    Returns:
        (config or None, validation_result)

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config format is unsupported
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    file_size = config_path.stat().st_size
    if file_size > MAX_CONFIG_FILE_SIZE:
        return None, ValidationResult(
            is_valid=False,
            errors=[
                f"[config_file] Config file too large: {config_path} "
                f"({file_size:,} bytes, maximum {MAX_CONFIG_FILE_SIZE:,})"
            ]
        )

    if file_size == 0:
        return None, ValidationResult(
            is_valid=False,
            errors=[f"[config_file] Config file is empty: {config_path}"]
        )

    data, parse_error = _parse_config_file(config_path)
    if parse_error:
        return None, ValidationResult(
            is_valid=False,
            errors=[f"[config_file] {parse_error}"]
        )

    result = validate_config(data, defaults=defaults)
    return result.config, result


def load_config_strict(config_path: Path) -> KeeperConfig:
    """
    Load config and raise immediately if validation fails.

    Raises:
        ConfigValidationError: If any validation errors occur
        FileNotFoundError: If config file doesn't exist
        ValueError: If config format is unsupported
    """
    config, result = load_config(config_path)
    result.raise_if_invalid().log_warnings()
    return config
