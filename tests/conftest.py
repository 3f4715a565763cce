"""Shared fixtures: a store rooted in pytest's tmp_path."""

import json
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from snapkeep.core.config import KeeperConfig
from snapkeep.events import EventLog
from snapkeep.store import BackupStore


@pytest.fixture
def config(tmp_path):
    return KeeperConfig(
        backup_root=tmp_path / "backups",
        journal_path=tmp_path / "state" / "backup_events.log",
    )


@pytest.fixture
def events(config):
    return EventLog(config.journal_path)


@pytest.fixture
def store(config, events):
    return BackupStore(config, events)


@pytest.fixture
def live_dir(tmp_path):
    path = tmp_path / "etc"
    path.mkdir()
    return path


@pytest.fixture
def make_file(live_dir):
    """Create a live file with given bytes."""
    def _make(name: str = "app.conf", content: bytes = b"key = value\n") -> Path:
        path = live_dir / name
        path.write_bytes(content)
        return path
    return _make


@pytest.fixture
def journal(config):
    """Return the journal's events as a list of dicts."""
    def _read():
        if not config.journal_path.exists():
            return []
        return [
            json.loads(line)
            for line in config.journal_path.read_text().splitlines()
            if line.strip()
        ]
    return _read
