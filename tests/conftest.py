"""Common test fixtures for Simple Notes."""

from pathlib import Path

import pytest

from simple_notes.backup import BackupManager
from simple_notes.config import config
from simple_notes.services.notes_service import NotesService
from simple_notes.storage.disk_mirror import DiskMirror
from simple_notes.storage.local_cache import LocalCache

# Short enough to keep timing tests fast, long enough to batch rapid edits
TEST_AUTOSAVE_DELAY = 0.1
TEST_STATUS_RESET_DELAY = 0.1


@pytest.fixture
def test_config(tmp_path, monkeypatch):
    """Point the global config at a temporary data dir (auto-restored)."""
    monkeypatch.setattr(config, "data_dir", tmp_path / "data")
    monkeypatch.setattr(config, "notes_dir", Path("notes"))
    monkeypatch.setattr(config, "cache_path", Path("cache/test-cache.db"))
    monkeypatch.setattr(config, "backup_dir", Path("backups"))
    monkeypatch.setattr(config, "log_dir", Path("logs"))
    yield config


@pytest.fixture
def notes_root(tmp_path):
    return tmp_path / "notes"


@pytest.fixture
def mirror(notes_root):
    return DiskMirror(root=notes_root, max_workers=4)


@pytest.fixture
def cache(tmp_path):
    """File-backed cache; timers touch it from other threads."""
    cache = LocalCache(db_url=f"sqlite:///{tmp_path / 'cache.db'}")
    yield cache
    cache.close()


@pytest.fixture
def backups(tmp_path):
    return BackupManager(backup_dir=tmp_path / "backups", max_backups=3)


@pytest.fixture
def notes_service(mirror, cache, backups):
    """A loaded session over temporary storage."""
    service = NotesService(
        mirror=mirror,
        cache=cache,
        backups=backups,
        autosave_delay=TEST_AUTOSAVE_DELAY,
        status_reset_delay=TEST_STATUS_RESET_DELAY,
    )
    service.load()
    yield service
    service.sync.shutdown()
