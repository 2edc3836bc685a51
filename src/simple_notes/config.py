"""Configuration module for Simple Notes."""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from simple_notes import __version__

# Project-root .env, anchored to __file__ so it works from any CWD
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# User-level config lives alongside the notes
_USER_ENV = Path.home() / ".simple-notes" / ".env"
load_dotenv(_USER_ENV)


logger = logging.getLogger(__name__)

# On-disk format constants
NOTE_EXTENSION = ".snote"
STORE_EXTENSION = ".snotes"
STORE_FILE_NAME = f".filesystem{STORE_EXTENSION}"
EXPORT_EXTENSION = ".txt"
CACHE_KEY = "simpleNotesData"

DEFAULT_FOLDER_NAME = "New Folder"
DEFAULT_FILE_NAME = "New File.txt"


class NotesConfig(BaseModel):
    """Configuration for Simple Notes."""

    # App data root; relative paths below resolve against it
    data_dir: Path = Field(
        default_factory=lambda: Path(
            os.getenv("SIMPLE_NOTES_DATA_DIR", str(Path.home() / ".simple-notes"))
        )
    )
    # Disk mirror root
    notes_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("SIMPLE_NOTES_NOTES_DIR", "notes"))
    )
    # SQLite file backing the fast local cache
    cache_path: Path = Field(
        default_factory=lambda: Path(
            os.getenv("SIMPLE_NOTES_CACHE_PATH", "cache/notes-cache.db")
        )
    )
    backup_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("SIMPLE_NOTES_BACKUP_DIR", "backups"))
    )
    log_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("SIMPLE_NOTES_LOG_DIR", "logs"))
    )
    # Quiescence window (seconds) before a content edit is flushed to disk
    autosave_delay: float = Field(
        default_factory=lambda: float(os.getenv("SIMPLE_NOTES_AUTOSAVE_DELAY", "0.5"))
    )
    # How long the "saved" status lingers before returning to "idle"
    status_reset_delay: float = Field(
        default_factory=lambda: float(
            os.getenv("SIMPLE_NOTES_STATUS_RESET_DELAY", "1.5")
        )
    )
    batch_workers: int = Field(
        default_factory=lambda: int(os.getenv("SIMPLE_NOTES_BATCH_WORKERS", "8"))
    )
    max_backups: int = Field(
        default_factory=lambda: int(os.getenv("SIMPLE_NOTES_MAX_BACKUPS", "10"))
    )
    # Server configuration
    server_name: str = Field(default=os.getenv("SIMPLE_NOTES_SERVER_NAME", "simple-notes"))
    server_version: str = Field(default=__version__)

    @model_validator(mode="after")
    def _validate_timing(self) -> "NotesConfig":
        """Reject negative delays and empty worker pools."""
        if self.autosave_delay < 0:
            raise ValueError("autosave_delay must be >= 0")
        if self.status_reset_delay < 0:
            raise ValueError("status_reset_delay must be >= 0")
        if self.batch_workers < 1:
            raise ValueError("batch_workers must be >= 1")
        if self.max_backups < 1:
            raise ValueError("max_backups must be >= 1")
        return self

    def get_absolute_path(self, path: Path) -> Path:
        """Convert a relative path to an absolute path based on data_dir."""
        path = Path(path).expanduser()
        if path.is_absolute():
            return path
        return Path(self.data_dir).expanduser() / path

    def get_notes_root(self) -> Path:
        """Get the absolute path of the disk mirror root (not created)."""
        return self.get_absolute_path(self.notes_dir)

    def get_cache_url(self) -> str:
        """Get the SQLite URL for the local cache, creating its directory."""
        cache_path = self.get_absolute_path(self.cache_path)
        cache_path.parent.mkdir(parents=True, exist_ok=True)
        return f"sqlite:///{cache_path}"


# Create a global config instance
config = NotesConfig()
