"""Snapshots of the whole-store file.

A gzip copy of the whole-store file is taken before a JSON import replaces
the entire store, so a mistaken import can be rolled back.
"""
import gzip
import logging
import shutil
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List, Optional, Union

from simple_notes.config import config

logger = logging.getLogger(__name__)

SNAPSHOT_PREFIX = "filesystem_"
SNAPSHOT_SUFFIX = ".snotes.gz"


class BackupManager:
    """Manages gzip snapshots of the whole-store file with rotation."""

    def __init__(
        self,
        backup_dir: Optional[Union[str, Path]] = None,
        max_backups: Optional[int] = None,
    ):
        """Initialize the backup manager.

        Args:
            backup_dir: Directory for snapshots. Defaults to the configured one.
            max_backups: Number of newest snapshots to keep.
        """
        self.backup_dir = (
            Path(backup_dir)
            if backup_dir
            else config.get_absolute_path(config.backup_dir)
        )
        self.max_backups = max_backups or config.max_backups
        self._lock = Lock()

    def snapshot(self, store_path: Path, label: Optional[str] = None) -> Optional[Path]:
        """Compress a copy of ``store_path`` into the backup directory.

        Args:
            store_path: The whole-store file to copy.
            label: Optional label to include in the file name.

        Returns:
            Path to the snapshot, or None if there was nothing to copy or the
            copy failed.
        """
        with self._lock:
            if not store_path.exists():
                logger.info("No whole-store file to snapshot")
                return None
            try:
                self.backup_dir.mkdir(parents=True, exist_ok=True)
                timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")
                label_part = f"_{label}" if label else ""
                backup_path = (
                    self.backup_dir
                    / f"{SNAPSHOT_PREFIX}{timestamp}{label_part}{SNAPSHOT_SUFFIX}"
                )
                with open(store_path, "rb") as f_in:
                    with gzip.open(backup_path, "wb", compresslevel=6) as f_out:
                        shutil.copyfileobj(f_in, f_out)
                logger.info(f"Whole-store snapshot created: {backup_path.name}")
                self._rotate()
                return backup_path
            except OSError as e:
                logger.error(f"Snapshot failed: {e}", exc_info=True)
                return None

    def _rotate(self) -> int:
        """Remove all but the newest ``max_backups`` snapshots.

        Returns:
            Number of snapshots removed.
        """
        removed = 0
        snapshots = sorted(
            self.backup_dir.glob(f"{SNAPSHOT_PREFIX}*{SNAPSHOT_SUFFIX}"),
            key=lambda p: p.name,
            reverse=True,
        )
        for old in snapshots[self.max_backups:]:
            try:
                old.unlink()
                removed += 1
                logger.debug(f"Removed old snapshot: {old.name}")
            except OSError:
                logger.warning(f"Could not remove old snapshot: {old.name}")
        if removed:
            logger.info(f"Rotated {removed} old snapshot(s)")
        return removed

    def list_backups(self) -> List[Dict[str, Any]]:
        """List snapshots, newest first."""
        backups = []
        if not self.backup_dir.exists():
            return backups
        for path in self.backup_dir.glob(f"{SNAPSHOT_PREFIX}*{SNAPSHOT_SUFFIX}"):
            stat = path.stat()
            backups.append({
                "path": str(path),
                "name": path.name,
                "size_bytes": stat.st_size,
                "created_at": datetime.fromtimestamp(
                    stat.st_mtime, tz=timezone.utc
                ).isoformat(),
            })
        backups.sort(key=lambda b: b["name"], reverse=True)
        return backups

    def restore(self, backup_path: Union[str, Path], store_path: Path) -> bool:
        """Decompress a snapshot over the whole-store file.

        Returns:
            True if the restore succeeded.
        """
        with self._lock:
            backup_path = Path(backup_path)
            if not backup_path.exists():
                logger.error(f"Snapshot not found: {backup_path.name}")
                return False
            try:
                # Decompress fully before touching the live file
                with gzip.open(backup_path, "rb") as f_in:
                    payload = f_in.read()
                store_path.parent.mkdir(parents=True, exist_ok=True)
                store_path.write_bytes(payload)
            except (OSError, EOFError) as e:
                logger.error(f"Restore failed: {e}", exc_info=True)
                return False
            logger.info(f"Whole-store file restored from: {backup_path.name}")
            return True
