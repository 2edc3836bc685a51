"""Service layer for a Simple Notes editing session.

Owns the note store, the open-note selection and the synchronization
controller. Every menu command maps to one method here. Store mutations are
synchronous and made under the sync controller's lock, which the autosave
timer also takes; I/O failures are caught and returned as ``OperationResult``.
"""

import functools
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from simple_notes.backup import BackupManager
from simple_notes.config import DEFAULT_FILE_NAME, DEFAULT_FOLDER_NAME
from simple_notes.exceptions import (
    DecodeError,
    ErrorCode,
    NotesError,
    StorageError,
    UserCancelled,
    ValidationError,
)
from simple_notes.models.schema import (
    ImportedNote,
    ItemType,
    NoteFile,
    NoteStore,
    OperationResult,
    SyncStatus,
)
from simple_notes.services.interchange import InterchangeBridge, suggested_export_name
from simple_notes.services.sync_controller import LOADED_FROM_MIRROR, SyncController
from simple_notes.storage.disk_mirror import DiskListing, DiskMirror
from simple_notes.storage.local_cache import LocalCache
from simple_notes.utils import require_encodable

logger = logging.getLogger(__name__)

ContentListener = Callable[[str], None]


def _require_path(path: Optional[Union[str, Path]]) -> Path:
    """A dismissed picker yields no path."""
    if not path:
        raise UserCancelled()
    return Path(path)


def _cancellable(func):
    """Turn ``UserCancelled`` into a cancelled outcome."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except UserCancelled as e:
            logger.info(f"{func.__name__}: {e.message}")
            return OperationResult.user_cancelled()

    return wrapper


def _item_type(item_type: Union[ItemType, str]) -> ItemType:
    try:
        return ItemType(item_type)
    except ValueError:
        raise ValidationError(
            f"Invalid item type: {item_type}. Valid types are: file, folder",
            field="item_type",
            value=item_type,
            code=ErrorCode.INVALID_ITEM_TYPE,
        )


class NotesService:
    """One editing session over a note store."""

    def __init__(
        self,
        mirror: Optional[DiskMirror] = None,
        cache: Optional[LocalCache] = None,
        bridge: Optional[InterchangeBridge] = None,
        backups: Optional[BackupManager] = None,
        store: Optional[NoteStore] = None,
        autosave_delay: Optional[float] = None,
        status_reset_delay: Optional[float] = None,
    ):
        """Initialize the session.

        Args:
            mirror: Disk mirror. Created from config if None.
            cache: Local cache. Created from config if None.
            bridge: Import/export bridge.
            backups: Snapshot manager used before a whole-store import.
            store: Initial store; empty if None. Call :meth:`load` to
                populate it from the cache and the mirror.
            autosave_delay: Quiescence window override, in seconds.
            status_reset_delay: Override for how long "saved" lingers.
        """
        self.store = store if store is not None else NoteStore()
        self.mirror = mirror or DiskMirror()
        self.cache = cache or LocalCache()
        self.bridge = bridge or InterchangeBridge()
        self.backups = backups or BackupManager()
        self.sync = SyncController(
            self.store,
            self.mirror,
            self.cache,
            autosave_delay=autosave_delay,
            status_reset_delay=status_reset_delay,
        )
        self.current_file_id: Optional[str] = None
        self._content_listeners: List[ContentListener] = []

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def load(self) -> str:
        """Prepare the notes root and load the last saved state.

        Returns:
            Which tier the state came from ("mirror", "cache" or "empty").
        """
        try:
            self.mirror.ensure_root()
        except StorageError as e:
            logger.error(f"Directory creation failed: {e}")
        self.current_file_id = None
        return self.sync.load()

    def shutdown(self) -> None:
        """Flush any pending edit and release resources."""
        self.sync.shutdown()
        self.cache.close()

    @property
    def status(self) -> SyncStatus:
        return self.sync.status

    def add_status_listener(self, listener: Callable[[SyncStatus], None]) -> None:
        self.sync.add_status_listener(listener)

    def add_content_listener(self, listener: ContentListener) -> None:
        """Register a callback run with the raw text after every content edit."""
        self._content_listeners.append(listener)

    # =========================================================================
    # Tree operations
    # =========================================================================

    def create_folder(self, name: str = DEFAULT_FOLDER_NAME) -> str:
        """Create a folder, mirror immediately and return its id."""
        require_encodable(name, "name")
        with self.sync.lock:
            folder_id = self.store.create_folder(name)
        logger.info(f"Created folder {folder_id}")
        self.sync.structural_change()
        return folder_id

    def create_file(
        self, name: str = DEFAULT_FILE_NAME, folder_id: Optional[str] = None
    ) -> str:
        """Create an empty note, mirror immediately and return its id."""
        require_encodable(name, "name")
        with self.sync.lock:
            file_id = self.store.create_file(name, folder_id=folder_id)
        logger.info(f"Created file {file_id}")
        self.sync.structural_change()
        return file_id

    def rename(self, item_id: str, item_type: Union[ItemType, str], new_name: str) -> bool:
        """Rename a file or folder. Blank names and unknown ids are ignored.

        Returns:
            True if the store changed.
        """
        item_type = _item_type(item_type)
        require_encodable(new_name, "name")
        with self.sync.lock:
            if not self.store.rename(item_id, item_type, new_name):
                return False
        self.sync.structural_change()
        return True

    def move(self, file_id: str, target_folder_id: Optional[str]) -> bool:
        """Move a note into an existing folder.

        Returns:
            True if the store changed.
        """
        with self.sync.lock:
            if not self.store.move(file_id, target_folder_id):
                return False
        self.sync.structural_change()
        return True

    def delete(self, item_id: str, item_type: Union[ItemType, str]) -> bool:
        """Delete a note, or a folder whose notes move to the root.

        Deleting the open note clears the selection and drops its pending edit.

        Returns:
            True if the store changed.
        """
        item_type = _item_type(item_type)
        with self.sync.lock:
            if item_type is ItemType.FILE:
                self.sync.discard_pending(item_id)
            if not self.store.delete(item_id, item_type):
                return False
            if item_type is ItemType.FILE and item_id == self.current_file_id:
                self.current_file_id = None
        self.sync.structural_change()
        return True

    # =========================================================================
    # Editing
    # =========================================================================

    def open_file(self, file_id: str) -> Optional[NoteFile]:
        """Select a note for editing, committing the previous note's pending edit.

        Returns:
            The opened note, or None if the id is unknown.
        """
        self.sync.commit_pending()
        note = self.store.files.get(file_id)
        if note is None:
            return None
        self.current_file_id = file_id
        return note

    def edit_content(self, content: str) -> bool:
        """Record a keystroke-level edit of the open note (debounced save).

        Returns:
            False if no note is open.

        Raises:
            ValidationError: If the text cannot be saved as UTF-8.
        """
        require_encodable(content, "content")
        if not self.sync.content_edited(self.current_file_id, content):
            return False
        for listener in list(self._content_listeners):
            try:
                listener(content)
            except Exception as e:
                logger.warning(f"Content listener failed: {e}")
        return True

    def current_content(self) -> Optional[str]:
        """Text of the open note, including an uncommitted edit."""
        if self.current_file_id is None:
            return None
        pending = self.sync.pending_content(self.current_file_id)
        if pending is not None:
            return pending
        note = self.store.files.get(self.current_file_id)
        return note.content if note else None

    def save(self) -> OperationResult:
        """Commit the open note and mirror the whole store now."""
        return self.sync.flush()

    # =========================================================================
    # Export / import
    # =========================================================================

    @_cancellable
    def export_note(
        self, path: Optional[Union[str, Path]], file_id: Optional[str] = None
    ) -> OperationResult:
        """Write one note (default: the open one) as plain text to ``path``."""
        file_id = file_id or self.current_file_id
        if file_id is None:
            return OperationResult.failed("No file is currently open")
        path = _require_path(path)
        if file_id == self.current_file_id:
            self.sync.commit_pending()
        note = self.store.files.get(file_id)
        if note is None:
            return OperationResult.failed(f"File not found: {file_id}")
        try:
            written = self.bridge.export_note(Path(path), note.content)
        except NotesError as e:
            logger.error(f"Export failed: {e}")
            return OperationResult.failed(e.message)
        return OperationResult.ok(path=str(written))

    def suggested_export_name(self, file_id: Optional[str] = None) -> Optional[str]:
        """Default file name for exporting a note."""
        note = self.store.files.get(file_id or self.current_file_id or "")
        return suggested_export_name(note.name) if note else None

    @_cancellable
    def export_all(self, export_root: Optional[Union[str, Path]]) -> OperationResult:
        """Export every note to a folder tree of ``.txt`` files."""
        export_root = _require_path(export_root)
        self.sync.commit_pending()
        self.sync.set_status(SyncStatus.SAVING)
        try:
            count = self.bridge.export_all(self.sync.snapshot(), Path(export_root))
        except NotesError as e:
            logger.error(f"Export all failed: {e}")
            self.sync.set_status(SyncStatus.ERROR)
            return OperationResult.failed(e.message)
        self.sync.set_status(SyncStatus.SAVED)
        return OperationResult.ok(count=count, path=str(export_root))

    @_cancellable
    def import_from_folder(
        self, import_root: Optional[Union[str, Path]]
    ) -> OperationResult:
        """Add every ``.txt``/``.snote`` file under ``import_root`` to the store.

        Folders are reused by exact name or created on demand.
        """
        import_root = _require_path(import_root)
        try:
            imported = self.bridge.scan_folder(Path(import_root))
        except NotesError as e:
            logger.error(f"Import failed: {e}")
            return OperationResult.failed(e.message)
        if not imported:
            return OperationResult.failed(
                "No .txt files found in the selected folder", count=0
            )

        self.merge_imported(imported)
        self.sync.structural_change()
        return OperationResult.ok(count=len(imported), path=str(import_root))

    def merge_imported(self, imported: List[ImportedNote]) -> List[str]:
        """Insert imported notes into the store.

        Returns:
            Ids of the created files.
        """
        created = []
        with self.sync.lock:
            for entry in imported:
                folder_id = None
                if entry.folder:
                    existing = self.store.find_folder_by_name(entry.folder)
                    folder_id = (
                        existing.id if existing else self.store.create_folder(entry.folder)
                    )
                created.append(
                    self.store.create_file(entry.name, entry.content, folder_id=folder_id)
                )
        logger.info(f"Imported {len(created)} notes")
        return created

    @_cancellable
    def export_database(self, path: Optional[Union[str, Path]]) -> OperationResult:
        """Write the whole store as pretty-printed JSON to ``path``."""
        path = _require_path(path)
        self.sync.commit_pending()
        snapshot = self.sync.snapshot()
        try:
            written = self.bridge.export_database(snapshot, Path(path))
        except NotesError as e:
            logger.error(f"Export failed: {e}")
            return OperationResult.failed(e.message)
        return OperationResult.ok(path=str(written), count=len(snapshot.files))

    @_cancellable
    def import_database(
        self, path: Optional[Union[str, Path]], confirm: bool = False
    ) -> OperationResult:
        """Replace the entire store with a JSON backup.

        Requires ``confirm``; without it nothing changes. The current
        whole-store file is snapshotted first.
        """
        path = _require_path(path)
        try:
            imported = self.bridge.read_database(Path(path))
        except DecodeError as e:
            logger.error(f"Import failed: {e}")
            return OperationResult.failed("Import failed: Invalid file format")
        except StorageError as e:
            logger.error(f"Import failed: {e}")
            return OperationResult.failed(e.message)
        if not confirm:
            raise UserCancelled("Import not confirmed")

        self.sync.commit_pending()
        self.sync.flush()
        self.backups.snapshot(self.mirror.store_path, label="pre-import")

        with self.sync.lock:
            self.current_file_id = None
            self.store.replace_with(imported)
        self.sync.structural_change()
        return OperationResult.ok(count=len(self.store.files), path=str(path))

    def list_backups(self) -> List[Dict[str, Any]]:
        return self.backups.list_backups()

    @_cancellable
    def restore_backup(self, backup_path: Optional[Union[str, Path]]) -> OperationResult:
        """Restore a snapshot over the whole-store file and reload from it."""
        backup_path = _require_path(backup_path)
        self.sync.commit_pending()
        if not self.backups.restore(backup_path, self.mirror.store_path):
            return OperationResult.failed("Restore failed")
        source = self.load()
        if source != LOADED_FROM_MIRROR:
            return OperationResult.failed("Restored snapshot could not be read")
        self.sync.structural_change()
        return OperationResult.ok(count=len(self.store.files), path=str(backup_path))

    # =========================================================================
    # Listing
    # =========================================================================

    def list_tree(self) -> Dict[str, Any]:
        """Folders and files sorted by name, for display."""
        folders = sorted(self.store.folders.values(), key=lambda f: f.name.lower())
        files = sorted(self.store.files.values(), key=lambda f: f.name.lower())
        return {
            "folders": [{"id": f.id, "name": f.name} for f in folders],
            "files": [
                {"id": f.id, "name": f.name, "folderId": f.folder_id} for f in files
            ],
            "current_file_id": self.current_file_id,
        }

    def list_disk_notes(self) -> DiskListing:
        """One-level listing of the mirror directory (empty on failure)."""
        try:
            return self.mirror.list_notes()
        except StorageError as e:
            logger.error(f"List disk files failed: {e}")
            return DiskListing()
