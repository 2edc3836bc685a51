"""On-disk mirror of the note store.

Writes the whole-store file plus one ``.snote`` file per note under an
application-owned root::

    <root>/.filesystem.snotes
    <root>/<note>.snote
    <root>/<folder>/<note>.snote

The mirror is a downstream projection: nothing here mutates the store.
"""
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from simple_notes.config import NOTE_EXTENSION, STORE_FILE_NAME, config
from simple_notes.exceptions import ErrorCode, StorageError
from simple_notes.models.schema import NoteStore, OperationResult
from simple_notes.storage import codec
from simple_notes.utils import sanitize_dir_name, sanitize_file_name

logger = logging.getLogger(__name__)


@dataclass
class DiskListing:
    """Result of a one-level scan of the mirror root.

    ``files`` holds root note names and ``<folder>/<note>`` entries.
    """

    files: List[str] = field(default_factory=list)
    folders: List[str] = field(default_factory=list)


class DiskMirror:
    """Mirrors a :class:`NoteStore` to a directory tree.

    Args:
        root: Mirror root directory. Defaults to the configured notes root.
        max_workers: Thread pool size used by :meth:`batch_write`.
    """

    def __init__(
        self,
        root: Optional[Path] = None,
        max_workers: Optional[int] = None,
    ) -> None:
        self.root = Path(root) if root is not None else config.get_notes_root()
        self.max_workers = max_workers or config.batch_workers

    @property
    def store_path(self) -> Path:
        """Location of the whole-store file."""
        return self.root / STORE_FILE_NAME

    # ------------------------------------------------------------------
    # Directory handling
    # ------------------------------------------------------------------

    def ensure_root(self) -> Path:
        """Create the mirror root if needed (idempotent).

        Raises:
            StorageError: If the directory cannot be created.
        """
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(
                f"Could not create notes directory: {e}",
                operation="mkdir",
                path=str(self.root),
                code=ErrorCode.STORAGE_MKDIR_FAILED,
                original_error=e,
            )
        return self.root

    def note_path(self, folder_name: Optional[str], file_name: str) -> Path:
        """Path of a note's mirror file, ``<root>/[<folder>/]<name>.snote``."""
        directory = self.root
        if folder_name:
            directory = directory / sanitize_dir_name(folder_name)
        return directory / sanitize_file_name(file_name, NOTE_EXTENSION)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def write_store(self, store: NoteStore) -> Path:
        """Overwrite the whole-store file with the encoded store.

        Raises:
            StorageError: If the root or the file cannot be written.
        """
        self.ensure_root()
        payload = codec.encode(store)
        self._write_bytes(self.store_path, payload)
        logger.debug(f"Whole-store file written ({len(payload)} bytes)")
        return self.store_path

    def write_note(
        self, folder_name: Optional[str], file_name: str, content: str
    ) -> Path:
        """Write one note's payload, creating its folder directory if needed.

        Raises:
            StorageError: If the directory or the file cannot be written.
        """
        path = self.note_path(folder_name, file_name)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(
                f"Could not create folder directory: {e}",
                operation="mkdir",
                path=str(path.parent),
                code=ErrorCode.STORAGE_MKDIR_FAILED,
                original_error=e,
            )
        self._write_bytes(path, codec.encode_note(content))
        logger.debug(f"Note written: {path.name}")
        return path

    def batch_write(self, store: NoteStore) -> OperationResult:
        """Write the whole-store file and every note file in parallel.

        Best effort: a failed write is reported but the writes that
        succeeded are kept. Never raises.
        """
        try:
            self.ensure_root()
        except StorageError as e:
            logger.error(f"Batch save failed: {e}")
            return OperationResult.failed(e.message, count=0)

        # Snapshot so concurrent edits cannot change what this batch writes
        snapshot = store.model_copy(deep=True)
        futures: Dict[str, Future] = {}
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures[STORE_FILE_NAME] = executor.submit(self.write_store, snapshot)
            for note in snapshot.files.values():
                futures[note.id] = executor.submit(
                    self.write_note,
                    snapshot.folder_name_of(note),
                    note.name,
                    note.content,
                )

        failures: List[str] = []
        for key, future in futures.items():
            error = future.exception()
            if error is not None:
                failures.append(f"{key}: {error}")

        written = len(futures) - len(failures)
        note_count = len(snapshot.files)
        if failures:
            logger.error(
                f"Batch save finished with {len(failures)} failure(s) "
                f"out of {len(futures)} writes"
            )
            return OperationResult.failed(
                f"{len(failures)} of {len(futures)} writes failed",
                count=written,
                failures=failures,
                path=str(self.root),
            )

        logger.info(f"Batch saved {note_count} notes")
        return OperationResult.ok(count=note_count, path=str(self.root))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def read_store(self) -> Optional[NoteStore]:
        """Read and decode the whole-store file.

        Returns:
            The decoded store, or None when no whole-store file exists yet
            (the normal first-run case).

        Raises:
            DecodeError: If the file exists but cannot be decoded.
            StorageError: If the file exists but cannot be read.
        """
        try:
            payload = self.store_path.read_bytes()
        except FileNotFoundError:
            logger.info("No whole-store file found (normal for first run)")
            return None
        except OSError as e:
            raise StorageError(
                f"Could not read whole-store file: {e}",
                operation="read",
                path=str(self.store_path),
                code=ErrorCode.STORAGE_READ_FAILED,
                original_error=e,
            )
        store = codec.decode(payload)
        logger.info(
            f"Loaded {len(store.files)} notes and {len(store.folders)} folders from disk"
        )
        return store

    def list_notes(self) -> DiskListing:
        """List note files at the root and one folder level below.

        Unreadable subfolders are skipped. A missing root yields an empty
        listing.

        Raises:
            StorageError: If the root exists but cannot be listed.
        """
        listing = DiskListing()
        if not self.root.exists():
            return listing
        try:
            entries = sorted(self.root.iterdir(), key=lambda p: p.name)
        except OSError as e:
            raise StorageError(
                f"Could not list notes directory: {e}",
                operation="list",
                path=str(self.root),
                code=ErrorCode.STORAGE_LIST_FAILED,
                original_error=e,
            )

        for entry in entries:
            if entry.is_file() and entry.name.endswith(NOTE_EXTENSION):
                listing.files.append(entry.name)
            elif entry.is_dir():
                listing.folders.append(entry.name)
                try:
                    children = sorted(p.name for p in entry.iterdir() if p.is_file())
                except OSError as e:
                    logger.debug(f"Skipping unreadable folder {entry.name}: {e}")
                    continue
                listing.files.extend(
                    f"{entry.name}/{name}"
                    for name in children
                    if name.endswith(NOTE_EXTENSION)
                )

        logger.debug(f"Listed {len(listing.files)} disk files")
        return listing

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _write_bytes(path: Path, payload: bytes) -> None:
        try:
            path.write_bytes(payload)
        except OSError as e:
            raise StorageError(
                f"Could not write {path.name}: {e}",
                operation="write",
                path=str(path),
                code=ErrorCode.STORAGE_WRITE_FAILED,
                original_error=e,
            )
