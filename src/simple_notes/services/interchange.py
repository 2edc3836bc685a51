"""Import/export bridge between the note store and the host filesystem.

Two interchange formats are supported:

- a folder tree: one directory per folder holding ``<name>.txt`` files, with
  unfiled notes at the top level;
- a single pretty-printed JSON file of the whole store, for backup/restore.

The bridge never mutates a store. Scanning returns a flat list of
:class:`ImportedNote` and merging is left to the caller.
"""
import logging
from pathlib import Path
from typing import List

from simple_notes.config import EXPORT_EXTENSION, NOTE_EXTENSION
from simple_notes.exceptions import DecodeError, ErrorCode, StorageError, ValidationError
from simple_notes.models.schema import ImportedNote, NoteStore
from simple_notes.storage import codec
from simple_notes.utils import require_encodable, sanitize_dir_name, sanitize_file_name

logger = logging.getLogger(__name__)


def suggested_export_name(file_name: str) -> str:
    """Default file name offered when exporting one note (``.snote`` -> ``.txt``)."""
    if file_name.endswith(NOTE_EXTENSION):
        return file_name[: -len(NOTE_EXTENSION)] + EXPORT_EXTENSION
    return file_name


class InterchangeBridge:
    """Bulk conversion between a :class:`NoteStore` and the host filesystem."""

    # ------------------------------------------------------------------
    # Folder tree
    # ------------------------------------------------------------------

    def export_note(self, path: Path, content: str) -> Path:
        """Write one note's content as UTF-8 text to ``path``.

        Raises:
            StorageError: If the file cannot be written.
        """
        path = Path(path)
        try:
            path.write_text(content or "", encoding="utf-8")
        except OSError as e:
            raise StorageError(
                f"Export failed: {e}",
                operation="export_note",
                path=str(path),
                code=ErrorCode.EXPORT_FAILED,
                original_error=e,
            )
        logger.info(f"Exported note: {path.name}")
        return path

    def export_all(self, store: NoteStore, export_root: Path) -> int:
        """Export every note under ``export_root`` as ``[<folder>/]<name>.txt``.

        One directory is created per folder, including empty ones.

        Returns:
            Number of files written.

        Raises:
            StorageError: On the first directory or file that cannot be written.
        """
        export_root = Path(export_root)
        try:
            export_root.mkdir(parents=True, exist_ok=True)
            for folder in store.folders.values():
                (export_root / sanitize_dir_name(folder.name)).mkdir(exist_ok=True)

            count = 0
            for note in store.files.values():
                directory = export_root
                folder_name = store.folder_name_of(note)
                if folder_name:
                    directory = export_root / sanitize_dir_name(folder_name)
                target = directory / sanitize_file_name(note.name, EXPORT_EXTENSION)
                target.write_text(note.content or "", encoding="utf-8")
                count += 1
        except OSError as e:
            raise StorageError(
                f"Export all failed: {e}",
                operation="export_all",
                path=str(export_root),
                code=ErrorCode.EXPORT_FAILED,
                original_error=e,
            )

        logger.info(f"Exported {count} notes to: {export_root}")
        return count

    def scan_folder(self, import_root: Path) -> List[ImportedNote]:
        """Recursively collect ``.txt`` and ``.snote`` files under ``import_root``.

        Each note's folder is its parent directory relative to ``import_root``
        (e.g. ``A/Deep``), or None for files directly under it. ``.snote``
        files are reported with a ``.txt`` name. Undecodable ``.snote`` files
        and paths that are not valid text are skipped.

        Raises:
            StorageError: If the directory or a file cannot be read.
        """
        import_root = Path(import_root)
        if not import_root.is_dir():
            raise StorageError(
                "Import folder does not exist",
                operation="scan",
                path=str(import_root),
                code=ErrorCode.IMPORT_FAILED,
            )

        imported: List[ImportedNote] = []
        try:
            for path in sorted(import_root.rglob("*")):
                if not path.is_file():
                    continue
                if path.name.endswith(NOTE_EXTENSION):
                    try:
                        content = codec.decode_note(path.read_bytes())
                    except DecodeError as e:
                        logger.warning(f"Skipping undecodable note {path.name}: {e}")
                        continue
                    name = path.name[: -len(NOTE_EXTENSION)] + EXPORT_EXTENSION
                elif path.name.endswith(EXPORT_EXTENSION):
                    content = path.read_text(encoding="utf-8", errors="replace")
                    name = path.name
                else:
                    continue

                relative_dir = path.parent.relative_to(import_root)
                folder = relative_dir.as_posix() if relative_dir.parts else None
                try:
                    require_encodable(name, "name")
                    if folder is not None:
                        require_encodable(folder, "folder")
                except ValidationError as e:
                    logger.warning(f"Skipping file with an undecodable path: {e}")
                    continue
                imported.append(ImportedNote(name=name, content=content, folder=folder))
        except OSError as e:
            raise StorageError(
                f"Import failed: {e}",
                operation="scan",
                path=str(import_root),
                code=ErrorCode.IMPORT_FAILED,
                original_error=e,
            )

        logger.info(f"Found {len(imported)} importable files")
        return imported

    # ------------------------------------------------------------------
    # Whole-store JSON
    # ------------------------------------------------------------------

    def export_database(self, store: NoteStore, path: Path) -> Path:
        """Write the whole store as indented JSON to ``path``.

        Raises:
            StorageError: If the file cannot be written.
        """
        path = Path(path)
        try:
            path.write_text(codec.encode_pretty(store), encoding="utf-8")
        except OSError as e:
            raise StorageError(
                f"Export failed: {e}",
                operation="export_database",
                path=str(path),
                code=ErrorCode.EXPORT_FAILED,
                original_error=e,
            )
        logger.info(f"Notes database exported to {path.name}")
        return path

    def read_database(self, path: Path) -> NoteStore:
        """Read a whole-store JSON file.

        Raises:
            StorageError: If the file cannot be read.
            DecodeError: If the file is not a valid store.
        """
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(
                f"Failed to import notes: {e}",
                operation="import_database",
                path=str(path),
                code=ErrorCode.IMPORT_FAILED,
                original_error=e,
            )
        return codec.decode_text(text)
