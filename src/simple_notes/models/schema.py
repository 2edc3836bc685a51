"""Data models for Simple Notes.

The :class:`NoteStore` aggregate is the single source of truth for a running
session. Its mutation methods are the only write path; each one either
applies completely or leaves the store untouched and returns ``False``.
"""

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, model_validator

from simple_notes.config import DEFAULT_FILE_NAME, DEFAULT_FOLDER_NAME

logger = logging.getLogger(__name__)


def generate_id(prefix: str) -> str:
    """Generate a collision-free identifier such as ``file_3f2a...``.

    Args:
        prefix: Entity kind, e.g. ``"file"`` or ``"folder"``.

    Returns:
        The prefix joined to a random UUID4 hex string.
    """
    return f"{prefix}_{uuid.uuid4().hex}"


class ItemType(str, Enum):
    """Kinds of entries in the note tree."""

    FILE = "file"
    FOLDER = "folder"


class SyncStatus(str, Enum):
    """Advisory persistence status shown to the user."""

    IDLE = "idle"
    SAVING = "saving"
    SAVED = "saved"
    ERROR = "error"


class Folder(BaseModel):
    """A named folder. Its id never changes after creation."""

    id: str = Field(..., description="Unique folder identifier")
    name: str = Field(..., description="Display name, also the mirror directory name")

    model_config = {"validate_assignment": True, "extra": "ignore"}


class NoteFile(BaseModel):
    """A note: an opaque text body placed in a folder or at the root."""

    id: str = Field(..., description="Unique file identifier")
    name: str = Field(..., description="Display name")
    content: str = Field(default="", description="Raw note text")
    folder_id: Optional[str] = Field(
        default=None,
        alias="folderId",
        description="Owning folder id, or None for the root",
    )

    model_config = {
        "validate_assignment": True,
        "extra": "ignore",
        "populate_by_name": True,
    }


class ImportedNote(BaseModel):
    """A note discovered while scanning an interchange folder tree."""

    name: str
    content: str
    folder: Optional[str] = None


class NoteStore(BaseModel):
    """In-memory tree of folders and files.

    Invariant: every non-null ``folder_id`` names a key of ``folders``.
    Deleting a folder reparents its files to the root instead of deleting them.
    """

    folders: Dict[str, Folder] = Field(default_factory=dict)
    files: Dict[str, NoteFile] = Field(default_factory=dict)

    model_config = {"extra": "ignore"}

    @model_validator(mode="after")
    def _reparent_dangling_files(self) -> "NoteStore":
        """Move files that point at a missing folder to the root."""
        for note in self.files.values():
            if note.folder_id is not None and note.folder_id not in self.folders:
                logger.warning(
                    f"File {note.id} referenced missing folder {note.folder_id}; "
                    "moved to root"
                )
                note.folder_id = None
        return self

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_folder(self, name: str = DEFAULT_FOLDER_NAME) -> str:
        """Insert a new folder and return its id."""
        folder_id = generate_id("folder")
        self.folders[folder_id] = Folder(id=folder_id, name=name)
        return folder_id

    def create_file(
        self,
        name: str = DEFAULT_FILE_NAME,
        content: str = "",
        folder_id: Optional[str] = None,
    ) -> str:
        """Insert a new file and return its id.

        A ``folder_id`` that does not name an existing folder places the
        file at the root.
        """
        if folder_id is not None and folder_id not in self.folders:
            folder_id = None
        file_id = generate_id("file")
        self.files[file_id] = NoteFile(
            id=file_id, name=name, content=content, folder_id=folder_id
        )
        return file_id

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def rename(
        self, item_id: str, item_type: Union[ItemType, str], new_name: str
    ) -> bool:
        """Rename a file or folder to the trimmed ``new_name``.

        Returns:
            False (and changes nothing) for a blank name or an unknown id.
        """
        item_type = ItemType(item_type)
        if not new_name or not new_name.strip():
            logger.debug(f"Ignoring blank rename of {item_type.value} {item_id}")
            return False

        table = self.folders if item_type is ItemType.FOLDER else self.files
        item = table.get(item_id)
        if item is None:
            logger.debug(f"Ignoring rename of unknown {item_type.value} {item_id}")
            return False
        item.name = new_name.strip()
        return True

    def move(self, file_id: str, target_folder_id: Optional[str]) -> bool:
        """Reassign a file to an existing folder.

        Returns:
            False unless both the file and the target folder exist.
        """
        note = self.files.get(file_id)
        if note is None or target_folder_id not in self.folders:
            logger.debug(f"Ignoring move of {file_id} into {target_folder_id}")
            return False
        note.folder_id = target_folder_id
        return True

    def delete(self, item_id: str, item_type: Union[ItemType, str]) -> bool:
        """Delete a file, or delete a folder after reparenting its files to root."""
        item_type = ItemType(item_type)
        if item_type is ItemType.FOLDER:
            if item_id not in self.folders:
                return False
            for note in self.files.values():
                if note.folder_id == item_id:
                    note.folder_id = None
            del self.folders[item_id]
            return True

        if item_id not in self.files:
            return False
        del self.files[item_id]
        return True

    def set_content(self, file_id: str, content: str) -> bool:
        """Replace a file's content. Unknown ids are ignored."""
        note = self.files.get(file_id)
        if note is None:
            return False
        note.content = content
        return True

    def replace_with(self, other: "NoteStore") -> None:
        """Replace the whole tree in place with a copy of ``other``."""
        snapshot = other.model_copy(deep=True)
        self.folders = snapshot.folders
        self.files = snapshot.files

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_folder_by_name(self, name: str) -> Optional[Folder]:
        """Return the first folder named exactly ``name``."""
        for folder in self.folders.values():
            if folder.name == name:
                return folder
        return None

    def folder_name_of(self, note: NoteFile) -> Optional[str]:
        """Name of the folder holding ``note``, or None for root placement."""
        if note.folder_id and note.folder_id in self.folders:
            return self.folders[note.folder_id].name
        return None

    def dangling_references(self) -> List[str]:
        """Ids of files whose folder does not exist (always empty when consistent)."""
        return [
            f.id
            for f in self.files.values()
            if f.folder_id is not None and f.folder_id not in self.folders
        ]

    def to_payload(self) -> Dict[str, Any]:
        """Plain ``{folders, files}`` dict using the persisted field names."""
        return self.model_dump(by_alias=True)

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "NoteStore":
        """Build a store from a parsed ``{folders, files}`` dict."""
        return cls.model_validate(data)


@dataclass
class OperationResult:
    """Uniform outcome of an I/O operation.

    Attributes:
        success: Whether the operation completed.
        error: Human-readable failure reason.
        cancelled: True when the user dismissed a picker (not a failure).
        path: Path written or read, when relevant.
        count: Number of notes written or found, when relevant.
        failures: Per-item errors for batch operations.
    """

    success: bool
    error: Optional[str] = None
    cancelled: bool = False
    path: Optional[str] = None
    count: Optional[int] = None
    failures: List[str] = field(default_factory=list)

    @classmethod
    def ok(cls, **kwargs: Any) -> "OperationResult":
        return cls(success=True, **kwargs)

    @classmethod
    def failed(cls, error: str, **kwargs: Any) -> "OperationResult":
        return cls(success=False, error=error, **kwargs)

    @classmethod
    def user_cancelled(cls) -> "OperationResult":
        return cls(success=False, cancelled=True)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation, omitting unset fields."""
        result: Dict[str, Any] = {"success": self.success}
        if self.error is not None:
            result["error"] = self.error
        if self.cancelled:
            result["cancelled"] = True
        if self.path is not None:
            result["path"] = self.path
        if self.count is not None:
            result["count"] = self.count
        if self.failures:
            result["failures"] = list(self.failures)
        return result
