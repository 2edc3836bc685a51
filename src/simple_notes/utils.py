"""Utility functions for Simple Notes."""
import re

from simple_notes.config import EXPORT_EXTENSION, NOTE_EXTENSION, STORE_FILE_NAME
from simple_notes.exceptions import ErrorCode, ValidationError

# Characters rejected by at least one mainstream filesystem
ILLEGAL_FILENAME_CHARS = '<>:"/\\|?*'

_ILLEGAL_PATTERN = re.compile(r'[<>:"/\\|?*]')


def sanitize_file_name(file_name: str, extension: str = "") -> str:
    """Make a note name safe to use as a single path component.

    Every character in ``<>:"/\\|?*`` is replaced with ``_``. A trailing
    ``.txt`` or ``.snote`` is then stripped and ``extension`` appended, so
    a note named ``todo.txt`` never becomes ``todo.txt.txt``.

    Examples:
        "a/b:c" -> "a_b_c"
        "todo.txt", ".txt" -> "todo.txt"
        "draft.snote", ".snote" -> "draft.snote"

    Args:
        file_name: The note name as shown in the tree.
        extension: Extension to append after stripping (may be empty).

    Returns:
        The sanitized file name.
    """
    sanitized = replace_illegal_chars(file_name)
    for known in (EXPORT_EXTENSION, NOTE_EXTENSION):
        if sanitized.endswith(known):
            sanitized = sanitized[: -len(known)]
    return sanitized + extension


def replace_illegal_chars(text: str) -> str:
    """Replace each filesystem-illegal character with ``_`` (length preserving)."""
    return _ILLEGAL_PATTERN.sub("_", text)


def sanitize_dir_name(folder_name: str) -> str:
    """Make a folder name safe to use as one directory level.

    Illegal characters become ``_`` (so no name can introduce a nested
    path), and names made only of dots or spaces become ``_``. The
    whole-store file name is reserved and gets a ``_`` prefix.
    """
    sanitized = replace_illegal_chars(folder_name)
    if not sanitized.strip(". "):
        return "_"
    if sanitized == STORE_FILE_NAME:
        return f"_{sanitized}"
    return sanitized


def require_encodable(text: str, field: str) -> str:
    """Reject text that cannot be written as UTF-8 (e.g. lone surrogates).

    Raises:
        ValidationError: If ``text`` has no UTF-8 encoding.
    """
    try:
        text.encode("utf-8")
    except UnicodeEncodeError as e:
        raise ValidationError(
            f"{field.capitalize()} contains characters that cannot be saved",
            field=field,
            code=ErrorCode.INVALID_TEXT,
        ) from e
    return text
