"""Serialization codec for the whole-store file and per-note files.

The whole-store payload is UTF-8 JSON of ``{folders, files}``. Older files
carried the same JSON through base64; decoding tries plain JSON first and
falls back to the base64 form only when that fails. Per-note payloads are
the raw UTF-8 note text.
"""
import base64
import binascii
import json
import logging
from typing import Any, Dict

from pydantic import ValidationError as PydanticValidationError

from simple_notes.exceptions import DecodeError, ErrorCode, ValidationError
from simple_notes.models.schema import NoteStore

logger = logging.getLogger(__name__)


def encode(store: NoteStore) -> bytes:
    """Serialize the entire store to a UTF-8 JSON payload.

    Raises:
        ValidationError: If a name or content has no UTF-8 encoding.
    """
    return _utf8(json.dumps(store.to_payload(), ensure_ascii=False))


def decode(payload: bytes) -> NoteStore:
    """Deserialize a whole-store payload.

    Raises:
        DecodeError: If neither the UTF-8 JSON form nor the legacy base64
            form parses, or if the parsed JSON does not describe a store.
    """
    return _to_store(decode_payload(payload))


def decode_payload(payload: bytes) -> Dict[str, Any]:
    """Parse a whole-store payload to a plain dict without validating its shape."""
    try:
        return json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as direct_error:
        logger.debug(f"Direct JSON parse failed, trying legacy form: {direct_error}")

    try:
        legacy = base64.b64decode(payload, validate=False).decode("utf-8")
        return json.loads(legacy)
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError, ValueError) as e:
        raise DecodeError(original_error=e)


def _to_store(data: Any) -> NoteStore:
    if not isinstance(data, dict):
        raise DecodeError(
            "Whole-store payload is not a JSON object",
            code=ErrorCode.INVALID_STORE_SHAPE,
        )
    try:
        store = NoteStore.from_payload(data)
    except PydanticValidationError as e:
        raise DecodeError(
            "Whole-store payload does not describe a note store",
            code=ErrorCode.INVALID_STORE_SHAPE,
            original_error=e,
        )
    # JSON \u escapes can decode to lone surrogates
    try:
        encode(store)
    except ValidationError as e:
        raise DecodeError("Whole-store payload contains invalid text", original_error=e)
    return store


def _utf8(text: str) -> bytes:
    try:
        return text.encode("utf-8")
    except UnicodeEncodeError as e:
        raise ValidationError(
            "Text contains characters that cannot be saved",
            code=ErrorCode.INVALID_TEXT,
        ) from e


def encode_note(content: str) -> bytes:
    """Serialize a single note's content (identity over UTF-8)."""
    return _utf8(content or "")


def decode_note(payload: bytes) -> str:
    """Deserialize a single note's content.

    Raises:
        DecodeError: If the payload is not valid UTF-8.
    """
    try:
        return payload.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError("Note payload is not valid UTF-8", original_error=e)


def encode_pretty(store: NoteStore) -> str:
    """Indented JSON text of the store, used for interchange backups."""
    return json.dumps(store.to_payload(), ensure_ascii=False, indent=2)


def decode_text(text: str) -> NoteStore:
    """Parse interchange JSON text into a store.

    Raises:
        DecodeError: If the text is not JSON describing a store.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise DecodeError("Invalid file format", original_error=e)
    return _to_store(data)
