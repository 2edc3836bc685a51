"""Custom exceptions for Simple Notes.

Provides a structured exception hierarchy with error codes and
machine-readable error information. I/O boundaries convert these
into ``OperationResult`` outcomes; they never terminate the process.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Error codes for machine-readable error identification."""

    # Validation errors (1xxx)
    VALIDATION_FAILED = 1001
    INVALID_ITEM_TYPE = 1005
    INVALID_TEXT = 1006

    # Storage errors (4xxx)
    STORAGE_READ_FAILED = 4001
    STORAGE_WRITE_FAILED = 4002
    STORAGE_MKDIR_FAILED = 4003
    STORAGE_LIST_FAILED = 4004

    # Decode errors (5xxx)
    INVALID_FORMAT = 5001
    INVALID_STORE_SHAPE = 5002

    # Interchange errors (6xxx)
    EXPORT_FAILED = 6001
    IMPORT_FAILED = 6002

    # Not an error: the user dismissed a picker (9xxx)
    USER_CANCELLED = 9001


class NotesError(Exception):
    """Base exception for all Simple Notes errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for serialization."""
        return {
            "error": self.__class__.__name__,
            "code": self.code.value,
            "code_name": self.code.name,
            "message": self.message,
            "details": self.details
        }

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"[{self.code.name}] {self.message} ({detail_str})"
        return f"[{self.code.name}] {self.message}"


class ValidationError(NotesError):
    """Raised for malformed command arguments."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED
    ):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)[:100]

        super().__init__(message, code=code, details=details)
        self.field = field
        self.value = value


class StorageError(NotesError):
    """Raised for read, write and mkdir failures."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        path: Optional[str] = None,
        code: ErrorCode = ErrorCode.STORAGE_READ_FAILED,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if path:
            # Only the final component; full paths stay in the logs
            details["path_hint"] = str(path).replace("\\", "/").split("/")[-1]
        if original_error:
            details["original_error"] = str(original_error)[:200]

        super().__init__(message, code=code, details=details)
        self.operation = operation
        self.path = path
        self.original_error = original_error


class DecodeError(NotesError):
    """Raised when a whole-store or note payload cannot be decoded."""

    def __init__(
        self,
        message: str = "Invalid binary note format - unable to parse data",
        code: ErrorCode = ErrorCode.INVALID_FORMAT,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if original_error:
            details["original_error"] = str(original_error)[:200]
        super().__init__(message, code=code, details=details)
        self.original_error = original_error


class UserCancelled(NotesError):
    """Raised when the user dismisses a file picker. Not a failure."""

    def __init__(self, message: str = "Cancelled by user"):
        super().__init__(message, code=ErrorCode.USER_CANCELLED)
