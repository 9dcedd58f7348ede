"""Error types raised by notekeep collections and stores.

Each error carries an ``ErrorCode`` and a ``details`` dict so callers (and
the CLI) can report failures as structured data via ``to_dict()``.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Numeric codes grouped by area (1xxx notes, 2xxx content, ...)."""

    # Notes
    NOTE_NOT_FOUND = 1001
    NOTE_VALIDATION_FAILED = 1002

    # Content
    INVALID_CONTENT_TYPE = 2001

    # Notebooks and topics
    INVALID_DESTINATION = 3001
    NOTEBOOK_NOT_FOUND = 3002
    TOPIC_NOT_FOUND = 3003

    # Item stores
    STORAGE_READ_FAILED = 4001
    STORAGE_WRITE_FAILED = 4002
    STORAGE_DELETE_FAILED = 4003

    # Input validation
    VALIDATION_FAILED = 7001


def _compact(**values: Any) -> Dict[str, Any]:
    """Keep only the detail values that were actually supplied."""
    return {k: v for k, v in values.items() if v is not None and v != ""}


class NotekeepError(Exception):
    """Base class for every error notekeep raises on purpose.

    Attributes:
        message: Text for humans
        code: ``ErrorCode`` for programs
        details: Extra context (IDs, field names, the wrapped error)
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": type(self).__name__,
            "code": self.code.value,
            "code_name": self.code.name,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        text = f"[{self.code.name}] {self.message}"
        if not self.details:
            return text
        return text + " (" + ", ".join(f"{k}={v}" for k, v in self.details.items()) + ")"


class NoteNotFoundError(NotekeepError):
    def __init__(self, note_id: str, message: Optional[str] = None):
        super().__init__(
            message or f"No live note with ID '{note_id}'",
            code=ErrorCode.NOTE_NOT_FOUND,
            details={"note_id": note_id},
        )
        self.note_id = note_id


class InvalidContentTypeError(NotekeepError):
    """Content was supplied with a type tag no content type is registered for."""

    def __init__(self, content_type: Any, note_id: Optional[str] = None):
        super().__init__(
            "Invalid content type.",
            code=ErrorCode.INVALID_CONTENT_TYPE,
            details=_compact(content_type=str(content_type)[:100], note_id=note_id),
        )
        self.content_type = content_type
        self.note_id = note_id


class InvalidDestinationError(NotekeepError):
    """A move target is missing, incomplete or names something that does not exist."""

    def __init__(
        self,
        message: str,
        notebook_id: Optional[str] = None,
        topic_id: Optional[str] = None,
        code: ErrorCode = ErrorCode.INVALID_DESTINATION,
    ):
        super().__init__(
            message, code=code, details=_compact(notebook_id=notebook_id, topic_id=topic_id)
        )
        self.notebook_id = notebook_id
        self.topic_id = topic_id


class StorageError(NotekeepError):
    """An item store backend failed; ``original_error`` keeps the cause."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        collection: Optional[str] = None,
        code: ErrorCode = ErrorCode.STORAGE_READ_FAILED,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(
            message,
            code=code,
            details=_compact(
                operation=operation,
                collection=collection,
                original_error=str(original_error)[:200] if original_error else None,
            ),
        )
        self.operation = operation
        self.collection = collection
        self.original_error = original_error


class ValidationError(NotekeepError):
    """Input rejected before anything was written."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
    ):
        super().__init__(
            message,
            code=code,
            details=_compact(
                field=field, value=str(value)[:100] if value is not None else None
            ),
        )
        self.field = field
        self.value = value
