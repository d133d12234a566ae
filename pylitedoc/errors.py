# pylitedoc/errors.py
from typing import Optional


# =========================
# Errors
# =========================
class LiteDocError(Exception):
    """Base class for pylitedoc errors."""
    pass


class ConfigurationError(LiteDocError):
    """Raised when a collection is used in a way its registration does not allow."""
    pass


class ValidationError(LiteDocError):
    """Raised when a filter, update or document is malformed."""
    pass


class InvalidPathError(ValidationError):
    """Raised when a dotted field path is empty or has an empty segment."""
    pass


class InvalidQueryError(ValidationError):
    """Raised when query syntax is invalid."""
    pass


class InvalidUpdateError(ValidationError):
    """Raised when update operator is invalid."""
    pass


class TypeMismatchError(ValidationError):
    """Raised when an array operator targets a value that is not an array."""

    def __init__(self, operator: str, path: str, actual):
        self.operator = operator
        self.path = path
        super().__init__(f"{operator} requires array field: {path} (found {type(actual).__name__})")


class FieldMissingError(ValidationError):
    """Raised when an $exists guard finds no value at a path."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Field '{path}' does not exist in the document.")


class InvalidDocumentError(ValidationError):
    """Raised when document doesn't satisfy collection schema."""
    pass


class DuplicateKeyError(ValidationError):
    """Raised when violating unique key (_id) constraint."""
    pass


class NotFoundError(LiteDocError):
    """Raised when no document matches the query."""
    pass


class StorageError(LiteDocError, OSError):
    """Raised when a collection file cannot be read or persisted."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(message)


class LockTimeoutError(LiteDocError, TimeoutError):
    """Raised when a collection file lock is not acquired in time."""

    def __init__(self, path: str, timeout: float):
        self.path = path
        self.timeout = timeout
        super().__init__(f"Timed out after {timeout}s waiting for lock on {path}")
