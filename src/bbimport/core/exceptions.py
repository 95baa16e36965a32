"""Exception hierarchy for the import pipeline."""

from __future__ import annotations


class BBImportError(Exception):
    """Base class for errors raised by bbimport."""


class ValidationError(BBImportError):
    """Raised by validators when entity data is structurally invalid."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field

    def __str__(self) -> str:
        if self.field:
            return f"{self.field}: {self.message}"
        return self.message


class TransactionError(BBImportError):
    """Raised when a persistence attempt fails and may succeed when retried."""


class QueueNotOpenError(BBImportError, RuntimeError):
    """Raised when a queue operation is used before ``open()``."""


class UnsupportedRecordError(BBImportError, ValueError):
    """Raised by producers for dump records they cannot map to an entity."""


__all__ = [
    "BBImportError",
    "QueueNotOpenError",
    "TransactionError",
    "UnsupportedRecordError",
    "ValidationError",
]
