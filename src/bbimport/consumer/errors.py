"""Outcome taxonomy reported by the consumer for each import attempt."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ImportErrorType(str, Enum):
    """Kinds of import outcomes; only ``NONE`` counts as success."""

    NONE = "No errors occurred"
    INVALID_RECORD = "Record failed automated validation tests."
    RECORD_ENTITY_NOT_FOUND = "Could not ascertain entity record"
    TRANSACTION_ERROR = "Error occurred during DB transaction."

    @property
    def retryable(self) -> bool:
        return self is ImportErrorType.TRANSACTION_ERROR


@dataclass(slots=True)
class ConsumeResult:
    """Outcome of a single validation + persistence attempt."""

    error_type: ImportErrorType
    message: str | None = None
    status: str | None = None
    import_id: int | None = None

    @property
    def ok(self) -> bool:
        return self.error_type is ImportErrorType.NONE


__all__ = ["ConsumeResult", "ImportErrorType"]
