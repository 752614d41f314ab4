"""
app/domain/errors.py

Error taxonomy shared by the ingestion pipeline and its HTTP surface.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence


class IngestionError(Exception):
    """
    Base class for ingestion pipeline failures.
    """


class NotFoundError(IngestionError):
    """
    Raised when a referenced analysis, upload file, or job does not exist.
    """


class BadRequestError(IngestionError):
    """
    Raised when input is structurally invalid.
    """

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause


@dataclass(frozen=True)
class MappingErrorDetail:
    """
    Structured mapping error detail.
    """

    code: str
    message: str
    dimension_type: str | None = None
    column_index: int | None = None
    context: dict[str, Any] | None = None


class MappingValidationError(BadRequestError):
    """
    Raised when a mapping request cannot be applied, with structured details.
    """

    def __init__(self, *, message: str, errors: Sequence[MappingErrorDetail]) -> None:
        super().__init__(message)
        self.errors = tuple(errors)

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "errors": [
                {
                    "code": error.code,
                    "message": error.message,
                    "dimension_type": error.dimension_type,
                    "column_index": error.column_index,
                    "context": error.context,
                }
                for error in self.errors
            ],
        }


class ProcessingCancelledError(IngestionError):
    """
    Raised at a batch boundary when cancellation was requested for a job.
    """


class ProcessingTimeoutError(IngestionError):
    """
    Raised at a batch boundary when the job exceeded its overall timeout.
    """


class ErrorBudgetExceededError(IngestionError):
    """
    Raised when recovered row-level errors exceed the configured maximum.
    """
