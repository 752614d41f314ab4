"""
app/domain/facts.py

Fact records, dimension references, and row-level error details.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any


@dataclass(frozen=True)
class DimRef:
    """
    Reference to one shared dimension dictionary row.
    """

    dimension_type: str
    id: int
    value: str
    dimension_name: str | None = None
    year: int | None = None
    month: int | None = None
    quarter: int | None = None


@dataclass(frozen=True)
class IndicatorRef:
    id: int
    name: str


@dataclass(frozen=True)
class FactIndicatorValue:
    """
    One resolved (indicator, dimension tuple, value) observation.
    """

    indicator: IndicatorRef | None
    value: Decimal | None
    source_file: str
    source_row_hash: str
    confidence_score: float
    time: DimRef | None = None
    location: DimRef | None = None
    generics: tuple[DimRef, ...] = ()
    source_row_number: int | None = None
    direction: str | None = None
    upload_job_id: uuid.UUID | None = None
    processing_job_id: uuid.UUID | None = None


class FieldLimits:
    """
    Sizes of the persisted fact and dimension columns. Cells beyond them
    become row errors instead of failing the insert.
    """

    TIME_VALUE = 100
    DIMENSION_VALUE = 255
    INDICATOR_NAME = 255
    COLUMN_HEADER = 255
    DIRECTION = 16
    # PostgreSQL NUMERIC without a declared precision.
    VALUE_INTEGER_DIGITS = 131072
    VALUE_FRACTION_DIGITS = 16383


class RowErrorType:
    INVALID_NUMBER = "INVALID_NUMBER"
    MISSING_INDICATOR = "MISSING_INDICATOR"
    MISSING_TIME = "MISSING_TIME"
    ROW_PROCESSING = "ROW_PROCESSING"
    NULL_VALUE = "NULL_VALUE"
    NEGATIVE_VALUE = "NEGATIVE_VALUE"
    EXTREME_VALUE = "EXTREME_VALUE"
    VALUE_TOO_LONG = "VALUE_TOO_LONG"
    VALUE_OUT_OF_RANGE = "VALUE_OUT_OF_RANGE"


class ErrorSeverity:
    ERROR = "ERROR"
    WARNING = "WARNING"


@dataclass(frozen=True)
class RowProcessingError:
    """
    One recovered cell or row failure.
    """

    row_number: int
    message: str
    error_type: str = RowErrorType.ROW_PROCESSING
    column: str | None = None
    value: str | None = None
    severity: str = ErrorSeverity.ERROR


@dataclass(frozen=True)
class TransformBatch:
    """
    Facts and recovered errors produced from one batch of source rows.
    """

    facts: list[FactIndicatorValue]
    errors: list[RowProcessingError]
    rows_read: int


@dataclass(frozen=True)
class QualityReport:
    total_records: int
    valid_records: int
    error_records: int
    warning_records: int
    quality_score: float
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    error_type_counts: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_records": self.total_records,
            "valid_records": self.valid_records,
            "error_records": self.error_records,
            "warning_records": self.warning_records,
            "quality_score": self.quality_score,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "error_type_counts": dict(self.error_type_counts),
        }
