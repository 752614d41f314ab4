"""
app/services/data_quality_assessor.py

Quality scoring over a set of transformed facts.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from decimal import Decimal

from app.domain.facts import (
    ErrorSeverity,
    FactIndicatorValue,
    QualityReport,
    RowErrorType,
    RowProcessingError,
)

EXTREME_VALUE_LIMIT = Decimal("999999999")


class DataQualityAssessor:
    """
    Pure function over facts: no persistence, no logging side effects.
    """

    def __init__(self, *, extreme_value_limit: Decimal = EXTREME_VALUE_LIMIT) -> None:
        self._extreme_value_limit = extreme_value_limit

    def assess(self, facts: Sequence[FactIndicatorValue]) -> QualityReport:
        errors: list[str] = []
        warnings: list[str] = []
        type_counts: Counter[str] = Counter()
        valid = 0
        warning_records = 0

        for fact in facts:
            label = _fact_label(fact)
            fact_errors: list[str] = []
            if fact.indicator is None:
                fact_errors.append(f"{label}: missing indicator")
                type_counts[RowErrorType.MISSING_INDICATOR] += 1
            if fact.value is None:
                fact_errors.append(f"{label}: missing value")
                type_counts[RowErrorType.NULL_VALUE] += 1
            if fact_errors:
                errors.extend(fact_errors)
                continue

            valid += 1
            if fact.value < 0:
                warnings.append(f"{label}: negative value {fact.value}")
                type_counts[RowErrorType.NEGATIVE_VALUE] += 1
                warning_records += 1
            elif fact.value > self._extreme_value_limit:
                warnings.append(f"{label}: unusually large value {fact.value}")
                type_counts[RowErrorType.EXTREME_VALUE] += 1
                warning_records += 1

        total = len(facts)
        return QualityReport(
            total_records=total,
            valid_records=valid,
            error_records=total - valid,
            warning_records=warning_records,
            quality_score=valid / total if total else 1.0,
            errors=errors,
            warnings=warnings,
            error_type_counts=dict(type_counts),
        )

    def merge_row_errors(
        self,
        report: QualityReport,
        row_errors: Sequence[RowProcessingError],
        *,
        max_messages: int = 500,
    ) -> QualityReport:
        """
        Fold transformer row errors into a report; scores stay fact-based.
        """

        if not row_errors:
            return report

        errors = list(report.errors)
        warnings = list(report.warnings)
        type_counts = Counter(report.error_type_counts)
        for row_error in row_errors:
            message = f"row {row_error.row_number}"
            if row_error.column:
                message += f" [{row_error.column}]"
            message += f": {row_error.message}"
            target = warnings if row_error.severity == ErrorSeverity.WARNING else errors
            if len(target) < max_messages:
                target.append(message)
            type_counts[row_error.error_type] += 1

        return QualityReport(
            total_records=report.total_records,
            valid_records=report.valid_records,
            error_records=report.error_records,
            warning_records=report.warning_records,
            quality_score=report.quality_score,
            errors=errors,
            warnings=warnings,
            error_type_counts=dict(type_counts),
        )


def _fact_label(fact: FactIndicatorValue) -> str:
    if fact.source_row_number is not None:
        return f"{fact.source_file} row {fact.source_row_number}"
    return f"{fact.source_file} {fact.source_row_hash[:12]}"
