"""
app/validators/mapping_validator.py

Validation for column-to-dimension mappings.
"""

from __future__ import annotations

from typing import Sequence

from app.domain.dimension_mapping import (
    DIMENSION_TYPES,
    REQUIRED_DIMENSION_TYPES,
    ColumnMapping,
    DimensionType,
    MappingValidationResult,
)
from app.domain.errors import MappingErrorDetail, MappingValidationError


class DimensionMappingValidator:
    """
    Checks a mapping set for completeness and trust. Never mutates input.
    """

    def __init__(self, *, confidence_threshold: float = 0.7) -> None:
        self._confidence_threshold = confidence_threshold

    def validate(self, mappings: Sequence[ColumnMapping]) -> MappingValidationResult:
        errors: list[str] = []
        warnings: list[str] = []
        suggestions: list[str] = []

        mapped_types = {mapping.dimension_type for mapping in mappings}
        missing = [required for required in REQUIRED_DIMENSION_TYPES if required not in mapped_types]
        for required in missing:
            errors.append(f"Required dimension {required} is not mapped to any column.")
            suggestions.append(f"Map at least one column to {required}.")

        for mapping in sorted(mappings, key=lambda item: item.column_index):
            if mapping.is_auto_detected and mapping.confidence_score < self._confidence_threshold:
                warnings.append(
                    f"Column {mapping.column_index} ({mapping.column_header or 'unnamed'}) was auto-detected as "
                    f"{mapping.dimension_type} with low confidence {mapping.confidence_score:.2f}."
                )
                suggestions.append(f"Review the mapping of column {mapping.column_index}.")

        name_columns = [m for m in mappings if m.dimension_type == DimensionType.INDICATOR_NAME]
        if len(name_columns) > 1 and DimensionType.TIME not in mapped_types:
            warnings.append(
                f"{len(name_columns)} columns are mapped to INDICATOR_NAME but no TIME column is mapped; "
                "rows will use the first indicator name column only."
            )
            suggestions.append("Map a TIME column to read indicator columns across the header row.")

        return MappingValidationResult(
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            total_mappings=len(mappings),
            required_mappings=len(REQUIRED_DIMENSION_TYPES),
            missing_mappings=missing,
            suggestions=suggestions,
        )


def check_mapping_request(
    *,
    column_index: int,
    dimension_type: str,
    column_count: int,
) -> None:
    """
    Raise a structured error for an unknown type or an out-of-range column.
    """

    errors: list[MappingErrorDetail] = []
    if dimension_type not in DIMENSION_TYPES:
        errors.append(
            MappingErrorDetail(
                code="invalid_dimension_type",
                message="Unknown dimension type.",
                dimension_type=dimension_type,
                column_index=column_index,
                context={"allowed": list(DIMENSION_TYPES)},
            )
        )
    if column_index < 0 or column_index >= column_count:
        errors.append(
            MappingErrorDetail(
                code="column_out_of_range",
                message="Column index is outside the analyzed columns.",
                dimension_type=dimension_type,
                column_index=column_index,
                context={"column_count": column_count},
            )
        )
    if errors:
        raise MappingValidationError(
            message=f"Invalid mapping for column {column_index}: "
            + "; ".join(error.message for error in errors),
            errors=errors,
        )
