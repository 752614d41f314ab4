"""
app/domain/dimension_mapping.py

Dimension types, column mappings, and the read-only mapping diagnostics.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


class DimensionType:
    INDICATOR_NAME = "INDICATOR_NAME"
    INDICATOR_VALUE = "INDICATOR_VALUE"
    TIME = "TIME"
    LOCATION = "LOCATION"
    UNIT = "UNIT"
    ADDITIONAL = "ADDITIONAL"


DIMENSION_TYPES: tuple[str, ...] = (
    DimensionType.INDICATOR_NAME,
    DimensionType.INDICATOR_VALUE,
    DimensionType.TIME,
    DimensionType.LOCATION,
    DimensionType.UNIT,
    DimensionType.ADDITIONAL,
)

REQUIRED_DIMENSION_TYPES: tuple[str, ...] = (
    DimensionType.INDICATOR_NAME,
    DimensionType.INDICATOR_VALUE,
)

DIMENSION_TYPE_DESCRIPTIONS: dict[str, str] = {
    DimensionType.INDICATOR_NAME: "Names the indicator a value belongs to.",
    DimensionType.INDICATOR_VALUE: "Numeric observation of an indicator.",
    DimensionType.TIME: "Time period such as a year, month, quarter, or date.",
    DimensionType.LOCATION: "Geographic area such as a country, region, or city.",
    DimensionType.UNIT: "Unit of measure attached to the value.",
    DimensionType.ADDITIONAL: "Any other categorical breakdown.",
}


class Orientation:
    ROWS = "ROWS"
    COLUMNS = "COLUMNS"


@dataclass(frozen=True)
class ColumnMapping:
    """
    Binding of one analyzed column to one dimension type.
    """

    column_index: int
    dimension_type: str
    column_header: str = ""
    is_auto_detected: bool = False
    confidence_score: float = 1.0
    mapping_rules: dict[str, Any] | None = None
    analysis_id: int | None = None
    id: int | None = None


@dataclass(frozen=True)
class ColumnSuggestion:
    """
    Classifier proposal for one column. Never persisted on its own.
    """

    column_index: int
    column_header: str
    dimension_type: str
    confidence: float
    is_low_confidence: bool
    reason: str
    alternatives: tuple[tuple[str, float], ...] = ()


@dataclass(frozen=True)
class MappingRequest:
    column_index: int
    dimension_type: str
    mapping_rules: dict[str, Any] | None = None


@dataclass(frozen=True)
class MappingValidationResult:
    is_valid: bool
    errors: list[str]
    warnings: list[str]
    total_mappings: int
    required_mappings: int
    missing_mappings: list[str]
    suggestions: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class MultiDimensionalSummary:
    """
    Distinct values observed on each mapped axis under the detected orientation.
    """

    orientation: str
    indicator_axis: list[str]
    time_axis: list[str]
    location_axis: list[str]
    additional_axes: dict[str, list[str]]
    total_dimensions: int
    is_complete: bool
    missing_dimensions: list[str]
    total_values: int = 0
