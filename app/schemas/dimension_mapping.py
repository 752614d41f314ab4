"""
app/schemas/dimension_mapping.py

Request and response schemas for dimension suggestion and mapping endpoints.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from app.domain.dimension_mapping import (
    ColumnMapping,
    ColumnSuggestion,
    MappingValidationResult,
    MultiDimensionalSummary,
)


class ColumnMappingRequest(BaseModel):
    column_index: int = Field(..., ge=0)
    dimension_type: str = Field(..., min_length=1)
    mapping_rules: dict[str, Any] | None = None


class DimensionMappingRequest(BaseModel):
    """
    Bulk create-or-update of column mappings.
    """

    mappings: list[ColumnMappingRequest] = Field(..., min_length=1)
    filename: str | None = None


class AcceptSuggestionsRequest(BaseModel):
    min_confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    filename: str | None = None


class AlternativeResponse(BaseModel):
    dimension_type: str
    confidence: float


class ColumnSuggestionResponse(BaseModel):
    column_index: int
    column_header: str
    dimension_type: str
    confidence: float
    is_low_confidence: bool
    reason: str
    alternatives: list[AlternativeResponse] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, suggestion: ColumnSuggestion) -> "ColumnSuggestionResponse":
        return cls(
            column_index=suggestion.column_index,
            column_header=suggestion.column_header,
            dimension_type=suggestion.dimension_type,
            confidence=suggestion.confidence,
            is_low_confidence=suggestion.is_low_confidence,
            reason=suggestion.reason,
            alternatives=[
                AlternativeResponse(dimension_type=dimension_type, confidence=confidence)
                for dimension_type, confidence in suggestion.alternatives
            ],
        )


class ColumnMappingResponse(BaseModel):
    id: int | None = None
    column_index: int
    column_header: str
    dimension_type: str
    is_auto_detected: bool
    confidence_score: float
    mapping_rules: dict[str, Any] | None = None

    @classmethod
    def from_domain(cls, mapping: ColumnMapping) -> "ColumnMappingResponse":
        return cls(
            id=mapping.id,
            column_index=mapping.column_index,
            column_header=mapping.column_header,
            dimension_type=mapping.dimension_type,
            is_auto_detected=mapping.is_auto_detected,
            confidence_score=mapping.confidence_score,
            mapping_rules=mapping.mapping_rules,
        )


class MappingValidationResponse(BaseModel):
    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    total_mappings: int
    required_mappings: int
    missing_mappings: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, result: MappingValidationResult) -> "MappingValidationResponse":
        return cls(
            is_valid=result.is_valid,
            errors=list(result.errors),
            warnings=list(result.warnings),
            total_mappings=result.total_mappings,
            required_mappings=result.required_mappings,
            missing_mappings=list(result.missing_mappings),
            suggestions=list(result.suggestions),
        )


class MultiDimensionalSummaryResponse(BaseModel):
    orientation: str
    indicator_axis: list[str] = Field(default_factory=list)
    time_axis: list[str] = Field(default_factory=list)
    location_axis: list[str] = Field(default_factory=list)
    additional_axes: dict[str, list[str]] = Field(default_factory=dict)
    total_dimensions: int
    is_complete: bool
    missing_dimensions: list[str] = Field(default_factory=list)
    total_values: int = 0

    @classmethod
    def from_domain(cls, summary: MultiDimensionalSummary) -> "MultiDimensionalSummaryResponse":
        return cls(
            orientation=summary.orientation,
            indicator_axis=list(summary.indicator_axis),
            time_axis=list(summary.time_axis),
            location_axis=list(summary.location_axis),
            additional_axes={name: list(values) for name, values in summary.additional_axes.items()},
            total_dimensions=summary.total_dimensions,
            is_complete=summary.is_complete,
            missing_dimensions=list(summary.missing_dimensions),
            total_values=summary.total_values,
        )


class DimensionTypeResponse(BaseModel):
    name: str
    description: str
    required: bool
