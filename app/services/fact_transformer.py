"""
app/services/fact_transformer.py

Turns mapped CSV rows into fact records.

Rows are streamed in file order and grouped into batches so the caller can
report progress and honor cancellation between batches. Cell-level failures
are returned as ``RowProcessingError`` records; only file and repository
failures raise.
"""

from __future__ import annotations

import hashlib
import itertools
import logging
import uuid
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from app.domain.csv_analysis import CsvAnalysis
from app.domain.dimension_mapping import ColumnMapping, DimensionType, Orientation
from app.domain.errors import BadRequestError
from app.domain.facts import (
    DimRef,
    ErrorSeverity,
    FactIndicatorValue,
    FieldLimits,
    IndicatorRef,
    RowErrorType,
    RowProcessingError,
    TransformBatch,
)
from app.services.csv_structure_analyzer import CsvStructureAnalyzer
from app.services.dimension_resolver import DimensionResolver
from app.services.orientation_detector import OrientationDetector
from app.validators.cell_values import is_blank, is_null_token, is_year_like, parse_decimal

logger = logging.getLogger(__name__)


def source_row_hash(filename: str, row_index: int, column_index: int, raw_value: str) -> str:
    payload = f"{filename}|{row_index}|{column_index}|{raw_value}"
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class _RowPlan:
    """
    Which column plays which part, derived once per run.
    """

    orientation: str
    name_column: ColumnMapping | None
    value_columns: tuple[ColumnMapping, ...]
    time_column: ColumnMapping | None
    location_column: ColumnMapping | None
    generic_columns: tuple[ColumnMapping, ...] = field(default_factory=tuple)


@dataclass
class _SharedDimensions:
    time: DimRef | None = None
    location: DimRef | None = None
    generics: list[DimRef] = field(default_factory=list)
    confidences: list[float] = field(default_factory=list)


class FactTransformer:
    """
    Builds ``FactIndicatorValue`` records for one analyzed file.
    """

    def __init__(
        self,
        *,
        analyzer: CsvStructureAnalyzer,
        orientation_detector: OrientationDetector | None = None,
    ) -> None:
        self._analyzer = analyzer
        self._orientation_detector = orientation_detector or OrientationDetector()

    def iter_batches(
        self,
        analysis: CsvAnalysis,
        mappings: Sequence[ColumnMapping],
        orientation: str,
        *,
        resolver: DimensionResolver,
        batch_size: int = 1000,
        upload_job_id: uuid.UUID | None = None,
        processing_job_id: uuid.UUID | None = None,
    ) -> Iterator[TransformBatch]:
        if not mappings:
            raise BadRequestError("No dimension mappings found")

        plan = self._build_plan(mappings, orientation)
        rows = self._analyzer.iter_rows(analysis)
        size = max(1, batch_size)
        while True:
            chunk = list(itertools.islice(rows, size))
            if not chunk:
                return
            facts: list[FactIndicatorValue] = []
            errors: list[RowProcessingError] = []
            for row_number, cells in chunk:
                try:
                    self._transform_row(
                        analysis,
                        plan,
                        resolver,
                        row_number,
                        cells,
                        facts,
                        errors,
                        upload_job_id=upload_job_id or analysis.job_id,
                        processing_job_id=processing_job_id,
                    )
                except (BadRequestError, ValueError) as exc:
                    errors.append(
                        RowProcessingError(
                            row_number=row_number,
                            message=f"Row could not be processed: {exc}",
                            error_type=RowErrorType.ROW_PROCESSING,
                        )
                    )
            yield TransformBatch(facts=facts, errors=errors, rows_read=len(chunk))

    def transform(
        self,
        analysis: CsvAnalysis,
        mappings: Sequence[ColumnMapping],
        orientation: str | None = None,
        *,
        resolver: DimensionResolver,
        batch_size: int = 1000,
        upload_job_id: uuid.UUID | None = None,
        processing_job_id: uuid.UUID | None = None,
    ) -> TransformBatch:
        """
        Transform the whole file and return every fact and row error.
        """

        if orientation is None:
            orientation = self._orientation_detector.detect(mappings, analysis.headers)
        facts: list[FactIndicatorValue] = []
        errors: list[RowProcessingError] = []
        rows_read = 0
        for batch in self.iter_batches(
            analysis,
            mappings,
            orientation,
            resolver=resolver,
            batch_size=batch_size,
            upload_job_id=upload_job_id,
            processing_job_id=processing_job_id,
        ):
            facts.extend(batch.facts)
            errors.extend(batch.errors)
            rows_read += batch.rows_read
        return TransformBatch(facts=facts, errors=errors, rows_read=rows_read)

    def _build_plan(self, mappings: Sequence[ColumnMapping], orientation: str) -> _RowPlan:
        ordered = sorted(mappings, key=lambda mapping: mapping.column_index)

        def first(dimension_type: str) -> ColumnMapping | None:
            return next((m for m in ordered if m.dimension_type == dimension_type), None)

        time_column = first(DimensionType.TIME)
        location_column = first(DimensionType.LOCATION)

        if orientation == Orientation.COLUMNS:
            value_columns = tuple(self._orientation_detector.indicator_columns(ordered, orientation))
            name_column = None
        else:
            value_columns = tuple(m for m in ordered if m.dimension_type == DimensionType.INDICATOR_VALUE)
            name_column = first(DimensionType.INDICATOR_NAME)

        claimed = {m.column_index for m in value_columns}
        for mapping in (name_column, time_column, location_column):
            if mapping is not None:
                claimed.add(mapping.column_index)
        generic_columns = tuple(
            m
            for m in ordered
            if m.column_index not in claimed and m.dimension_type != DimensionType.INDICATOR_VALUE
        )
        return _RowPlan(
            orientation=orientation,
            name_column=name_column,
            value_columns=value_columns,
            time_column=time_column,
            location_column=location_column,
            generic_columns=generic_columns,
        )

    def _transform_row(
        self,
        analysis: CsvAnalysis,
        plan: _RowPlan,
        resolver: DimensionResolver,
        row_number: int,
        cells: list[str],
        facts: list[FactIndicatorValue],
        errors: list[RowProcessingError],
        *,
        upload_job_id: uuid.UUID,
        processing_job_id: uuid.UUID | None,
    ) -> None:
        row_indicator: IndicatorRef | None = None
        name_confidence: list[float] = []
        if plan.orientation == Orientation.ROWS and plan.name_column is not None:
            raw_name = cells[plan.name_column.column_index]
            if _is_empty(raw_name):
                errors.append(
                    RowProcessingError(
                        row_number=row_number,
                        message="Indicator name is blank; row skipped.",
                        error_type=RowErrorType.MISSING_INDICATOR,
                        column=plan.name_column.column_header,
                        value=raw_name,
                        severity=ErrorSeverity.WARNING,
                    )
                )
                return
            too_long = _too_long(row_number, plan.name_column, raw_name, FieldLimits.INDICATOR_NAME)
            if too_long is not None:
                errors.append(too_long)
                return
            row_indicator = resolver.resolve_indicator(raw_name)
            name_confidence.append(plan.name_column.confidence_score)

        shared = self._resolve_shared(plan, resolver, row_number, cells, errors)
        if shared is None:
            return

        for value_column in plan.value_columns:
            raw_value = cells[value_column.column_index]
            if _is_empty(raw_value):
                continue
            value = parse_decimal(raw_value)
            if value is None:
                errors.append(
                    RowProcessingError(
                        row_number=row_number,
                        message=f"Value {raw_value!r} is not a number.",
                        error_type=RowErrorType.INVALID_NUMBER,
                        column=value_column.column_header,
                        value=raw_value,
                    )
                )
                continue
            if _out_of_numeric_range(value):
                errors.append(
                    RowProcessingError(
                        row_number=row_number,
                        message="Value has more digits than can be stored.",
                        error_type=RowErrorType.VALUE_OUT_OF_RANGE,
                        column=value_column.column_header,
                        value=raw_value,
                    )
                )
                continue

            direction = (value_column.mapping_rules or {}).get("direction")
            direction = str(direction) if direction else None
            if direction is not None:
                too_long = _too_long(row_number, value_column, direction, FieldLimits.DIRECTION, label="Direction")
                if too_long is not None:
                    errors.append(too_long)
                    continue

            if plan.orientation == Orientation.COLUMNS:
                indicator: IndicatorRef | None = resolver.resolve_indicator(value_column.column_header)
            else:
                indicator = row_indicator

            time_ref = shared.time
            if time_ref is None and plan.time_column is None and is_year_like(value_column.column_header):
                time_ref = resolver.resolve(DimensionType.TIME, value_column.column_header)

            facts.append(
                self._build_fact(
                    analysis,
                    row_number=row_number,
                    column=value_column,
                    raw_value=raw_value,
                    value=value,
                    indicator=indicator,
                    time=time_ref,
                    shared=shared,
                    direction=direction,
                    confidences=[value_column.confidence_score, *name_confidence, *shared.confidences],
                    upload_job_id=upload_job_id,
                    processing_job_id=processing_job_id,
                )
            )

    def _resolve_shared(
        self,
        plan: _RowPlan,
        resolver: DimensionResolver,
        row_number: int,
        cells: list[str],
        errors: list[RowProcessingError],
    ) -> _SharedDimensions | None:
        """
        Resolve the row's time, location and generic cells; None when one of
        them cannot be stored and the row is skipped.
        """

        shared = _SharedDimensions()
        if plan.time_column is not None:
            raw = cells[plan.time_column.column_index]
            if not _is_empty(raw):
                too_long = _too_long(row_number, plan.time_column, raw, FieldLimits.TIME_VALUE)
                if too_long is not None:
                    errors.append(too_long)
                    return None
                shared.time = resolver.resolve(DimensionType.TIME, raw)
                shared.confidences.append(plan.time_column.confidence_score)
        if plan.location_column is not None:
            raw = cells[plan.location_column.column_index]
            if not _is_empty(raw):
                too_long = _too_long(row_number, plan.location_column, raw, FieldLimits.DIMENSION_VALUE)
                if too_long is not None:
                    errors.append(too_long)
                    return None
                shared.location = resolver.resolve(DimensionType.LOCATION, raw)
                shared.confidences.append(plan.location_column.confidence_score)
        for mapping in plan.generic_columns:
            raw = cells[mapping.column_index]
            if _is_empty(raw):
                continue
            too_long = _too_long(row_number, mapping, raw, FieldLimits.DIMENSION_VALUE)
            if too_long is not None:
                errors.append(too_long)
                return None
            dimension_type = DimensionType.UNIT if mapping.dimension_type == DimensionType.UNIT else DimensionType.ADDITIONAL
            shared.generics.append(
                resolver.resolve(dimension_type, raw, dimension_name=mapping.column_header or None)
            )
            shared.confidences.append(mapping.confidence_score)
        return shared

    @staticmethod
    def _build_fact(
        analysis: CsvAnalysis,
        *,
        row_number: int,
        column: ColumnMapping,
        raw_value: str,
        value: Decimal,
        indicator: IndicatorRef | None,
        time: DimRef | None,
        shared: _SharedDimensions,
        direction: str | None,
        confidences: list[float],
        upload_job_id: uuid.UUID,
        processing_job_id: uuid.UUID | None,
    ) -> FactIndicatorValue:
        return FactIndicatorValue(
            indicator=indicator,
            value=value,
            source_file=analysis.filename,
            source_row_hash=source_row_hash(analysis.filename, row_number, column.column_index, raw_value),
            confidence_score=min(confidences),
            time=time,
            location=shared.location,
            generics=tuple(shared.generics),
            source_row_number=row_number,
            direction=direction,
            upload_job_id=upload_job_id,
            processing_job_id=processing_job_id,
        )


def _is_empty(raw: str) -> bool:
    return is_blank(raw) or is_null_token(raw)


def _too_long(
    row_number: int,
    column: ColumnMapping,
    raw: str,
    limit: int,
    *,
    label: str = "Value",
) -> RowProcessingError | None:
    length = len(raw.strip())
    if length <= limit:
        return None
    return RowProcessingError(
        row_number=row_number,
        message=f"{label} has {length} characters; at most {limit} can be stored.",
        error_type=RowErrorType.VALUE_TOO_LONG,
        column=column.column_header,
        value=raw,
    )


def _out_of_numeric_range(value: Decimal) -> bool:
    if not value.is_finite():
        return True
    _, digits, exponent = value.as_tuple()
    integer_digits = max(0, len(digits) + exponent)
    fraction_digits = max(0, -exponent)
    return (
        integer_digits > FieldLimits.VALUE_INTEGER_DIGITS
        or fraction_digits > FieldLimits.VALUE_FRACTION_DIGITS
    )
