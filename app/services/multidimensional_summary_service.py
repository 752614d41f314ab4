"""
app/services/multidimensional_summary_service.py

Read-only scan listing the distinct values seen on each mapped axis.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from functools import lru_cache

from app.domain.csv_analysis import CsvAnalysis
from app.domain.dimension_mapping import (
    REQUIRED_DIMENSION_TYPES,
    ColumnMapping,
    DimensionType,
    MultiDimensionalSummary,
    Orientation,
)
from app.domain.errors import NotFoundError
from app.repositories.ingestion_repository import IngestionRepository
from app.services.csv_analysis_service import build_csv_structure_analyzer
from app.services.csv_structure_analyzer import CsvStructureAnalyzer
from app.services.orientation_detector import OrientationDetector
from app.validators.cell_values import is_blank, is_null_token, is_year_like, parse_decimal


class _Axis:
    """
    Insertion-ordered set of observed values.
    """

    def __init__(self) -> None:
        self._values: dict[str, None] = {}

    def add(self, value: str) -> None:
        if value and not is_null_token(value):
            self._values.setdefault(value, None)

    def to_list(self) -> list[str]:
        return list(self._values)


class MultiDimensionalSummaryService:
    def __init__(
        self,
        *,
        analyzer: CsvStructureAnalyzer,
        orientation_detector: OrientationDetector | None = None,
    ) -> None:
        self._analyzer = analyzer
        self._orientation_detector = orientation_detector or OrientationDetector()

    def summarize(
        self,
        *,
        repository: IngestionRepository,
        job_id: uuid.UUID,
        filename: str | None = None,
    ) -> MultiDimensionalSummary:
        analysis = repository.find_analysis(job_id, filename)
        if analysis is None:
            raise NotFoundError(f"CsvAnalysis not found for upload job: {job_id}")
        mappings = repository.list_column_mappings(analysis.id) if analysis.id is not None else []
        orientation = self._orientation_detector.detect(mappings, analysis.headers)
        return self.summarize_analysis(analysis, mappings, orientation)

    def summarize_analysis(
        self,
        analysis: CsvAnalysis,
        mappings: Sequence[ColumnMapping],
        orientation: str,
    ) -> MultiDimensionalSummary:
        ordered = sorted(mappings, key=lambda mapping: mapping.column_index)

        def first(dimension_type: str) -> ColumnMapping | None:
            return next((m for m in ordered if m.dimension_type == dimension_type), None)

        indicator_axis = _Axis()
        time_axis = _Axis()
        location_axis = _Axis()
        additional_axes: dict[str, _Axis] = {}

        time_column = first(DimensionType.TIME)
        location_column = first(DimensionType.LOCATION)
        if orientation == Orientation.COLUMNS:
            name_column = None
            value_columns = self._orientation_detector.indicator_columns(ordered, orientation)
            for column in value_columns:
                indicator_axis.add(column.column_header)
        else:
            name_column = first(DimensionType.INDICATOR_NAME)
            value_columns = [m for m in ordered if m.dimension_type == DimensionType.INDICATOR_VALUE]
            if time_column is None:
                for column in value_columns:
                    if is_year_like(column.column_header):
                        time_axis.add(column.column_header)

        claimed = {m.column_index for m in value_columns}
        claimed.update(m.column_index for m in (name_column, time_column, location_column) if m is not None)
        generic_columns = [
            m
            for m in ordered
            if m.column_index not in claimed and m.dimension_type != DimensionType.INDICATOR_VALUE
        ]
        for column in generic_columns:
            additional_axes.setdefault(column.column_header or f"Column_{column.column_index + 1}", _Axis())

        total_values = 0
        if ordered:
            for _, cells in self._analyzer.iter_rows(analysis):
                if name_column is not None:
                    indicator_axis.add(cells[name_column.column_index])
                if time_column is not None:
                    time_axis.add(cells[time_column.column_index])
                if location_column is not None:
                    location_axis.add(cells[location_column.column_index])
                for column in generic_columns:
                    additional_axes[column.column_header or f"Column_{column.column_index + 1}"].add(
                        cells[column.column_index]
                    )
                for column in value_columns:
                    raw = cells[column.column_index]
                    if not is_blank(raw) and parse_decimal(raw) is not None:
                        total_values += 1

        mapped_types = {mapping.dimension_type for mapping in ordered}
        missing = [required for required in REQUIRED_DIMENSION_TYPES if required not in mapped_types]
        axes = {
            "indicator": indicator_axis.to_list(),
            "time": time_axis.to_list(),
            "location": location_axis.to_list(),
        }
        additional = {name: axis.to_list() for name, axis in additional_axes.items()}
        total_dimensions = sum(1 for values in axes.values() if values) + sum(
            1 for values in additional.values() if values
        )
        return MultiDimensionalSummary(
            orientation=orientation,
            indicator_axis=axes["indicator"],
            time_axis=axes["time"],
            location_axis=axes["location"],
            additional_axes=additional,
            total_dimensions=total_dimensions,
            is_complete=not missing and total_values > 0,
            missing_dimensions=missing,
            total_values=total_values,
        )


@lru_cache(maxsize=1)
def get_multidimensional_summary_service() -> MultiDimensionalSummaryService:
    return MultiDimensionalSummaryService(analyzer=build_csv_structure_analyzer())
