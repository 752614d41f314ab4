"""
app/services/orientation_detector.py

Single source of truth for whether indicators vary by row or by column.
"""

from __future__ import annotations

from collections.abc import Sequence

from app.domain.dimension_mapping import ColumnMapping, DimensionType, Orientation


class OrientationDetector:
    """
    COLUMNS when at least two columns are mapped to INDICATOR_NAME and exactly
    one column carries TIME; ROWS otherwise.
    """

    def detect(self, mappings: Sequence[ColumnMapping], headers: Sequence[str] = ()) -> str:
        name_columns = sum(1 for m in mappings if m.dimension_type == DimensionType.INDICATOR_NAME)
        time_columns = sum(1 for m in mappings if m.dimension_type == DimensionType.TIME)
        if name_columns >= 2 and time_columns == 1:
            return Orientation.COLUMNS
        return Orientation.ROWS

    def indicator_columns(self, mappings: Sequence[ColumnMapping], orientation: str) -> list[ColumnMapping]:
        """
        Columns whose header names an indicator and whose cells hold its value.

        Empty in ROWS orientation, where indicator identity comes from a cell.
        """

        if orientation != Orientation.COLUMNS:
            return []
        return sorted(
            (
                mapping
                for mapping in mappings
                if mapping.dimension_type in (DimensionType.INDICATOR_NAME, DimensionType.INDICATOR_VALUE)
            ),
            key=lambda mapping: mapping.column_index,
        )
