"""
app/domain package marker.
"""

from app.domain.csv_analysis import ColumnDataType, CsvAnalysis, CsvColumnStats
from app.domain.dimension_mapping import (
    DIMENSION_TYPES,
    REQUIRED_DIMENSION_TYPES,
    ColumnMapping,
    ColumnSuggestion,
    DimensionType,
    MappingValidationResult,
    MultiDimensionalSummary,
    Orientation,
)
from app.domain.facts import (
    DimRef,
    FactIndicatorValue,
    IndicatorRef,
    QualityReport,
    RowProcessingError,
)
from app.domain.processing import ProcessingJob, ProcessingStatus

__all__ = [
    "ColumnDataType",
    "CsvAnalysis",
    "CsvColumnStats",
    "DIMENSION_TYPES",
    "REQUIRED_DIMENSION_TYPES",
    "ColumnMapping",
    "ColumnSuggestion",
    "DimensionType",
    "MappingValidationResult",
    "MultiDimensionalSummary",
    "Orientation",
    "DimRef",
    "FactIndicatorValue",
    "IndicatorRef",
    "QualityReport",
    "RowProcessingError",
    "ProcessingJob",
    "ProcessingStatus",
]
