"""
app/schemas package marker.
"""

from app.schemas.csv_analysis import (
    CsvPreviewResponse,
    CsvStructureResponse,
    JobAnalysisResponse,
    StoredFileResponse,
)
from app.schemas.data_processing import (
    ProcessDataRequest,
    ProcessingErrorListResponse,
    ProcessingJobAcceptedResponse,
    ProcessingJobListResponse,
    ProcessingJobStatusResponse,
    QualityReportResponse,
)
from app.schemas.dimension_mapping import (
    AcceptSuggestionsRequest,
    ColumnMappingResponse,
    ColumnSuggestionResponse,
    DimensionMappingRequest,
    DimensionTypeResponse,
    MappingValidationResponse,
    MultiDimensionalSummaryResponse,
)

__all__ = [
    "AcceptSuggestionsRequest",
    "ColumnMappingResponse",
    "ColumnSuggestionResponse",
    "CsvPreviewResponse",
    "CsvStructureResponse",
    "DimensionMappingRequest",
    "DimensionTypeResponse",
    "JobAnalysisResponse",
    "MappingValidationResponse",
    "MultiDimensionalSummaryResponse",
    "ProcessDataRequest",
    "ProcessingErrorListResponse",
    "ProcessingJobAcceptedResponse",
    "ProcessingJobListResponse",
    "ProcessingJobStatusResponse",
    "QualityReportResponse",
    "StoredFileResponse",
]
