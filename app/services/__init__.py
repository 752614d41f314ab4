"""
app/services package marker.
"""

from app.services.csv_analysis_service import CsvAnalysisService, get_csv_analysis_service
from app.services.dimension_mapping_service import DimensionMappingService, get_dimension_mapping_service
from app.services.ingestion_orchestrator_service import (
    IngestionOrchestratorService,
    get_ingestion_orchestrator_service,
)
from app.services.multidimensional_summary_service import (
    MultiDimensionalSummaryService,
    get_multidimensional_summary_service,
)

__all__ = [
    "CsvAnalysisService",
    "get_csv_analysis_service",
    "DimensionMappingService",
    "get_dimension_mapping_service",
    "IngestionOrchestratorService",
    "get_ingestion_orchestrator_service",
    "MultiDimensionalSummaryService",
    "get_multidimensional_summary_service",
]
