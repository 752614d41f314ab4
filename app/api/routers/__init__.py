"""
app/api/routers package marker.
"""

from app.api.routers.csv_analysis import router as csv_analysis_router
from app.api.routers.data_processing import router as data_processing_router
from app.api.routers.dimension_mapping import router as dimension_mapping_router

__all__ = [
    "csv_analysis_router",
    "data_processing_router",
    "dimension_mapping_router",
]
