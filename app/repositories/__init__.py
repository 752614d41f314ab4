"""
app/repositories package marker.
"""

from app.repositories.csv_analysis_repository import CsvAnalysisRepository
from app.repositories.dimension_repository import DimensionRepository
from app.repositories.fact_repository import FactRepository
from app.repositories.ingestion_repository import (
    IngestionRepository,
    SqlAlchemyIngestionRepository,
    sql_repository_factory,
)

__all__ = [
    "CsvAnalysisRepository",
    "DimensionRepository",
    "FactRepository",
    "IngestionRepository",
    "SqlAlchemyIngestionRepository",
    "sql_repository_factory",
]
