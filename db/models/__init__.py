"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.column_mapping import ColumnMappingRecord
from db.models.csv_analysis import CsvAnalysisRecord, CsvColumnRecord
from db.models.dimensions import DimGeneric, DimLocation, DimTime, Indicator
from db.models.fact_indicator_value import FactIndicatorValueRecord, fact_indicator_value_generics
from db.models.processing_job import ProcessingErrorRecord, ProcessingJobRecord

__all__ = [
    "ColumnMappingRecord",
    "CsvAnalysisRecord",
    "CsvColumnRecord",
    "DimGeneric",
    "DimLocation",
    "DimTime",
    "Indicator",
    "FactIndicatorValueRecord",
    "fact_indicator_value_generics",
    "ProcessingErrorRecord",
    "ProcessingJobRecord",
]
