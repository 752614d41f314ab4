"""
app/schemas/csv_analysis.py

Response schemas for upload storage and CSV structure endpoints.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from app.domain.csv_analysis import CsvAnalysis


class StoredFileResponse(BaseModel):
    job_id: UUID
    file_name: str
    size_bytes: int = Field(..., ge=0)
    checksum: str


class CsvColumnResponse(BaseModel):
    column_index: int = Field(..., ge=0)
    header: str
    data_type: str
    sample_values: list[str] = Field(default_factory=list)
    null_count: int = Field(..., ge=0)
    empty_count: int = Field(..., ge=0)
    unique_count: int = Field(..., ge=0)


class CsvStructureResponse(BaseModel):
    """
    API response model for one analyzed CSV file.
    """

    analysis_id: int | None = None
    job_id: UUID
    filename: str
    delimiter: str
    encoding: str
    has_header: bool
    headers: list[str]
    row_count: int = Field(..., ge=0)
    column_count: int = Field(..., ge=0)
    columns: list[CsvColumnResponse] = Field(default_factory=list)
    analyzed_at: datetime | None = None

    @classmethod
    def from_domain(cls, analysis: CsvAnalysis) -> "CsvStructureResponse":
        return cls(
            analysis_id=analysis.id,
            job_id=analysis.job_id,
            filename=analysis.filename,
            delimiter=analysis.delimiter,
            encoding=analysis.encoding,
            has_header=analysis.has_header,
            headers=list(analysis.headers),
            row_count=analysis.row_count,
            column_count=analysis.column_count,
            columns=[
                CsvColumnResponse(
                    column_index=column.column_index,
                    header=column.header,
                    data_type=column.data_type,
                    sample_values=list(column.sample_values),
                    null_count=column.null_count,
                    empty_count=column.empty_count,
                    unique_count=column.unique_count,
                )
                for column in analysis.columns
            ],
            analyzed_at=analysis.analyzed_at,
        )


class FileAnalysisFailureResponse(BaseModel):
    filename: str
    message: str


class JobAnalysisResponse(BaseModel):
    job_id: UUID
    analyses: list[CsvStructureResponse] = Field(default_factory=list)
    failures: list[FileAnalysisFailureResponse] = Field(default_factory=list)


class CsvPreviewResponse(BaseModel):
    job_id: UUID
    filename: str
    headers: list[str]
    rows: list[list[str]] = Field(default_factory=list)
    total_rows: int = Field(..., ge=0)
