"""
app/domain/csv_analysis.py

Structural analysis results for one stored CSV file.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime


class ColumnDataType:
    NUMERIC = "numeric"
    TEXT = "text"
    DATE = "date"


@dataclass(frozen=True)
class CsvColumnStats:
    """
    Per-column statistics computed over the preview window.
    """

    column_index: int
    header: str
    data_type: str
    sample_values: tuple[str, ...] = ()
    null_count: int = 0
    empty_count: int = 0
    unique_count: int = 0
    value_count: int = 0


@dataclass(frozen=True)
class CsvAnalysis:
    """
    Cached structure of one file within an upload job.
    """

    job_id: uuid.UUID
    filename: str
    file_path: str
    delimiter: str
    encoding: str
    has_header: bool
    headers: tuple[str, ...]
    row_count: int
    column_count: int
    columns: tuple[CsvColumnStats, ...] = ()
    file_checksum: str | None = None
    id: int | None = None
    analyzed_at: datetime | None = None

    def __post_init__(self) -> None:
        if len(self.headers) != self.column_count:
            raise ValueError(
                f"Header count {len(self.headers)} does not match column count {self.column_count}."
            )

    def header_at(self, column_index: int) -> str:
        if 0 <= column_index < len(self.headers):
            return self.headers[column_index]
        return f"Column_{column_index + 1}"


@dataclass(frozen=True)
class FileAnalysisFailure:
    filename: str
    message: str


@dataclass(frozen=True)
class JobAnalysisSummary:
    """
    Outcome of analyzing every stored CSV file of an upload job.
    """

    job_id: uuid.UUID
    analyses: list[CsvAnalysis] = field(default_factory=list)
    failures: list[FileAnalysisFailure] = field(default_factory=list)
