"""
app/repositories/csv_analysis_repository.py

Persistence for cached CSV analyses, column statistics, and column mappings.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, selectinload

from app.domain.csv_analysis import CsvAnalysis, CsvColumnStats
from app.domain.dimension_mapping import ColumnMapping
from db.models.column_mapping import ColumnMappingRecord
from db.models.csv_analysis import CsvAnalysisRecord, CsvColumnRecord


class CsvAnalysisRepository:
    """
    Repository for analysis cache entries keyed by (job_id, filename).
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def find(self, job_id: uuid.UUID, filename: str | None = None) -> CsvAnalysis | None:
        """
        Return the analysis for one file, or the latest analysis of the job
        when no filename is given.
        """

        stmt = (
            select(CsvAnalysisRecord)
            .options(selectinload(CsvAnalysisRecord.columns))
            .where(CsvAnalysisRecord.job_id == job_id)
        )
        if filename is not None:
            stmt = stmt.where(CsvAnalysisRecord.filename == filename)
        stmt = stmt.order_by(CsvAnalysisRecord.created_at.desc(), CsvAnalysisRecord.id.desc())
        record = self._session.execute(stmt).scalars().first()
        return _to_domain(record) if record is not None else None

    def list_for_job(self, job_id: uuid.UUID) -> list[CsvAnalysis]:
        stmt = (
            select(CsvAnalysisRecord)
            .options(selectinload(CsvAnalysisRecord.columns))
            .where(CsvAnalysisRecord.job_id == job_id)
            .order_by(CsvAnalysisRecord.filename)
        )
        return [_to_domain(record) for record in self._session.execute(stmt).scalars().all()]

    def save(self, analysis: CsvAnalysis) -> CsvAnalysis:
        """
        Insert an analysis, replacing any previous one for the same file.

        Replacing drops the previous column statistics and mappings.
        """

        self._session.execute(
            delete(CsvAnalysisRecord).where(
                CsvAnalysisRecord.job_id == analysis.job_id,
                CsvAnalysisRecord.filename == analysis.filename,
            )
        )

        record = CsvAnalysisRecord(
            job_id=analysis.job_id,
            filename=analysis.filename,
            file_path=analysis.file_path,
            file_checksum=analysis.file_checksum,
            delimiter=analysis.delimiter,
            encoding=analysis.encoding,
            has_header=analysis.has_header,
            headers=list(analysis.headers),
            row_count=analysis.row_count,
            column_count=analysis.column_count,
            columns=[
                CsvColumnRecord(
                    column_index=column.column_index,
                    header=column.header,
                    data_type=column.data_type,
                    sample_values=list(column.sample_values),
                    null_count=column.null_count,
                    empty_count=column.empty_count,
                    unique_count=column.unique_count,
                    value_count=column.value_count,
                )
                for column in analysis.columns
            ],
        )
        self._session.add(record)
        self._session.flush()
        self._session.refresh(record)
        return _to_domain(record)

    def delete(self, analysis_id: int) -> None:
        self._session.execute(delete(CsvAnalysisRecord).where(CsvAnalysisRecord.id == analysis_id))

    def delete_for_job(self, job_id: uuid.UUID) -> int:
        result = self._session.execute(delete(CsvAnalysisRecord).where(CsvAnalysisRecord.job_id == job_id))
        return result.rowcount or 0

    def list_mappings(self, analysis_id: int) -> list[ColumnMapping]:
        stmt = (
            select(ColumnMappingRecord)
            .where(ColumnMappingRecord.analysis_id == analysis_id)
            .order_by(ColumnMappingRecord.column_index)
        )
        return [_mapping_to_domain(record) for record in self._session.execute(stmt).scalars().all()]

    def save_mappings(self, analysis_id: int, mappings: Sequence[ColumnMapping]) -> list[ColumnMapping]:
        """
        Insert or update mappings keyed by (analysis_id, column_index).
        """

        saved: list[ColumnMapping] = []
        for mapping in mappings:
            stmt = select(ColumnMappingRecord).where(
                ColumnMappingRecord.analysis_id == analysis_id,
                ColumnMappingRecord.column_index == mapping.column_index,
            )
            existing = self._session.execute(stmt).scalars().first()

            if existing is None:
                existing = ColumnMappingRecord(
                    analysis_id=analysis_id,
                    column_index=mapping.column_index,
                    column_header=mapping.column_header,
                    dimension_type=mapping.dimension_type,
                    is_auto_detected=mapping.is_auto_detected,
                    confidence_score=mapping.confidence_score,
                    mapping_rules=mapping.mapping_rules,
                )
                self._session.add(existing)
            else:
                existing.column_header = mapping.column_header
                existing.dimension_type = mapping.dimension_type
                existing.is_auto_detected = mapping.is_auto_detected
                existing.confidence_score = mapping.confidence_score
                existing.mapping_rules = mapping.mapping_rules

            self._session.flush()
            saved.append(_mapping_to_domain(existing))
        return saved


def _to_domain(record: CsvAnalysisRecord) -> CsvAnalysis:
    return CsvAnalysis(
        id=record.id,
        job_id=record.job_id,
        filename=record.filename,
        file_path=record.file_path,
        file_checksum=record.file_checksum,
        delimiter=record.delimiter,
        encoding=record.encoding,
        has_header=record.has_header,
        headers=tuple(record.headers),
        row_count=record.row_count,
        column_count=record.column_count,
        columns=tuple(
            CsvColumnStats(
                column_index=column.column_index,
                header=column.header,
                data_type=column.data_type,
                sample_values=tuple(column.sample_values or ()),
                null_count=column.null_count,
                empty_count=column.empty_count,
                unique_count=column.unique_count,
                value_count=column.value_count,
            )
            for column in record.columns
        ),
        analyzed_at=record.created_at,
    )


def _mapping_to_domain(record: ColumnMappingRecord) -> ColumnMapping:
    return ColumnMapping(
        id=record.id,
        analysis_id=record.analysis_id,
        column_index=record.column_index,
        column_header=record.column_header,
        dimension_type=record.dimension_type,
        is_auto_detected=record.is_auto_detected,
        confidence_score=record.confidence_score,
        mapping_rules=record.mapping_rules,
    )
