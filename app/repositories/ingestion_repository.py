"""
app/repositories/ingestion_repository.py

Persistence collaborator consumed by the ingestion pipeline.

The pipeline only talks to ``IngestionRepository``; the SQLAlchemy
implementation composes the analysis, dimension, fact, and processing job
repositories over one session and exposes the transaction boundaries the
orchestrator drives.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Sequence
from typing import Protocol

from sqlalchemy.orm import Session

from app.domain.csv_analysis import CsvAnalysis
from app.domain.dimension_mapping import ColumnMapping, DimensionType
from app.domain.facts import DimRef, FactIndicatorValue, IndicatorRef, RowProcessingError
from app.domain.processing import ProcessingJob
from app.repositories.csv_analysis_repository import CsvAnalysisRepository
from app.repositories.dimension_repository import DimensionRepository
from app.repositories.fact_repository import FactRepository
from db.repositories.processing_job_repository import ProcessingJobRepository


class IngestionRepository(Protocol):
    def find_analysis(self, job_id: uuid.UUID, filename: str | None = None) -> CsvAnalysis | None:
        ...

    def list_analyses(self, job_id: uuid.UUID) -> list[CsvAnalysis]:
        ...

    def save_analysis(self, analysis: CsvAnalysis) -> CsvAnalysis:
        ...

    def list_column_mappings(self, analysis_id: int) -> list[ColumnMapping]:
        ...

    def save_column_mappings(self, analysis_id: int, mappings: Sequence[ColumnMapping]) -> list[ColumnMapping]:
        ...

    def find_or_create_dimension(
        self,
        dimension_type: str,
        value: str,
        *,
        dimension_name: str | None = None,
    ) -> DimRef:
        ...

    def find_or_create_indicator(self, name: str) -> IndicatorRef:
        ...

    def save_facts(self, facts: Sequence[FactIndicatorValue], *, batch_size: int = 1000) -> int:
        ...

    def create_processing_job(self, job: ProcessingJob) -> ProcessingJob:
        ...

    def get_processing_job(self, job_id: uuid.UUID) -> ProcessingJob | None:
        ...

    def save_processing_job(self, job: ProcessingJob) -> ProcessingJob | None:
        ...

    def list_processing_jobs(self, upload_job_id: uuid.UUID | None = None, *, limit: int = 100) -> list[ProcessingJob]:
        ...

    def save_processing_errors(self, job_id: uuid.UUID, errors: Sequence[RowProcessingError]) -> int:
        ...

    def list_processing_errors(self, job_id: uuid.UUID, *, limit: int = 500) -> list[RowProcessingError]:
        ...

    def delete_job_data(self, upload_job_id: uuid.UUID) -> None:
        ...

    def commit(self) -> None:
        ...

    def rollback(self) -> None:
        ...

    def close(self) -> None:
        ...


RepositoryFactory = Callable[[], IngestionRepository]


class SqlAlchemyIngestionRepository:
    """
    ``IngestionRepository`` over one SQLAlchemy session (PostgreSQL).
    """

    def __init__(self, session: Session, *, owns_session: bool = False) -> None:
        self._session = session
        self._owns_session = owns_session
        self._analyses = CsvAnalysisRepository(session)
        self._dimensions = DimensionRepository(session)
        self._facts = FactRepository(session)
        self._jobs = ProcessingJobRepository(session)

    def find_analysis(self, job_id: uuid.UUID, filename: str | None = None) -> CsvAnalysis | None:
        return self._analyses.find(job_id, filename)

    def list_analyses(self, job_id: uuid.UUID) -> list[CsvAnalysis]:
        return self._analyses.list_for_job(job_id)

    def save_analysis(self, analysis: CsvAnalysis) -> CsvAnalysis:
        return self._analyses.save(analysis)

    def list_column_mappings(self, analysis_id: int) -> list[ColumnMapping]:
        return self._analyses.list_mappings(analysis_id)

    def save_column_mappings(self, analysis_id: int, mappings: Sequence[ColumnMapping]) -> list[ColumnMapping]:
        return self._analyses.save_mappings(analysis_id, mappings)

    def find_or_create_dimension(
        self,
        dimension_type: str,
        value: str,
        *,
        dimension_name: str | None = None,
    ) -> DimRef:
        if dimension_type == DimensionType.TIME:
            return self._dimensions.find_or_create_time(value)
        if dimension_type == DimensionType.LOCATION:
            return self._dimensions.find_or_create_location(value)
        return self._dimensions.find_or_create_generic(dimension_name or dimension_type.lower(), value)

    def find_or_create_indicator(self, name: str) -> IndicatorRef:
        return self._dimensions.find_or_create_indicator(name)

    def save_facts(self, facts: Sequence[FactIndicatorValue], *, batch_size: int = 1000) -> int:
        return self._facts.save_facts(facts, batch_size=batch_size)

    def create_processing_job(self, job: ProcessingJob) -> ProcessingJob:
        return self._jobs.create_job(job)

    def get_processing_job(self, job_id: uuid.UUID) -> ProcessingJob | None:
        return self._jobs.get_job(job_id)

    def save_processing_job(self, job: ProcessingJob) -> ProcessingJob | None:
        return self._jobs.save_job(job)

    def list_processing_jobs(self, upload_job_id: uuid.UUID | None = None, *, limit: int = 100) -> list[ProcessingJob]:
        return self._jobs.list_jobs(upload_job_id=upload_job_id, limit=limit)

    def save_processing_errors(self, job_id: uuid.UUID, errors: Sequence[RowProcessingError]) -> int:
        return self._jobs.add_errors(job_id, errors)

    def list_processing_errors(self, job_id: uuid.UUID, *, limit: int = 500) -> list[RowProcessingError]:
        return self._jobs.list_errors(job_id, limit=limit)

    def delete_job_data(self, upload_job_id: uuid.UUID) -> None:
        self._facts.delete_for_job(upload_job_id)
        self._jobs.delete_for_upload_job(upload_job_id)
        self._analyses.delete_for_job(upload_job_id)

    def commit(self) -> None:
        self._session.commit()

    def rollback(self) -> None:
        self._session.rollback()

    def close(self) -> None:
        if self._owns_session:
            self._session.close()


def sql_repository_factory() -> IngestionRepository:
    """
    Open a new session-backed repository. The caller closes it.
    """

    from db.session import SessionLocal

    return SqlAlchemyIngestionRepository(SessionLocal(), owns_session=True)
