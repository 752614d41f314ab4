"""
tests/fakes.py

In-memory ``IngestionRepository`` and an inline task executor.

Nothing here touches PostgreSQL; the fake mirrors the persistence rules the
SQLAlchemy repositories enforce (analysis replacement per file, mapping
upsert per column, fact dedupe per upload job and source-row hash, and the
terminal-status guard on processing jobs).
"""

from __future__ import annotations

import dataclasses
import itertools
import threading
import uuid
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from typing import Any

from app.domain.csv_analysis import CsvAnalysis
from app.domain.dimension_mapping import ColumnMapping, DimensionType
from app.domain.facts import DimRef, FactIndicatorValue, IndicatorRef, RowProcessingError
from app.domain.processing import TERMINAL_STATUSES, ProcessingJob
from app.validators.cell_values import parse_time_parts


class InMemoryIngestionRepository:
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._ids = itertools.count(1)
        self.analyses: dict[int, CsvAnalysis] = {}
        self.mappings: dict[int, dict[int, ColumnMapping]] = {}
        self.dimensions: dict[tuple[str, str | None, str], DimRef] = {}
        self.indicators: dict[str, IndicatorRef] = {}
        self.facts: dict[tuple[uuid.UUID | None, str], FactIndicatorValue] = {}
        self.jobs: dict[uuid.UUID, ProcessingJob] = {}
        self.errors: dict[uuid.UUID, list[RowProcessingError]] = {}
        self.dimension_calls = 0
        self.indicator_calls = 0
        self.commits = 0
        self.rollbacks = 0

    # analyses and mappings

    def find_analysis(self, job_id: uuid.UUID, filename: str | None = None) -> CsvAnalysis | None:
        with self._lock:
            candidates = [
                analysis
                for analysis in self.analyses.values()
                if analysis.job_id == job_id and (filename is None or analysis.filename == filename)
            ]
            if not candidates:
                return None
            return max(candidates, key=lambda analysis: analysis.id or 0)

    def list_analyses(self, job_id: uuid.UUID) -> list[CsvAnalysis]:
        with self._lock:
            return sorted(
                (analysis for analysis in self.analyses.values() if analysis.job_id == job_id),
                key=lambda analysis: analysis.filename,
            )

    def save_analysis(self, analysis: CsvAnalysis) -> CsvAnalysis:
        with self._lock:
            for existing_id, existing in list(self.analyses.items()):
                if existing.job_id == analysis.job_id and existing.filename == analysis.filename:
                    del self.analyses[existing_id]
                    self.mappings.pop(existing_id, None)
            saved = dataclasses.replace(
                analysis,
                id=next(self._ids),
                analyzed_at=datetime.now(timezone.utc),
            )
            self.analyses[saved.id] = saved
            return saved

    def list_column_mappings(self, analysis_id: int) -> list[ColumnMapping]:
        with self._lock:
            by_column = self.mappings.get(analysis_id, {})
            return [by_column[index] for index in sorted(by_column)]

    def save_column_mappings(self, analysis_id: int, mappings: Sequence[ColumnMapping]) -> list[ColumnMapping]:
        with self._lock:
            by_column = self.mappings.setdefault(analysis_id, {})
            saved: list[ColumnMapping] = []
            for mapping in mappings:
                existing = by_column.get(mapping.column_index)
                record = dataclasses.replace(
                    mapping,
                    analysis_id=analysis_id,
                    id=existing.id if existing is not None else next(self._ids),
                )
                by_column[mapping.column_index] = record
                saved.append(record)
            return saved

    # dimension dictionaries and facts

    def find_or_create_dimension(
        self,
        dimension_type: str,
        value: str,
        *,
        dimension_name: str | None = None,
    ) -> DimRef:
        with self._lock:
            self.dimension_calls += 1
            if dimension_type in (DimensionType.TIME, DimensionType.LOCATION):
                key = (dimension_type, None, value)
            else:
                key = ("GENERIC", dimension_name or dimension_type.lower(), value)
            existing = self.dimensions.get(key)
            if existing is not None:
                return existing

            if dimension_type == DimensionType.TIME:
                parts = parse_time_parts(value)
                ref = DimRef(
                    dimension_type=DimensionType.TIME,
                    id=next(self._ids),
                    value=value,
                    year=parts.year,
                    month=parts.month,
                    quarter=parts.quarter,
                )
            elif dimension_type == DimensionType.LOCATION:
                ref = DimRef(dimension_type=DimensionType.LOCATION, id=next(self._ids), value=value)
            else:
                ref = DimRef(
                    dimension_type=dimension_type,
                    id=next(self._ids),
                    value=value,
                    dimension_name=key[1],
                )
            self.dimensions[key] = ref
            return ref

    def find_or_create_indicator(self, name: str) -> IndicatorRef:
        with self._lock:
            self.indicator_calls += 1
            existing = self.indicators.get(name)
            if existing is None:
                existing = IndicatorRef(id=next(self._ids), name=name)
                self.indicators[name] = existing
            return existing

    def save_facts(self, facts: Sequence[FactIndicatorValue], *, batch_size: int = 1000) -> int:
        with self._lock:
            inserted = 0
            for fact in facts:
                key = (fact.upload_job_id, fact.source_row_hash)
                if key in self.facts:
                    continue
                self.facts[key] = fact
                inserted += 1
            return inserted

    # processing jobs

    def create_processing_job(self, job: ProcessingJob) -> ProcessingJob:
        with self._lock:
            now = datetime.now(timezone.utc)
            stored = dataclasses.replace(job, created_at=now, updated_at=now)
            self.jobs[stored.id] = stored
            return dataclasses.replace(stored)

    def get_processing_job(self, job_id: uuid.UUID) -> ProcessingJob | None:
        with self._lock:
            stored = self.jobs.get(job_id)
            return dataclasses.replace(stored) if stored is not None else None

    def save_processing_job(self, job: ProcessingJob) -> ProcessingJob | None:
        with self._lock:
            stored = self.jobs.get(job.id)
            if stored is None:
                return None
            if stored.status in TERMINAL_STATUSES and job.status != stored.status:
                return dataclasses.replace(stored)
            updated = dataclasses.replace(
                job,
                cancel_requested=stored.cancel_requested or job.cancel_requested,
                created_at=stored.created_at,
                updated_at=datetime.now(timezone.utc),
            )
            self.jobs[job.id] = updated
            return dataclasses.replace(updated)

    def list_processing_jobs(self, upload_job_id: uuid.UUID | None = None, *, limit: int = 100) -> list[ProcessingJob]:
        with self._lock:
            jobs = [
                dataclasses.replace(job)
                for job in self.jobs.values()
                if upload_job_id is None or job.upload_job_id == upload_job_id
            ]
            jobs.reverse()
            return jobs[: max(1, limit)]

    def save_processing_errors(self, job_id: uuid.UUID, errors: Sequence[RowProcessingError]) -> int:
        with self._lock:
            self.errors.setdefault(job_id, []).extend(errors)
            return len(errors)

    def list_processing_errors(self, job_id: uuid.UUID, *, limit: int = 500) -> list[RowProcessingError]:
        with self._lock:
            errors = sorted(self.errors.get(job_id, []), key=lambda error: error.row_number)
            return errors[: max(1, limit)]

    def delete_job_data(self, upload_job_id: uuid.UUID) -> None:
        with self._lock:
            for key in [key for key in self.facts if key[0] == upload_job_id]:
                del self.facts[key]
            for job_id in [job.id for job in self.jobs.values() if job.upload_job_id == upload_job_id]:
                del self.jobs[job_id]
                self.errors.pop(job_id, None)
            for analysis_id in [a.id for a in self.analyses.values() if a.job_id == upload_job_id]:
                del self.analyses[analysis_id]
                self.mappings.pop(analysis_id, None)

    # transaction boundaries

    def commit(self) -> None:
        self.commits += 1

    def rollback(self) -> None:
        self.rollbacks += 1

    def close(self) -> None:
        pass


class InlineExecutor:
    """
    Runs submitted tasks immediately on the calling thread.
    """

    def __init__(self) -> None:
        self.submitted = 0

    def submit(self, task: Callable[..., None], *args: Any, **kwargs: Any) -> None:
        self.submitted += 1
        task(*args, **kwargs)


