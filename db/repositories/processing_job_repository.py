"""
Repository for processing job lifecycle persistence and recovered row errors.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence

from sqlalchemy import Select, delete, select
from sqlalchemy.orm import Session

from app.domain.facts import RowProcessingError
from app.domain.processing import TERMINAL_STATUSES, ProcessingJob, ProcessingStatus
from db.models.processing_job import ProcessingErrorRecord, ProcessingJobRecord


class ProcessingJobRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_job(self, job: ProcessingJob) -> ProcessingJob:
        record = ProcessingJobRecord(
            id=job.id,
            upload_job_id=job.upload_job_id,
            status=ProcessingStatus.PENDING,
            batch_size=job.batch_size,
            records_processed=0,
            total_records=0,
            error_count=0,
            progress_percentage=0.0,
            cancel_requested=False,
        )
        self._session.add(record)
        self._session.flush()
        self._session.refresh(record)
        return _to_domain(record)

    def get_job(self, job_id: uuid.UUID) -> ProcessingJob | None:
        record = self._session.get(ProcessingJobRecord, job_id)
        if record is None:
            return None
        self._session.refresh(record)
        return _to_domain(record)

    def list_jobs(
        self,
        *,
        upload_job_id: uuid.UUID | None = None,
        status: str | None = None,
        limit: int = 100,
    ) -> list[ProcessingJob]:
        stmt: Select[tuple[ProcessingJobRecord]] = select(ProcessingJobRecord)

        if upload_job_id is not None:
            stmt = stmt.where(ProcessingJobRecord.upload_job_id == upload_job_id)
        if status:
            stmt = stmt.where(ProcessingJobRecord.status == status)

        stmt = stmt.order_by(ProcessingJobRecord.created_at.desc()).limit(max(1, limit))
        return [_to_domain(record) for record in self._session.scalars(stmt).all()]

    def save_job(self, job: ProcessingJob) -> ProcessingJob | None:
        record = self._session.get(ProcessingJobRecord, job.id)
        if record is None:
            return None
        if record.status in TERMINAL_STATUSES and job.status != record.status:
            return _to_domain(record)
        record.status = job.status
        record.records_processed = job.records_processed
        record.total_records = job.total_records
        record.error_count = job.error_count
        record.progress_percentage = job.progress_percentage
        record.batch_size = job.batch_size
        record.error_message = job.error_message
        record.result_payload = job.result_payload
        record.started_at = job.started_at
        record.completed_at = job.completed_at
        # A concurrent cancel request must not be cleared by a progress write.
        record.cancel_requested = record.cancel_requested or job.cancel_requested
        self._session.flush()
        return _to_domain(record)

    def add_errors(self, job_id: uuid.UUID, errors: Sequence[RowProcessingError]) -> int:
        if not errors:
            return 0
        self._session.add_all(
            [
                ProcessingErrorRecord(
                    processing_job_id=job_id,
                    row_number=error.row_number,
                    column_name=error.column,
                    error_type=error.error_type,
                    error_message=error.message,
                    raw_value=error.value,
                    severity=error.severity,
                )
                for error in errors
            ]
        )
        self._session.flush()
        return len(errors)

    def list_errors(self, job_id: uuid.UUID, *, limit: int = 500) -> list[RowProcessingError]:
        stmt = (
            select(ProcessingErrorRecord)
            .where(ProcessingErrorRecord.processing_job_id == job_id)
            .order_by(ProcessingErrorRecord.row_number, ProcessingErrorRecord.id)
            .limit(max(1, limit))
        )
        return [
            RowProcessingError(
                row_number=record.row_number,
                message=record.error_message,
                error_type=record.error_type,
                column=record.column_name,
                value=record.raw_value,
                severity=record.severity,
            )
            for record in self._session.scalars(stmt).all()
        ]

    def delete_for_upload_job(self, upload_job_id: uuid.UUID) -> int:
        result = self._session.execute(
            delete(ProcessingJobRecord).where(ProcessingJobRecord.upload_job_id == upload_job_id)
        )
        return result.rowcount or 0


def _to_domain(record: ProcessingJobRecord) -> ProcessingJob:
    return ProcessingJob(
        id=record.id,
        upload_job_id=record.upload_job_id,
        batch_size=record.batch_size,
        status=record.status,
        records_processed=record.records_processed,
        total_records=record.total_records,
        error_count=record.error_count,
        progress_percentage=record.progress_percentage,
        error_message=record.error_message,
        result_payload=record.result_payload,
        cancel_requested=record.cancel_requested,
        started_at=record.started_at,
        completed_at=record.completed_at,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )
