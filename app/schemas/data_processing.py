"""
Schemas for processing job trigger and status endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from app.domain.facts import RowProcessingError
from app.domain.processing import ProcessingJob


class ProcessDataRequest(BaseModel):
    batch_size: int | None = Field(default=None, ge=1, le=100000)
    timeout_seconds: float | None = Field(default=None, gt=0)


class ProcessingJobAcceptedResponse(BaseModel):
    processing_job_id: UUID
    upload_job_id: UUID
    status: str
    created_at: datetime | None = None


class ProcessingJobStatusResponse(BaseModel):
    processing_job_id: UUID
    upload_job_id: UUID
    status: str
    records_processed: int
    total_records: int
    error_count: int
    progress_percentage: float
    batch_size: int
    cancel_requested: bool = False
    error_message: str | None = None
    result_payload: dict[str, Any] | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_domain(cls, job: ProcessingJob) -> "ProcessingJobStatusResponse":
        return cls(
            processing_job_id=job.id,
            upload_job_id=job.upload_job_id,
            status=job.status,
            records_processed=job.records_processed,
            total_records=job.total_records,
            error_count=job.error_count,
            progress_percentage=job.progress_percentage,
            batch_size=job.batch_size,
            cancel_requested=job.cancel_requested,
            error_message=job.error_message,
            result_payload=job.result_payload,
            started_at=job.started_at,
            completed_at=job.completed_at,
            created_at=job.created_at,
            updated_at=job.updated_at,
        )


class ProcessingJobListResponse(BaseModel):
    jobs: list[ProcessingJobStatusResponse] = Field(default_factory=list)


class ProcessingErrorResponse(BaseModel):
    row_number: int
    message: str
    error_type: str
    severity: str
    column: str | None = None
    value: str | None = None

    @classmethod
    def from_domain(cls, error: RowProcessingError) -> "ProcessingErrorResponse":
        return cls(
            row_number=error.row_number,
            message=error.message,
            error_type=error.error_type,
            severity=error.severity,
            column=error.column,
            value=error.value,
        )


class ProcessingErrorListResponse(BaseModel):
    processing_job_id: UUID
    errors: list[ProcessingErrorResponse] = Field(default_factory=list)


class QualityReportResponse(BaseModel):
    total_records: int
    valid_records: int
    error_records: int
    warning_records: int
    quality_score: float
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    error_type_counts: dict[str, int] = Field(default_factory=dict)
