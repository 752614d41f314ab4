"""
Asynchronous fact processing endpoints.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status

from app.api.dependencies import HANDLED_ERRORS, get_ingestion_repository, to_http_exception
from app.repositories.ingestion_repository import IngestionRepository
from app.schemas.data_processing import (
    ProcessDataRequest,
    ProcessingErrorListResponse,
    ProcessingErrorResponse,
    ProcessingJobAcceptedResponse,
    ProcessingJobListResponse,
    ProcessingJobStatusResponse,
    QualityReportResponse,
)
from app.services.ingestion_orchestrator_service import (
    FastAPIBackgroundTaskExecutor,
    IngestionOrchestratorService,
    get_ingestion_orchestrator_service,
)

router = APIRouter(tags=["data-processing"])


@router.post(
    "/uploads/{job_id}/process-data",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=ProcessingJobAcceptedResponse,
)
def process_data(
    job_id: UUID,
    background_tasks: BackgroundTasks,
    payload: ProcessDataRequest | None = None,
    repository: IngestionRepository = Depends(get_ingestion_repository),
    orchestrator: IngestionOrchestratorService = Depends(get_ingestion_orchestrator_service),
) -> ProcessingJobAcceptedResponse:
    request = payload or ProcessDataRequest()
    try:
        job = orchestrator.submit_processing(
            repository=repository,
            upload_job_id=job_id,
            executor=FastAPIBackgroundTaskExecutor(background_tasks),
            batch_size=request.batch_size,
            timeout_seconds=request.timeout_seconds,
        )
    except HANDLED_ERRORS as exc:
        repository.rollback()
        raise to_http_exception(exc) from exc
    return ProcessingJobAcceptedResponse(
        processing_job_id=job.id,
        upload_job_id=job.upload_job_id,
        status=job.status,
        created_at=job.created_at,
    )


@router.get("/uploads/{job_id}/processing-jobs", response_model=ProcessingJobListResponse)
def list_processing_jobs(
    job_id: UUID,
    limit: int = Query(default=100, ge=1, le=500),
    repository: IngestionRepository = Depends(get_ingestion_repository),
    orchestrator: IngestionOrchestratorService = Depends(get_ingestion_orchestrator_service),
) -> ProcessingJobListResponse:
    try:
        jobs = orchestrator.list_jobs(repository=repository, upload_job_id=job_id, limit=limit)
    except HANDLED_ERRORS as exc:
        raise to_http_exception(exc) from exc
    return ProcessingJobListResponse(jobs=[ProcessingJobStatusResponse.from_domain(job) for job in jobs])


@router.get("/processing/{processing_job_id}/status", response_model=ProcessingJobStatusResponse)
def get_processing_status(
    processing_job_id: UUID,
    repository: IngestionRepository = Depends(get_ingestion_repository),
    orchestrator: IngestionOrchestratorService = Depends(get_ingestion_orchestrator_service),
) -> ProcessingJobStatusResponse:
    try:
        job = orchestrator.get_job(repository=repository, processing_job_id=processing_job_id)
    except HANDLED_ERRORS as exc:
        raise to_http_exception(exc) from exc
    return ProcessingJobStatusResponse.from_domain(job)


@router.get("/processing/{processing_job_id}/errors", response_model=ProcessingErrorListResponse)
def get_processing_errors(
    processing_job_id: UUID,
    limit: int = Query(default=500, ge=1, le=5000),
    repository: IngestionRepository = Depends(get_ingestion_repository),
    orchestrator: IngestionOrchestratorService = Depends(get_ingestion_orchestrator_service),
) -> ProcessingErrorListResponse:
    try:
        errors = orchestrator.get_errors(repository=repository, processing_job_id=processing_job_id, limit=limit)
    except HANDLED_ERRORS as exc:
        raise to_http_exception(exc) from exc
    return ProcessingErrorListResponse(
        processing_job_id=processing_job_id,
        errors=[ProcessingErrorResponse.from_domain(error) for error in errors],
    )


@router.get("/processing/{processing_job_id}/quality-report", response_model=QualityReportResponse)
def get_quality_report(
    processing_job_id: UUID,
    repository: IngestionRepository = Depends(get_ingestion_repository),
    orchestrator: IngestionOrchestratorService = Depends(get_ingestion_orchestrator_service),
) -> QualityReportResponse:
    try:
        report = orchestrator.get_quality_report(repository=repository, processing_job_id=processing_job_id)
    except HANDLED_ERRORS as exc:
        raise to_http_exception(exc) from exc
    return QualityReportResponse(**report)


@router.post("/processing/{processing_job_id}/cancel", response_model=ProcessingJobStatusResponse)
def cancel_processing(
    processing_job_id: UUID,
    repository: IngestionRepository = Depends(get_ingestion_repository),
    orchestrator: IngestionOrchestratorService = Depends(get_ingestion_orchestrator_service),
) -> ProcessingJobStatusResponse:
    try:
        job = orchestrator.cancel(repository=repository, processing_job_id=processing_job_id)
    except HANDLED_ERRORS as exc:
        repository.rollback()
        raise to_http_exception(exc) from exc
    return ProcessingJobStatusResponse.from_domain(job)


@router.post(
    "/processing/{processing_job_id}/retry",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=ProcessingJobAcceptedResponse,
)
def retry_processing(
    processing_job_id: UUID,
    background_tasks: BackgroundTasks,
    repository: IngestionRepository = Depends(get_ingestion_repository),
    orchestrator: IngestionOrchestratorService = Depends(get_ingestion_orchestrator_service),
) -> ProcessingJobAcceptedResponse:
    try:
        job = orchestrator.retry(
            repository=repository,
            processing_job_id=processing_job_id,
            executor=FastAPIBackgroundTaskExecutor(background_tasks),
        )
    except HANDLED_ERRORS as exc:
        repository.rollback()
        raise to_http_exception(exc) from exc
    return ProcessingJobAcceptedResponse(
        processing_job_id=job.id,
        upload_job_id=job.upload_job_id,
        status=job.status,
        created_at=job.created_at,
    )
