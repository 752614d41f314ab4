"""
app/api/routers/csv_analysis.py

Upload storage and CSV structure endpoints.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, UploadFile, status

from app.api.dependencies import HANDLED_ERRORS, get_csv_upload, get_ingestion_repository, to_http_exception
from app.repositories.ingestion_repository import IngestionRepository
from app.schemas.csv_analysis import (
    CsvPreviewResponse,
    CsvStructureResponse,
    FileAnalysisFailureResponse,
    JobAnalysisResponse,
    StoredFileResponse,
)
from app.services.csv_analysis_service import CsvAnalysisService, get_csv_analysis_service, get_file_storage
from db.repositories.storage import LocalFileStorage

router = APIRouter(prefix="/uploads", tags=["csv-analysis"])


@router.post("/{job_id}/files", status_code=status.HTTP_201_CREATED, response_model=StoredFileResponse)
def upload_file(
    job_id: UUID,
    file: UploadFile = Depends(get_csv_upload),
    storage: LocalFileStorage = Depends(get_file_storage),
) -> StoredFileResponse:
    """
    Store one CSV file under an upload job.
    """

    try:
        metadata = storage.save(job_id=job_id, file_name=file.filename or "upload.csv", content=file.file.read())
    except HANDLED_ERRORS as exc:
        raise to_http_exception(exc) from exc
    finally:
        file.file.close()

    return StoredFileResponse(
        job_id=metadata.job_id,
        file_name=metadata.file_name,
        size_bytes=metadata.file_size_bytes,
        checksum=metadata.checksum,
    )


@router.delete("/{job_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_upload_job(
    job_id: UUID,
    repository: IngestionRepository = Depends(get_ingestion_repository),
    service: CsvAnalysisService = Depends(get_csv_analysis_service),
) -> None:
    try:
        service.delete_job(repository=repository, job_id=job_id)
        repository.commit()
    except HANDLED_ERRORS as exc:
        repository.rollback()
        raise to_http_exception(exc) from exc


@router.post("/{job_id}/analyze-csv", response_model=JobAnalysisResponse)
def analyze_csv(
    job_id: UUID,
    filename: str | None = Query(default=None, description="Analyze one stored file instead of all"),
    repository: IngestionRepository = Depends(get_ingestion_repository),
    service: CsvAnalysisService = Depends(get_csv_analysis_service),
) -> JobAnalysisResponse:
    try:
        if filename is not None:
            analysis = service.analyze_file(repository=repository, job_id=job_id, filename=filename)
            repository.commit()
            return JobAnalysisResponse(job_id=job_id, analyses=[CsvStructureResponse.from_domain(analysis)])

        summary = service.analyze_all(repository=repository, job_id=job_id)
        repository.commit()
    except HANDLED_ERRORS as exc:
        repository.rollback()
        raise to_http_exception(exc) from exc

    return JobAnalysisResponse(
        job_id=job_id,
        analyses=[CsvStructureResponse.from_domain(analysis) for analysis in summary.analyses],
        failures=[
            FileAnalysisFailureResponse(filename=failure.filename, message=failure.message)
            for failure in summary.failures
        ],
    )


@router.get("/{job_id}/csv-structure", response_model=CsvStructureResponse)
def get_csv_structure(
    job_id: UUID,
    filename: str | None = Query(default=None, description="Stored file name; latest analysis when omitted"),
    repository: IngestionRepository = Depends(get_ingestion_repository),
    service: CsvAnalysisService = Depends(get_csv_analysis_service),
) -> CsvStructureResponse:
    try:
        analysis = service.get_analysis(repository=repository, job_id=job_id, filename=filename)
    except HANDLED_ERRORS as exc:
        raise to_http_exception(exc) from exc
    return CsvStructureResponse.from_domain(analysis)


@router.get("/{job_id}/csv-preview", response_model=CsvPreviewResponse)
def get_csv_preview(
    job_id: UUID,
    filename: str = Query(..., min_length=1),
    limit: int = Query(default=20, ge=1, le=1000),
    repository: IngestionRepository = Depends(get_ingestion_repository),
    service: CsvAnalysisService = Depends(get_csv_analysis_service),
) -> CsvPreviewResponse:
    try:
        analysis, rows = service.preview(repository=repository, job_id=job_id, filename=filename, limit=limit)
        repository.commit()
    except HANDLED_ERRORS as exc:
        repository.rollback()
        raise to_http_exception(exc) from exc

    return CsvPreviewResponse(
        job_id=job_id,
        filename=analysis.filename,
        headers=list(analysis.headers),
        rows=rows,
        total_rows=analysis.row_count,
    )
