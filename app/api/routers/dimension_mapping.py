"""
app/api/routers/dimension_mapping.py

Dimension suggestion, mapping, and diagnostic endpoints.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.api.dependencies import HANDLED_ERRORS, get_ingestion_repository, to_http_exception
from app.domain.dimension_mapping import MappingRequest
from app.repositories.ingestion_repository import IngestionRepository
from app.schemas.dimension_mapping import (
    AcceptSuggestionsRequest,
    ColumnMappingResponse,
    ColumnSuggestionResponse,
    DimensionMappingRequest,
    DimensionTypeResponse,
    MappingValidationResponse,
    MultiDimensionalSummaryResponse,
)
from app.services.dimension_mapping_service import DimensionMappingService, get_dimension_mapping_service
from app.services.multidimensional_summary_service import (
    MultiDimensionalSummaryService,
    get_multidimensional_summary_service,
)

router = APIRouter(tags=["dimension-mapping"])


@router.get("/uploads/{job_id}/dimension-suggestions", response_model=list[ColumnSuggestionResponse])
def get_dimension_suggestions(
    job_id: UUID,
    filename: str | None = Query(default=None),
    repository: IngestionRepository = Depends(get_ingestion_repository),
    service: DimensionMappingService = Depends(get_dimension_mapping_service),
) -> list[ColumnSuggestionResponse]:
    try:
        suggestions = service.suggest(repository=repository, job_id=job_id, filename=filename)
    except HANDLED_ERRORS as exc:
        raise to_http_exception(exc) from exc
    return [ColumnSuggestionResponse.from_domain(suggestion) for suggestion in suggestions]


@router.post("/uploads/{job_id}/dimension-suggestions/accept", response_model=list[ColumnMappingResponse])
def accept_dimension_suggestions(
    job_id: UUID,
    payload: AcceptSuggestionsRequest | None = None,
    repository: IngestionRepository = Depends(get_ingestion_repository),
    service: DimensionMappingService = Depends(get_dimension_mapping_service),
) -> list[ColumnMappingResponse]:
    request = payload or AcceptSuggestionsRequest()
    try:
        mappings = service.accept_suggestions(
            repository=repository,
            job_id=job_id,
            min_confidence=request.min_confidence,
            filename=request.filename,
        )
        repository.commit()
    except HANDLED_ERRORS as exc:
        repository.rollback()
        raise to_http_exception(exc) from exc
    return [ColumnMappingResponse.from_domain(mapping) for mapping in mappings]


@router.get("/uploads/{job_id}/dimension-mapping", response_model=list[ColumnMappingResponse])
def get_dimension_mapping(
    job_id: UUID,
    filename: str | None = Query(default=None),
    repository: IngestionRepository = Depends(get_ingestion_repository),
    service: DimensionMappingService = Depends(get_dimension_mapping_service),
) -> list[ColumnMappingResponse]:
    try:
        mappings = service.get_mappings(repository=repository, job_id=job_id, filename=filename)
    except HANDLED_ERRORS as exc:
        raise to_http_exception(exc) from exc
    return [ColumnMappingResponse.from_domain(mapping) for mapping in mappings]


@router.post("/uploads/{job_id}/dimension-mapping", response_model=list[ColumnMappingResponse])
def save_dimension_mapping(
    job_id: UUID,
    payload: DimensionMappingRequest,
    repository: IngestionRepository = Depends(get_ingestion_repository),
    service: DimensionMappingService = Depends(get_dimension_mapping_service),
) -> list[ColumnMappingResponse]:
    """
    Create or update manual column mappings.
    """

    try:
        mappings = service.set_mappings(
            repository=repository,
            job_id=job_id,
            requests=[
                MappingRequest(
                    column_index=item.column_index,
                    dimension_type=item.dimension_type,
                    mapping_rules=item.mapping_rules,
                )
                for item in payload.mappings
            ],
            filename=payload.filename,
        )
        repository.commit()
    except HANDLED_ERRORS as exc:
        repository.rollback()
        raise to_http_exception(exc) from exc
    return [ColumnMappingResponse.from_domain(mapping) for mapping in mappings]


@router.get("/uploads/{job_id}/validate-mappings", response_model=MappingValidationResponse)
def validate_mappings(
    job_id: UUID,
    filename: str | None = Query(default=None),
    repository: IngestionRepository = Depends(get_ingestion_repository),
    service: DimensionMappingService = Depends(get_dimension_mapping_service),
) -> MappingValidationResponse:
    try:
        result = service.validate(repository=repository, job_id=job_id, filename=filename)
    except HANDLED_ERRORS as exc:
        raise to_http_exception(exc) from exc
    return MappingValidationResponse.from_domain(result)


@router.get("/uploads/{job_id}/multi-dimensional-analysis", response_model=MultiDimensionalSummaryResponse)
def get_multi_dimensional_analysis(
    job_id: UUID,
    filename: str | None = Query(default=None),
    repository: IngestionRepository = Depends(get_ingestion_repository),
    service: MultiDimensionalSummaryService = Depends(get_multidimensional_summary_service),
) -> MultiDimensionalSummaryResponse:
    try:
        summary = service.summarize(repository=repository, job_id=job_id, filename=filename)
    except HANDLED_ERRORS as exc:
        raise to_http_exception(exc) from exc
    return MultiDimensionalSummaryResponse.from_domain(summary)


@router.get("/dimension-types", response_model=list[DimensionTypeResponse])
def get_dimension_types() -> list[DimensionTypeResponse]:
    return [DimensionTypeResponse(**item) for item in DimensionMappingService.dimension_types()]
