"""
app/services/dimension_mapping_service.py

Column mapping store: manual mappings, accepted suggestions, and validation.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from functools import lru_cache
from typing import Any

from app.domain.csv_analysis import CsvAnalysis
from app.domain.dimension_mapping import (
    DIMENSION_TYPE_DESCRIPTIONS,
    DIMENSION_TYPES,
    REQUIRED_DIMENSION_TYPES,
    ColumnMapping,
    ColumnSuggestion,
    MappingRequest,
    MappingValidationResult,
)
from app.domain.errors import BadRequestError, NotFoundError
from app.repositories.ingestion_repository import IngestionRepository
from app.services.dimension_classifier import DimensionClassifier, get_dimension_classifier
from app.validators.mapping_validator import DimensionMappingValidator, check_mapping_request

logger = logging.getLogger(__name__)


class DimensionMappingService:
    """
    Creates, reads, and validates the column mappings of an analyzed upload.
    """

    def __init__(self, *, classifier: DimensionClassifier) -> None:
        self._classifier = classifier
        self._validator = DimensionMappingValidator(confidence_threshold=classifier.confidence_threshold)

    def set_mapping(
        self,
        *,
        repository: IngestionRepository,
        job_id: uuid.UUID,
        column_index: int,
        dimension_type: str,
        mapping_rules: dict[str, Any] | None = None,
        filename: str | None = None,
    ) -> ColumnMapping:
        """
        Create or update one manual mapping (confidence 1.0, not auto-detected).
        """

        saved = self.set_mappings(
            repository=repository,
            job_id=job_id,
            requests=[MappingRequest(column_index, dimension_type, mapping_rules)],
            filename=filename,
        )
        return saved[0]

    def set_mappings(
        self,
        *,
        repository: IngestionRepository,
        job_id: uuid.UUID,
        requests: Sequence[MappingRequest],
        filename: str | None = None,
    ) -> list[ColumnMapping]:
        if not requests:
            raise BadRequestError("Mapping request must contain at least one column.")

        analysis = self._require_analysis(repository, job_id, filename)
        normalized_requests = [
            MappingRequest(
                column_index=request.column_index,
                dimension_type=request.dimension_type.strip().upper(),
                mapping_rules=request.mapping_rules,
            )
            for request in requests
        ]
        for request in normalized_requests:
            check_mapping_request(
                column_index=request.column_index,
                dimension_type=request.dimension_type,
                column_count=analysis.column_count,
            )

        mappings = [
            ColumnMapping(
                column_index=request.column_index,
                dimension_type=request.dimension_type,
                column_header=analysis.header_at(request.column_index),
                is_auto_detected=False,
                confidence_score=1.0,
                mapping_rules=request.mapping_rules,
                analysis_id=analysis.id,
            )
            for request in normalized_requests
        ]
        saved = repository.save_column_mappings(_analysis_id(analysis), mappings)
        logger.info(
            "Saved column mappings job_id=%s file=%s columns=%s",
            job_id,
            analysis.filename,
            [mapping.column_index for mapping in saved],
        )
        return saved

    def accept_suggestions(
        self,
        *,
        repository: IngestionRepository,
        job_id: uuid.UUID,
        min_confidence: float | None = None,
        filename: str | None = None,
    ) -> list[ColumnMapping]:
        """
        Persist classifier suggestions as auto-detected mappings.

        Suggestions below ``min_confidence`` are left unmapped. Columns that
        already carry a manual mapping keep it.
        """

        analysis = self._require_analysis(repository, job_id, filename)
        analysis_id = _analysis_id(analysis)
        manual_columns = {
            mapping.column_index
            for mapping in repository.list_column_mappings(analysis_id)
            if not mapping.is_auto_detected
        }

        mappings = [
            ColumnMapping(
                column_index=suggestion.column_index,
                dimension_type=suggestion.dimension_type,
                column_header=suggestion.column_header,
                is_auto_detected=True,
                confidence_score=suggestion.confidence,
                mapping_rules={"reason": suggestion.reason},
                analysis_id=analysis_id,
            )
            for suggestion in self._classifier.suggest(analysis)
            if suggestion.column_index not in manual_columns
            and (min_confidence is None or suggestion.confidence >= min_confidence)
        ]
        if not mappings:
            return []
        mappings.sort(key=lambda mapping: mapping.column_index)
        saved = repository.save_column_mappings(analysis_id, mappings)
        logger.info("Accepted dimension suggestions job_id=%s count=%s", job_id, len(saved))
        return saved

    def get_mappings(
        self,
        *,
        repository: IngestionRepository,
        job_id: uuid.UUID,
        filename: str | None = None,
    ) -> list[ColumnMapping]:
        analysis = self._require_analysis(repository, job_id, filename)
        return repository.list_column_mappings(_analysis_id(analysis))

    def suggest(
        self,
        *,
        repository: IngestionRepository,
        job_id: uuid.UUID,
        filename: str | None = None,
    ) -> list[ColumnSuggestion]:
        analysis = self._require_analysis(repository, job_id, filename)
        return self._classifier.suggest(analysis)

    def validate(
        self,
        *,
        repository: IngestionRepository,
        job_id: uuid.UUID,
        filename: str | None = None,
    ) -> MappingValidationResult:
        return self._validator.validate(self.get_mappings(repository=repository, job_id=job_id, filename=filename))

    @staticmethod
    def dimension_types() -> list[dict[str, Any]]:
        return [
            {
                "name": dimension_type,
                "description": DIMENSION_TYPE_DESCRIPTIONS[dimension_type],
                "required": dimension_type in REQUIRED_DIMENSION_TYPES,
            }
            for dimension_type in DIMENSION_TYPES
        ]

    @staticmethod
    def _require_analysis(
        repository: IngestionRepository,
        job_id: uuid.UUID,
        filename: str | None,
    ) -> CsvAnalysis:
        analysis = repository.find_analysis(job_id, filename)
        if analysis is None:
            raise NotFoundError(f"CsvAnalysis not found for upload job: {job_id}")
        return analysis


def _analysis_id(analysis: CsvAnalysis) -> int:
    if analysis.id is None:
        raise BadRequestError("CsvAnalysis has not been persisted.")
    return analysis.id


@lru_cache(maxsize=1)
def get_dimension_mapping_service() -> DimensionMappingService:
    return DimensionMappingService(classifier=get_dimension_classifier())
