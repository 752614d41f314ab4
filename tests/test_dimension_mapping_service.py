"""
tests/test_dimension_mapping_service.py

Pytest unit tests for DimensionMappingService over the in-memory repository.
"""

from __future__ import annotations

import uuid

import pytest

from app.domain.dimension_mapping import DimensionType, MappingRequest
from app.domain.errors import BadRequestError, MappingValidationError, NotFoundError
from app.services.dimension_mapping_service import DimensionMappingService

CSV = "Country,Indicator,2020\nUSA,GDP,21000\nCanada,GDP,1700\n"


@pytest.fixture()
def service(classifier) -> DimensionMappingService:
    return DimensionMappingService(classifier=classifier)


def test_set_mapping_normalizes_type_and_marks_manual(service, repository, stored_analysis, job_id) -> None:
    stored_analysis(CSV)

    mapping = service.set_mapping(
        repository=repository,
        job_id=job_id,
        column_index=0,
        dimension_type=" location ",
    )

    assert mapping.dimension_type == DimensionType.LOCATION
    assert mapping.column_header == "Country"
    assert mapping.is_auto_detected is False
    assert mapping.confidence_score == 1.0
    assert mapping.id is not None


def test_set_mapping_twice_updates_in_place(service, repository, stored_analysis, job_id) -> None:
    stored_analysis(CSV)

    first = service.set_mapping(repository=repository, job_id=job_id, column_index=2, dimension_type="TIME")
    second = service.set_mapping(
        repository=repository,
        job_id=job_id,
        column_index=2,
        dimension_type="INDICATOR_VALUE",
        mapping_rules={"direction": "higher_is_better"},
    )

    mappings = service.get_mappings(repository=repository, job_id=job_id)
    assert second.id == first.id
    assert [(m.column_index, m.dimension_type) for m in mappings] == [(2, DimensionType.INDICATOR_VALUE)]
    assert mappings[0].mapping_rules == {"direction": "higher_is_better"}


def test_unknown_dimension_type_is_rejected(service, repository, stored_analysis, job_id) -> None:
    stored_analysis(CSV)

    with pytest.raises(MappingValidationError) as exc_info:
        service.set_mapping(repository=repository, job_id=job_id, column_index=0, dimension_type="COLOUR")

    assert exc_info.value.errors[0].code == "invalid_dimension_type"
    assert service.get_mappings(repository=repository, job_id=job_id) == []


def test_out_of_range_column_is_rejected(service, repository, stored_analysis, job_id) -> None:
    stored_analysis(CSV)

    with pytest.raises(MappingValidationError) as exc_info:
        service.set_mapping(repository=repository, job_id=job_id, column_index=3, dimension_type="TIME")

    assert exc_info.value.errors[0].code == "column_out_of_range"


def test_batch_is_rejected_as_a_whole(service, repository, stored_analysis, job_id) -> None:
    stored_analysis(CSV)

    with pytest.raises(MappingValidationError):
        service.set_mappings(
            repository=repository,
            job_id=job_id,
            requests=[MappingRequest(0, "LOCATION"), MappingRequest(9, "TIME")],
        )

    assert service.get_mappings(repository=repository, job_id=job_id) == []


def test_empty_request_is_rejected(service, repository, stored_analysis, job_id) -> None:
    stored_analysis(CSV)

    with pytest.raises(BadRequestError):
        service.set_mappings(repository=repository, job_id=job_id, requests=[])


def test_missing_analysis_is_not_found(service, repository) -> None:
    with pytest.raises(NotFoundError):
        service.set_mapping(repository=repository, job_id=uuid.uuid4(), column_index=0, dimension_type="TIME")
    with pytest.raises(NotFoundError):
        service.suggest(repository=repository, job_id=uuid.uuid4())


def test_accept_suggestions_persists_auto_detected_mappings(service, repository, stored_analysis, job_id) -> None:
    stored_analysis(CSV)

    saved = service.accept_suggestions(repository=repository, job_id=job_id)

    assert [(m.column_index, m.dimension_type) for m in saved] == [
        (0, DimensionType.LOCATION),
        (1, DimensionType.INDICATOR_NAME),
        (2, DimensionType.INDICATOR_VALUE),
    ]
    assert all(m.is_auto_detected for m in saved)
    assert all("reason" in (m.mapping_rules or {}) for m in saved)


def test_accept_suggestions_keeps_manual_mappings(service, repository, stored_analysis, job_id) -> None:
    stored_analysis(CSV)
    service.set_mapping(repository=repository, job_id=job_id, column_index=2, dimension_type="ADDITIONAL")

    saved = service.accept_suggestions(repository=repository, job_id=job_id)

    assert [m.column_index for m in saved] == [0, 1]
    current = {m.column_index: m for m in service.get_mappings(repository=repository, job_id=job_id)}
    assert current[2].dimension_type == DimensionType.ADDITIONAL
    assert current[2].is_auto_detected is False


def test_accept_suggestions_honors_min_confidence(service, repository, stored_analysis, job_id) -> None:
    stored_analysis(CSV)

    saved = service.accept_suggestions(repository=repository, job_id=job_id, min_confidence=0.8)

    assert [m.column_index for m in saved] == [0, 1]


def test_validate_reports_low_confidence_value_column(service, repository, stored_analysis, job_id) -> None:
    stored_analysis(CSV)
    service.accept_suggestions(repository=repository, job_id=job_id)

    result = service.validate(repository=repository, job_id=job_id)

    assert result.is_valid is True
    assert result.total_mappings == 3
    assert len(result.warnings) == 1


def test_validate_without_mappings(service, repository, stored_analysis, job_id) -> None:
    stored_analysis(CSV)

    result = service.validate(repository=repository, job_id=job_id)

    assert result.is_valid is False
    assert result.missing_mappings == [DimensionType.INDICATOR_NAME, DimensionType.INDICATOR_VALUE]


def test_reanalysis_drops_previous_mappings(service, repository, stored_analysis, job_id) -> None:
    stored_analysis(CSV)
    service.accept_suggestions(repository=repository, job_id=job_id)

    stored_analysis(CSV + "Mexico,GDP,1200\n")

    assert service.get_mappings(repository=repository, job_id=job_id) == []


def test_dimension_types_catalogue() -> None:
    catalogue = DimensionMappingService.dimension_types()

    assert [item["name"] for item in catalogue] == [
        "INDICATOR_NAME",
        "INDICATOR_VALUE",
        "TIME",
        "LOCATION",
        "UNIT",
        "ADDITIONAL",
    ]
    assert {item["name"] for item in catalogue if item["required"]} == {"INDICATOR_NAME", "INDICATOR_VALUE"}
    assert all(item["description"] for item in catalogue)
