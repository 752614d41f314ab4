"""
tests/test_api.py

HTTP contract tests for the upload, mapping, and processing routers.

The app is assembled from the routers directly so no database is needed;
repository, storage, and service dependencies are overridden with the
in-memory fakes. TestClient runs background tasks before returning, so a
processing job is finished by the time ``process-data`` responds.
"""

from __future__ import annotations

import uuid

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api.dependencies import get_ingestion_repository
from app.api.routers import csv_analysis_router, data_processing_router, dimension_mapping_router
from app.config import DataProcessingSettings
from app.services.csv_analysis_service import get_csv_analysis_service, get_file_storage
from app.services.dimension_mapping_service import DimensionMappingService, get_dimension_mapping_service
from app.services.fact_transformer import FactTransformer
from app.services.ingestion_orchestrator_service import (
    IngestionOrchestratorService,
    get_ingestion_orchestrator_service,
)
from app.services.multidimensional_summary_service import (
    MultiDimensionalSummaryService,
    get_multidimensional_summary_service,
)

CSV = b"Country,Indicator,2020\nUSA,GDP,21000\nCanada,GDP,1700\n"


@pytest.fixture()
def client(repository, storage, analyzer, analysis_service, classifier) -> TestClient:
    application = FastAPI()
    application.include_router(csv_analysis_router)
    application.include_router(dimension_mapping_router)
    application.include_router(data_processing_router)

    orchestrator = IngestionOrchestratorService(
        repository_factory=lambda: repository,
        transformer=FactTransformer(analyzer=analyzer),
        settings=DataProcessingSettings(),
    )
    application.dependency_overrides[get_ingestion_repository] = lambda: repository
    application.dependency_overrides[get_file_storage] = lambda: storage
    application.dependency_overrides[get_csv_analysis_service] = lambda: analysis_service
    application.dependency_overrides[get_dimension_mapping_service] = lambda: DimensionMappingService(
        classifier=classifier
    )
    application.dependency_overrides[get_multidimensional_summary_service] = lambda: MultiDimensionalSummaryService(
        analyzer=analyzer
    )
    application.dependency_overrides[get_ingestion_orchestrator_service] = lambda: orchestrator
    return TestClient(application)


def _upload(client: TestClient, job_id: uuid.UUID, content: bytes = CSV, name: str = "data.csv"):
    return client.post(f"/uploads/{job_id}/files", files={"file": (name, content, "text/csv")})


def _upload_and_map(client: TestClient, job_id: uuid.UUID) -> None:
    assert _upload(client, job_id).status_code == 201
    assert client.post(f"/uploads/{job_id}/analyze-csv").status_code == 200
    assert client.post(f"/uploads/{job_id}/dimension-suggestions/accept").status_code == 200


# ---------------------------------------------------------------------------
# Upload and analysis
# ---------------------------------------------------------------------------


def test_upload_and_analyze(client, job_id) -> None:
    upload = _upload(client, job_id)
    assert upload.status_code == 201
    assert upload.json()["file_name"] == "data.csv"
    assert upload.json()["size_bytes"] == len(CSV)

    analyzed = client.post(f"/uploads/{job_id}/analyze-csv")
    assert analyzed.status_code == 200
    body = analyzed.json()
    assert body["failures"] == []
    structure = body["analyses"][0]
    assert structure["headers"] == ["Country", "Indicator", "2020"]
    assert structure["delimiter"] == ","
    assert structure["row_count"] == 2

    fetched = client.get(f"/uploads/{job_id}/csv-structure")
    assert fetched.status_code == 200
    assert fetched.json()["analysis_id"] == structure["analysis_id"]

    preview = client.get(f"/uploads/{job_id}/csv-preview", params={"filename": "data.csv", "limit": 1})
    assert preview.status_code == 200
    assert preview.json()["rows"] == [["USA", "GDP", "21000"]]
    assert preview.json()["total_rows"] == 2


def test_non_csv_upload_is_rejected(client, job_id) -> None:
    response = client.post(
        f"/uploads/{job_id}/files",
        files={"file": ("notes.txt", b"hello", "text/plain")},
    )

    assert response.status_code == 400


def test_unknown_upload_job_is_404(client) -> None:
    job_id = uuid.uuid4()

    assert client.get(f"/uploads/{job_id}/csv-structure").status_code == 404
    assert client.post(f"/uploads/{job_id}/analyze-csv").status_code == 404
    assert client.get(f"/uploads/{job_id}/dimension-suggestions").status_code == 404


def test_delete_upload_job(client, job_id) -> None:
    _upload_and_map(client, job_id)

    assert client.delete(f"/uploads/{job_id}").status_code == 204
    assert client.get(f"/uploads/{job_id}/csv-structure").status_code == 404


# ---------------------------------------------------------------------------
# Dimension mapping
# ---------------------------------------------------------------------------


def test_suggestions_and_mapping_flow(client, job_id) -> None:
    _upload(client, job_id)
    client.post(f"/uploads/{job_id}/analyze-csv")

    suggestions = client.get(f"/uploads/{job_id}/dimension-suggestions")
    assert suggestions.status_code == 200
    by_header = {item["column_header"]: item for item in suggestions.json()}
    assert by_header["Country"]["dimension_type"] == "LOCATION"
    assert by_header["2020"]["is_low_confidence"] is True

    accepted = client.post(f"/uploads/{job_id}/dimension-suggestions/accept")
    assert [item["dimension_type"] for item in accepted.json()] == [
        "LOCATION",
        "INDICATOR_NAME",
        "INDICATOR_VALUE",
    ]

    updated = client.post(
        f"/uploads/{job_id}/dimension-mapping",
        json={"mappings": [{"column_index": 2, "dimension_type": "indicator_value"}]},
    )
    assert updated.status_code == 200
    assert updated.json()[0]["is_auto_detected"] is False

    validation = client.get(f"/uploads/{job_id}/validate-mappings")
    assert validation.status_code == 200
    assert validation.json()["is_valid"] is True
    assert validation.json()["warnings"] == []

    summary = client.get(f"/uploads/{job_id}/multi-dimensional-analysis")
    assert summary.status_code == 200
    assert summary.json()["location_axis"] == ["USA", "Canada"]
    assert summary.json()["is_complete"] is True


def test_invalid_mapping_returns_structured_detail(client, job_id) -> None:
    _upload(client, job_id)
    client.post(f"/uploads/{job_id}/analyze-csv")

    response = client.post(
        f"/uploads/{job_id}/dimension-mapping",
        json={"mappings": [{"column_index": 0, "dimension_type": "COLOUR"}]},
    )

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["errors"][0]["code"] == "invalid_dimension_type"


def test_empty_mapping_payload_is_422(client, job_id) -> None:
    response = client.post(f"/uploads/{job_id}/dimension-mapping", json={"mappings": []})

    assert response.status_code == 422


def test_dimension_types(client) -> None:
    response = client.get("/dimension-types")

    assert response.status_code == 200
    assert len(response.json()) == 6


# ---------------------------------------------------------------------------
# Processing
# ---------------------------------------------------------------------------


def test_process_data_runs_to_completion(client, job_id, repository) -> None:
    _upload_and_map(client, job_id)

    accepted = client.post(f"/uploads/{job_id}/process-data", json={"batch_size": 1})
    assert accepted.status_code == 202
    assert accepted.json()["status"] == "PENDING"
    processing_job_id = accepted.json()["processing_job_id"]

    status_response = client.get(f"/processing/{processing_job_id}/status")
    assert status_response.status_code == 200
    job = status_response.json()
    assert job["status"] == "COMPLETED"
    assert job["batch_size"] == 1
    assert job["records_processed"] == 2
    assert job["result_payload"]["facts_inserted"] == 2

    report = client.get(f"/processing/{processing_job_id}/quality-report")
    assert report.status_code == 200
    assert report.json()["quality_score"] == 1.0

    errors = client.get(f"/processing/{processing_job_id}/errors")
    assert errors.status_code == 200
    assert errors.json()["errors"] == []

    listing = client.get(f"/uploads/{job_id}/processing-jobs")
    assert [item["processing_job_id"] for item in listing.json()["jobs"]] == [processing_job_id]
    assert len(repository.facts) == 2


def test_cancel_completed_job_is_rejected(client, job_id) -> None:
    _upload_and_map(client, job_id)
    processing_job_id = client.post(f"/uploads/{job_id}/process-data").json()["processing_job_id"]

    response = client.post(f"/processing/{processing_job_id}/cancel")

    assert response.status_code == 400


def test_failed_job_can_be_retried(client, job_id) -> None:
    _upload(client, job_id)
    client.post(f"/uploads/{job_id}/analyze-csv")
    failed_id = client.post(f"/uploads/{job_id}/process-data").json()["processing_job_id"]
    failed = client.get(f"/processing/{failed_id}/status").json()
    assert failed["status"] == "FAILED"
    assert failed["error_message"] == "No dimension mappings found"
    assert client.get(f"/processing/{failed_id}/quality-report").status_code == 404

    client.post(f"/uploads/{job_id}/dimension-suggestions/accept")
    retried = client.post(f"/processing/{failed_id}/retry")

    assert retried.status_code == 202
    retried_id = retried.json()["processing_job_id"]
    assert retried_id != failed_id
    assert client.get(f"/processing/{retried_id}/status").json()["status"] == "COMPLETED"


def test_unknown_processing_job_is_404(client) -> None:
    processing_job_id = uuid.uuid4()

    assert client.get(f"/processing/{processing_job_id}/status").status_code == 404
    assert client.get(f"/processing/{processing_job_id}/errors").status_code == 404
    assert client.post(f"/processing/{processing_job_id}/cancel").status_code == 404
