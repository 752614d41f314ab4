"""
tests/conftest.py

Shared fixtures: the in-memory repository, local upload storage under
tmp_path, and helpers for writing and analyzing CSV files.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from typing import Any

import pytest

from app.config import DEFAULT_LOCATION_PATTERNS
from app.domain.csv_analysis import CsvAnalysis
from app.services.csv_analysis_service import CsvAnalysisService
from app.services.csv_structure_analyzer import CsvStructureAnalyzer
from app.services.dimension_classifier import DimensionClassifier
from db.repositories.storage import LocalFileStorage
from tests.fakes import InlineExecutor, InMemoryIngestionRepository


@pytest.fixture()
def repository() -> InMemoryIngestionRepository:
    return InMemoryIngestionRepository()


@pytest.fixture()
def storage(tmp_path) -> LocalFileStorage:
    return LocalFileStorage(tmp_path / "uploads")


@pytest.fixture()
def analyzer() -> CsvStructureAnalyzer:
    return CsvStructureAnalyzer()


@pytest.fixture()
def analysis_service(storage: LocalFileStorage, analyzer: CsvStructureAnalyzer) -> CsvAnalysisService:
    return CsvAnalysisService(storage=storage, analyzer=analyzer)


@pytest.fixture()
def classifier() -> DimensionClassifier:
    return DimensionClassifier(confidence_threshold=0.7, location_patterns=DEFAULT_LOCATION_PATTERNS)


@pytest.fixture()
def job_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture()
def write_csv(tmp_path) -> Callable[..., Any]:
    """
    Write text (or raw bytes) to a file under tmp_path and return its path.
    """

    def _write(name: str, content: str | bytes):
        path = tmp_path / name
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8", newline="")
        return path

    return _write


@pytest.fixture()
def stored_analysis(
    storage: LocalFileStorage,
    analysis_service: CsvAnalysisService,
    repository: InMemoryIngestionRepository,
    job_id: uuid.UUID,
) -> Callable[[str, str], CsvAnalysis]:
    """
    Store CSV text for the test upload job and return its persisted analysis.
    """

    def _store(content: str, filename: str = "data.csv") -> CsvAnalysis:
        storage.save(job_id=job_id, file_name=filename, content=content.encode("utf-8"))
        return analysis_service.analyze_file(repository=repository, job_id=job_id, filename=filename)

    return _store


@pytest.fixture()
def executor() -> InlineExecutor:
    return InlineExecutor()
