"""
app/services/csv_analysis_service.py

Cached structural analysis of files stored for an upload job.
"""

from __future__ import annotations

import logging
import uuid
from functools import lru_cache

from app.config import get_csv_analysis_settings, get_storage_settings
from app.domain.csv_analysis import CsvAnalysis, FileAnalysisFailure, JobAnalysisSummary
from app.domain.errors import BadRequestError, IngestionError, NotFoundError
from app.repositories.ingestion_repository import IngestionRepository
from app.services.csv_structure_analyzer import CsvStructureAnalyzer
from db.repositories.storage import FileStorageBackend, LocalFileStorage, file_checksum

logger = logging.getLogger(__name__)


class CsvAnalysisService:
    """
    Resolves stored files, analyzes them once, and serves the cached result.
    """

    def __init__(
        self,
        *,
        storage: FileStorageBackend,
        analyzer: CsvStructureAnalyzer | None = None,
    ) -> None:
        self._storage = storage
        self._analyzer = analyzer or CsvStructureAnalyzer()

    @property
    def analyzer(self) -> CsvStructureAnalyzer:
        return self._analyzer

    def analyze_file(
        self,
        *,
        repository: IngestionRepository,
        job_id: uuid.UUID,
        filename: str,
    ) -> CsvAnalysis:
        """
        Return the cached analysis while the stored file is unchanged.
        """

        path = self._storage.resolve_path(job_id=job_id, file_name=filename)
        if not path.is_file():
            raise NotFoundError(f"Upload file not found: job_id={job_id} file={filename}")

        cached = repository.find_analysis(job_id, filename)
        if cached is not None:
            try:
                current_checksum = file_checksum(path)
            except OSError as exc:
                raise BadRequestError(f"Unable to read CSV file: {filename}", cause=exc) from exc
            if cached.file_checksum is None or cached.file_checksum == current_checksum:
                logger.debug("CSV analysis cache hit job_id=%s file=%s", job_id, filename)
                return cached
            logger.info("CSV file changed since analysis, re-analyzing job_id=%s file=%s", job_id, filename)

        analysis = self._analyzer.analyze(path, job_id=job_id, filename=filename)
        return repository.save_analysis(analysis)

    def analyze_all(self, *, repository: IngestionRepository, job_id: uuid.UUID) -> JobAnalysisSummary:
        """
        Analyze every stored CSV of a job, continuing past per-file failures.
        """

        file_names = self._storage.list_files(job_id=job_id)
        if not file_names:
            raise NotFoundError(f"No CSV files stored for upload job: {job_id}")

        summary = JobAnalysisSummary(job_id=job_id)
        for file_name in file_names:
            try:
                summary.analyses.append(
                    self.analyze_file(repository=repository, job_id=job_id, filename=file_name)
                )
            except IngestionError as exc:
                logger.warning("CSV analysis failed job_id=%s file=%s error=%s", job_id, file_name, exc)
                summary.failures.append(FileAnalysisFailure(filename=file_name, message=str(exc)))
        return summary

    def get_analysis(
        self,
        *,
        repository: IngestionRepository,
        job_id: uuid.UUID,
        filename: str | None = None,
    ) -> CsvAnalysis:
        analysis = repository.find_analysis(job_id, filename)
        if analysis is None:
            raise NotFoundError(f"CsvAnalysis not found for upload job: {job_id}")
        return analysis

    def preview(
        self,
        *,
        repository: IngestionRepository,
        job_id: uuid.UUID,
        filename: str,
        limit: int | None = None,
    ) -> tuple[CsvAnalysis, list[list[str]]]:
        analysis = self.analyze_file(repository=repository, job_id=job_id, filename=filename)
        return analysis, self._analyzer.preview(analysis, limit=limit)

    def delete_job(self, *, repository: IngestionRepository, job_id: uuid.UUID) -> None:
        """
        Drop stored files and every analysis, mapping, job, and fact of an upload job.
        """

        repository.delete_job_data(job_id)
        self._storage.delete_job(job_id=job_id)
        logger.info("Deleted upload job data job_id=%s", job_id)


def build_csv_structure_analyzer() -> CsvStructureAnalyzer:
    settings = get_csv_analysis_settings()
    return CsvStructureAnalyzer(
        preview_row_limit=settings.preview_row_limit,
        max_columns=settings.max_columns,
        sample_value_limit=settings.sample_value_limit,
        delimiter_sample_lines=settings.delimiter_sample_lines,
        encoding_sample_bytes=settings.encoding_sample_bytes,
    )


@lru_cache(maxsize=1)
def get_file_storage() -> LocalFileStorage:
    return LocalFileStorage(get_storage_settings().upload_root)


@lru_cache(maxsize=1)
def get_csv_analysis_service() -> CsvAnalysisService:
    """
    Build and cache the analysis service with env-driven settings.
    """

    return CsvAnalysisService(storage=get_file_storage(), analyzer=build_csv_structure_analyzer())
