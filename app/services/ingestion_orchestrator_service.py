"""
app/services/ingestion_orchestrator_service.py

Processing job lifecycle: creation, background execution in batches,
cancellation, retry, and status reporting.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from contextlib import closing
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Protocol

from fastapi import BackgroundTasks

from app.config import DataProcessingSettings, get_data_processing_settings
from app.domain.csv_analysis import CsvAnalysis
from app.domain.dimension_mapping import ColumnMapping
from app.domain.errors import (
    BadRequestError,
    ErrorBudgetExceededError,
    IngestionError,
    NotFoundError,
    ProcessingCancelledError,
    ProcessingTimeoutError,
)
from app.domain.facts import (
    ErrorSeverity,
    FactIndicatorValue,
    QualityReport,
    RowProcessingError,
)
from app.domain.processing import ProcessingJob, ProcessingStatus
from app.repositories.ingestion_repository import (
    IngestionRepository,
    RepositoryFactory,
    sql_repository_factory,
)
from app.services.conflict_resolver import ConflictResolver
from app.services.csv_analysis_service import build_csv_structure_analyzer
from app.services.data_quality_assessor import DataQualityAssessor
from app.services.dimension_resolver import DimensionResolver
from app.services.fact_transformer import FactTransformer
from app.services.orientation_detector import OrientationDetector

logger = logging.getLogger(__name__)


class IngestionTaskExecutor(Protocol):
    def submit(self, task: Callable[..., None], *args: Any, **kwargs: Any) -> None:
        ...


class FastAPIBackgroundTaskExecutor:
    def __init__(self, background_tasks: BackgroundTasks) -> None:
        self._background_tasks = background_tasks

    def submit(self, task: Callable[..., None], *args: Any, **kwargs: Any) -> None:
        self._background_tasks.add_task(task, *args, **kwargs)


class ThreadPoolTaskExecutor:
    """
    Bounded worker pool for runs started outside a request (CLI, scripts).
    """

    def __init__(self, max_workers: int = 4) -> None:
        self._pool = ThreadPoolExecutor(max_workers=max(1, max_workers), thread_name_prefix="processing")

    def submit(self, task: Callable[..., None], *args: Any, **kwargs: Any) -> None:
        self._pool.submit(task, *args, **kwargs)

    def shutdown(self, wait: bool = True) -> None:
        self._pool.shutdown(wait=wait)


class IngestionOrchestratorService:
    """
    Creates processing jobs, runs them in the background, and reports status.

    A run owns its own repository (and session); the job row is the only
    state shared with callers polling for progress.
    """

    def __init__(
        self,
        *,
        repository_factory: RepositoryFactory | None = None,
        transformer: FactTransformer | None = None,
        orientation_detector: OrientationDetector | None = None,
        conflict_resolver: ConflictResolver | None = None,
        quality_assessor: DataQualityAssessor | None = None,
        settings: DataProcessingSettings | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._repository_factory = repository_factory or sql_repository_factory
        self._orientation_detector = orientation_detector or OrientationDetector()
        self._transformer = transformer or FactTransformer(
            analyzer=build_csv_structure_analyzer(),
            orientation_detector=self._orientation_detector,
        )
        self._conflict_resolver = conflict_resolver or ConflictResolver()
        self._quality_assessor = quality_assessor or DataQualityAssessor()
        self._settings = settings or get_data_processing_settings()
        self._clock = clock

    def submit_processing(
        self,
        *,
        repository: IngestionRepository,
        upload_job_id: uuid.UUID,
        executor: IngestionTaskExecutor,
        batch_size: int | None = None,
        timeout_seconds: float | None = None,
    ) -> ProcessingJob:
        """
        Create a PENDING job and hand its run to the executor.

        Never raises for scheduling problems; those mark the job FAILED.
        """

        job = repository.create_processing_job(
            ProcessingJob(
                upload_job_id=upload_job_id,
                batch_size=max(1, batch_size or self._settings.default_batch_size),
            )
        )
        repository.commit()
        logger.info(
            "Processing job created id=%s upload_job_id=%s batch_size=%s",
            job.id,
            upload_job_id,
            job.batch_size,
        )

        try:
            executor.submit(self.run_processing_job, job.id, timeout_seconds=timeout_seconds)
        except Exception:
            logger.exception("Failed to schedule processing job id=%s", job.id)
            repository.rollback()
            job.status = ProcessingStatus.FAILED
            job.error_message = "Failed to schedule processing job."
            job.completed_at = datetime.now(timezone.utc)
            job = repository.save_processing_job(job) or job
            repository.commit()
        return job

    def run_processing_job(self, processing_job_id: uuid.UUID, *, timeout_seconds: float | None = None) -> None:
        """
        Execute one job to a terminal state. Failures are recorded on the job.
        """

        with closing(self._repository_factory()) as repository:
            job = repository.get_processing_job(processing_job_id)
            if job is None:
                logger.error("Processing job not found id=%s", processing_job_id)
                return
            if job.is_terminal:
                logger.info("Processing job already finished id=%s status=%s", job.id, job.status)
                return

            timeout = timeout_seconds if timeout_seconds is not None else self._settings.timeout_seconds
            deadline = self._clock() + timeout
            try:
                if job.cancel_requested:
                    raise ProcessingCancelledError("Processing cancelled by request.")
                job.status = ProcessingStatus.RUNNING
                job.started_at = datetime.now(timezone.utc)
                job = repository.save_processing_job(job) or job
                repository.commit()
                logger.info("Processing job running id=%s upload_job_id=%s", job.id, job.upload_job_id)

                self._execute(repository, job, deadline=deadline)
            except Exception as exc:
                self._mark_job_failed(repository=repository, job_id=processing_job_id, exc=exc)

    def cancel(self, *, repository: IngestionRepository, processing_job_id: uuid.UUID) -> ProcessingJob:
        job = self.get_job(repository=repository, processing_job_id=processing_job_id)
        if job.is_terminal:
            raise BadRequestError(f"Processing job already {job.status.lower()}: {job.id}")

        job.cancel_requested = True
        if job.status == ProcessingStatus.PENDING:
            job.status = ProcessingStatus.FAILED
            job.error_message = "Processing cancelled before start."
            job.completed_at = datetime.now(timezone.utc)
        job = repository.save_processing_job(job) or job
        repository.commit()
        logger.info("Processing job cancel requested id=%s status=%s", job.id, job.status)
        return job

    def retry(
        self,
        *,
        repository: IngestionRepository,
        processing_job_id: uuid.UUID,
        executor: IngestionTaskExecutor,
        timeout_seconds: float | None = None,
    ) -> ProcessingJob:
        """
        Start a new job for the upload job of a FAILED one.

        Facts already persisted by earlier runs are not duplicated: the fact
        table is unique on (upload job, source row hash).
        """

        previous = self.get_job(repository=repository, processing_job_id=processing_job_id)
        if previous.status != ProcessingStatus.FAILED:
            raise BadRequestError(f"Only failed processing jobs can be retried: {previous.id}")
        logger.info("Retrying processing job id=%s upload_job_id=%s", previous.id, previous.upload_job_id)
        return self.submit_processing(
            repository=repository,
            upload_job_id=previous.upload_job_id,
            executor=executor,
            batch_size=previous.batch_size,
            timeout_seconds=timeout_seconds,
        )

    def get_job(self, *, repository: IngestionRepository, processing_job_id: uuid.UUID) -> ProcessingJob:
        job = repository.get_processing_job(processing_job_id)
        if job is None:
            raise NotFoundError(f"Processing job not found: {processing_job_id}")
        return job

    def list_jobs(
        self,
        *,
        repository: IngestionRepository,
        upload_job_id: uuid.UUID | None = None,
        limit: int = 100,
    ) -> list[ProcessingJob]:
        return repository.list_processing_jobs(upload_job_id, limit=limit)

    def get_errors(
        self,
        *,
        repository: IngestionRepository,
        processing_job_id: uuid.UUID,
        limit: int = 500,
    ) -> list[RowProcessingError]:
        self.get_job(repository=repository, processing_job_id=processing_job_id)
        return repository.list_processing_errors(processing_job_id, limit=limit)

    def get_quality_report(
        self,
        *,
        repository: IngestionRepository,
        processing_job_id: uuid.UUID,
    ) -> dict[str, Any]:
        job = self.get_job(repository=repository, processing_job_id=processing_job_id)
        report = (job.result_payload or {}).get("quality_report")
        if report is None:
            raise NotFoundError(f"Quality report not available for processing job: {job.id} ({job.status})")
        return report

    def _execute(self, repository: IngestionRepository, job: ProcessingJob, *, deadline: float) -> None:
        runs = self._load_runs(repository, job.upload_job_id)
        job.total_records = sum(analysis.row_count for analysis, _ in runs)
        job = repository.save_processing_job(job) or job
        repository.commit()

        resolver = DimensionResolver(repository)
        facts: list[FactIndicatorValue] = []
        row_errors: list[RowProcessingError] = []
        recorded_errors = 0
        file_summaries: list[dict[str, Any]] = []

        for analysis, mappings in runs:
            orientation = self._orientation_detector.detect(mappings, analysis.headers)
            file_facts = 0
            for batch in self._transformer.iter_batches(
                analysis,
                mappings,
                orientation,
                resolver=resolver,
                batch_size=job.batch_size,
                upload_job_id=job.upload_job_id,
                processing_job_id=job.id,
            ):
                facts.extend(batch.facts)
                row_errors.extend(batch.errors)
                file_facts += len(batch.facts)

                job.records_processed += batch.rows_read
                job.error_count += sum(1 for error in batch.errors if error.severity == ErrorSeverity.ERROR)
                job.progress_percentage = _progress(job.records_processed, job.total_records)

                room = self._settings.max_recorded_errors - recorded_errors
                if room > 0 and batch.errors:
                    recorded_errors += repository.save_processing_errors(job.id, batch.errors[:room])
                if self._settings.log_row_errors:
                    for error in batch.errors:
                        logger.warning(
                            "Row error job_id=%s file=%s row=%s column=%s type=%s message=%s",
                            job.id,
                            analysis.filename,
                            error.row_number,
                            error.column,
                            error.error_type,
                            error.message,
                        )

                job = repository.save_processing_job(job) or job
                repository.commit()
                self._check_batch_boundary(repository, job, deadline=deadline)

            file_summaries.append(
                {"filename": analysis.filename, "orientation": orientation, "facts_generated": file_facts}
            )

        resolved, conflicts = self._conflict_resolver.resolve_with_stats(facts)
        report = self._quality_assessor.merge_row_errors(
            self._quality_assessor.assess(resolved),
            row_errors,
            max_messages=self._settings.max_recorded_errors,
        )
        valid_facts = [fact for fact in resolved if fact.indicator is not None and fact.value is not None]
        inserted = repository.save_facts(valid_facts, batch_size=job.batch_size)

        job.status = ProcessingStatus.COMPLETED
        job.progress_percentage = 100.0
        job.completed_at = datetime.now(timezone.utc)
        job.result_payload = _result_payload(
            job=job,
            files=file_summaries,
            facts_generated=len(facts),
            facts_resolved=len(resolved),
            facts_inserted=inserted,
            conflicts_resolved=conflicts,
            row_errors=len(row_errors),
            report=report,
        )
        repository.save_processing_job(job)
        repository.commit()
        logger.info(
            "Processing job completed id=%s rows=%s facts=%s inserted=%s errors=%s quality=%.3f",
            job.id,
            job.records_processed,
            len(resolved),
            inserted,
            job.error_count,
            report.quality_score,
        )

    def _load_runs(
        self,
        repository: IngestionRepository,
        upload_job_id: uuid.UUID,
    ) -> list[tuple[CsvAnalysis, list[ColumnMapping]]]:
        analyses = repository.list_analyses(upload_job_id)
        if not analyses:
            raise NotFoundError("CsvAnalysis not found")

        runs: list[tuple[CsvAnalysis, list[ColumnMapping]]] = []
        for analysis in analyses:
            mappings = repository.list_column_mappings(analysis.id) if analysis.id is not None else []
            if not mappings:
                logger.warning(
                    "Skipping file without dimension mappings upload_job_id=%s file=%s",
                    upload_job_id,
                    analysis.filename,
                )
                continue
            runs.append((analysis, mappings))
        if not runs:
            raise BadRequestError("No dimension mappings found")
        return runs

    def _check_batch_boundary(self, repository: IngestionRepository, job: ProcessingJob, *, deadline: float) -> None:
        current = repository.get_processing_job(job.id)
        if current is not None and current.cancel_requested:
            raise ProcessingCancelledError("Processing cancelled by request.")
        if job.error_count > self._settings.max_errors:
            raise ErrorBudgetExceededError(
                f"Error count {job.error_count} exceeded the maximum of {self._settings.max_errors}."
            )
        if self._clock() > deadline:
            raise ProcessingTimeoutError("Processing timed out.")

    def _mark_job_failed(self, *, repository: IngestionRepository, job_id: uuid.UUID, exc: Exception) -> None:
        error_message = str(exc) if isinstance(exc, IngestionError) else f"{type(exc).__name__}: {exc}"
        if isinstance(exc, IngestionError):
            logger.warning("Processing job failed id=%s error=%s", job_id, error_message)
        else:
            logger.exception("Processing job failed id=%s error=%s", job_id, error_message)
        try:
            repository.rollback()
            job = repository.get_processing_job(job_id)
            if job is None:
                logger.error("Unable to mark processing job as failed because it was not found id=%s", job_id)
                return
            job.status = ProcessingStatus.FAILED
            job.error_message = error_message[:2000]
            job.completed_at = datetime.now(timezone.utc)
            repository.save_processing_job(job)
            repository.commit()
        except Exception:
            repository.rollback()
            logger.exception("Failed to persist failed processing job state id=%s", job_id)


def _progress(processed: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return round(min(100.0, processed * 100.0 / total), 2)


def _result_payload(
    *,
    job: ProcessingJob,
    files: list[dict[str, Any]],
    facts_generated: int,
    facts_resolved: int,
    facts_inserted: int,
    conflicts_resolved: int,
    row_errors: int,
    report: QualityReport,
) -> dict[str, Any]:
    return {
        "message": (
            f"Processed {job.records_processed} rows into {facts_resolved} facts "
            f"({facts_inserted} new, {job.error_count} errors)."
        ),
        "files": files,
        "facts_generated": facts_generated,
        "facts_after_conflicts": facts_resolved,
        "facts_inserted": facts_inserted,
        "conflicts_resolved": conflicts_resolved,
        "row_errors": row_errors,
        "quality_report": report.to_dict(),
    }


@lru_cache(maxsize=1)
def get_ingestion_orchestrator_service() -> IngestionOrchestratorService:
    return IngestionOrchestratorService()


@lru_cache(maxsize=1)
def get_thread_pool_executor() -> ThreadPoolTaskExecutor:
    return ThreadPoolTaskExecutor(max_workers=get_data_processing_settings().max_workers)
