"""
Analyze, map, and process stored upload jobs from the CLI.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import uuid
from contextlib import closing
from pathlib import Path
from typing import Any

from app.domain.errors import IngestionError
from app.repositories.ingestion_repository import sql_repository_factory
from app.services.csv_analysis_service import get_csv_analysis_service, get_file_storage
from app.services.dimension_mapping_service import get_dimension_mapping_service
from app.services.ingestion_orchestrator_service import (
    ThreadPoolTaskExecutor,
    get_ingestion_orchestrator_service,
)
from db.repositories.errors import StorageError


def _store(args: argparse.Namespace) -> Any:
    path = Path(args.file)
    metadata = get_file_storage().save(job_id=args.job_id, file_name=path.name, content=path.read_bytes())
    return {"job_id": str(metadata.job_id), "file_name": metadata.file_name, "checksum": metadata.checksum}


def _analyze(args: argparse.Namespace) -> Any:
    service = get_csv_analysis_service()
    with closing(sql_repository_factory()) as repository:
        summary = service.analyze_all(repository=repository, job_id=args.job_id)
        repository.commit()
    return {
        "analyses": [
            {
                "filename": analysis.filename,
                "delimiter": analysis.delimiter,
                "encoding": analysis.encoding,
                "has_header": analysis.has_header,
                "headers": list(analysis.headers),
                "row_count": analysis.row_count,
            }
            for analysis in summary.analyses
        ],
        "failures": [{"filename": f.filename, "message": f.message} for f in summary.failures],
    }


def _suggest(args: argparse.Namespace) -> Any:
    service = get_dimension_mapping_service()
    with closing(sql_repository_factory()) as repository:
        if args.accept:
            mappings = service.accept_suggestions(
                repository=repository,
                job_id=args.job_id,
                min_confidence=args.min_confidence,
                filename=args.filename,
            )
            repository.commit()
            return [
                {
                    "column_index": m.column_index,
                    "column_header": m.column_header,
                    "dimension_type": m.dimension_type,
                    "confidence_score": m.confidence_score,
                }
                for m in mappings
            ]
        suggestions = service.suggest(repository=repository, job_id=args.job_id, filename=args.filename)
    return [
        {
            "column_index": s.column_index,
            "column_header": s.column_header,
            "dimension_type": s.dimension_type,
            "confidence": s.confidence,
            "is_low_confidence": s.is_low_confidence,
            "reason": s.reason,
        }
        for s in suggestions
    ]


def _process(args: argparse.Namespace) -> Any:
    orchestrator = get_ingestion_orchestrator_service()
    executor = ThreadPoolTaskExecutor(max_workers=1)
    with closing(sql_repository_factory()) as repository:
        job = orchestrator.submit_processing(
            repository=repository,
            upload_job_id=args.job_id,
            executor=executor,
            batch_size=args.batch_size,
            timeout_seconds=args.timeout,
        )
    executor.shutdown(wait=True)

    with closing(sql_repository_factory()) as repository:
        job = orchestrator.get_job(repository=repository, processing_job_id=job.id)
    return {
        "processing_job_id": str(job.id),
        "status": job.status,
        "records_processed": job.records_processed,
        "error_count": job.error_count,
        "error_message": job.error_message,
        "result": job.result_payload,
    }


def main() -> int:
    parser = argparse.ArgumentParser(description="Indicator CSV ingestion.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    store = subparsers.add_parser("store", help="Copy a CSV file into upload job storage.")
    store.add_argument("job_id", type=uuid.UUID)
    store.add_argument("file")
    store.set_defaults(handler=_store)

    analyze = subparsers.add_parser("analyze", help="Analyze every stored CSV of an upload job.")
    analyze.add_argument("job_id", type=uuid.UUID)
    analyze.set_defaults(handler=_analyze)

    suggest = subparsers.add_parser("suggest", help="Show or accept dimension suggestions.")
    suggest.add_argument("job_id", type=uuid.UUID)
    suggest.add_argument("--filename", default=None)
    suggest.add_argument("--accept", action="store_true", help="Persist suggestions as mappings.")
    suggest.add_argument("--min-confidence", dest="min_confidence", type=float, default=None)
    suggest.set_defaults(handler=_suggest)

    process = subparsers.add_parser("process", help="Run a processing job and wait for it.")
    process.add_argument("job_id", type=uuid.UUID)
    process.add_argument("--batch-size", dest="batch_size", type=int, default=None)
    process.add_argument("--timeout", type=float, default=None, help="Overall timeout in seconds.")
    process.set_defaults(handler=_process)

    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")

    try:
        payload = args.handler(args)
    except (IngestionError, StorageError, OSError) as exc:
        print(json.dumps({"error": str(exc)}), file=sys.stderr)
        return 1

    print(json.dumps(payload, indent=2, default=str))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
