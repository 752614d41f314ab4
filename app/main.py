from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

logger = logging.getLogger(__name__)


def _validate_env() -> None:
    """
    Validate required environment variables at startup.

    Raises RuntimeError listing every missing or invalid variable so the
    operator can fix all problems in one restart cycle.
    """

    from db.config import database_url_configured

    errors: list[str] = []

    if not database_url_configured():
        errors.append(
            "No database URL configured. Set DATABASE_URL, CLOUD_DATABASE_URL or LOCAL_DATABASE_URL."
        )

    threshold_raw = os.getenv("DIMENSION_CONFIDENCE_THRESHOLD", "").strip()
    if threshold_raw:
        try:
            threshold = float(threshold_raw)
        except ValueError:
            threshold = -1.0
        if not 0.0 <= threshold <= 1.0:
            errors.append(
                f"DIMENSION_CONFIDENCE_THRESHOLD='{threshold_raw}' must be a number between 0 and 1."
            )

    for name in ("PROCESSING_BATCH_SIZE", "PROCESSING_MAX_WORKERS"):
        raw_value = os.getenv(name, "").strip()
        if raw_value and not (raw_value.isdigit() and int(raw_value) > 0):
            errors.append(f"{name}='{raw_value}' must be a positive integer.")

    if errors:
        raise RuntimeError(
            "Startup validation failed, missing or invalid environment variables:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def _configure_logging() -> None:
    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _check_database() -> None:
    """
    Fail startup when PostgreSQL is unreachable or the ingestion tables are
    missing. Migrations are never applied from here.
    """

    from sqlalchemy import inspect, text

    import db.models  # noqa: F401  registers the ingestion tables on Base.metadata
    from db.base import Base
    from db.session import get_engine

    try:
        with get_engine().connect() as connection:
            connection.execute(text("SELECT 1"))
            existing = set(inspect(connection).get_table_names())
    except Exception as exc:
        raise RuntimeError("Database unavailable.") from exc
    logger.info("Database connectivity confirmed")

    missing = sorted(set(Base.metadata.tables) - existing)
    if missing:
        logger.critical(
            "Ingestion tables missing from the database: %s. Run 'alembic upgrade head' and restart.",
            ", ".join(missing),
        )
        raise RuntimeError(f"Schema mismatch: missing tables {', '.join(missing)}.")
    logger.info("Database schema validated tables=%s", len(Base.metadata.tables))


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Check the database on boot; drain the worker pool and the engine on exit."""
    _check_database()
    try:
        yield
    finally:
        from app.services.ingestion_orchestrator_service import get_thread_pool_executor
        from db.session import dispose_engine

        if get_thread_pool_executor.cache_info().currsize:
            get_thread_pool_executor().shutdown(wait=True)
            logger.info("Processing worker pool shut down")
        dispose_engine()


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    _configure_logging()

    application = FastAPI(
        title="Indicator Ingest API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from app.api.routers import csv_analysis_router, data_processing_router, dimension_mapping_router

    application.include_router(csv_analysis_router)
    application.include_router(dimension_mapping_router)
    application.include_router(data_processing_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()
