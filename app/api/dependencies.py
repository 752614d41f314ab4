"""
app/api/dependencies.py

Shared FastAPI dependencies for request validation and persistence.
"""

from __future__ import annotations

import logging
from collections.abc import Generator

from fastapi import Depends, File, HTTPException, UploadFile, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.errors import BadRequestError, IngestionError, MappingValidationError, NotFoundError
from app.repositories.ingestion_repository import IngestionRepository, SqlAlchemyIngestionRepository
from db.repositories.errors import StorageError
from db.session import get_db

logger = logging.getLogger(__name__)

CSV_CONTENT_TYPES = {
    "text/csv",
    "application/csv",
    "application/vnd.ms-excel",
}


def get_csv_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Validate that the uploaded file is a CSV by extension or MIME type.
    """

    filename = (file.filename or "").strip().lower()
    content_type = (file.content_type or "").strip().lower()

    is_csv_filename = filename.endswith(".csv")
    is_csv_content_type = content_type in CSV_CONTENT_TYPES

    if not is_csv_filename and not is_csv_content_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only CSV files are allowed.",
        )

    return file


def get_ingestion_repository(db: Session = Depends(get_db)) -> Generator[IngestionRepository, None, None]:
    """
    Request-scoped repository; uncommitted work is rolled back on error.
    """

    repository = SqlAlchemyIngestionRepository(db)
    try:
        yield repository
    except Exception:
        repository.rollback()
        raise


def to_http_exception(exc: Exception) -> HTTPException:
    """
    Map pipeline and persistence errors onto HTTP status codes.
    """

    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, MappingValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.to_dict())
    if isinstance(exc, (BadRequestError, IngestionError)):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, StorageError):
        logger.exception("File storage failure")
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to access uploaded file storage.",
        )
    logger.exception("Database failure")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Unable to read or persist ingestion data.",
    )


HANDLED_ERRORS = (IngestionError, StorageError, SQLAlchemyError)
