"""
Repository layer exports.
"""

from db.repositories.errors import FileStorageError, StorageError
from db.repositories.processing_job_repository import ProcessingJobRepository
from db.repositories.storage import FileStorageBackend, LocalFileStorage, StoredFileMetadata, file_checksum

__all__ = [
    "FileStorageBackend",
    "FileStorageError",
    "LocalFileStorage",
    "ProcessingJobRepository",
    "StorageError",
    "StoredFileMetadata",
    "file_checksum",
]
