"""
Storage backend abstractions for uploaded CSV files.
"""

from __future__ import annotations

import hashlib
import shutil
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from db.repositories.errors import FileStorageError


@dataclass(frozen=True)
class StoredFileMetadata:
    job_id: uuid.UUID
    file_name: str
    storage_path: str
    file_size_bytes: int
    checksum: str
    stored_at: datetime


class FileStorageBackend(Protocol):
    """
    Storage collaborator: one directory of files per upload job.
    """

    def save(self, *, job_id: uuid.UUID, file_name: str, content: bytes) -> StoredFileMetadata:
        ...

    def resolve_path(self, *, job_id: uuid.UUID, file_name: str) -> Path:
        ...

    def list_files(self, *, job_id: uuid.UUID) -> list[str]:
        ...

    def delete_job(self, *, job_id: uuid.UUID) -> None:
        ...


def _sanitize_file_name(file_name: str) -> str:
    safe_name = Path(file_name).name.strip()
    if not safe_name or safe_name in {".", ".."}:
        raise FileStorageError("Invalid file name.")
    return safe_name


def file_checksum(path: Path, *, chunk_size: int = 1024 * 1024) -> str:
    """
    Stream a file through sha256.
    """

    digest = hashlib.sha256()
    with path.open("rb") as handle:
        while True:
            chunk = handle.read(chunk_size)
            if not chunk:
                break
            digest.update(chunk)
    return digest.hexdigest()


class LocalFileStorage:
    """
    Local filesystem storage backend.

    Files live under ``<root>/<job_id>/<file_name>``; saving the same name
    again replaces the previous content.
    """

    def __init__(self, root_dir: str | Path = "data/uploads") -> None:
        self._root_dir = Path(root_dir)

    def save(self, *, job_id: uuid.UUID, file_name: str, content: bytes) -> StoredFileMetadata:
        safe_file_name = _sanitize_file_name(file_name)
        stored_at = datetime.now(timezone.utc)

        relative_path = Path(str(job_id)) / safe_file_name
        absolute_path = self._root_dir / relative_path
        absolute_path.parent.mkdir(parents=True, exist_ok=True)

        tmp_path = absolute_path.with_suffix(f"{absolute_path.suffix}.tmp")
        try:
            with tmp_path.open("wb") as handle:
                handle.write(content)
            tmp_path.replace(absolute_path)
        except OSError as exc:
            raise FileStorageError("Failed to write uploaded file to storage.") from exc
        finally:
            if tmp_path.exists():
                try:
                    tmp_path.unlink()
                except OSError:
                    pass

        return StoredFileMetadata(
            job_id=job_id,
            file_name=safe_file_name,
            storage_path=relative_path.as_posix(),
            file_size_bytes=len(content),
            checksum=hashlib.sha256(content).hexdigest(),
            stored_at=stored_at,
        )

    def resolve_path(self, *, job_id: uuid.UUID, file_name: str) -> Path:
        return self._root_dir / str(job_id) / _sanitize_file_name(file_name)

    def list_files(self, *, job_id: uuid.UUID) -> list[str]:
        job_dir = self._root_dir / str(job_id)
        if not job_dir.is_dir():
            return []
        return sorted(
            entry.name
            for entry in job_dir.iterdir()
            if entry.is_file() and entry.suffix.lower() == ".csv"
        )

    def delete_job(self, *, job_id: uuid.UUID) -> None:
        job_dir = self._root_dir / str(job_id)
        if not job_dir.exists():
            return
        try:
            shutil.rmtree(job_dir)
        except OSError as exc:
            raise FileStorageError("Failed to delete uploaded files from storage.") from exc
