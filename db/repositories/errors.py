"""
Repository-layer exceptions for upload storage flows.
"""

from __future__ import annotations


class StorageError(Exception):
    """Base exception for upload storage failures."""


class FileStorageError(StorageError):
    """Raised when storing, resolving, or deleting uploaded files fails."""
