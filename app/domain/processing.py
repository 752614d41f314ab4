"""
app/domain/processing.py

Processing job state tracked by the ingestion orchestrator.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


class ProcessingStatus:
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


TERMINAL_STATUSES = frozenset({ProcessingStatus.COMPLETED, ProcessingStatus.FAILED})


@dataclass
class ProcessingJob:
    """
    Mutable record of one ingestion run. Terminal once COMPLETED or FAILED.
    """

    upload_job_id: uuid.UUID
    batch_size: int
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    status: str = ProcessingStatus.PENDING
    records_processed: int = 0
    total_records: int = 0
    error_count: int = 0
    progress_percentage: float = 0.0
    error_message: str | None = None
    result_payload: dict[str, Any] | None = None
    cancel_requested: bool = False
    started_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
