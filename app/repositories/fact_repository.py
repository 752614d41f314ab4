"""
app/repositories/fact_repository.py

Batch persistence of fact indicator values.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from typing import Any

from sqlalchemy import delete
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session

from app.domain.facts import FactIndicatorValue
from db.models.fact_indicator_value import FactIndicatorValueRecord, fact_indicator_value_generics

_DEFAULT_BATCH_SIZE = 1000
_DEDUPE_CONSTRAINT = "uq_fact_indicator_values_job_hash"


class FactRepository:
    """
    Repository for fact rows and their generic dimension links.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def save_facts(
        self,
        facts: Sequence[FactIndicatorValue],
        *,
        batch_size: int = _DEFAULT_BATCH_SIZE,
    ) -> int:
        """
        Insert facts with PostgreSQL bulk INSERT, skipping hashes already
        stored for the same upload job.
        """

        if not facts:
            return 0

        size = max(1, batch_size)
        inserted = 0
        for start in range(0, len(facts), size):
            chunk = facts[start : start + size]
            generics_by_hash = {fact.source_row_hash: fact.generics for fact in chunk}
            payloads = [self._to_payload(fact) for fact in chunk]
            stmt = (
                insert(FactIndicatorValueRecord)
                .values(payloads)
                .on_conflict_do_nothing(constraint=_DEDUPE_CONSTRAINT)
                .returning(FactIndicatorValueRecord.id, FactIndicatorValueRecord.source_row_hash)
            )
            rows = self._session.execute(stmt).all()
            inserted += len(rows)

            links = [
                {"fact_id": fact_id, "generic_id": generic.id}
                for fact_id, row_hash in rows
                for generic in generics_by_hash.get(row_hash, ())
            ]
            if links:
                self._session.execute(
                    insert(fact_indicator_value_generics).values(links).on_conflict_do_nothing()
                )

        return inserted

    def delete_for_job(self, upload_job_id: uuid.UUID) -> int:
        result = self._session.execute(
            delete(FactIndicatorValueRecord).where(FactIndicatorValueRecord.upload_job_id == upload_job_id)
        )
        return result.rowcount or 0

    def _to_payload(self, fact: FactIndicatorValue) -> dict[str, Any]:
        if fact.indicator is None or fact.value is None:
            raise ValueError(f"Fact {fact.source_row_hash} is missing an indicator or value.")
        if fact.upload_job_id is None:
            raise ValueError(f"Fact {fact.source_row_hash} is missing its upload job.")
        return {
            "indicator_id": fact.indicator.id,
            "value": fact.value,
            "time_id": fact.time.id if fact.time is not None else None,
            "location_id": fact.location.id if fact.location is not None else None,
            "upload_job_id": fact.upload_job_id,
            "processing_job_id": fact.processing_job_id,
            "source_file": fact.source_file,
            "source_row_number": fact.source_row_number,
            "source_row_hash": fact.source_row_hash,
            "confidence_score": fact.confidence_score,
            "direction": fact.direction,
        }
