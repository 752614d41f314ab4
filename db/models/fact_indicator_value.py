"""
db/models/fact_indicator_value.py

Fact table of resolved indicator observations.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    Column,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Table,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin

fact_indicator_value_generics = Table(
    "fact_indicator_value_generics",
    Base.metadata,
    Column(
        "fact_id",
        BigInteger,
        ForeignKey("fact_indicator_values.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "generic_id",
        BigInteger,
        ForeignKey("dim_generic.id", ondelete="RESTRICT"),
        primary_key=True,
    ),
)


class FactIndicatorValueRecord(Base, TimestampMixin):
    __tablename__ = "fact_indicator_values"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    indicator_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("indicators.id", ondelete="RESTRICT"),
        nullable=False,
    )
    value: Mapped[Decimal] = mapped_column(Numeric(), nullable=False)
    time_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("dim_time.id", ondelete="RESTRICT"),
        nullable=True,
    )
    location_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("dim_location.id", ondelete="RESTRICT"),
        nullable=True,
    )
    upload_job_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    processing_job_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("processing_jobs.id", ondelete="SET NULL"),
        nullable=True,
    )
    source_file: Mapped[str] = mapped_column(String(255), nullable=False)
    source_row_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    source_row_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    confidence_score: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    direction: Mapped[str | None] = mapped_column(
        String(16),
        nullable=True,
        comment="Optional input/output tag",
    )

    __table_args__ = (
        UniqueConstraint(
            "upload_job_id",
            "source_row_hash",
            name="uq_fact_indicator_values_job_hash",
        ),
        Index("ix_fact_indicator_values_indicator_time", "indicator_id", "time_id"),
        Index("ix_fact_indicator_values_location", "location_id"),
        Index("ix_fact_indicator_values_upload_job", "upload_job_id"),
    )
