"""
db/models/csv_analysis.py

Cached structural analysis of stored CSV files and their column statistics.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, Boolean, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin

if TYPE_CHECKING:
    from db.models.column_mapping import ColumnMappingRecord


class CsvAnalysisRecord(Base, TimestampMixin):
    __tablename__ = "csv_analyses"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    job_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        nullable=False,
        comment="Owning upload job",
    )
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    file_path: Mapped[str] = mapped_column(String(1024), nullable=False)
    file_checksum: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        comment="sha256 of the analyzed file content",
    )
    delimiter: Mapped[str] = mapped_column(String(1), nullable=False)
    encoding: Mapped[str] = mapped_column(String(40), nullable=False)
    has_header: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    headers: Mapped[list[str]] = mapped_column(JSONB, nullable=False)
    row_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    column_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    columns: Mapped[list["CsvColumnRecord"]] = relationship(
        "CsvColumnRecord",
        back_populates="analysis",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="CsvColumnRecord.column_index",
    )
    mappings: Mapped[list["ColumnMappingRecord"]] = relationship(
        "ColumnMappingRecord",
        back_populates="analysis",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ColumnMappingRecord.column_index",
    )

    __table_args__ = (
        UniqueConstraint("job_id", "filename", name="uq_csv_analyses_job_filename"),
        Index("ix_csv_analyses_job_id", "job_id"),
    )


class CsvColumnRecord(Base):
    __tablename__ = "csv_columns"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    analysis_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("csv_analyses.id", ondelete="CASCADE"),
        nullable=False,
    )
    column_index: Mapped[int] = mapped_column(Integer, nullable=False)
    header: Mapped[str] = mapped_column(String(255), nullable=False)
    data_type: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="numeric, text, date",
    )
    sample_values: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)
    null_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    empty_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    unique_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    value_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Non-empty, non-null cells in the preview window",
    )

    analysis: Mapped[CsvAnalysisRecord] = relationship("CsvAnalysisRecord", back_populates="columns")

    __table_args__ = (
        UniqueConstraint("analysis_id", "column_index", name="uq_csv_columns_analysis_column"),
    )
