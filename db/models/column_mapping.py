"""
db/models/column_mapping.py

Column to dimension-type bindings for one analyzed file.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import BigInteger, Boolean, Float, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin

if TYPE_CHECKING:
    from db.models.csv_analysis import CsvAnalysisRecord


class ColumnMappingRecord(Base, TimestampMixin):
    __tablename__ = "column_mappings"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    analysis_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("csv_analyses.id", ondelete="CASCADE"),
        nullable=False,
    )
    column_index: Mapped[int] = mapped_column(Integer, nullable=False)
    column_header: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    dimension_type: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="INDICATOR_NAME, INDICATOR_VALUE, TIME, LOCATION, UNIT, ADDITIONAL",
    )
    is_auto_detected: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    confidence_score: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    mapping_rules: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)

    analysis: Mapped["CsvAnalysisRecord"] = relationship("CsvAnalysisRecord", back_populates="mappings")

    __table_args__ = (
        UniqueConstraint("analysis_id", "column_index", name="uq_column_mappings_analysis_column"),
        Index("ix_column_mappings_dimension_type", "dimension_type"),
    )
