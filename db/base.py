"""
db/base.py

Declarative base and timestamp mixin shared by the ingestion models.
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import DateTime, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """
    Declarative base for analyses, mappings, dimensions, facts, and jobs.
    """

    type_annotation_map: dict[Any, Any] = {
        dict[str, Any]: JSONB,
    }


class TimestampMixin:
    """
    created_at / updated_at columns; updated_at is bumped on every UPDATE.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=lambda: datetime.now(timezone.utc),
    )
