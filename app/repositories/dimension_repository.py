"""
app/repositories/dimension_repository.py

Lookup-or-create persistence for the shared dimension dictionaries.

Each call issues one ``INSERT .. ON CONFLICT DO NOTHING RETURNING id`` against
the dictionary's unique constraint and falls back to a lookup when another
writer created the row first, so concurrent jobs converge on one row.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session

from app.domain.dimension_mapping import DimensionType
from app.domain.facts import DimRef, IndicatorRef
from app.validators.cell_values import parse_time_parts
from db.models.dimensions import DimGeneric, DimLocation, DimTime, Indicator

_TIME_CONSTRAINT = "uq_dim_time_value"
_LOCATION_CONSTRAINT = "uq_dim_location_value"
_GENERIC_CONSTRAINT = "uq_dim_generic_name_value"
_INDICATOR_CONSTRAINT = "uq_indicators_name"


class DimensionRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def find_or_create_time(self, value: str) -> DimRef:
        parts = parse_time_parts(value)
        row_id = self._insert_or_fetch(
            DimTime,
            {
                "value": value,
                "year": parts.year,
                "month": parts.month,
                "quarter": parts.quarter,
                "day": parts.day,
            },
            constraint=_TIME_CONSTRAINT,
            lookup=select(DimTime.id).where(DimTime.value == value),
        )
        row = self._session.get(DimTime, row_id)
        return DimRef(
            dimension_type=DimensionType.TIME,
            id=row_id,
            value=value,
            year=row.year if row is not None else parts.year,
            month=row.month if row is not None else parts.month,
            quarter=row.quarter if row is not None else parts.quarter,
        )

    def find_or_create_location(self, value: str) -> DimRef:
        row_id = self._insert_or_fetch(
            DimLocation,
            {"value": value},
            constraint=_LOCATION_CONSTRAINT,
            lookup=select(DimLocation.id).where(DimLocation.value == value),
        )
        return DimRef(dimension_type=DimensionType.LOCATION, id=row_id, value=value)

    def find_or_create_generic(self, dimension_name: str, value: str) -> DimRef:
        row_id = self._insert_or_fetch(
            DimGeneric,
            {"dimension_name": dimension_name, "value": value},
            constraint=_GENERIC_CONSTRAINT,
            lookup=select(DimGeneric.id).where(
                DimGeneric.dimension_name == dimension_name,
                DimGeneric.value == value,
            ),
        )
        return DimRef(
            dimension_type=DimensionType.ADDITIONAL,
            id=row_id,
            value=value,
            dimension_name=dimension_name,
        )

    def find_or_create_indicator(self, name: str) -> IndicatorRef:
        row_id = self._insert_or_fetch(
            Indicator,
            {"name": name},
            constraint=_INDICATOR_CONSTRAINT,
            lookup=select(Indicator.id).where(Indicator.name == name),
        )
        return IndicatorRef(id=row_id, name=name)

    def _insert_or_fetch(
        self,
        model: Any,
        values: dict[str, Any],
        *,
        constraint: str,
        lookup: Any,
    ) -> int:
        stmt = (
            insert(model)
            .values(**values)
            .on_conflict_do_nothing(constraint=constraint)
            .returning(model.id)
        )
        inserted_id = self._session.scalars(stmt).first()
        if inserted_id is not None:
            return int(inserted_id)

        existing_id = self._session.scalars(lookup).first()
        if existing_id is None:
            raise RuntimeError(f"Dimension row vanished after conflict on {constraint}.")
        return int(existing_id)
