"""
app/services/dimension_resolver.py

Per-run cache in front of the dimension dictionaries.
"""

from __future__ import annotations

import logging

from app.domain.dimension_mapping import DimensionType
from app.domain.errors import BadRequestError
from app.domain.facts import DimRef, IndicatorRef
from app.repositories.ingestion_repository import IngestionRepository

logger = logging.getLogger(__name__)


class DimensionResolver:
    """
    Resolves raw cell values to dictionary rows.

    The repository is asked at most once per distinct key for the lifetime
    of the resolver; atomicity across jobs is the repository's concern.
    """

    def __init__(self, repository: IngestionRepository) -> None:
        self._repository = repository
        self._dimensions: dict[tuple[str, str | None, str], DimRef] = {}
        self._indicators: dict[str, IndicatorRef] = {}

    def resolve(
        self,
        dimension_type: str,
        raw_value: str,
        *,
        dimension_name: str | None = None,
    ) -> DimRef:
        value = raw_value.strip()
        if not value:
            raise BadRequestError(f"Cannot resolve an empty {dimension_type} value.")
        if dimension_type in (DimensionType.INDICATOR_NAME, DimensionType.INDICATOR_VALUE):
            raise BadRequestError(f"{dimension_type} is not a dimension dictionary.")

        name = None if dimension_type in (DimensionType.TIME, DimensionType.LOCATION) else (
            (dimension_name or dimension_type.lower()).strip()
        )
        key = (dimension_type, name, value)
        cached = self._dimensions.get(key)
        if cached is not None:
            return cached

        ref = self._repository.find_or_create_dimension(dimension_type, value, dimension_name=name)
        self._dimensions[key] = ref
        return ref

    def resolve_indicator(self, name: str) -> IndicatorRef:
        value = name.strip()
        if not value:
            raise BadRequestError("Cannot resolve an empty indicator name.")
        cached = self._indicators.get(value)
        if cached is not None:
            return cached
        ref = self._repository.find_or_create_indicator(value)
        self._indicators[value] = ref
        return ref

    @property
    def cached_count(self) -> int:
        return len(self._dimensions) + len(self._indicators)
