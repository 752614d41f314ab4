from __future__ import annotations

import unittest

from app.domain.dimension_mapping import ColumnMapping, DimensionType, Orientation
from app.domain.errors import BadRequestError
from app.services.dimension_resolver import DimensionResolver
from app.services.orientation_detector import OrientationDetector
from tests.fakes import InMemoryIngestionRepository


def _mapping(index: int, dimension_type: str, header: str = "") -> ColumnMapping:
    return ColumnMapping(column_index=index, dimension_type=dimension_type, column_header=header or f"c{index}")


class TestOrientationDetector(unittest.TestCase):
    def setUp(self) -> None:
        self.detector = OrientationDetector()

    def test_rows_by_default(self) -> None:
        mappings = [
            _mapping(0, DimensionType.LOCATION),
            _mapping(1, DimensionType.INDICATOR_NAME),
            _mapping(2, DimensionType.INDICATOR_VALUE),
        ]
        self.assertEqual(self.detector.detect(mappings), Orientation.ROWS)
        self.assertEqual(self.detector.indicator_columns(mappings, Orientation.ROWS), [])

    def test_columns_with_several_names_and_one_time(self) -> None:
        mappings = [
            _mapping(0, DimensionType.TIME),
            _mapping(2, DimensionType.INDICATOR_NAME, "Population"),
            _mapping(1, DimensionType.INDICATOR_NAME, "GDP"),
        ]
        self.assertEqual(self.detector.detect(mappings), Orientation.COLUMNS)
        self.assertEqual(
            [m.column_header for m in self.detector.indicator_columns(mappings, Orientation.COLUMNS)],
            ["GDP", "Population"],
        )

    def test_two_time_columns_stay_rows(self) -> None:
        mappings = [
            _mapping(0, DimensionType.TIME),
            _mapping(1, DimensionType.TIME),
            _mapping(2, DimensionType.INDICATOR_NAME),
            _mapping(3, DimensionType.INDICATOR_NAME),
        ]
        self.assertEqual(self.detector.detect(mappings), Orientation.ROWS)

    def test_single_name_with_time_stays_rows(self) -> None:
        mappings = [_mapping(0, DimensionType.TIME), _mapping(1, DimensionType.INDICATOR_NAME)]
        self.assertEqual(self.detector.detect(mappings), Orientation.ROWS)


class TestDimensionResolver(unittest.TestCase):
    def setUp(self) -> None:
        self.repository = InMemoryIngestionRepository()
        self.resolver = DimensionResolver(self.repository)

    def test_same_value_hits_repository_once(self) -> None:
        first = self.resolver.resolve(DimensionType.TIME, "2020")
        second = self.resolver.resolve(DimensionType.TIME, " 2020 ")
        third = self.resolver.resolve(DimensionType.TIME, "2020")

        self.assertEqual(first, second)
        self.assertEqual(second, third)
        self.assertEqual(first.year, 2020)
        self.assertEqual(self.repository.dimension_calls, 1)

    def test_generic_values_are_keyed_by_dimension_name(self) -> None:
        sector = self.resolver.resolve(DimensionType.ADDITIONAL, "Retail", dimension_name="Sector")
        channel = self.resolver.resolve(DimensionType.ADDITIONAL, "Retail", dimension_name="Channel")
        unnamed = self.resolver.resolve(DimensionType.UNIT, "USD")

        self.assertNotEqual(sector.id, channel.id)
        self.assertEqual(sector.dimension_name, "Sector")
        self.assertEqual(unnamed.dimension_name, "unit")
        self.assertEqual(self.repository.dimension_calls, 3)
        self.assertEqual(self.resolver.cached_count, 3)

    def test_fresh_resolver_reuses_dictionary_rows(self) -> None:
        first = self.resolver.resolve(DimensionType.LOCATION, "Canada")
        second = DimensionResolver(self.repository).resolve(DimensionType.LOCATION, "Canada")

        self.assertEqual(first.id, second.id)

    def test_indicator_names_are_cached(self) -> None:
        first = self.resolver.resolve_indicator("GDP")
        second = self.resolver.resolve_indicator("GDP ")

        self.assertEqual(first, second)
        self.assertEqual(self.repository.indicator_calls, 1)

    def test_blank_values_are_rejected(self) -> None:
        with self.assertRaises(BadRequestError):
            self.resolver.resolve(DimensionType.LOCATION, "  ")
        with self.assertRaises(BadRequestError):
            self.resolver.resolve_indicator("")

    def test_indicator_types_are_not_dictionaries(self) -> None:
        with self.assertRaises(BadRequestError):
            self.resolver.resolve(DimensionType.INDICATOR_VALUE, "5")


if __name__ == "__main__":
    unittest.main()
