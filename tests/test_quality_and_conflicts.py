from __future__ import annotations

import unittest
from decimal import Decimal

from app.domain.facts import (
    ErrorSeverity,
    FactIndicatorValue,
    IndicatorRef,
    RowErrorType,
    RowProcessingError,
)
from app.services.conflict_resolver import ConflictResolver
from app.services.data_quality_assessor import DataQualityAssessor

GDP = IndicatorRef(id=1, name="GDP")


def _fact(
    value: Decimal | None,
    *,
    indicator: IndicatorRef | None = GDP,
    row: int = 1,
    row_hash: str | None = None,
    confidence: float = 1.0,
) -> FactIndicatorValue:
    return FactIndicatorValue(
        indicator=indicator,
        value=value,
        source_file="data.csv",
        source_row_hash=row_hash or f"hash-{row}",
        confidence_score=confidence,
        source_row_number=row,
    )


class TestDataQualityAssessor(unittest.TestCase):
    def setUp(self) -> None:
        self.assessor = DataQualityAssessor()

    def test_counts_errors_and_warnings(self) -> None:
        facts = [
            _fact(Decimal("10"), row=1),
            _fact(Decimal("5"), indicator=None, row=2),
            _fact(Decimal("-3"), row=3),
        ]

        report = self.assessor.assess(facts)

        self.assertEqual(report.total_records, 3)
        self.assertEqual(report.valid_records, 2)
        self.assertEqual(report.error_records, 1)
        self.assertEqual(report.warning_records, 1)
        self.assertAlmostEqual(report.quality_score, 2 / 3)
        self.assertEqual(report.errors, ["data.csv row 2: missing indicator"])
        self.assertEqual(report.error_type_counts[RowErrorType.NEGATIVE_VALUE], 1)
        self.assertEqual(report.error_type_counts[RowErrorType.MISSING_INDICATOR], 1)

    def test_null_indicator_and_null_value_are_error_records(self) -> None:
        facts = [
            _fact(Decimal("100"), row=1),
            _fact(Decimal("200"), indicator=None, row=2),
            _fact(None, row=3),
        ]

        report = self.assessor.assess(facts)

        self.assertEqual(report.total_records, 3)
        self.assertEqual(report.valid_records, 1)
        self.assertEqual(report.error_records, 2)
        self.assertAlmostEqual(report.quality_score, 1 / 3)
        self.assertEqual(
            report.errors,
            ["data.csv row 2: missing indicator", "data.csv row 3: missing value"],
        )

    def test_missing_value_and_indicator_count_once_per_fact(self) -> None:
        report = self.assessor.assess([_fact(None, indicator=None)])

        self.assertEqual(report.error_records, 1)
        self.assertEqual(len(report.errors), 2)
        self.assertEqual(report.quality_score, 0.0)

    def test_extreme_values_are_warnings(self) -> None:
        report = self.assessor.assess([_fact(Decimal("1000000000"))])

        self.assertEqual(report.valid_records, 1)
        self.assertEqual(report.warning_records, 1)
        self.assertIn(RowErrorType.EXTREME_VALUE, report.error_type_counts)

    def test_limit_is_configurable(self) -> None:
        assessor = DataQualityAssessor(extreme_value_limit=Decimal("100"))

        report = assessor.assess([_fact(Decimal("101")), _fact(Decimal("100"), row=2)])

        self.assertEqual(report.warning_records, 1)

    def test_empty_input_is_perfect(self) -> None:
        report = self.assessor.assess([])

        self.assertEqual(report.total_records, 0)
        self.assertEqual(report.quality_score, 1.0)

    def test_merge_row_errors_keeps_scores(self) -> None:
        report = self.assessor.assess([_fact(Decimal("1"))])
        row_errors = [
            RowProcessingError(
                row_number=4,
                message="Value 'abc' is not a number.",
                error_type=RowErrorType.INVALID_NUMBER,
                column="Value",
                value="abc",
            ),
            RowProcessingError(
                row_number=5,
                message="Indicator name is blank; row skipped.",
                error_type=RowErrorType.MISSING_INDICATOR,
                severity=ErrorSeverity.WARNING,
            ),
        ]

        merged = self.assessor.merge_row_errors(report, row_errors)

        self.assertEqual(merged.quality_score, report.quality_score)
        self.assertEqual(merged.valid_records, 1)
        self.assertEqual(merged.errors, ["row 4 [Value]: Value 'abc' is not a number."])
        self.assertEqual(merged.warnings, ["row 5: Indicator name is blank; row skipped."])
        self.assertEqual(merged.error_type_counts[RowErrorType.INVALID_NUMBER], 1)

    def test_merge_caps_messages(self) -> None:
        report = self.assessor.assess([])
        row_errors = [RowProcessingError(row_number=index, message="bad") for index in range(5)]

        merged = self.assessor.merge_row_errors(report, row_errors, max_messages=2)

        self.assertEqual(len(merged.errors), 2)
        self.assertEqual(merged.error_type_counts[RowErrorType.ROW_PROCESSING], 5)

    def test_report_serializes(self) -> None:
        payload = self.assessor.assess([_fact(Decimal("1"))]).to_dict()

        self.assertEqual(payload["total_records"], 1)
        self.assertEqual(payload["quality_score"], 1.0)
        self.assertEqual(payload["errors"], [])


class TestConflictResolver(unittest.TestCase):
    def setUp(self) -> None:
        self.resolver = ConflictResolver()

    def test_highest_confidence_wins_per_hash(self) -> None:
        facts = [
            _fact(Decimal("1"), row_hash="h1", confidence=0.7),
            _fact(Decimal("2"), row_hash="h1", confidence=0.9),
            _fact(Decimal("3"), row_hash="h2", confidence=0.5),
        ]

        resolved, dropped = self.resolver.resolve_with_stats(facts)

        self.assertEqual([fact.value for fact in resolved], [Decimal("2"), Decimal("3")])
        self.assertEqual(dropped, 1)

    def test_tie_keeps_earlier_fact(self) -> None:
        facts = [
            _fact(Decimal("1"), row_hash="h1", confidence=0.8),
            _fact(Decimal("2"), row_hash="h1", confidence=0.8),
        ]

        self.assertEqual([fact.value for fact in self.resolver.resolve(facts)], [Decimal("1")])

    def test_distinct_hashes_pass_through(self) -> None:
        facts = [_fact(Decimal(index), row=index) for index in range(1, 4)]

        resolved, dropped = self.resolver.resolve_with_stats(facts)

        self.assertEqual(resolved, facts)
        self.assertEqual(dropped, 0)


if __name__ == "__main__":
    unittest.main()
