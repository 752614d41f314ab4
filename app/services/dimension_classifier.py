"""
app/services/dimension_classifier.py

Heuristic column classification.

Each column is profiled once from its statistics and sample values, then
scored by an ordered list of rules, one per dimension type. The highest
confidence wins; on ties the earlier rule wins. New heuristics are added by
appending a rule, not by restructuring the control flow.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from functools import lru_cache

from app.config import get_dimension_classifier_settings
from app.domain.csv_analysis import ColumnDataType, CsvAnalysis, CsvColumnStats
from app.domain.dimension_mapping import ColumnSuggestion, DimensionType
from app.validators.cell_values import is_time_like, is_year_like, parse_decimal

logger = logging.getLogger(__name__)

TIME_HEADER_KEYWORDS = frozenset({"year", "years", "month", "date", "time", "period", "quarter", "day", "week"})
LOCATION_HEADER_KEYWORDS = frozenset(
    {
        "country",
        "state",
        "city",
        "region",
        "location",
        "area",
        "province",
        "county",
        "district",
        "municipality",
        "nation",
        "territory",
        "geo",
    }
)
INDICATOR_HEADER_KEYWORDS = frozenset({"indicator", "metric", "measure", "series", "variable", "kpi"})
WEAK_INDICATOR_HEADER_KEYWORDS = frozenset({"name", "description", "label"})
VALUE_HEADER_KEYWORDS = frozenset({"value", "amount", "number", "score", "rate", "total", "count", "obs"})
UNIT_HEADER_KEYWORDS = frozenset({"unit", "units", "uom", "measurement", "currency"})

_UNIT_VALUE_RE = re.compile(
    r"(?:^|[\s(/])(kg|t|km|%|index|percent|million|billion|thousand|usd|eur|gbp|cny|jpy|persons?)(?:$|[\s)/])",
    re.IGNORECASE,
)
_HEADER_TOKEN_RE = re.compile(r"[a-z0-9]+")

_YEAR_HEADER_VALUE_PENALTY = 0.16


@dataclass(frozen=True)
class ColumnProfile:
    """
    Classifier view of one column: header tokens and value-pattern shares.
    """

    column_index: int
    header: str
    header_tokens: frozenset[str]
    data_type: str
    unique_ratio: float
    time_ratio: float
    location_ratio: float
    numeric_ratio: float
    unit_ratio: float
    header_is_year: bool

    def header_has(self, keywords: frozenset[str]) -> bool:
        return bool(self.header_tokens & keywords)


RuleResult = tuple[float, str]
ScoringRule = Callable[[ColumnProfile], RuleResult]


def score_time(profile: ColumnProfile) -> RuleResult:
    ratio = profile.time_ratio
    score = 0.5 + 0.45 * ratio if ratio >= 0.5 else 0.6 * ratio
    reason = f"{ratio:.0%} of values look like time periods"
    if profile.header_has(TIME_HEADER_KEYWORDS):
        score = max(score, 0.8)
        if ratio >= 0.5:
            score = min(1.0, score + 0.05)
        reason = f"time header keyword; {reason}"
    if profile.header_is_year and profile.numeric_ratio > 0.7:
        score = max(score, 0.65)
        reason = "header is a year label over numeric values"
    return score, reason


def score_location(profile: ColumnProfile) -> RuleResult:
    ratio = profile.location_ratio
    score = 0.5 + 0.45 * ratio if ratio > 0.3 else 0.0
    reason = f"{ratio:.0%} of values are known locations"
    if profile.header_has(LOCATION_HEADER_KEYWORDS):
        score = max(score, 0.8)
        if ratio > 0.3:
            score = min(1.0, score + 0.05)
        reason = f"location header keyword; {reason}"
    return score, reason


def score_indicator_value(profile: ColumnProfile) -> RuleResult:
    ratio = profile.numeric_ratio
    if ratio <= 0.7:
        return 0.0, "mostly non-numeric values"
    score = 0.5 + 0.35 * ratio
    reason = f"{ratio:.0%} of values are numeric"
    if profile.header_has(VALUE_HEADER_KEYWORDS):
        score += 0.05
        reason = f"value header keyword; {reason}"
    if profile.time_ratio >= 0.5:
        score -= 0.1
    if profile.header_is_year:
        score -= _YEAR_HEADER_VALUE_PENALTY
        reason = f"{reason}; year-like header is ambiguous"
    return max(0.0, min(1.0, score)), reason


def score_indicator_name(profile: ColumnProfile) -> RuleResult:
    if profile.numeric_ratio > 0.7:
        return 0.0, "numeric values"
    if profile.header_has(INDICATOR_HEADER_KEYWORDS):
        return 0.85, "indicator header keyword"
    score = 0.0
    reason = "text column"
    if profile.header_has(WEAK_INDICATOR_HEADER_KEYWORDS):
        score, reason = 0.75, "name-like header keyword"
    if (
        profile.data_type == ColumnDataType.TEXT
        and profile.time_ratio < 0.5
        and profile.location_ratio <= 0.3
    ):
        text_score = 0.4 + 0.3 * profile.unique_ratio
        if text_score > score:
            score = text_score
            reason = f"text column with {profile.unique_ratio:.0%} unique values"
    return score, reason


def score_unit(profile: ColumnProfile) -> RuleResult:
    if profile.header_has(UNIT_HEADER_KEYWORDS):
        return 0.85, "unit header keyword"
    if profile.numeric_ratio > 0.7:
        return 0.0, "numeric values"
    if profile.unit_ratio > 0.5:
        return 0.5 + 0.3 * profile.unit_ratio, f"{profile.unit_ratio:.0%} of values are unit tokens"
    return 0.0, "no unit tokens"


def score_additional(profile: ColumnProfile) -> RuleResult:
    if profile.numeric_ratio > 0.7:
        return 0.3, "numeric column without a stronger match"
    return 0.5, "categorical text column"


DEFAULT_RULES: tuple[tuple[str, ScoringRule], ...] = (
    (DimensionType.TIME, score_time),
    (DimensionType.LOCATION, score_location),
    (DimensionType.INDICATOR_VALUE, score_indicator_value),
    (DimensionType.INDICATOR_NAME, score_indicator_name),
    (DimensionType.UNIT, score_unit),
    (DimensionType.ADDITIONAL, score_additional),
)


class DimensionClassifier:
    """
    Scores every analyzed column against the dimension-type rules.
    """

    def __init__(
        self,
        *,
        confidence_threshold: float = 0.7,
        time_patterns: Sequence[str] = (),
        location_patterns: Sequence[str] = (),
        rules: Sequence[tuple[str, ScoringRule]] = DEFAULT_RULES,
    ) -> None:
        self._confidence_threshold = max(0.0, min(1.0, confidence_threshold))
        self._time_patterns = tuple(pattern for pattern in time_patterns if pattern.strip())
        self._locations = frozenset(pattern.strip().lower() for pattern in location_patterns if pattern.strip())
        self._rules = tuple(rules)

    @property
    def confidence_threshold(self) -> float:
        return self._confidence_threshold

    def suggest(self, analysis: CsvAnalysis) -> list[ColumnSuggestion]:
        """
        Return one suggestion per column, highest confidence first.
        """

        suggestions = [self.classify_column(column) for column in analysis.columns]
        suggestions = self._keep_first_heuristic_indicator_name(suggestions, analysis.columns)
        suggestions.sort(key=lambda suggestion: (-suggestion.confidence, suggestion.column_index))
        logger.debug(
            "Classified columns job_id=%s file=%s suggestions=%s",
            analysis.job_id,
            analysis.filename,
            [(s.column_index, s.dimension_type, round(s.confidence, 3)) for s in suggestions],
        )
        return suggestions

    def classify_column(self, column: CsvColumnStats) -> ColumnSuggestion:
        profile = self.profile(column)
        scored: list[tuple[str, float, str]] = []
        for dimension_type, rule in self._rules:
            confidence, reason = rule(profile)
            scored.append((dimension_type, round(max(0.0, min(1.0, confidence)), 4), reason))

        best_type, best_confidence, best_reason = scored[0]
        for dimension_type, confidence, reason in scored[1:]:
            if confidence > best_confidence:
                best_type, best_confidence, best_reason = dimension_type, confidence, reason

        alternatives = tuple(
            sorted(
                (
                    (dimension_type, confidence)
                    for dimension_type, confidence, _ in scored
                    if dimension_type != best_type and confidence > 0.0
                ),
                key=lambda item: -item[1],
            )
        )
        return ColumnSuggestion(
            column_index=column.column_index,
            column_header=column.header,
            dimension_type=best_type,
            confidence=best_confidence,
            is_low_confidence=best_confidence < self._confidence_threshold,
            reason=best_reason,
            alternatives=alternatives,
        )

    def profile(self, column: CsvColumnStats) -> ColumnProfile:
        values = [value.strip() for value in column.sample_values if value.strip()]
        total = len(values)

        def share(predicate: Callable[[str], bool]) -> float:
            if total == 0:
                return 0.0
            return sum(1 for value in values if predicate(value)) / total

        numeric_ratio = share(lambda value: parse_decimal(value) is not None)
        if column.data_type == ColumnDataType.NUMERIC:
            numeric_ratio = max(numeric_ratio, 1.0 if total else 0.0)

        return ColumnProfile(
            column_index=column.column_index,
            header=column.header,
            header_tokens=frozenset(_HEADER_TOKEN_RE.findall(column.header.lower())),
            data_type=column.data_type,
            unique_ratio=column.unique_count / column.value_count if column.value_count else 0.0,
            time_ratio=share(lambda value: is_time_like(value, self._time_patterns)),
            location_ratio=share(lambda value: value.lower() in self._locations),
            numeric_ratio=numeric_ratio,
            unit_ratio=share(lambda value: bool(_UNIT_VALUE_RE.search(value))),
            header_is_year=is_year_like(column.header),
        )

    def _keep_first_heuristic_indicator_name(
        self,
        suggestions: list[ColumnSuggestion],
        columns: Sequence[CsvColumnStats],
    ) -> list[ColumnSuggestion]:
        """
        Only the first text column may become INDICATOR_NAME without a header
        keyword; later ones fall back to their next-best type.
        """

        headers_by_index = {column.column_index: column.header for column in columns}
        seen_name = False
        adjusted: list[ColumnSuggestion] = []
        for suggestion in sorted(suggestions, key=lambda item: item.column_index):
            if suggestion.dimension_type != DimensionType.INDICATOR_NAME:
                adjusted.append(suggestion)
                continue
            tokens = frozenset(_HEADER_TOKEN_RE.findall(headers_by_index.get(suggestion.column_index, "").lower()))
            has_keyword = bool(tokens & (INDICATOR_HEADER_KEYWORDS | WEAK_INDICATOR_HEADER_KEYWORDS))
            if seen_name and not has_keyword and suggestion.alternatives:
                next_type, next_confidence = suggestion.alternatives[0]
                adjusted.append(
                    ColumnSuggestion(
                        column_index=suggestion.column_index,
                        column_header=suggestion.column_header,
                        dimension_type=next_type,
                        confidence=next_confidence,
                        is_low_confidence=next_confidence < self._confidence_threshold,
                        reason="another column already names the indicator",
                        alternatives=((DimensionType.INDICATOR_NAME, suggestion.confidence),)
                        + tuple(alt for alt in suggestion.alternatives[1:]),
                    )
                )
                continue
            seen_name = True
            adjusted.append(suggestion)
        return adjusted


@lru_cache(maxsize=1)
def get_dimension_classifier() -> DimensionClassifier:
    settings = get_dimension_classifier_settings()
    return DimensionClassifier(
        confidence_threshold=settings.confidence_threshold,
        time_patterns=settings.time_patterns,
        location_patterns=settings.location_patterns,
    )
