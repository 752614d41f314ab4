"""
app/validators/cell_values.py

Cell-level parsing shared by structural analysis, classification, and
fact transformation.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Iterable

NULL_TOKENS = frozenset({"null", "none", "na", "n/a", "nan", "#n/a", "-"})

DATE_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d",
    "%d/%m/%Y",
    "%m/%d/%Y",
    "%Y/%m/%d",
    "%d.%m.%Y",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
)

MONTH_NAMES: dict[str, int] = {
    "january": 1,
    "february": 2,
    "march": 3,
    "april": 4,
    "may": 5,
    "june": 6,
    "july": 7,
    "august": 8,
    "september": 9,
    "october": 10,
    "november": 11,
    "december": 12,
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "sept": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}

_STRICT_NUMBER_RE = re.compile(r"^-?\d+(\.\d+)?$")
_THOUSANDS_RE = re.compile(r"^-?\d{1,3}(,\d{3})+(\.\d+)?$")
_DECIMAL_COMMA_RE = re.compile(r"^-?\d+,\d+$")
_YEAR_RE = re.compile(r"^(19|20)\d{2}$")
_YEAR_SUBSTRING_RE = re.compile(r"\b(19|20)\d{2}\b")
_QUARTER_RE = re.compile(r"^(?:(?P<year>(?:19|20)\d{2})\s*[-/ ]?\s*)?Q(?P<quarter>[1-4])$", re.IGNORECASE)
_YEAR_MONTH_RE = re.compile(r"^(?P<year>(?:19|20)\d{2})[-/](?P<month>0?[1-9]|1[0-2])$")
_MONTH_YEAR_RE = re.compile(r"^(?P<month>[A-Za-z]+)\.?\s*[-/ ]?\s*(?P<year>(?:19|20)\d{2})?$")
_CURRENCY_CHARS = "$€£¥"


@dataclass(frozen=True)
class TimeParts:
    year: int | None = None
    month: int | None = None
    quarter: int | None = None
    day: int | None = None


def is_blank(value: object) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def is_null_token(value: str | None) -> bool:
    if value is None:
        return False
    return value.strip().lower() in NULL_TOKENS


def is_strict_number(value: str) -> bool:
    return bool(_STRICT_NUMBER_RE.match(value.strip()))


def is_year_like(value: str) -> bool:
    return bool(_YEAR_RE.match(value.strip()))


def parse_decimal(raw: str | None) -> Decimal | None:
    """
    Parse a numeric cell, tolerating currency symbols, percent signs,
    whitespace, and thousands separators. Returns None when unparseable.
    """

    if raw is None:
        return None
    cleaned = raw.strip()
    for char in _CURRENCY_CHARS:
        cleaned = cleaned.replace(char, "")
    cleaned = cleaned.replace("%", "").replace(" ", "").replace("\u00a0", "")
    if not cleaned:
        return None

    if _THOUSANDS_RE.match(cleaned):
        cleaned = cleaned.replace(",", "")
    elif _DECIMAL_COMMA_RE.match(cleaned):
        cleaned = cleaned.replace(",", ".")

    if not _STRICT_NUMBER_RE.match(cleaned):
        return None
    try:
        return Decimal(cleaned)
    except InvalidOperation:
        return None


def parse_date(raw: str) -> date | None:
    value = raw.strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    return None


def parse_time_parts(raw: str) -> TimeParts:
    """
    Best-effort derivation of year/month/quarter/day from a time label.
    """

    value = raw.strip()
    if not value:
        return TimeParts()

    if _YEAR_RE.match(value):
        return TimeParts(year=int(value))

    parsed_date = parse_date(value)
    if parsed_date is not None:
        return TimeParts(
            year=parsed_date.year,
            month=parsed_date.month,
            quarter=(parsed_date.month - 1) // 3 + 1,
            day=parsed_date.day,
        )

    quarter_match = _QUARTER_RE.match(value)
    if quarter_match:
        year = quarter_match.group("year")
        return TimeParts(
            year=int(year) if year else None,
            quarter=int(quarter_match.group("quarter")),
        )

    year_month_match = _YEAR_MONTH_RE.match(value)
    if year_month_match:
        month = int(year_month_match.group("month"))
        return TimeParts(
            year=int(year_month_match.group("year")),
            month=month,
            quarter=(month - 1) // 3 + 1,
        )

    month_match = _MONTH_YEAR_RE.match(value)
    if month_match:
        month_number = MONTH_NAMES.get(month_match.group("month").lower())
        if month_number is not None:
            year = month_match.group("year")
            return TimeParts(
                year=int(year) if year else None,
                month=month_number,
                quarter=(month_number - 1) // 3 + 1,
            )

    year_substring = _YEAR_SUBSTRING_RE.search(value)
    if year_substring:
        return TimeParts(year=int(year_substring.group(0)))
    return TimeParts()


def is_time_like(raw: str, extra_patterns: Iterable[str] = ()) -> bool:
    """
    Return True when a cell looks like a year, month, quarter, or date label.
    """

    value = raw.strip()
    if not value:
        return False
    lowered = value.lower()
    if any(lowered == pattern.strip().lower() for pattern in extra_patterns):
        return True
    if _YEAR_RE.match(value) or _QUARTER_RE.match(value) or _YEAR_MONTH_RE.match(value):
        return True
    if parse_date(value) is not None:
        return True
    month_match = _MONTH_YEAR_RE.match(value)
    return bool(month_match and month_match.group("month").lower() in MONTH_NAMES)


def infer_cell_type(raw: str) -> str:
    """
    Classify a non-blank cell as numeric, date, or text.
    """

    value = raw.strip()
    if is_strict_number(value):
        return "numeric"
    if parse_date(value) is not None:
        return "date"
    return "text"
