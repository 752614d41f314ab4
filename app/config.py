"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache

from db.config import load_env_files

DEFAULT_LOCATION_PATTERNS: tuple[str, ...] = (
    "USA",
    "United States",
    "Canada",
    "Mexico",
    "UK",
    "United Kingdom",
    "Germany",
    "France",
    "Spain",
    "Italy",
    "Austria",
    "Switzerland",
    "Netherlands",
    "Belgium",
    "Poland",
    "Sweden",
    "Norway",
    "Denmark",
    "Finland",
    "Portugal",
    "Greece",
    "Ireland",
    "China",
    "Japan",
    "India",
    "Korea",
    "Indonesia",
    "Brazil",
    "Argentina",
    "Chile",
    "Colombia",
    "Australia",
    "New Zealand",
    "Russia",
    "Turkey",
    "South Africa",
    "Nigeria",
    "Egypt",
    "Europe",
    "Asia",
    "Africa",
    "North America",
    "South America",
    "Oceania",
    "World",
    "Vienna",
    "Berlin",
    "London",
    "Paris",
    "Madrid",
    "Rome",
    "New York",
    "Tokyo",
)


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_list_env(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    """
    Read a comma-separated list from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    items = tuple(item.strip() for item in value.split(",") if item.strip())
    return items if items else default


@dataclass(frozen=True)
class CsvAnalysisSettings:
    """
    Runtime settings for CSV structural analysis.
    """

    preview_row_limit: int = 100
    max_columns: int = 50
    sample_value_limit: int = 10
    delimiter_sample_lines: int = 20
    encoding_sample_bytes: int = 65536


@dataclass(frozen=True)
class DimensionClassifierSettings:
    """
    Thresholds and pattern lists driving column classification.
    """

    confidence_threshold: float = 0.7
    time_patterns: tuple[str, ...] = ()
    location_patterns: tuple[str, ...] = field(default=DEFAULT_LOCATION_PATTERNS)


@dataclass(frozen=True)
class DataProcessingSettings:
    """
    Runtime settings for fact processing jobs.
    """

    default_batch_size: int = 1000
    max_errors: int = 1000
    timeout_seconds: float = 3600.0
    max_workers: int = 4
    log_row_errors: bool = True
    max_recorded_errors: int = 500


@dataclass(frozen=True)
class StorageSettings:
    upload_root: str = "data/uploads"


@lru_cache(maxsize=1)
def get_csv_analysis_settings() -> CsvAnalysisSettings:
    """
    Return cached CSV analysis settings from environment variables.
    """

    return CsvAnalysisSettings(
        preview_row_limit=max(1, _get_int_env("CSV_PREVIEW_ROW_LIMIT", 100)),
        max_columns=max(1, _get_int_env("CSV_MAX_COLUMNS", 50)),
        sample_value_limit=max(1, _get_int_env("CSV_SAMPLE_VALUE_LIMIT", 10)),
        delimiter_sample_lines=max(1, _get_int_env("CSV_DELIMITER_SAMPLE_LINES", 20)),
        encoding_sample_bytes=max(1024, _get_int_env("CSV_ENCODING_SAMPLE_BYTES", 65536)),
    )


@lru_cache(maxsize=1)
def get_dimension_classifier_settings() -> DimensionClassifierSettings:
    """
    Return cached classifier settings from environment variables.
    """

    threshold = _get_float_env("DIMENSION_CONFIDENCE_THRESHOLD", 0.7)
    return DimensionClassifierSettings(
        confidence_threshold=max(0.0, min(1.0, threshold)),
        time_patterns=_get_list_env("DIMENSION_TIME_PATTERNS", ()),
        location_patterns=_get_list_env("DIMENSION_LOCATION_PATTERNS", DEFAULT_LOCATION_PATTERNS),
    )


@lru_cache(maxsize=1)
def get_data_processing_settings() -> DataProcessingSettings:
    """
    Return cached processing job settings from environment variables.
    """

    return DataProcessingSettings(
        default_batch_size=max(1, _get_int_env("PROCESSING_BATCH_SIZE", 1000)),
        max_errors=max(0, _get_int_env("PROCESSING_MAX_ERRORS", 1000)),
        timeout_seconds=max(1.0, _get_float_env("PROCESSING_TIMEOUT_SECONDS", 3600.0)),
        max_workers=max(1, _get_int_env("PROCESSING_MAX_WORKERS", 4)),
        log_row_errors=_get_bool_env("PROCESSING_LOG_ROW_ERRORS", True),
        max_recorded_errors=max(1, _get_int_env("PROCESSING_MAX_RECORDED_ERRORS", 500)),
    )


@lru_cache(maxsize=1)
def get_storage_settings() -> StorageSettings:
    return StorageSettings(upload_root=_get_str_env("UPLOAD_ROOT_DIR", "data/uploads"))
