"""
app/services/csv_structure_analyzer.py

Structural analysis of CSV files: encoding, delimiter, header presence,
and per-column statistics over a bounded preview window.
"""

from __future__ import annotations

import codecs
import csv
import itertools
import logging
import uuid
from collections import Counter
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import chardet
from chardet.universaldetector import UniversalDetector

from app.domain.csv_analysis import ColumnDataType, CsvAnalysis, CsvColumnStats
from app.domain.errors import BadRequestError, NotFoundError
from app.domain.facts import FieldLimits
from app.validators.cell_values import infer_cell_type, is_null_token, is_year_like, parse_decimal
from db.repositories.storage import file_checksum

logger = logging.getLogger(__name__)

DELIMITER_CANDIDATES: tuple[str, ...] = (",", ";", "\t", "|")
DEFAULT_DELIMITER = ","
FALLBACK_ENCODING = "windows-1252"
_DOMINANT_TYPE_SHARE = 0.8


@dataclass
class _ColumnAccumulator:
    column_index: int
    header: str
    sample_limit: int
    null_count: int = 0
    empty_count: int = 0
    distinct: set[str] = field(default_factory=set)
    samples: list[str] = field(default_factory=list)
    type_counts: Counter[str] = field(default_factory=Counter)

    def add(self, cell: str) -> None:
        if not cell:
            self.empty_count += 1
            return
        if is_null_token(cell):
            self.null_count += 1
            return
        if cell not in self.distinct:
            self.distinct.add(cell)
            if len(self.samples) < self.sample_limit:
                self.samples.append(cell)
        self.type_counts[infer_cell_type(cell)] += 1

    def to_stats(self) -> CsvColumnStats:
        return CsvColumnStats(
            column_index=self.column_index,
            header=self.header,
            data_type=self._dominant_type(),
            sample_values=tuple(self.samples),
            null_count=self.null_count,
            empty_count=self.empty_count,
            unique_count=len(self.distinct),
            value_count=sum(self.type_counts.values()),
        )

    def _dominant_type(self) -> str:
        total = sum(self.type_counts.values())
        if total == 0:
            return ColumnDataType.TEXT
        for data_type in (ColumnDataType.NUMERIC, ColumnDataType.DATE):
            if self.type_counts[data_type] / total >= _DOMINANT_TYPE_SHARE:
                return data_type
        return ColumnDataType.TEXT


class CsvStructureAnalyzer:
    """
    Detects file structure and computes column statistics.

    Only the first ``preview_row_limit`` data rows feed the statistics; the
    remaining rows are streamed once to count them.
    """

    def __init__(
        self,
        *,
        preview_row_limit: int = 100,
        max_columns: int = 50,
        sample_value_limit: int = 10,
        delimiter_sample_lines: int = 20,
        encoding_sample_bytes: int = 65536,
    ) -> None:
        self._preview_row_limit = max(1, preview_row_limit)
        self._max_columns = max(1, max_columns)
        self._sample_value_limit = max(1, sample_value_limit)
        self._delimiter_sample_lines = max(1, delimiter_sample_lines)
        self._encoding_sample_bytes = max(1024, encoding_sample_bytes)

    def analyze(
        self,
        file_path: str | Path,
        *,
        job_id: uuid.UUID,
        filename: str | None = None,
    ) -> CsvAnalysis:
        path = Path(file_path)
        if not path.is_file():
            raise NotFoundError(f"CSV file not found: {path.name}")

        try:
            with path.open("rb") as handle:
                sample = handle.read(self._encoding_sample_bytes)
            checksum = file_checksum(path)
        except OSError as exc:
            raise BadRequestError(f"Unable to read CSV file: {path.name}", cause=exc) from exc

        if not sample.strip():
            raise BadRequestError(f"CSV file is empty: {path.name}")

        encoding = self.detect_encoding(sample)
        try:
            analysis = self._analyze_file(path, encoding, job_id=job_id, filename=filename, checksum=checksum)
        except UnicodeDecodeError as exc:
            analysis = None
            for candidate in self._fallback_encodings(path, failed=encoding):
                logger.warning(
                    "CSV file=%s is not valid %s past the sample window, retrying as %s",
                    path.name,
                    encoding,
                    candidate,
                )
                try:
                    analysis = self._analyze_file(
                        path, candidate, job_id=job_id, filename=filename, checksum=checksum
                    )
                    break
                except UnicodeDecodeError:
                    continue
            if analysis is None:
                raise BadRequestError(f"CSV file is not valid {encoding} text.", cause=exc) from exc

        logger.info(
            "Analyzed CSV job_id=%s file=%s delimiter=%r encoding=%s has_header=%s rows=%s columns=%s",
            job_id,
            analysis.filename,
            analysis.delimiter,
            analysis.encoding,
            analysis.has_header,
            analysis.row_count,
            analysis.column_count,
        )
        return analysis

    def detect_encoding(self, sample: bytes) -> str:
        """
        Default to UTF-8; fall back to chardet only when the bytes are not UTF-8.
        """

        if sample.startswith(codecs.BOM_UTF8):
            return "utf-8-sig"
        if sample.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
            return "utf-16"
        try:
            # final=False tolerates a multi-byte sequence cut at the sample edge.
            codecs.getincrementaldecoder("utf-8")().decode(sample, final=False)
            return "utf-8"
        except UnicodeDecodeError:
            pass

        detected = chardet.detect(sample)
        encoding = (detected.get("encoding") or "").lower()
        if not encoding or encoding == "ascii":
            return FALLBACK_ENCODING
        try:
            codecs.lookup(encoding)
        except LookupError:
            logger.warning("Unknown detected encoding=%s, using %s", encoding, FALLBACK_ENCODING)
            return FALLBACK_ENCODING
        return encoding

    def _analyze_file(
        self,
        path: Path,
        encoding: str,
        *,
        job_id: uuid.UUID,
        filename: str | None,
        checksum: str,
    ) -> CsvAnalysis:
        try:
            with path.open("r", encoding=encoding, newline="") as handle:
                sample_lines = list(itertools.islice(handle, self._delimiter_sample_lines))
                delimiter = self.detect_delimiter(sample_lines)
                handle.seek(0)
                return self._analyze_stream(
                    handle,
                    job_id=job_id,
                    filename=filename or path.name,
                    file_path=str(path),
                    delimiter=delimiter,
                    encoding=encoding,
                    checksum=checksum,
                )
        except csv.Error as exc:
            raise BadRequestError(f"Invalid CSV format: {exc}", cause=exc) from exc
        except OSError as exc:
            raise BadRequestError(f"Unable to read CSV file: {path.name}", cause=exc) from exc

    def _fallback_encodings(self, path: Path, *, failed: str) -> list[str]:
        """
        Encodings to retry when the sampled guess fails later in the file:
        chardet over the whole file, then ``FALLBACK_ENCODING``.
        """

        detector = UniversalDetector()
        try:
            with path.open("rb") as handle:
                for chunk in iter(lambda: handle.read(self._encoding_sample_bytes), b""):
                    detector.feed(chunk)
                    if detector.done:
                        break
        except OSError as exc:
            raise BadRequestError(f"Unable to read CSV file: {path.name}", cause=exc) from exc
        detector.close()

        candidates: list[str] = []
        detected = (detector.result.get("encoding") or "").lower()
        if detected and detected != "ascii":
            try:
                codecs.lookup(detected)
                candidates.append(detected)
            except LookupError:
                logger.warning("Unknown detected encoding=%s", detected)
        candidates.append(FALLBACK_ENCODING)

        seen = {codecs.lookup(failed).name}
        unique: list[str] = []
        for candidate in candidates:
            name = codecs.lookup(candidate).name
            if name not in seen:
                seen.add(name)
                unique.append(candidate)
        return unique

    def detect_delimiter(self, lines: Sequence[str]) -> str:
        """
        Pick the candidate giving the most consistent, then widest, field count.
        """

        sample = [line.rstrip("\r\n") for line in lines if line.strip()][: self._delimiter_sample_lines]
        if not sample:
            return DEFAULT_DELIMITER

        best_delimiter = DEFAULT_DELIMITER
        best_score: tuple[float, int] | None = None
        for candidate in DELIMITER_CANDIDATES:
            counts = [len(row) for row in csv.reader(sample, delimiter=candidate)]
            modal_count = Counter(counts).most_common(1)[0][0]
            if modal_count <= 1:
                continue
            consistency = counts.count(modal_count) / len(counts)
            score = (consistency, modal_count)
            if best_score is None or score > best_score:
                best_delimiter = candidate
                best_score = score
        return best_delimiter

    def detect_header(self, first_row: Sequence[str], second_row: Sequence[str] | None) -> bool:
        """
        A header holds labels only and at least one column turns numeric below it.

        Year labels such as ``2020`` count as labels when the cell below them
        is not itself a year.
        """

        cells = [cell.strip() for cell in first_row]
        if not any(cells):
            return False
        below = [cell.strip() for cell in second_row] if second_row is not None else []

        switches_to_number = False
        for index, cell in enumerate(cells):
            below_cell = below[index] if index < len(below) else ""
            if cell and parse_decimal(cell) is not None:
                if not is_year_like(cell) or is_year_like(below_cell):
                    return False
            if below_cell and parse_decimal(below_cell) is not None:
                switches_to_number = True

        if second_row is None:
            return True
        return switches_to_number

    def iter_rows(self, analysis: CsvAnalysis) -> Iterator[tuple[int, list[str]]]:
        """
        Stream data rows in file order as (row_number, cells).

        Row numbers are 1-based data row positions; blank rows are skipped
        but still consume a number. Cells are stripped and padded to the
        analyzed column count.
        """

        path = Path(analysis.file_path)
        if not path.is_file():
            raise BadRequestError("CSV file not found")

        try:
            with path.open("r", encoding=analysis.encoding, newline="") as handle:
                reader = csv.reader(handle, delimiter=analysis.delimiter)
                if analysis.has_header:
                    next(_non_blank_rows(reader), None)
                for row_number, row in enumerate(reader, start=1):
                    if not any(cell.strip() for cell in row):
                        continue
                    yield row_number, _normalize_row(row, analysis.column_count)
        except UnicodeDecodeError as exc:
            raise BadRequestError(f"CSV file is not valid {analysis.encoding} text.", cause=exc) from exc
        except csv.Error as exc:
            raise BadRequestError(f"Invalid CSV format: {exc}", cause=exc) from exc
        except OSError as exc:
            raise BadRequestError("Unable to read CSV file.", cause=exc) from exc

    def preview(self, analysis: CsvAnalysis, *, limit: int | None = None) -> list[list[str]]:
        row_limit = self._preview_row_limit if limit is None else max(0, limit)
        return [cells for _, cells in itertools.islice(self.iter_rows(analysis), row_limit)]

    def _analyze_stream(
        self,
        handle: Iterator[str],
        *,
        job_id: uuid.UUID,
        filename: str,
        file_path: str,
        delimiter: str,
        encoding: str,
        checksum: str,
    ) -> CsvAnalysis:
        rows = _non_blank_rows(csv.reader(handle, delimiter=delimiter))
        first_row = next(rows, None)
        if first_row is None:
            raise BadRequestError(f"CSV file has no rows: {filename}")
        second_row = next(rows, None)

        has_header = self.detect_header(first_row, second_row)
        column_count = len(first_row)
        if not has_header and second_row is not None:
            column_count = max(column_count, len(second_row))
        if column_count > self._max_columns:
            raise BadRequestError(
                f"CSV has {column_count} columns; at most {self._max_columns} are supported."
            )

        headers = self._build_headers(first_row if has_header else None, column_count)
        accumulators = [
            _ColumnAccumulator(column_index=index, header=header, sample_limit=self._sample_value_limit)
            for index, header in enumerate(headers)
        ]

        leading_rows: list[list[str]] = [] if has_header else [first_row]
        if second_row is not None:
            leading_rows.append(second_row)

        row_count = 0
        for row in itertools.chain(leading_rows, rows):
            if row_count < self._preview_row_limit:
                for accumulator, cell in zip(accumulators, _normalize_row(row, column_count)):
                    accumulator.add(cell)
            row_count += 1

        return CsvAnalysis(
            job_id=job_id,
            filename=filename,
            file_path=file_path,
            delimiter=delimiter,
            encoding=encoding,
            has_header=has_header,
            headers=tuple(headers),
            row_count=row_count,
            column_count=column_count,
            columns=tuple(accumulator.to_stats() for accumulator in accumulators),
            file_checksum=checksum,
        )

    def _build_headers(self, header_row: Sequence[str] | None, column_count: int) -> list[str]:
        if header_row is None:
            return [f"Column_{index + 1}" for index in range(column_count)]
        headers: list[str] = []
        for index in range(column_count):
            name = header_row[index].strip() if index < len(header_row) else ""
            if len(name) > FieldLimits.COLUMN_HEADER:
                raise BadRequestError(
                    f"Header of column {index + 1} has {len(name)} characters; "
                    f"at most {FieldLimits.COLUMN_HEADER} are supported."
                )
            headers.append(name or f"Column_{index + 1}")
        return headers


def _non_blank_rows(reader: Iterator[list[str]]) -> Iterator[list[str]]:
    for row in reader:
        if any(cell.strip() for cell in row):
            yield row


def _normalize_row(row: Sequence[str], column_count: int) -> list[str]:
    cells = [cell.strip() for cell in row[:column_count]]
    if len(cells) < column_count:
        cells.extend([""] * (column_count - len(cells)))
    return cells
