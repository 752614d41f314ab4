"""
tests/test_csv_structure_analyzer.py

Pytest unit tests for CsvStructureAnalyzer and CsvAnalysisService.

Files are written to tmp_path; no database is involved.
"""

from __future__ import annotations

import uuid

import pytest

from app.domain.csv_analysis import ColumnDataType
from app.domain.errors import BadRequestError, NotFoundError
from app.services.csv_structure_analyzer import CsvStructureAnalyzer


# ---------------------------------------------------------------------------
# Delimiter and header detection
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("content", "expected_delimiter", "expected_headers"),
    [
        ("a,b,c\n1,2,3\n4,5,6\n", ",", ("a", "b", "c")),
        ("name;value\nx;1,5\ny;2\n", ";", ("name", "value")),
        ("city\tpopulation\nVienna\t1900000\nGraz\t290000\n", "\t", ("city", "population")),
        ("region|score\nnorth|1\nsouth|2\n", "|", ("region", "score")),
    ],
)
def test_detects_delimiter(analyzer, write_csv, content, expected_delimiter, expected_headers) -> None:
    analysis = analyzer.analyze(write_csv("sample.csv", content), job_id=uuid.uuid4())

    assert analysis.delimiter == expected_delimiter
    assert analysis.has_header is True
    assert analysis.headers == expected_headers
    assert analysis.row_count == 2


def test_single_column_defaults_to_comma(analyzer, write_csv) -> None:
    analysis = analyzer.analyze(write_csv("single.csv", "value\n1\n2\n"), job_id=uuid.uuid4())

    assert analysis.delimiter == ","
    assert analysis.column_count == 1
    assert analysis.headers == ("value",)


def test_numeric_first_row_is_data(analyzer, write_csv) -> None:
    analysis = analyzer.analyze(write_csv("noheader.csv", "1,2\n3,4\n"), job_id=uuid.uuid4())

    assert analysis.has_header is False
    assert analysis.headers == ("Column_1", "Column_2")
    assert analysis.row_count == 2


def test_year_labels_count_as_header(analyzer, write_csv) -> None:
    analysis = analyzer.analyze(
        write_csv("wide.csv", "Country,2020,2021\nUSA,1,2\nCanada,3,4\n"),
        job_id=uuid.uuid4(),
    )

    assert analysis.has_header is True
    assert analysis.headers == ("Country", "2020", "2021")


def test_year_column_over_years_is_data(analyzer) -> None:
    assert analyzer.detect_header(["2020", "5"], ["2021", "6"]) is False


def test_text_only_file_has_no_header(analyzer) -> None:
    assert analyzer.detect_header(["alpha", "beta"], ["gamma", "delta"]) is False


def test_single_row_of_labels_is_header(analyzer) -> None:
    assert analyzer.detect_header(["Country", "Value"], None) is True


def test_labels_over_mixed_row_are_header(analyzer, write_csv) -> None:
    analysis = analyzer.analyze(write_csv("people.csv", "Name,Age,City\nJohn,25,New York\n"), job_id=uuid.uuid4())

    assert analysis.has_header is True
    assert analysis.headers == ("Name", "Age", "City")
    assert analysis.row_count == 1


def test_mixed_first_row_without_labels_is_data(analyzer, write_csv) -> None:
    analysis = analyzer.analyze(
        write_csv("people.csv", "John,25,New York\nJane,30,London\n"),
        job_id=uuid.uuid4(),
    )

    assert analysis.has_header is False
    assert analysis.headers == ("Column_1", "Column_2", "Column_3")
    assert analysis.row_count == 2


def test_blank_header_cells_get_positional_names(analyzer, write_csv) -> None:
    analysis = analyzer.analyze(write_csv("blank.csv", "Country,,Value\nUSA,x,1\n"), job_id=uuid.uuid4())

    assert analysis.headers == ("Country", "Column_2", "Value")


def test_overlong_header_is_rejected(analyzer, write_csv) -> None:
    header = "H" * 256

    with pytest.raises(BadRequestError, match="Header of column 2 has 256 characters"):
        analyzer.analyze(write_csv("long.csv", f"Country,{header}\nUSA,1\n"), job_id=uuid.uuid4())


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def test_utf8_bom_is_detected(analyzer, write_csv) -> None:
    analysis = analyzer.analyze(write_csv("bom.csv", b"\xef\xbb\xbfa,b\n1,2\n"), job_id=uuid.uuid4())

    assert analysis.encoding == "utf-8-sig"
    assert analysis.headers == ("a", "b")


def test_plain_utf8(analyzer, write_csv) -> None:
    analysis = analyzer.analyze(write_csv("utf8.csv", "Stadt,Wert\nZürich,1\n"), job_id=uuid.uuid4())

    assert analysis.encoding == "utf-8"


def test_non_utf8_bytes_fall_back_to_detection(analyzer, write_csv) -> None:
    content = "Stadt,Wert\nWien,1\nZürich,2\nMünchen,3\n".encode("latin-1")
    analysis = analyzer.analyze(write_csv("latin.csv", content), job_id=uuid.uuid4())

    assert analysis.encoding not in {"utf-8", "utf-8-sig"}
    assert analysis.headers == ("Stadt", "Wert")
    assert analysis.row_count == 3


def test_non_utf8_byte_past_sample_window_is_redetected(write_csv) -> None:
    analyzer = CsvStructureAnalyzer(encoding_sample_bytes=1024)
    content = b"Country,Indicator,Value\n" + b"Austria,GDP,5\n" * 500 + b"\xd6sterreich,GDP,5\n"
    analysis = analyzer.analyze(write_csv("late.csv", content), job_id=uuid.uuid4())

    assert analysis.encoding not in {"utf-8", "utf-8-sig"}
    assert analysis.row_count == 501

    last_row_number, last_cells = list(analyzer.iter_rows(analysis))[-1]
    assert last_row_number == 501
    assert last_cells[0].endswith("terreich")
    assert last_cells[1:] == ["GDP", "5"]


# ---------------------------------------------------------------------------
# Column statistics and limits
# ---------------------------------------------------------------------------


def test_column_statistics(analyzer, write_csv) -> None:
    analysis = analyzer.analyze(
        write_csv("stats.csv", "name,value\nx,1\ny,NA\nz,\nx,4\n"),
        job_id=uuid.uuid4(),
    )

    name, value = analysis.columns
    assert name.data_type == ColumnDataType.TEXT
    assert name.unique_count == 3
    assert name.value_count == 4
    assert value.data_type == ColumnDataType.NUMERIC
    assert value.null_count == 1
    assert value.empty_count == 1
    assert value.sample_values == ("1", "4")


def test_statistics_use_preview_window_only(write_csv) -> None:
    analyzer = CsvStructureAnalyzer(preview_row_limit=2)
    rows = "".join(f"r{index},{index}\n" for index in range(10))
    analysis = analyzer.analyze(write_csv("long.csv", "key,value\n" + rows), job_id=uuid.uuid4())

    assert analysis.row_count == 10
    assert analysis.columns[0].value_count == 2


def test_too_many_columns_is_rejected(write_csv) -> None:
    analyzer = CsvStructureAnalyzer(max_columns=3)

    with pytest.raises(BadRequestError):
        analyzer.analyze(write_csv("wide.csv", "a,b,c,d\n1,2,3,4\n"), job_id=uuid.uuid4())


def test_empty_file_is_rejected(analyzer, write_csv) -> None:
    with pytest.raises(BadRequestError):
        analyzer.analyze(write_csv("empty.csv", ""), job_id=uuid.uuid4())


def test_whitespace_only_file_is_rejected(analyzer, write_csv) -> None:
    with pytest.raises(BadRequestError):
        analyzer.analyze(write_csv("blank.csv", "\n\n  \n"), job_id=uuid.uuid4())


def test_missing_file_is_not_found(analyzer, tmp_path) -> None:
    with pytest.raises(NotFoundError):
        analyzer.analyze(tmp_path / "absent.csv", job_id=uuid.uuid4())


# ---------------------------------------------------------------------------
# Row streaming
# ---------------------------------------------------------------------------


def test_iter_rows_numbers_pads_and_skips_blank_rows(analyzer, write_csv) -> None:
    analysis = analyzer.analyze(write_csv("rows.csv", "a,b,c\n1,2\n\n4,5,6\n"), job_id=uuid.uuid4())

    assert list(analyzer.iter_rows(analysis)) == [(1, ["1", "2", ""]), (3, ["4", "5", "6"])]


def test_preview_respects_limit(analyzer, write_csv) -> None:
    analysis = analyzer.analyze(write_csv("rows.csv", "a,b\n1,2\n3,4\n5,6\n"), job_id=uuid.uuid4())

    assert analyzer.preview(analysis, limit=2) == [["1", "2"], ["3", "4"]]


# ---------------------------------------------------------------------------
# CsvAnalysisService caching
# ---------------------------------------------------------------------------


def test_analysis_is_cached_until_file_changes(analysis_service, storage, repository, job_id) -> None:
    storage.save(job_id=job_id, file_name="data.csv", content=b"a,b\n1,2\n")

    first = analysis_service.analyze_file(repository=repository, job_id=job_id, filename="data.csv")
    second = analysis_service.analyze_file(repository=repository, job_id=job_id, filename="data.csv")
    assert second.id == first.id

    storage.save(job_id=job_id, file_name="data.csv", content=b"a,b\n1,2\n3,4\n")
    third = analysis_service.analyze_file(repository=repository, job_id=job_id, filename="data.csv")
    assert third.id != first.id
    assert third.row_count == 2


def test_analyze_all_collects_per_file_failures(analysis_service, storage, repository, job_id) -> None:
    storage.save(job_id=job_id, file_name="good.csv", content=b"a,b\n1,2\n")
    storage.save(job_id=job_id, file_name="empty.csv", content=b"")

    summary = analysis_service.analyze_all(repository=repository, job_id=job_id)

    assert [analysis.filename for analysis in summary.analyses] == ["good.csv"]
    assert [failure.filename for failure in summary.failures] == ["empty.csv"]


def test_analyze_all_without_files_is_not_found(analysis_service, repository, job_id) -> None:
    with pytest.raises(NotFoundError):
        analysis_service.analyze_all(repository=repository, job_id=job_id)


def test_analyze_unknown_file_is_not_found(analysis_service, repository, job_id) -> None:
    with pytest.raises(NotFoundError):
        analysis_service.analyze_file(repository=repository, job_id=job_id, filename="missing.csv")


def test_delete_job_drops_files_and_analyses(analysis_service, storage, repository, job_id) -> None:
    storage.save(job_id=job_id, file_name="data.csv", content=b"a,b\n1,2\n")
    analysis_service.analyze_all(repository=repository, job_id=job_id)

    analysis_service.delete_job(repository=repository, job_id=job_id)

    assert storage.list_files(job_id=job_id) == []
    assert repository.find_analysis(job_id) is None
