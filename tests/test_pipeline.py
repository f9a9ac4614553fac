"""Tests for row transformation and whole-file analysis/processing."""

from __future__ import annotations

import logging
from datetime import date, datetime
from io import BytesIO

import pytest
from openpyxl import load_workbook

from expiry_months import COMPUTED_COLUMNS, OUTPUT_SHEET_NAME, REQUIRED_COLUMNS
from expiry_months import pipeline as pipeline_mod
from expiry_months.errors import (
    DuplicateHeaderError,
    EmptyInputError,
    MissingRequiredColumnsError,
    UnreadableSourceError,
)
from expiry_months.models import DataRow, SheetGrid
from expiry_months.pipeline import (
    analyze_file,
    analyze_workbook,
    missing_required_columns,
    process_workbook,
    transform_rows,
)
from expiry_months.report import DATE_FMT

MANUFACTURE, EXPIRY = REQUIRED_COLUMNS
TOTAL, REMAINING = COMPUTED_COLUMNS
HEADERS = ["SKU", MANUFACTURE, EXPIRY]


def _rows(*values: list[object]) -> list[DataRow]:
    return [DataRow.from_values(HEADERS, list(v)) for v in values]


def _read_output(data: bytes) -> list[list[object]]:
    wb = load_workbook(BytesIO(data))
    ws = wb[OUTPUT_SHEET_NAME]
    return [list(row) for row in ws.iter_rows(values_only=True)]


# ── transform_rows ──────────────────────────────────────────────


def test_missing_required_columns_keeps_required_order() -> None:
    assert missing_required_columns(["SKU"]) == [MANUFACTURE, EXPIRY]
    assert missing_required_columns(["SKU", EXPIRY]) == [MANUFACTURE]
    assert missing_required_columns(HEADERS) == []


def test_transform_appends_computed_columns_in_order() -> None:
    rows = _rows(["A-1", "15.01.2024", "10.03.2025"])

    result = transform_rows(rows, today=date(2024, 7, 1))

    out = result.rows[0]
    assert list(out) == [*HEADERS, TOTAL, REMAINING]
    assert out[TOTAL] == 13
    assert out[REMAINING] == 8
    assert out["SKU"] == "A-1"
    assert result.date_warnings == 0


def test_transform_does_not_mutate_input_rows() -> None:
    rows = _rows(["A-1", "01.01.2024", "01.01.2025"])

    transform_rows(rows, today=date(2024, 7, 1))

    assert list(rows[0]) == HEADERS


def test_transform_missing_header_raises_before_producing_rows() -> None:
    rows = [DataRow.from_values(["SKU", MANUFACTURE], ["A-1", "01.01.2024"])]

    with pytest.raises(MissingRequiredColumnsError) as exc_info:
        transform_rows(rows, today=date(2024, 7, 1))

    assert exc_info.value.missing == [EXPIRY]
    assert EXPIRY in str(exc_info.value)
    assert MANUFACTURE not in str(exc_info.value)


def test_transform_empty_rows_is_empty_input() -> None:
    with pytest.raises(EmptyInputError):
        transform_rows([], today=date(2024, 7, 1))


def test_transform_unparseable_date_yields_none_and_warns(
    caplog: pytest.LogCaptureFixture,
) -> None:
    rows = _rows(["A-1", "garbage", "01.01.2025"], ["B-2", None, None])

    with caplog.at_level(logging.WARNING, logger="expiry_months"):
        result = transform_rows(rows, today=date(2024, 7, 1))

    assert result.rows[0][TOTAL] is None
    assert result.rows[0][REMAINING] == 6
    assert result.rows[1][TOTAL] is None
    assert result.rows[1][REMAINING] is None
    # Empty cells are absent values, not parse failures.
    assert result.date_warnings == 1
    assert "garbage" in caplog.text


def test_transform_expired_item_has_negative_remaining() -> None:
    rows = _rows(["A-1", "01.01.2023", "01.03.2024"])

    result = transform_rows(rows, today=date(2024, 7, 1))

    assert result.rows[0][REMAINING] == -4


def test_transform_samples_today_once(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = {"count": 0}

    class _FakeDate:
        @staticmethod
        def today() -> date:
            calls["count"] += 1
            return date(2024, 7, 1)

    monkeypatch.setattr(pipeline_mod, "date", _FakeDate)
    rows = _rows(
        ["A", "01.01.2024", "01.01.2025"],
        ["B", "01.01.2024", "01.02.2025"],
        ["C", "01.01.2024", "01.03.2025"],
    )

    result = transform_rows(rows)

    assert calls["count"] == 1
    assert [row[REMAINING] for row in result.rows] == [6, 7, 8]


def test_transform_mixed_date_representations() -> None:
    rows = _rows(
        ["A", datetime(2023, 1, 15, 9, 0), 45667],
        ["B", "2024-02-01", "01/08/2024"],
    )

    result = transform_rows(rows, today=date(2024, 7, 1))

    # 45667 is 2025-01-10.
    assert result.rows[0][TOTAL] == 23
    assert result.rows[1][TOTAL] == 6


# ── analyze_workbook / analyze_file ─────────────────────────────


def test_analyze_workbook_reports_layout() -> None:
    grid = SheetGrid.from_rows(
        [
            ["SKU", "Наименование", MANUFACTURE, EXPIRY],
            ["A-1", "Молоко", "01.01.2024", "01.01.2025"],
            ["B-2", "Сыр", "01.02.2024", "01.02.2025"],
        ]
    )

    analysis = analyze_workbook("stock.xlsx", grid)

    assert analysis.is_valid
    assert analysis.total_columns == 4
    assert analysis.total_data_rows == 2
    assert analysis.existing_headers == ["SKU", "Наименование", MANUFACTURE, EXPIRY]
    assert analysis.last_filled_column_label == EXPIRY
    assert analysis.sheet_ref == "A1:D3"
    assert [(c.name, c.position, c.letter) for c in analysis.planned_new_columns] == [
        (TOTAL, 5, "E"),
        (REMAINING, 6, "F"),
    ]


def test_analyze_workbook_reports_missing_columns() -> None:
    grid = SheetGrid.from_rows([["SKU", MANUFACTURE], ["A-1", "01.01.2024"]])

    analysis = analyze_workbook("stock.xlsx", grid)

    assert not analysis.is_valid
    assert analysis.missing_required_columns == [EXPIRY]


def test_analyze_workbook_flags_header_colliding_with_computed_column() -> None:
    grid = SheetGrid.from_rows(
        [[MANUFACTURE, EXPIRY, REMAINING], ["01.01.2024", "01.01.2025", 3]]
    )

    analysis = analyze_workbook("again.xlsx", grid)

    assert analysis.duplicate_headers == [REMAINING]
    assert not analysis.is_valid


def test_analyze_workbook_header_only_sheet_is_empty_input() -> None:
    grid = SheetGrid.from_rows([HEADERS])

    with pytest.raises(EmptyInputError):
        analyze_workbook("headers.xlsx", grid)


def test_analyze_file_captures_unreadable_bytes() -> None:
    analysis = analyze_file("broken.xlsx", b"not a zip")

    assert not analysis.is_valid
    assert analysis.error is not None
    assert "broken.xlsx" in analysis.error


def test_analyze_file_captures_empty_workbook(xlsx_bytes) -> None:  # type: ignore[no-untyped-def]
    analysis = analyze_file("empty.xlsx", xlsx_bytes([]))

    assert analysis.error == "File is empty or contains no data rows"


# ── process_workbook ────────────────────────────────────────────


def test_process_workbook_end_to_end(xlsx_bytes) -> None:  # type: ignore[no-untyped-def]
    data = xlsx_bytes(
        [
            HEADERS,
            ["A-1", "01.01.2024", "01.01.2025"],
            ["B-2", "soon", "01.06.2025"],
        ]
    )

    processed = process_workbook("stock.xlsx", data, today=date(2024, 7, 1))

    assert processed.name == "processed_stock.xlsx"
    assert processed.original_name == "stock.xlsx"
    assert processed.rows == 2
    assert processed.date_warnings == 1
    table = _read_output(processed.data)
    assert table[0] == [*HEADERS, TOTAL, REMAINING]
    assert table[1] == ["A-1", "01.01.2024", "01.01.2025", 12, 6]
    assert table[2] == ["B-2", "soon", "01.06.2025", None, 11]


def test_process_workbook_keeps_native_dates_and_widths(xlsx_bytes) -> None:  # type: ignore[no-untyped-def]
    data = xlsx_bytes(
        [
            ["Наименование", MANUFACTURE, EXPIRY],
            ["Молоко", datetime(2023, 1, 15), datetime(2025, 1, 10)],
        ]
    )

    processed = process_workbook("dates.xlsx", data, today=date(2024, 7, 1))

    wb = load_workbook(BytesIO(processed.data))
    ws = wb[OUTPUT_SHEET_NAME]
    assert ws.cell(row=2, column=2).value == datetime(2023, 1, 15)
    assert ws.cell(row=2, column=2).number_format == DATE_FMT
    assert ws.cell(row=2, column=4).value == 23
    assert ws.cell(row=2, column=5).value == 6
    assert ws.column_dimensions["A"].width == 35
    assert ws.column_dimensions["B"].width == 20


def test_process_workbook_missing_column_fails_whole_file(xlsx_bytes) -> None:  # type: ignore[no-untyped-def]
    data = xlsx_bytes([["SKU", MANUFACTURE], ["A-1", "01.01.2024"]])

    with pytest.raises(MissingRequiredColumnsError, match=EXPIRY):
        process_workbook("stock.xlsx", data, today=date(2024, 7, 1))


def test_process_workbook_duplicate_headers_rejected(xlsx_bytes) -> None:  # type: ignore[no-untyped-def]
    data = xlsx_bytes([["SKU", "SKU", MANUFACTURE, EXPIRY], ["a", "b", "01.01.2024", "01.01.2025"]])

    with pytest.raises(DuplicateHeaderError, match="SKU"):
        process_workbook("dup.xlsx", data, today=date(2024, 7, 1))


def test_process_workbook_empty_and_unreadable(xlsx_bytes) -> None:  # type: ignore[no-untyped-def]
    with pytest.raises(EmptyInputError):
        process_workbook("empty.xlsx", xlsx_bytes([]), today=date(2024, 7, 1))

    with pytest.raises(UnreadableSourceError):
        process_workbook("broken.xlsx", b"\x00\x01", today=date(2024, 7, 1))
