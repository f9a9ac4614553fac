"""Tests for output workbook writing and formatting contracts."""

from __future__ import annotations

from datetime import date, datetime
from io import BytesIO

import pandas as pd
from openpyxl import load_workbook

from expiry_months import OUTPUT_SHEET_NAME
from expiry_months.report import DATE_FMT, write_workbook


def _sheet(data: bytes):  # type: ignore[no-untyped-def]
    wb = load_workbook(BytesIO(data))
    return wb, wb[OUTPUT_SHEET_NAME]


def test_write_workbook_single_named_sheet_with_styled_header() -> None:
    data = write_workbook(["SKU", "Qty"], [{"SKU": "A", "Qty": 3}])

    wb, ws = _sheet(data)

    assert wb.sheetnames == [OUTPUT_SHEET_NAME]
    assert [c.value for c in ws[1]] == ["SKU", "Qty"]
    assert ws.cell(row=1, column=1).font.bold is True
    assert ws.freeze_panes == "A2"
    assert ws.auto_filter.ref == "A1:B2"


def test_write_workbook_preserves_dates_and_applies_date_format() -> None:
    rows = [
        {"made": datetime(2024, 1, 15), "ts": pd.Timestamp("2024-02-01 10:00"), "d": date(2024, 3, 1)}
    ]

    _wb, ws = _sheet(write_workbook(["made", "ts", "d"], rows))

    for col in (1, 2, 3):
        cell = ws.cell(row=2, column=col)
        assert isinstance(cell.value, datetime)
        assert cell.number_format == DATE_FMT
    assert ws.cell(row=2, column=2).value == datetime(2024, 2, 1, 10, 0)


def test_write_workbook_missing_and_none_values_leave_cells_empty() -> None:
    rows = [{"a": None}, {"a": float("nan"), "b": 1}]

    _wb, ws = _sheet(write_workbook(["a", "b"], rows))

    assert ws.cell(row=2, column=1).value is None
    assert ws.cell(row=2, column=2).value is None
    assert ws.cell(row=3, column=1).value is None
    assert ws.cell(row=3, column=2).value == 1


def test_write_workbook_escapes_formula_like_text() -> None:
    rows = [{"note": "=SUM(A1:A2)"}, {"note": "-5 days"}, {"note": "'quoted"}, {"note": "plain"}]

    _wb, ws = _sheet(write_workbook(["note"], rows))

    assert [ws.cell(row=r, column=1).value for r in range(2, 6)] == [
        "'=SUM(A1:A2)",
        "'-5 days",
        "'quoted",
        "plain",
    ]
    assert ws.cell(row=2, column=1).data_type == "s"


def test_write_workbook_escapes_formula_like_header() -> None:
    _wb, ws = _sheet(write_workbook(["=cmd"], [{"=cmd": 1}]))

    assert ws.cell(row=1, column=1).value == "'=cmd"
    assert ws.cell(row=2, column=1).value == 1


def test_write_workbook_applies_column_widths() -> None:
    _wb, ws = _sheet(write_workbook(["a", "b"], [{"a": 1, "b": 2}], [15, 35]))

    assert ws.column_dimensions["A"].width == 15
    assert ws.column_dimensions["B"].width == 35


def test_write_workbook_header_only_has_no_filter() -> None:
    _wb, ws = _sheet(write_workbook(["a"], []))

    assert ws.max_row == 1
    assert ws.auto_filter.ref is None


def test_write_workbook_strips_control_characters() -> None:
    _wb, ws = _sheet(write_workbook(["SKU\x02"], [{"SKU\x02": "A\x01B\x1f"}]))

    assert ws.cell(row=1, column=1).value == "SKU"
    assert ws.cell(row=2, column=1).value == "AB"
