"""Excel output writer — serialises augmented rows into a single-sheet workbook."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date, datetime
from io import BytesIO
from typing import Any

import pandas as pd
from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.worksheet.worksheet import Worksheet

from expiry_months import OUTPUT_SHEET_NAME
from expiry_months.layout import column_letter

# ── Style constants ──────────────────────────────────────────────

HEADER_FONT = Font(name="Calibri", bold=True, size=11, color="FFFFFF")
HEADER_FILL = PatternFill(start_color="2F5496", end_color="2F5496", fill_type="solid")
HEADER_ALIGN = Alignment(horizontal="center", vertical="center", wrap_text=True)

DATE_FMT = "dd.mm.yyyy"

_EXCEL_FORMULA_PREFIXES = ("=", "+", "-", "@")


# ── Helpers ──────────────────────────────────────────────────────


def _style_header(ws: Worksheet, ncols: int) -> None:
    for c in range(1, ncols + 1):
        cell = ws.cell(row=1, column=c)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = HEADER_ALIGN


def _apply_widths(ws: Worksheet, widths: Sequence[int]) -> None:
    for c_idx, width in enumerate(widths):
        ws.column_dimensions[column_letter(c_idx)].width = width


def _excel_value(val: Any) -> Any:
    try:
        if pd.isna(val):
            return None
    except (TypeError, ValueError):
        return val

    if isinstance(val, pd.Timestamp):
        dt = val.to_pydatetime()
        return dt.replace(tzinfo=None) if dt.tzinfo else dt

    if isinstance(val, datetime) and val.tzinfo:
        return val.replace(tzinfo=None)

    if isinstance(val, str):
        # Control characters (legal in .xls text) cannot be stored in .xlsx.
        val = ILLEGAL_CHARACTERS_RE.sub("", val)
        if val.startswith("'"):
            return val
        stripped = val.lstrip()
        if stripped and stripped[0] in _EXCEL_FORMULA_PREFIXES:
            return f"'{val}"

    return val


# ── Public API ───────────────────────────────────────────────────


def write_workbook(
    headers: Sequence[str],
    rows: Sequence[Mapping[str, Any]],
    widths: Sequence[int] | None = None,
    *,
    sheet_name: str = OUTPUT_SHEET_NAME,
) -> bytes:
    """Serialise *rows* under *headers* and return the ``.xlsx`` bytes.

    Values are looked up by header; a key missing from a row leaves the cell
    empty. Date cells get ``DATE_FMT``.
    """
    wb = Workbook()
    ws = wb.active
    if ws is None:
        ws = wb.create_sheet()
    ws.title = sheet_name

    for c_idx, header in enumerate(headers, 1):
        ws.cell(row=1, column=c_idx, value=_excel_value(header))
    for r_idx, row in enumerate(rows, 2):
        for c_idx, header in enumerate(headers, 1):
            value = _excel_value(row.get(header))
            cell = ws.cell(row=r_idx, column=c_idx, value=value)
            if isinstance(value, (datetime, date)):
                cell.number_format = DATE_FMT

    if headers:
        _style_header(ws, len(headers))
        ws.freeze_panes = "A2"
        if rows:
            ws.auto_filter.ref = ws.dimensions
    if widths:
        _apply_widths(ws, widths)

    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()
