"""Worksheet structure analysis — populated extent, headers and rows.

The grid is scanned cell by cell instead of trusting the extent advertised
by the decoder, which can be wider than the populated area or hide sparse
header rows.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence
from datetime import datetime, time
from typing import Any

from expiry_months.models import CellKind, CellValue, DataRow, SheetGrid, SheetRange, SheetStructure

logger = logging.getLogger(__name__)

PLACEHOLDER_HEADER = "Column_{position}"


def display_text(value: Any) -> str:
    """Render a cell value the way it reads in a sheet."""
    cell = CellValue.of(value)
    if cell.kind is CellKind.EMPTY:
        return ""
    raw = cell.value
    if cell.kind is CellKind.NUMBER:
        if isinstance(raw, float) and raw.is_integer():
            return str(int(raw))
        return str(raw)
    if cell.kind is CellKind.DATE:
        if isinstance(raw, datetime):
            if raw.time() == time(0, 0):
                return raw.date().isoformat()
            return raw.isoformat(sep=" ")
        return raw.isoformat()
    return str(raw)


def _within(extent: SheetRange | None, row: int, col: int) -> bool:
    if extent is None:
        return True
    return (
        extent.start_row <= row <= extent.end_row
        and extent.start_col <= col <= extent.end_col
    )


# ── Analysis ────────────────────────────────────────────────────


def analyze_sheet(grid: SheetGrid) -> SheetStructure:
    """Find the populated rectangle, last filled column and populated row count.

    Only cells inside the advertised extent are considered. An empty sheet
    yields a structure with ``range=None`` and ``last_filled_column=-1``.
    """
    min_row: int | None = None
    min_col: int | None = None
    max_row = -1
    max_col = -1
    populated: set[int] = set()

    for (row, col), value in grid.cells.items():
        if value.is_empty or not _within(grid.extent, row, col):
            continue
        populated.add(row)
        min_row = row if min_row is None else min(min_row, row)
        min_col = col if min_col is None else min(min_col, col)
        max_row = max(max_row, row)
        max_col = max(max_col, col)

    if min_row is None or min_col is None:
        logger.debug("No populated cell inside extent %s", grid.extent)
        return SheetStructure(range=None)

    sheet_range = SheetRange(min_row, min_col, max_row, max_col)
    if grid.extent is not None and grid.extent != sheet_range:
        logger.debug(
            "Advertised extent %s narrowed to populated range %s",
            grid.extent.ref,
            sheet_range.ref,
        )
    return SheetStructure(
        range=sheet_range,
        last_filled_column=max_col,
        populated_rows=len(populated),
    )


# ── Headers ─────────────────────────────────────────────────────


def extract_headers(grid: SheetGrid, sheet_range: SheetRange) -> list[str]:
    """Read the header row of *sheet_range*, one name per column.

    Empty header cells get a ``Column_<n>`` placeholder (1-based column
    position) so the columns keep their slots.
    """
    headers: list[str] = []
    for col in range(sheet_range.start_col, sheet_range.end_col + 1):
        text = display_text(grid.cell(sheet_range.start_row, col)).strip()
        headers.append(text or PLACEHOLDER_HEADER.format(position=col + 1))
    return headers


def find_duplicate_headers(headers: Sequence[str]) -> list[str]:
    counts = Counter(headers)
    return sorted(name for name, count in counts.items() if count > 1)


# ── Rows ────────────────────────────────────────────────────────


def extract_rows(
    grid: SheetGrid, sheet_range: SheetRange, headers: Sequence[str]
) -> list[DataRow]:
    """Return one :class:`DataRow` per populated row below the header row."""
    if len(headers) != sheet_range.width:
        raise ValueError(
            f"Expected {sheet_range.width} headers for {sheet_range.ref}, got {len(headers)}"
        )

    columns = range(sheet_range.start_col, sheet_range.end_col + 1)
    rows: list[DataRow] = []
    for row in range(sheet_range.start_row + 1, sheet_range.end_row + 1):
        cells = [grid.cell(row, col) for col in columns]
        if all(cell.is_empty for cell in cells):
            continue
        rows.append(DataRow.from_values(headers, [cell.value for cell in cells]))
    return rows
