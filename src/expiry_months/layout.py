"""Output layout — placement of computed columns and display widths."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from openpyxl.utils import get_column_letter

from expiry_months.models import PlannedColumn
from expiry_months.structure import display_text

# ── Width heuristics ────────────────────────────────────────────

BASE_WIDTH = 15
ITEM_NAME_WIDTH = 35
DATE_WIDTH = 20
MONTH_WIDTH = 18
MAX_CONTENT_WIDTH = 50
WIDTH_PADDING = 2
WIDTH_SAMPLE_ROWS = 100

# Matched case-insensitively.
ITEM_NAME_MARKERS = ("наименование", "название", "товар", "продукт")
# Matched as written.
DATE_MARKERS = ("Дата", "Срок")
MONTH_MARKERS = ("месяц", "Осталось")


def column_letter(index: int) -> str:
    """Spreadsheet letter for a 0-based column index (``0 -> "A"``).

    Negative indexes have no letter and return ``""``.
    """
    if index < 0:
        return ""
    return get_column_letter(index + 1)


def plan_insertions(
    last_filled_column: int, computed_columns: Sequence[str]
) -> list[PlannedColumn]:
    """Place *computed_columns* right after the last filled column, in order."""
    first = last_filled_column + 1
    planned: list[PlannedColumn] = []
    for offset, name in enumerate(computed_columns):
        index = first + offset
        planned.append(
            PlannedColumn(name=name, index=index, position=index + 1, letter=column_letter(index))
        )
    return planned


def _width_floor(header: str) -> int:
    lowered = header.lower()
    if any(marker in lowered for marker in ITEM_NAME_MARKERS):
        return ITEM_NAME_WIDTH
    if any(marker in header for marker in DATE_MARKERS):
        return DATE_WIDTH
    if any(marker in header for marker in MONTH_MARKERS):
        return MONTH_WIDTH
    return BASE_WIDTH


def plan_widths(headers: Sequence[str], rows: Sequence[Mapping[str, Any]]) -> list[int]:
    """Return one display width per header.

    Content length is sampled from the first ``WIDTH_SAMPLE_ROWS`` rows and
    capped at ``MAX_CONTENT_WIDTH``; the header's floor always wins.
    """
    sample = rows[:WIDTH_SAMPLE_ROWS]
    widths: list[int] = []
    for header in headers:
        longest = len(header)
        for row in sample:
            longest = max(longest, len(display_text(row.get(header))))
        widths.append(max(_width_floor(header), min(longest + WIDTH_PADDING, MAX_CONTENT_WIDTH)))
    return widths
