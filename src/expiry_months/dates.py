"""Date normalisation and calendar month arithmetic — pure functions."""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta
from typing import Any

import pandas as pd

from expiry_months.models import CellKind, CellValue

# Spreadsheet serials count 1900-01-01 as day 1 and include the phantom
# 1900-02-29, hence the two-day shift from this epoch.
SERIAL_EPOCH = datetime(1900, 1, 1)
SERIAL_OFFSET_DAYS = 2

_DAY_FIRST_SEPARATORS = (".", "/")
# Each part is read up to its first non-digit, so "2024 10:30" is 2024.
_LEADING_INT_RE = re.compile(r"\s*(\d+)")


# ── Parsing ─────────────────────────────────────────────────────


def _from_serial(serial: float) -> date | None:
    try:
        moment = SERIAL_EPOCH + timedelta(days=float(serial) - SERIAL_OFFSET_DAYS)
    except (OverflowError, ValueError):
        return None
    return moment.date()


def _from_day_first_parts(parts: list[str]) -> date | None:
    matches = [_LEADING_INT_RE.match(part) for part in parts]
    if not all(matches):
        return None
    day, month, year = (int(m.group(1)) for m in matches if m is not None)
    if 0 <= year <= 99:
        year += 1900
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _from_iso(text: str) -> date | None:
    try:
        parsed = pd.to_datetime(text, errors="coerce", format="ISO8601")
    except (ValueError, TypeError, OverflowError):
        return None
    if pd.isna(parsed):
        return None
    return parsed.date()


def _from_text(text: str) -> date | None:
    text = text.strip()
    for sep in _DAY_FIRST_SEPARATORS:
        if sep in text:
            parts = text.split(sep)
            if len(parts) == 3:
                return _from_day_first_parts(parts)
    if "-" in text:
        return _from_iso(text)
    return None


def parse_date(value: Any) -> date | None:
    """Normalise a cell value to a calendar date, or ``None``.

    Accepts a :class:`CellValue` or a raw decoded value. Text is tried as
    ``DD.MM.YYYY``, then ``DD/MM/YYYY``, then ISO-8601 (only when it contains
    a ``-``); numbers are spreadsheet serial dates. Never raises.
    """
    cell = CellValue.of(value)
    if cell.kind is CellKind.DATE:
        raw = cell.value
        return raw.date() if isinstance(raw, datetime) else raw
    if cell.kind is CellKind.NUMBER:
        return _from_serial(cell.value)
    if cell.kind is CellKind.TEXT:
        return _from_text(cell.value)
    return None


# ── Arithmetic ──────────────────────────────────────────────────


def months_between(start: date | None, end: date | None) -> int | None:
    """Whole months from *start* to *end*; negative when *end* is earlier.

    The last month only counts once *end* reaches *start*'s day of month.
    """
    if start is None or end is None:
        return None
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if end.day < start.day:
        months -= 1
    return months
