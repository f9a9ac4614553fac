"""Shared helpers — file naming, timestamps."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from pathlib import Path

from expiry_months import SUPPORTED_SUFFIXES

OUTPUT_PREFIX = "processed_"

_SPREADSHEET_SUFFIX_RE = re.compile(r"\.(xls|xlsx)$", re.IGNORECASE)


def is_supported_file(name: str) -> bool:
    """Return True when *name* has a spreadsheet suffix we can decode."""
    return Path(name).suffix.lower() in SUPPORTED_SUFFIXES


def output_name(input_name: str) -> str:
    """Name of the workbook produced from *input_name*.

    ``stock.xls`` and ``stock.xlsx`` both become ``processed_stock.xlsx``.
    """
    return OUTPUT_PREFIX + _SPREADSHEET_SUFFIX_RE.sub(".xlsx", input_name)


def utcnow_iso() -> str:
    """Return the current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()
