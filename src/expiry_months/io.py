"""I/O helpers — decode input workbooks, write output artifacts."""

from __future__ import annotations

import json
import logging
from datetime import date, datetime
from io import BytesIO
from pathlib import Path
from typing import Any, Callable, cast

import pandas as pd
from openpyxl import load_workbook

from expiry_months import SUPPORTED_SUFFIXES
from expiry_months.errors import UnreadableSourceError
from expiry_months.models import SheetGrid, SheetRange

logger = logging.getLogger(__name__)

# ── Loading ──────────────────────────────────────────────────────


def read_source(path: Path) -> bytes:
    """Return the raw bytes of *path*.

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    ValueError
        If *path* is a directory.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")
    if path.is_dir():
        raise ValueError(f"Input path is a directory, not a file: {path}")
    return path.read_bytes()


def _read_xlsx(data: bytes) -> SheetGrid:
    wb = load_workbook(BytesIO(data), read_only=True, data_only=True)
    try:
        ws = wb.worksheets[0]
        max_row, max_col = ws.max_row, ws.max_column
        extent = SheetRange(0, 0, max_row - 1, max_col - 1) if max_row and max_col else None
        return SheetGrid.from_rows(ws.iter_rows(values_only=True), extent)
    finally:
        wb.close()


def _read_xls(data: bytes) -> SheetGrid:
    read_excel = cast(Callable[..., pd.DataFrame], getattr(pd, "read_excel"))
    try:
        frame = read_excel(
            BytesIO(data),
            sheet_name=0,
            header=None,
            engine="xlrd",
            dtype=object,
            keep_default_na=False,
        )
    except ImportError as exc:
        raise UnreadableSourceError(
            "Unsupported .xls input unless 'xlrd' is installed. "
            "Either convert to .xlsx or add dependency: pip install xlrd"
        ) from exc
    n_rows, n_cols = frame.shape
    extent = SheetRange(0, 0, n_rows - 1, n_cols - 1) if n_rows and n_cols else None
    return SheetGrid.from_rows(frame.itertuples(index=False, name=None), extent)


def read_first_sheet(data: bytes, file_name: str) -> SheetGrid:
    """Decode *data* and return the cell grid of its first worksheet.

    Raises
    ------
    UnreadableSourceError
        If the suffix of *file_name* is not supported or decoding fails.
    """
    suffix = Path(file_name).suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise UnreadableSourceError(
            f"Unsupported file type: {suffix!r}. Use {' or '.join(SUPPORTED_SUFFIXES)}"
        )

    reader = _read_xls if suffix == ".xls" else _read_xlsx
    try:
        grid = reader(data)
    except UnreadableSourceError:
        raise
    except Exception as exc:
        raise UnreadableSourceError(f"Could not read {file_name} (decode failed)") from exc

    logger.debug("Decoded %s: %d populated cells", file_name, len(grid.cells))
    return grid


# ── Writing ──────────────────────────────────────────────────────


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    item = getattr(obj, "item", None)
    if callable(item):
        converted = item()
        if isinstance(converted, (str, int, float, bool)) or converted is None:
            return converted
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def write_bytes(path: Path, data: bytes) -> Path:
    """Write *data* to *path* atomically."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_bytes(data)
    tmp_path.replace(path)
    return path


def write_json(path: Path, data: Any) -> Path:
    """Write *data* as pretty-printed JSON to *path* (atomic + deterministic)."""
    payload = json.dumps(
        data,
        indent=2,
        sort_keys=True,
        ensure_ascii=False,
        default=_json_default,
    ) + "\n"
    return write_bytes(path, payload.encode("utf-8"))
