"""Data models / typed records used across the package."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from numbers import Integral, Real
from typing import Any

import pandas as pd
from openpyxl.utils import get_column_letter

from expiry_months.errors import DuplicateHeaderError


def _to_non_negative_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise TypeError(f"{field_name} must be an integer")
    result = int(value)
    if result < 0:
        raise ValueError(f"{field_name} must be >= 0")
    return result


def _to_string_list(values: Sequence[Any] | None, field_name: str) -> list[str]:
    if values is None:
        return []
    if isinstance(values, str):
        raise TypeError(f"{field_name} must be a sequence of strings")
    normalized: list[str] = []
    for item in values:
        if not isinstance(item, str):
            raise TypeError(f"{field_name} items must be strings")
        normalized.append(item)
    return normalized


def _is_missing(value: Any) -> bool:
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


# ── Cells ───────────────────────────────────────────────────────


class CellKind(str, Enum):
    EMPTY = "empty"
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"


@dataclass(frozen=True)
class CellValue:
    """A decoded cell value tagged with its kind."""

    kind: CellKind
    value: Any = None

    @classmethod
    def of(cls, raw: Any) -> CellValue:
        """Classify a raw decoded value.

        ``None``, NaN/NaT and ``""`` are empty; whitespace-only text is not.
        """
        if isinstance(raw, CellValue):
            return raw
        if raw is None:
            return EMPTY_CELL
        if isinstance(raw, str):
            return EMPTY_CELL if raw == "" else cls(CellKind.TEXT, raw)
        if _is_missing(raw):
            return EMPTY_CELL
        if isinstance(raw, bool):
            return cls(CellKind.TEXT, str(raw))
        if isinstance(raw, date):
            return cls(CellKind.DATE, raw)
        if isinstance(raw, Real):
            return cls(CellKind.NUMBER, raw)
        return cls(CellKind.TEXT, str(raw))

    @property
    def is_empty(self) -> bool:
        return self.kind is CellKind.EMPTY


EMPTY_CELL = CellValue(CellKind.EMPTY)


# ── Sheet geometry ──────────────────────────────────────────────


@dataclass(frozen=True)
class SheetRange:
    """Inclusive, 0-based rectangular extent of a sheet."""

    start_row: int
    start_col: int
    end_row: int
    end_col: int

    def __post_init__(self) -> None:
        for name in ("start_row", "start_col", "end_row", "end_col"):
            _to_non_negative_int(getattr(self, name), name)
        if self.start_row > self.end_row:
            raise ValueError("start_row must be <= end_row")
        if self.start_col > self.end_col:
            raise ValueError("start_col must be <= end_col")

    @property
    def width(self) -> int:
        return self.end_col - self.start_col + 1

    @property
    def height(self) -> int:
        return self.end_row - self.start_row + 1

    @property
    def ref(self) -> str:
        """A1-style reference, e.g. ``"A1:E3"``."""
        first = f"{get_column_letter(self.start_col + 1)}{self.start_row + 1}"
        last = f"{get_column_letter(self.end_col + 1)}{self.end_row + 1}"
        return f"{first}:{last}"


@dataclass
class SheetGrid:
    """Decoded first worksheet: sparse cell lookup plus the advertised extent.

    The extent is whatever the decoder reported and may be wider than the
    populated area.
    """

    cells: dict[tuple[int, int], CellValue] = field(default_factory=dict)
    extent: SheetRange | None = None

    def cell(self, row: int, col: int) -> CellValue:
        return self.cells.get((row, col), EMPTY_CELL)

    @classmethod
    def from_rows(
        cls, rows: Iterable[Iterable[Any]], extent: SheetRange | None = None
    ) -> SheetGrid:
        """Build a grid from row-major raw values, keeping non-empty cells only.

        Without *extent*, the extent spans every given row and the widest row.
        """
        cells: dict[tuple[int, int], CellValue] = {}
        n_rows = width = 0
        for r_idx, row in enumerate(rows):
            n_rows = r_idx + 1
            for c_idx, raw in enumerate(row):
                width = max(width, c_idx + 1)
                value = CellValue.of(raw)
                if not value.is_empty:
                    cells[(r_idx, c_idx)] = value
        if extent is None and n_rows and width:
            extent = SheetRange(0, 0, n_rows - 1, width - 1)
        return cls(cells=cells, extent=extent)


@dataclass(frozen=True)
class SheetStructure:
    """Result of scanning a grid for its populated extent."""

    range: SheetRange | None
    last_filled_column: int = -1
    populated_rows: int = 0

    @property
    def is_empty(self) -> bool:
        return self.range is None

    @property
    def data_rows(self) -> int:
        # The header row is the first populated row.
        return max(self.populated_rows - 1, 0)


# ── Rows ────────────────────────────────────────────────────────


class DataRow(Mapping[str, Any]):
    """Ordered, immutable header -> value mapping with unique keys."""

    __slots__ = ("_values",)

    def __init__(self, items: Iterable[tuple[str, Any]] = ()) -> None:
        values: dict[str, Any] = {}
        duplicates: list[str] = []
        for key, value in items:
            if key in values:
                duplicates.append(key)
                continue
            values[key] = value
        if duplicates:
            raise DuplicateHeaderError(duplicates)
        self._values = values

    @classmethod
    def from_values(cls, headers: Sequence[str], values: Sequence[Any]) -> DataRow:
        if len(headers) != len(values):
            raise ValueError(
                f"Row has {len(values)} values for {len(headers)} headers"
            )
        return cls(zip(headers, values))

    def with_columns(self, items: Iterable[tuple[str, Any]]) -> DataRow:
        """Return a new row with *items* appended after the existing keys."""
        return DataRow([*self._values.items(), *items])

    def to_dict(self) -> dict[str, Any]:
        return dict(self._values)

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"DataRow({self._values!r})"


# ── Reporting records ───────────────────────────────────────────


@dataclass(frozen=True)
class PlannedColumn:
    """Placement of one appended computed column."""

    name: str
    index: int
    position: int
    letter: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "index": self.index,
            "position": self.position,
            "letter": self.letter,
        }


@dataclass
class FileAnalysis:
    """Pre-processing analysis of a single input file.

    A record with ``error`` set describes a file that could not be analysed
    at all (unreadable or empty).
    """

    file_name: str
    total_columns: int = 0
    total_data_rows: int = 0
    existing_headers: list[str] = field(default_factory=list)
    last_filled_column_label: str = "N/A"
    planned_new_columns: list[PlannedColumn] = field(default_factory=list)
    missing_required_columns: list[str] = field(default_factory=list)
    duplicate_headers: list[str] = field(default_factory=list)
    sheet_ref: str = ""
    error: str | None = None

    def __post_init__(self) -> None:
        self.total_columns = _to_non_negative_int(self.total_columns, "total_columns")
        self.total_data_rows = _to_non_negative_int(self.total_data_rows, "total_data_rows")
        self.existing_headers = _to_string_list(self.existing_headers, "existing_headers")
        self.missing_required_columns = _to_string_list(
            self.missing_required_columns, "missing_required_columns"
        )
        self.duplicate_headers = _to_string_list(self.duplicate_headers, "duplicate_headers")
        self.planned_new_columns = list(self.planned_new_columns or [])

    @property
    def is_valid(self) -> bool:
        return (
            self.error is None
            and not self.missing_required_columns
            and not self.duplicate_headers
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_name": self.file_name,
            "total_columns": self.total_columns,
            "total_data_rows": self.total_data_rows,
            "existing_headers": list(self.existing_headers),
            "last_filled_column_label": self.last_filled_column_label,
            "planned_new_columns": [col.to_dict() for col in self.planned_new_columns],
            "missing_required_columns": list(self.missing_required_columns),
            "duplicate_headers": list(self.duplicate_headers),
            "sheet_ref": self.sheet_ref,
            "error": self.error,
            "is_valid": self.is_valid,
        }


@dataclass
class ProcessedFile:
    """A successfully transformed workbook, ready to be saved."""

    name: str
    original_name: str
    data: bytes
    rows: int = 0
    date_warnings: int = 0

    def __post_init__(self) -> None:
        self.rows = _to_non_negative_int(self.rows, "rows")
        self.date_warnings = _to_non_negative_int(self.date_warnings, "date_warnings")

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "original_name": self.original_name,
            "size_bytes": len(self.data),
            "rows": self.rows,
            "date_warnings": self.date_warnings,
        }


@dataclass(frozen=True)
class FileError:
    file_name: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"file_name": self.file_name, "message": self.message}


@dataclass
class BatchOutcome:
    """Outputs and per-file errors of one batch run."""

    successful_outputs: list[ProcessedFile] = field(default_factory=list)
    errors: list[FileError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "successful_outputs": [out.to_dict() for out in self.successful_outputs],
            "errors": [err.to_dict() for err in self.errors],
        }
