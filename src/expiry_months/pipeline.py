"""Analysis + transformation pipeline — pure functions, no side effects."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date

from expiry_months import COMPUTED_COLUMNS, REQUIRED_COLUMNS
from expiry_months.dates import months_between, parse_date
from expiry_months.errors import (
    DuplicateHeaderError,
    EmptyInputError,
    MissingRequiredColumnsError,
    OutputEncodingError,
    ShelfLifeError,
)
from expiry_months.io import read_first_sheet
from expiry_months.layout import plan_insertions, plan_widths
from expiry_months.models import CellValue, DataRow, FileAnalysis, ProcessedFile, SheetGrid
from expiry_months.report import write_workbook
from expiry_months.structure import (
    analyze_sheet,
    extract_headers,
    extract_rows,
    find_duplicate_headers,
)
from expiry_months.utils import output_name

logger = logging.getLogger(__name__)


@dataclass
class TransformResult:
    rows: list[DataRow] = field(default_factory=list)
    date_warnings: int = 0


# ── Validation ──────────────────────────────────────────────────


def missing_required_columns(
    headers: Iterable[str], required_columns: Sequence[str] = REQUIRED_COLUMNS
) -> list[str]:
    """Return the required headers absent from *headers*, in required order."""
    present = set(headers)
    return [col for col in required_columns if col not in present]


def _colliding_headers(headers: Sequence[str], computed_columns: Sequence[str]) -> list[str]:
    # A computed column name already used by the source counts as a duplicate.
    return find_duplicate_headers([*headers, *computed_columns])


# ── Row transformation ──────────────────────────────────────────


def _parse_cell(row: DataRow, column: str, row_number: int) -> tuple[date | None, bool]:
    raw = row.get(column)
    parsed = parse_date(raw)
    failed = parsed is None and not CellValue.of(raw).is_empty
    if failed:
        logger.warning(
            "Unparseable date %r in column %r of data row %d; computed value left empty",
            raw,
            column,
            row_number,
        )
    return parsed, failed


def transform_rows(
    rows: Sequence[DataRow],
    required_columns: Sequence[str] = REQUIRED_COLUMNS,
    computed_columns: Sequence[str] = COMPUTED_COLUMNS,
    *,
    today: date | None = None,
) -> TransformResult:
    """Append the shelf-life and remaining-months columns to every row.

    Only the first row's keys are checked for the required headers; rows
    are assumed uniform. ``today`` is sampled once when not given, so every
    row shares the same reference date. Input rows are not modified.

    Raises
    ------
    EmptyInputError
        If *rows* is empty.
    MissingRequiredColumnsError
        If a required header is absent; no rows are produced.
    """
    if len(required_columns) != 2 or len(computed_columns) != 2:
        raise ValueError("Expected exactly two required and two computed columns")
    if not rows:
        raise EmptyInputError()

    missing = missing_required_columns(rows[0].keys(), required_columns)
    if missing:
        raise MissingRequiredColumnsError(missing)

    if today is None:
        today = date.today()
    manufacture_col, expiry_col = required_columns
    total_col, remaining_col = computed_columns

    result = TransformResult()
    for row_number, row in enumerate(rows, start=1):
        manufactured, bad_manufacture = _parse_cell(row, manufacture_col, row_number)
        expires, bad_expiry = _parse_cell(row, expiry_col, row_number)
        result.date_warnings += int(bad_manufacture) + int(bad_expiry)
        result.rows.append(
            row.with_columns(
                [
                    (total_col, months_between(manufactured, expires)),
                    (remaining_col, months_between(today, expires)),
                ]
            )
        )
    return result


# ── Whole-file operations ───────────────────────────────────────


def analyze_workbook(file_name: str, grid: SheetGrid) -> FileAnalysis:
    """Build the pre-processing report for a decoded sheet.

    Raises
    ------
    EmptyInputError
        If the sheet has no populated cell or no data row below the header.
    """
    structure = analyze_sheet(grid)
    if structure.range is None or structure.data_rows == 0:
        raise EmptyInputError()

    headers = extract_headers(grid, structure.range)
    last_label = headers[structure.last_filled_column - structure.range.start_col]
    return FileAnalysis(
        file_name=file_name,
        total_columns=len(headers),
        total_data_rows=structure.data_rows,
        existing_headers=headers,
        last_filled_column_label=last_label,
        planned_new_columns=plan_insertions(structure.last_filled_column, COMPUTED_COLUMNS),
        missing_required_columns=missing_required_columns(headers),
        duplicate_headers=_colliding_headers(headers, COMPUTED_COLUMNS),
        sheet_ref=structure.range.ref,
    )


def analyze_file(file_name: str, data: bytes) -> FileAnalysis:
    """Decode and analyse one file; per-file failures land in ``error``."""
    try:
        grid = read_first_sheet(data, file_name)
        analysis = analyze_workbook(file_name, grid)
    except ShelfLifeError as exc:
        logger.warning("Analysis of %s failed: %s", file_name, exc)
        return FileAnalysis(file_name=file_name, error=str(exc))

    logger.debug(
        "Analysed %s: %d columns, %d data rows, valid=%s",
        file_name,
        analysis.total_columns,
        analysis.total_data_rows,
        analysis.is_valid,
    )
    return analysis


def process_workbook(file_name: str, data: bytes, *, today: date | None = None) -> ProcessedFile:
    """Decode, validate, transform and re-encode one workbook.

    Raises
    ------
    ShelfLifeError
        Any per-file failure: unreadable bytes, empty sheet, duplicate
        headers, missing required columns or an output that cannot be encoded.
    """
    if today is None:
        today = date.today()

    grid = read_first_sheet(data, file_name)
    structure = analyze_sheet(grid)
    if structure.range is None:
        raise EmptyInputError()

    headers = extract_headers(grid, structure.range)
    duplicates = _colliding_headers(headers, COMPUTED_COLUMNS)
    if duplicates:
        raise DuplicateHeaderError(duplicates)

    rows = extract_rows(grid, structure.range, headers)
    result = transform_rows(rows, REQUIRED_COLUMNS, COMPUTED_COLUMNS, today=today)

    out_headers = [*headers, *COMPUTED_COLUMNS]
    widths = plan_widths(out_headers, result.rows)
    try:
        payload = write_workbook(out_headers, result.rows, widths)
    except Exception as exc:
        raise OutputEncodingError(
            f"Could not write output for {file_name} (encode failed)"
        ) from exc

    if result.date_warnings:
        logger.warning("%s: %d unparseable date values", file_name, result.date_warnings)
    return ProcessedFile(
        name=output_name(file_name),
        original_name=file_name,
        data=payload,
        rows=len(result.rows),
        date_warnings=result.date_warnings,
    )
