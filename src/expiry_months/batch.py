"""Batch execution — admission gate plus fail-soft per-file processing."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import date

from expiry_months.errors import BatchRejectedError, ShelfLifeError
from expiry_months.models import BatchOutcome, FileAnalysis, FileError
from expiry_months.pipeline import analyze_file, process_workbook

logger = logging.getLogger(__name__)


def analyze_batch(files: Iterable[tuple[str, bytes]]) -> list[FileAnalysis]:
    """Analyse every ``(file_name, data)`` pair, in order."""
    return [analyze_file(file_name, data) for file_name, data in files]


def admit_batch(analyses: Sequence[FileAnalysis]) -> None:
    """Refuse the whole batch when any file failed analysis.

    Raises
    ------
    BatchRejectedError
        Listing every file with an analysis error or missing/duplicate headers.
    """
    rejected = [analysis.file_name for analysis in analyses if not analysis.is_valid]
    if rejected:
        raise BatchRejectedError(rejected)


def process_batch(
    files: Iterable[tuple[str, bytes]], *, today: date | None = None
) -> BatchOutcome:
    """Process each file in turn; one file's failure never stops the rest.

    With ``today=None`` every file samples its own reference date.
    """
    outcome = BatchOutcome()
    for file_name, data in files:
        try:
            processed = process_workbook(file_name, data, today=today)
        except ShelfLifeError as exc:
            logger.error("Processing %s failed: %s", file_name, exc)
            outcome.errors.append(FileError(file_name=file_name, message=str(exc)))
            continue
        outcome.successful_outputs.append(processed)
        logger.info("Processed %s -> %s (%d rows)", file_name, processed.name, processed.rows)
    return outcome
