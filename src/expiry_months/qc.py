"""Analysis and batch report persistence."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from expiry_months.io import write_json
from expiry_months.models import BatchOutcome, FileAnalysis


def write_analysis_report(out_dir: Path, analyses: Sequence[FileAnalysis]) -> Path:
    """Write ``analysis_report.json`` into *out_dir* and return the path."""
    payload = {
        "files": [analysis.to_dict() for analysis in analyses],
        "valid_files": sum(1 for analysis in analyses if analysis.is_valid),
        "invalid_files": sum(1 for analysis in analyses if not analysis.is_valid),
    }
    return write_json(out_dir / "analysis_report.json", payload)


def write_batch_summary(out_dir: Path, outcome: BatchOutcome, *, created_at: str) -> Path:
    """Write ``batch_summary.json`` into *out_dir* and return the path."""
    payload = {"created_at_utc": created_at, **outcome.to_dict()}
    return write_json(out_dir / "batch_summary.json", payload)
