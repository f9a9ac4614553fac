"""CLI entry point for expiry-months."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date, datetime
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table as RichTable

from expiry_months import REQUIRED_COLUMNS, SUPPORTED_SUFFIXES, __version__
from expiry_months.batch import admit_batch, analyze_batch, process_batch
from expiry_months.errors import BatchRejectedError
from expiry_months.io import read_source, write_bytes
from expiry_months.models import BatchOutcome, FileAnalysis
from expiry_months.qc import write_analysis_report, write_batch_summary
from expiry_months.utils import is_supported_file, utcnow_iso

app = typer.Typer(
    name="expmonths",
    help="expiry-months — Add shelf-life month counts to inventory spreadsheets.",
    add_completion=False,
    no_args_is_help=True,
)
console = Console()

PACKAGE_LOGGER = "expiry_months"


def _noop(*_args: object, **_kwargs: object) -> None:
    return None


def _printer(quiet: bool) -> Callable[..., None]:
    return _noop if quiet else console.print


def _err(msg: str) -> None:
    console.print(f"[red]x[/red] {msg}")


# ── Helpers ──────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"expiry-months v{__version__}")
        raise typer.Exit()


def _configure_logging(*, verbose: bool, quiet: bool) -> None:
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in logger.handlers[:]:
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)
    handler = RichHandler(console=console, show_time=False, show_path=False, markup=False)
    logger.addHandler(handler)
    if verbose:
        logger.setLevel(logging.DEBUG)
    elif quiet:
        logger.setLevel(logging.ERROR)
    else:
        logger.setLevel(logging.WARNING)


def _load_inputs(input_files: list[Path]) -> list[tuple[str, bytes]]:
    """Read every supported input; unsupported or unreadable paths are reported and skipped."""
    files: list[tuple[str, bytes]] = []
    for path in input_files:
        if not is_supported_file(path.name):
            _err(
                f"Unsupported file format: {path.name} "
                f"(expected {' or '.join(SUPPORTED_SUFFIXES)})"
            )
            continue
        try:
            files.append((path.name, read_source(path)))
        except (FileNotFoundError, ValueError, OSError) as exc:
            _err(str(exc))
    return files


def _analysis_table(analysis: FileAnalysis) -> RichTable:
    tbl = RichTable(title=f"Analysis: {analysis.file_name}", show_lines=True)
    tbl.add_column("Check", style="bold")
    tbl.add_column("Result")

    if analysis.error is not None:
        tbl.add_row("Error", f"[red]{analysis.error}[/red]")
        tbl.add_row("Status", "[red]FAIL[/red]")
        return tbl

    tbl.add_row("Data rows", str(analysis.total_data_rows))
    tbl.add_row("Columns", str(analysis.total_columns))
    tbl.add_row("Sheet range", analysis.sheet_ref)
    tbl.add_row("Last filled column", f'"{analysis.last_filled_column_label}"')
    new_columns = "\n".join(
        f'Column {col.position} ({col.letter}): "{col.name}"'
        for col in analysis.planned_new_columns
    )
    tbl.add_row("New columns", new_columns)
    if analysis.missing_required_columns:
        tbl.add_row("Missing columns", ", ".join(analysis.missing_required_columns))
    else:
        tbl.add_row("Missing columns", "[green]none[/green]")
    if analysis.duplicate_headers:
        tbl.add_row("Duplicate headers", ", ".join(analysis.duplicate_headers))
    tbl.add_row("Status", "[green]PASS[/green]" if analysis.is_valid else "[red]FAIL[/red]")
    return tbl


def _print_readiness(analyses: list[FileAnalysis]) -> None:
    valid = sum(1 for analysis in analyses if analysis.is_valid)
    invalid = len(analyses) - valid
    if invalid == 0:
        console.print(f"[green]Ready to process![/green] All {valid} files passed analysis.")
    else:
        console.print(
            f"[yellow]![/yellow] {valid} files ready to process, {invalid} with errors. "
            "Files with errors must be fixed before running."
        )


def _print_outcome(outcome: BatchOutcome, out_dir: Path) -> None:
    if outcome.successful_outputs:
        tbl = RichTable(title="Processed files", show_lines=True)
        tbl.add_column("Output", style="bold")
        tbl.add_column("Source")
        tbl.add_column("Rows", justify="right")
        tbl.add_column("Date warnings", justify="right")
        for out in outcome.successful_outputs:
            tbl.add_row(
                str(out_dir / out.name), out.original_name, str(out.rows), str(out.date_warnings)
            )
        console.print(tbl)
    for error in outcome.errors:
        _err(f"Error in file {error.file_name}: {error.message}")


def _analyze_inputs(
    input_files: list[Path], out_dir: Path, *, quiet: bool
) -> tuple[list[tuple[str, bytes]], list[FileAnalysis]]:
    files = _load_inputs(input_files)
    if not files:
        _err("No readable spreadsheet inputs")
        raise typer.Exit(code=2)

    analyses = analyze_batch(files)
    report_path = write_analysis_report(out_dir, analyses)
    if not quiet:
        for analysis in analyses:
            console.print(_analysis_table(analysis))
        _print_readiness(analyses)
    console.print(f"  Analysis -> {report_path}")
    return files, analyses


# ── Callbacks ────────────────────────────────────────────────────


@app.callback()
def main(
    version: bool | None = typer.Option(
        None, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """expiry-months CLI."""


# ── analyze command ──────────────────────────────────────────────


@app.command()
def analyze(
    input_files: list[Path] = typer.Option(
        ..., "--input", "-i",
        help="Path to an XLSX or XLS input file (repeatable).",
        exists=True, readable=True,
    ),
    out_dir: Path = typer.Option(
        Path("output"), "--out-dir", "-o",
        help="Output directory for the analysis report.",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q",
        help="Suppress informational output; still writes the analysis report.",
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Show debug logging.",
    ),
) -> None:
    """Check input files without producing output workbooks.

    Exit 0 = all files valid, exit 2 = at least one file failed analysis.
    """
    _configure_logging(verbose=verbose, quiet=quiet)
    out_dir.mkdir(parents=True, exist_ok=True)
    if not quiet:
        console.print(Panel(
            f"[bold]expiry-months[/bold] v{__version__}  [dim]analyze mode[/dim]\n"
            f"Inputs: {len(input_files)}",
            title="Analyze", border_style="cyan",
        ))

    _files, analyses = _analyze_inputs(input_files, out_dir, quiet=quiet)

    invalid = [analysis for analysis in analyses if not analysis.is_valid]
    if invalid:
        for analysis in invalid:
            reason = analysis.error or ", ".join(
                [*analysis.missing_required_columns, *analysis.duplicate_headers]
            )
            _err(f"{analysis.file_name}: {reason}")
        console.print(f"  Expected: {', '.join(REQUIRED_COLUMNS)}")
        raise typer.Exit(code=2)


# ── run command ──────────────────────────────────────────────────


@app.command()
def run(
    input_files: list[Path] = typer.Option(
        ..., "--input", "-i",
        help="Path to an XLSX or XLS input file (repeatable).",
        exists=True, readable=True,
    ),
    out_dir: Path = typer.Option(
        Path("output"), "--out-dir", "-o",
        help="Output directory for processed workbooks and reports.",
    ),
    today: datetime | None = typer.Option(
        None, "--today",
        formats=["%Y-%m-%d"],
        help="Reference date for remaining months (default: current date).",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q",
        help="Suppress informational output; still writes all artifacts.",
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Show debug logging.",
    ),
) -> None:
    """Analyse all inputs, then write a processed workbook for each one."""
    echo = _printer(quiet)
    _configure_logging(verbose=verbose, quiet=quiet)
    created_at = utcnow_iso()
    reference: date | None = today.date() if today is not None else None
    out_dir.mkdir(parents=True, exist_ok=True)

    if not quiet:
        console.print(Panel(
            f"[bold]expiry-months[/bold] v{__version__}\n"
            f"Inputs: {len(input_files)}\nOutput: {out_dir}\n"
            f"Reference date: {reference.isoformat() if reference else 'today'}",
            title="Batch Start", border_style="blue",
        ))

    # ── Analyse + admit ──────────────────────────────────────────
    echo("[blue]>[/blue] Analysing input files …")
    files, analyses = _analyze_inputs(input_files, out_dir, quiet=quiet)
    try:
        admit_batch(analyses)
    except BatchRejectedError as exc:
        _err(str(exc))
        raise typer.Exit(code=2)

    # ── Process ──────────────────────────────────────────────────
    echo("[blue]>[/blue] Processing …")
    outcome = process_batch(files, today=reference)
    for out in outcome.successful_outputs:
        write_bytes(out_dir / out.name, out.data)
    summary_path = write_batch_summary(out_dir, outcome, created_at=created_at)

    if not quiet:
        _print_outcome(outcome, out_dir)
        console.print(f"  Summary  -> {summary_path}")
    else:
        for error in outcome.errors:
            _err(f"Error in file {error.file_name}: {error.message}")

    if outcome.errors:
        raise typer.Exit(code=1)

    if not quiet:
        console.print(Panel(
            f"[green]Done[/green] — {len(outcome.successful_outputs)} files -> {out_dir}",
            title="Batch Complete", border_style="green",
        ))
