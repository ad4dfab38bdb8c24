"""CLI command implementations"""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from pydantic import ValidationError

from lessonpub.cli.report import ConsoleSink, FileSink, publish_report
from lessonpub.config import Settings, load_config
from lessonpub.core.export import write_output
from lessonpub.core.models import BuildResult, BuildStatus
from lessonpub.core.pipeline import run_build
from lessonpub.errors import DanglingReferenceError, FatalIOError, Severity


EXIT_ERRORS = 1
EXIT_FATAL = 2


def _fail(msg: str, cause: Exception = None, code: int = EXIT_ERRORS) -> None:
    """Print a user-friendly error to stderr and exit with code."""
    typer.echo(f"Error: {msg}", err=True)
    if cause:
        typer.echo(f"  {cause}", err=True)
    raise typer.Exit(code)


def _settings(overrides: dict = None) -> Settings:
    """Load config with standard CLI error handling."""
    try:
        return load_config(overrides=overrides)
    except ValidationError as e:
        _fail("Invalid configuration", e)
    except ValueError as e:
        _fail(str(e))


def _configure_logging(settings: Settings, verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level.upper(), logging.WARNING)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _build(path: Optional[str], settings: Settings) -> BuildResult:
    """Run the pipeline; an unrecoverable I/O failure exits 2."""
    try:
        return run_build(Path(path or settings.source_dir), settings)
    except FatalIOError as e:
        _fail("Build aborted", e, code=EXIT_FATAL)


def _finish(result: BuildResult, settings: Settings) -> None:
    """Publish the report, print a summary line, and pick the exit status.

    Dangling references always exit 1. Other collected errors exit 1 only
    when strict. A report file that cannot be written exits 2.
    """
    threshold = Severity[settings.report_level]
    try:
        sinks = [ConsoleSink(threshold)]
        if settings.report_file:
            sinks.append(FileSink(Path(settings.report_file), threshold))
        publish_report(result.report, sinks)
    except FatalIOError as e:
        _fail("Report failed", e, code=EXIT_FATAL)

    typer.echo(
        f"Build {result.status.value} - "
        f"{len(result.pages)} page(s), "
        f"{len(result.listing.pages)} listed, "
        f"{len(result.report.errors)} error(s)"
    )
    if result.report.by_kind(DanglingReferenceError.kind):
        raise typer.Exit(EXIT_ERRORS)
    if settings.strict and result.status != BuildStatus.success:
        raise typer.Exit(EXIT_ERRORS)


def build_cmd(
    path: Annotated[Optional[str], typer.Argument(help="Lesson source directory")] = None,
    out: Annotated[Optional[str], typer.Option("--out-dir", help="Output directory")] = None,
    fmt: Annotated[Optional[str], typer.Option("--format", help="Output format: html or md")] = None,
    base_url: Annotated[Optional[str], typer.Option("--base-url", help="Prefix for page URLs")] = None,
    workers: Annotated[Optional[int], typer.Option("--workers", help="Parallel workers; 1 runs inline")] = None,
    strict: Annotated[bool, typer.Option("--strict", help="Exit 1 if any error was collected")] = False,
    report_file: Annotated[Optional[str], typer.Option("--report-file", help="Also write the report here")] = None,
    report_level: Annotated[Optional[str], typer.Option("--report-level", help="warning or error")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
    ):
    """Run the full pipeline: load -> resolve -> validate -> render, then write pages and listing."""
    settings = _settings(overrides={
        "output_dir": out, "output_format": fmt, "base_url": base_url, "workers": workers,
        "strict": strict or None, "report_file": report_file, "report_level": report_level,
    })
    _configure_logging(settings, verbose)
    result = _build(path, settings)

    output_dir = Path(settings.output_dir)
    try:
        write_output(result, output_dir, settings.listing_name)
    except FatalIOError as e:
        _fail("Write failed", e, code=EXIT_FATAL)
    for page in result.pages:
        typer.echo(f"  {page.identifier} -> {output_dir / page.output_path}")
    _finish(result, settings)


def check_cmd(
    path: Annotated[Optional[str], typer.Argument(help="Lesson source directory")] = None,
    strict: Annotated[bool, typer.Option("--strict", help="Exit 1 if any error was collected")] = False,
    report_file: Annotated[Optional[str], typer.Option("--report-file", help="Also write the report here")] = None,
    report_level: Annotated[Optional[str], typer.Option("--report-level", help="warning or error")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
    ):
    """Run the pipeline and report collected errors without writing any output."""
    settings = _settings(overrides={
        "strict": strict or None, "report_file": report_file, "report_level": report_level,
    })
    _configure_logging(settings, verbose)
    _finish(_build(path, settings), settings)


def list_cmd(
    path: Annotated[Optional[str], typer.Argument(help="Lesson source directory")] = None,
    ):
    """List indexed pages in navigation order (date descending)."""
    settings = _settings()
    result = _build(path, settings)
    if not result.listing.pages:
        typer.echo("No indexed pages found.")
        raise typer.Exit(1)
    for entry in result.listing.pages:
        typer.echo(f"{entry.date.isoformat()}  {entry.identifier}  {entry.title}")
