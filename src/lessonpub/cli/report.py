"""Build report sinks: where collected errors are shown, filtered by severity threshold"""

from pathlib import Path
from typing import Iterable, Protocol

import typer

from lessonpub.core.models import BuildReport
from lessonpub.errors import FatalIOError, LessonpubError, Severity


def format_entry(error: LessonpubError) -> str:
    return f"[{error.severity.name}] {error.kind} {error.identifier}: {error.message}"


class ReportSink(Protocol):
    """Anything that accepts report entries at or above its threshold."""

    threshold: Severity

    def emit(self, error: LessonpubError) -> None: ...


class ConsoleSink:
    """Writes entries to the terminal (stderr by default)."""

    def __init__(self, threshold: Severity = Severity.warning, err: bool = True):
        self.threshold = threshold
        self.err = err

    def emit(self, error: LessonpubError) -> None:
        typer.echo(f"  {format_entry(error)}", err=self.err)


class FileSink:
    """Writes one line per entry to a report file, truncated at construction."""

    def __init__(self, path: Path, threshold: Severity = Severity.warning):
        self.threshold = threshold
        self.path = Path(path)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text("", encoding="utf-8")
        except OSError as e:
            raise FatalIOError(str(self.path), f"cannot write report: {e}") from e

    def emit(self, error: LessonpubError) -> None:
        try:
            with self.path.open("a", encoding="utf-8") as f:
                f.write(format_entry(error) + "\n")
        except OSError as e:
            raise FatalIOError(str(self.path), f"cannot write report: {e}") from e


def publish_report(report: BuildReport, sinks: Iterable[ReportSink]) -> int:
    """Send every collected error to each sink whose threshold it meets. Returns entries emitted."""
    sinks = list(sinks)
    emitted = 0
    for error in report.errors:
        for sink in sinks:
            if error.severity >= sink.threshold:
                sink.emit(error)
                emitted += 1
    return emitted
