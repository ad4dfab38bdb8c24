"""Unit tests for core/pipeline.py and core/export.py"""

from pathlib import Path

import pytest

from lessonpub.config import Settings
from lessonpub.core.export import write_output
from lessonpub.core.models import BuildResult, BuildStage, BuildStatus, SourceUnit
from lessonpub.core.pipeline import _advance, run_units
from lessonpub.errors import FatalIOError


def _unit(relpath: str, text: str) -> SourceUnit:
    return SourceUnit(path=Path(relpath), relpath=relpath, raw=text.encode("utf-8"))


GOOD = '---\ntitle: Good\ndate: 2021-01-01\n---\n\nSee {{< ref "other" >}}.\n'
OTHER = "---\ntitle: Other\ndate: 2020-01-01\n---\n\nHi.\n"


@pytest.fixture(name="settings")
def settings_fixture():
    return Settings(workers=1)


def test_run_units_success(settings):
    result = run_units([_unit("good.md", GOOD), _unit("other.md", OTHER)], settings)
    assert result.stage == BuildStage.done
    assert result.status == BuildStatus.success
    assert [p.identifier for p in result.pages] == ["good", "other"]
    assert "[Other](</other.html>)" not in result.pages[0].content
    assert '<a href="/other.html">Other</a>' in result.pages[0].content


def test_run_units_collects_across_stages(settings):
    """Errors from every stage land in one report; the build still completes."""
    units = [
        _unit("good.md", GOOD),                                    # dangling: 'other' is missing
        _unit("undated.md", "---\ntitle: U\n---\nBody\n"),         # parse error
        _unit("code.md", "---\ntitle: C\ndate: 2020-01-01\n---\n\n```java\n{\n```\n"),
    ]
    result = run_units(units, settings)
    assert result.stage == BuildStage.done
    assert result.status == BuildStatus.completed_with_errors
    kinds = sorted(e.kind for e in result.report.errors)
    assert kinds == ["dangling-reference", "parse", "unbalanced-snippet"]
    assert [p.identifier for p in result.pages] == ["good", "code"]


def test_run_units_reserves_listing_name(settings):
    result = run_units([_unit("index.md", OTHER)], settings)
    assert result.pages == []
    assert result.report.by_kind("parse")


def test_advance_rejects_backward_and_skipped_transitions():
    result = BuildResult()
    _advance(result, BuildStage.resolving)
    with pytest.raises(RuntimeError, match="Invalid build transition"):
        _advance(result, BuildStage.loading)
    with pytest.raises(RuntimeError):
        _advance(result, BuildStage.rendering)


def test_write_output_files(tmp_path, settings):
    result = run_units([_unit("lessons/good.md", GOOD), _unit("other.md", OTHER)], settings)
    written = write_output(result, tmp_path / "public")
    assert (tmp_path / "public" / "lessons" / "good.html").exists()
    assert (tmp_path / "public" / "other.html").exists()
    assert (tmp_path / "public" / "index.json").exists()
    assert written[-1] == tmp_path / "public" / "index.html"


def test_write_output_failure_is_fatal(tmp_path, settings):
    blocker = tmp_path / "public"
    blocker.write_text("not a directory")
    result = run_units([_unit("other.md", OTHER)], settings)
    with pytest.raises(FatalIOError, match="cannot write output"):
        write_output(result, blocker)
