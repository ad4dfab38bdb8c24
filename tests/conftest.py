"""Root test configuration: lesson source helpers and environment isolation"""

from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def isolate_env(tmp_path, monkeypatch):
    """Run each test from a clean tmp directory with no LESSONPUB_* variables set."""
    import os
    for name in list(os.environ):
        if name.startswith("LESSONPUB_"):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)


def _lesson_text(title: str, date: str, body: str, **extra) -> str:
    fm = [f"title: {title}"]
    if date is not None:
        fm.append(f"date: {date}")
    fm.extend(f"{k}: {v}" for k, v in extra.items())
    return "---\n" + "\n".join(fm) + "\n---\n\n" + body


@pytest.fixture(name="write_lesson")
def write_lesson_fixture(tmp_path):
    """Return a writer: write_lesson('lessons/logger.md', title=..., date=..., body=..., **frontmatter)."""
    def write(relpath: str, title: str = "Lesson", date: str = "2021-01-01", body: str = "Body.\n", root: Path = None, **extra) -> Path:
        base = root or tmp_path / "content"
        path = base / relpath
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(_lesson_text(title, date, body, **extra), encoding="utf-8")
        return path
    return write
