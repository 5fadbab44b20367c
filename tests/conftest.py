"""
Pytest configuration and fixtures for notesync tests.
"""

import os
import sqlite3
from pathlib import Path

import pytest

BASE_MTIME = 1_700_000_000


def set_mtime(path: Path, mtime: float) -> None:
    """Set both access and modification time of a file."""
    os.utime(path, (mtime, mtime))


def write_note(path: Path, content: str, mtime: float | None = None) -> Path:
    """Write a note file, creating parent directories, optionally pinning its mtime."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    if mtime is not None:
        set_mtime(path, mtime)
    return path


@pytest.fixture
def notes_root(tmp_path: Path) -> Path:
    """Create a temporary notes directory with a mix of notes and ignored files."""
    root = tmp_path / "notes"
    root.mkdir()

    # Oldest to newest
    write_note(root / "meeting.org", """Meeting Notes

Discussed budget with the team.
Next meeting in two weeks.
""", mtime=BASE_MTIME + 10)

    write_note(root / "plan.org", """#+TITLE: Project Plan
#+KEYWORDS: roadmap quarterly
Intro text here.
Milestones follow.
""", mtime=BASE_MTIME + 20)

    write_note(root / "ideas.md", """---
title: Ideas
tags:
  - brainstorm
  - later
---

Write a parser for recipe cards.
""", mtime=BASE_MTIME + 30)

    write_note(root / "projects" / "garden.txt", """Garden

Plant tomatoes in May.
""", mtime=BASE_MTIME + 40)

    # Everything below must be ignored by the enumerator
    write_note(root / "_archive" / "old.org", "Old Note\n\nArchived content.\n", mtime=BASE_MTIME + 50)
    write_note(root / ".hidden" / "secret.org", "Secret\n\nHidden content.\n", mtime=BASE_MTIME + 60)
    write_note(root / ".#plan.org", "lock file", mtime=BASE_MTIME + 70)
    write_note(root / "#meeting.org#", "autosave file", mtime=BASE_MTIME + 80)
    write_note(root / "picture.png", "not a note", mtime=BASE_MTIME + 90)

    return root


@pytest.fixture
def second_root(tmp_path: Path) -> Path:
    """Create a second notes directory."""
    root = tmp_path / "more-notes"
    root.mkdir()
    write_note(root / "travel.org", """#+TITLE: Travel
#+FILETAGS: :trip:
Pack light for the budget trip.
""", mtime=BASE_MTIME + 35)
    return root


@pytest.fixture
def make_settings(tmp_path: Path):
    """Build Settings pointing at the given roots, without a search index by default."""
    from notesync.config import Settings

    def _make(*directories, **overrides) -> Settings:
        values = {
            "directories": [str(d) for d in directories],
            "use_search_index": False,
            "index_path": tmp_path / "index" / "notes.sqlite3",
        }
        values.update(overrides)
        return Settings(**values)

    return _make


@pytest.fixture
def fts5_available() -> None:
    """Skip when the interpreter's SQLite lacks FTS5."""
    conn = sqlite3.connect(":memory:")
    try:
        conn.execute("CREATE VIRTUAL TABLE fts_check USING fts5(body)")
    except sqlite3.OperationalError:
        pytest.skip("SQLite FTS5 extension not available")
    finally:
        conn.close()


class RecordingView:
    """Render target recording every render call."""

    def __init__(self, visible: bool = True):
        self.visible = visible
        self.renders: list[list[Path]] = []

    def render(self, files: list[Path]) -> None:
        self.renders.append(list(files))

    def is_visible(self) -> bool:
        return self.visible


@pytest.fixture
def view() -> RecordingView:
    return RecordingView()
