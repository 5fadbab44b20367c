"""
Display formatting for notesync file lists.

The formatter is an optional, purely cosmetic strategy supplied by the
caller; the core never depends on its output.
"""

from pathlib import Path
from typing import Protocol

from .models import CachedNote


class NoteFormatter(Protocol):
    """Turns one note into a display line."""

    def __call__(self, path: Path, note: CachedNote | None) -> str: ...


def default_formatter(path: Path, note: CachedNote | None) -> str:
    """Render ``title: summary``, falling back to the file name."""
    title = note.title if note and note.title else path.stem
    if note and note.summary:
        return f"{title}: {note.summary}"
    return title
