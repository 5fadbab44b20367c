"""
In-memory filtering for notesync.

Narrows a file list to the notes whose searchable blob contains every token
of a filter string (AND logic). Matching is case-insensitive unless asked
otherwise; both sides are casefolded.
"""

import os
from collections.abc import Sequence
from pathlib import Path

from .cache import NoteCache


def normalize_filter_string(text: str | None) -> str | None:
    """Return None for missing, empty or whitespace-only filter strings."""
    if text is None or not text.strip():
        return None
    return text


def parse_filter_string(text: str | None) -> list[str] | None:
    """Split a filter string on whitespace into literal tokens."""
    text = normalize_filter_string(text)
    if text is None:
        return None
    return text.split()


def blob_matches(blob: str, tokens: Sequence[str], case_sensitive: bool = False) -> bool:
    """Return True if ``blob`` contains every token."""
    if not case_sensitive:
        blob = blob.casefold()
        tokens = [token.casefold() for token in tokens]
    return all(token in blob for token in tokens)


def filter_files(
    all_files: list[Path],
    filter_string: str | None,
    cache: NoteCache,
    case_sensitive: bool = False,
) -> list[Path]:
    """Keep the files whose cached blob contains every filter token.

    Files without a cache entry are matched against their path alone.
    Without a filter, ``all_files`` itself is returned. The input list is
    never modified and relative order is preserved.
    """
    tokens = parse_filter_string(filter_string)
    if tokens is None:
        return all_files

    current_files = []
    for path in all_files:
        blob = cache.blob(path)
        if blob is None:
            blob = os.fspath(path)
        if blob_matches(blob, tokens, case_sensitive):
            current_files.append(path)
    return current_files
