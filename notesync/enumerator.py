"""
Note file discovery for notesync.

Walks a root depth-first, skipping any entry whose name starts with an
excluded prefix character (hidden files, the ``_archive`` directory, editor
lock files such as ``#note.org#``).
"""

import os
from collections.abc import Iterable
from pathlib import Path

import structlog

logger = structlog.get_logger(__name__)


def is_excluded_name(name: str, exclude_prefixes: str) -> bool:
    """Return True if ``name`` starts with one of the excluded characters."""
    return bool(name) and name[0] in exclude_prefixes


def has_note_extension(name: str, extensions: Iterable[str]) -> bool:
    """Return True if the file name carries one of the note extensions."""
    _, dot, ext = name.rpartition(".")
    return bool(dot) and ext in set(extensions)


def is_note_file(path: str | os.PathLike, extensions: Iterable[str], exclude_prefixes: str = "") -> bool:
    """Apply the enumerator's match rule to a single path."""
    name = os.path.basename(os.fspath(path))
    return not is_excluded_name(name, exclude_prefixes) and has_note_extension(name, extensions)


def find_note_files(
    root: str | os.PathLike,
    extensions: Iterable[str],
    exclude_prefixes: str = "._#",
    relative: bool = False,
) -> list[Path]:
    """Recursively list note files under ``root``.

    Args:
        root: Directory to walk
        extensions: Accepted extensions, without the leading dot
        exclude_prefixes: Characters that exclude a file or directory by its first letter
        relative: Return paths relative to ``root`` instead of absolute ones

    Returns:
        Note file paths. Only set membership is meaningful, not order.
    """
    root_path = Path(os.path.abspath(os.fspath(root)))
    extensions = frozenset(ext.lstrip(".") for ext in extensions)
    found: list[Path] = []

    stack = [root_path]
    while stack:
        directory = stack.pop()
        try:
            with os.scandir(directory) as it:
                entries = list(it)
        except OSError as e:
            logger.debug("directory_scan_failed", path=str(directory), error=str(e))
            continue

        subdirs = []
        for entry in entries:
            if is_excluded_name(entry.name, exclude_prefixes):
                continue
            try:
                if entry.is_dir(follow_symlinks=False):
                    subdirs.append(Path(entry.path))
                elif entry.is_file() and has_note_extension(entry.name, extensions):
                    found.append(Path(entry.path))
            except OSError:
                continue
        # Reversed so the first subdirectory is walked first
        stack.extend(reversed(subdirs))

    if relative:
        return [path.relative_to(root_path) for path in found]
    return found


def find_note_files_in_roots(
    roots: Iterable[Path],
    extensions: Iterable[str],
    exclude_prefixes: str = "._#",
) -> list[Path]:
    """List note files under every root, dropping files seen under an earlier root."""
    extensions = tuple(extensions)
    seen: set[Path] = set()
    files: list[Path] = []
    for root in roots:
        for path in find_note_files(root, extensions, exclude_prefixes):
            if path not in seen:
                seen.add(path)
                files.append(path)
    return files
