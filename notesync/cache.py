"""
In-memory metadata cache module for notesync.

Contains the NoteCache class holding per-file title, summary, keywords,
searchable blob and modification time.
"""

import os
import time
from collections.abc import Iterable
from pathlib import Path

import aiofiles
import structlog

from .models import CachedNote
from .parser import make_blob, parse_note_content
from .utils import normalize_path

logger = structlog.get_logger(__name__)


class NoteCache:
    """In-memory cache for note metadata. Avoids repeated parsing.

    An entry is reloaded only when the file's modification time is strictly
    newer than the cached one. Entries of files that disappear are kept until
    removed explicitly or by ``garbage_collect``.
    """

    def __init__(self, max_file_size: int = 1 * 1024 * 1024):
        self.max_file_size = max_file_size
        self._notes: dict[Path, CachedNote] = {}

    def __len__(self) -> int:
        return len(self._notes)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, os.PathLike)):
            return False
        return normalize_path(path) in self._notes

    async def _load_note(self, path: Path, mtime: float) -> CachedNote | None:
        """Read and parse a single note, returning None if it cannot be read."""
        try:
            size = path.stat().st_size
            if size > self.max_file_size:
                logger.warning("note_too_large", path=str(path), size=size)
                return None
            async with aiofiles.open(path, encoding="utf-8", errors="replace") as f:
                content = await f.read()
        except OSError as e:
            logger.warning("note_read_failed", path=str(path), error=str(e))
            return None

        title, summary, keywords = parse_note_content(content)
        return CachedNote(
            path=path,
            mtime=mtime,
            title=title,
            summary=summary,
            keywords=keywords,
            blob=make_blob(path, title, keywords, summary),
        )

    async def refresh(self, path: str | os.PathLike) -> bool:
        """Reload one file if it changed on disk since it was cached.

        A missing file leaves its entry untouched.

        Returns:
            True if the entry was (re)loaded
        """
        path = normalize_path(path)
        try:
            mtime = path.stat().st_mtime
        except OSError:
            return False

        cached = self._notes.get(path)
        if cached is not None and mtime <= cached.mtime:
            return False

        note = await self._load_note(path, mtime)
        if note is None:
            return False

        # Whole-entry swap keeps every field from the same read
        self._notes[path] = note
        return True

    async def refresh_many(self, paths: Iterable[str | os.PathLike]) -> int:
        """Refresh files one after another. Returns the number reloaded."""
        start_time = time.time()
        checked = 0
        reloaded = 0
        for path in paths:
            checked += 1
            if await self.refresh(path):
                reloaded += 1

        if reloaded:
            logger.info(
                "cache_refreshed",
                checked=checked,
                reloaded=reloaded,
                note_count=len(self._notes),
                duration_ms=round((time.time() - start_time) * 1000, 2),
            )
        return reloaded

    def remove(self, paths: Iterable[str | os.PathLike]) -> list[Path]:
        """Drop entries for the given paths. Returns the paths actually removed."""
        removed = []
        for path in paths:
            path = normalize_path(path)
            if self._notes.pop(path, None) is not None:
                removed.append(path)
        if removed:
            logger.debug("cache_entries_removed", count=len(removed))
        return removed

    def garbage_collect(self) -> list[Path]:
        """Remove entries whose backing file no longer exists.

        Returns:
            The removed paths, in cache order
        """
        removed = [path for path in self._notes if not path.exists()]
        for path in removed:
            del self._notes[path]
        logger.info("cache_garbage_collected", removed=len(removed), note_count=len(self._notes))
        return removed

    def clear(self) -> None:
        """Drop all entries."""
        self._notes.clear()

    def paths(self) -> list[Path]:
        """Return the cached paths."""
        return list(self._notes)

    def get(self, path: str | os.PathLike) -> CachedNote | None:
        """Return the cached entry for ``path``, if any."""
        return self._notes.get(normalize_path(path))

    def title(self, path: str | os.PathLike) -> str | None:
        note = self.get(path)
        return note.title if note else None

    def summary(self, path: str | os.PathLike) -> str | None:
        note = self.get(path)
        return note.summary if note else None

    def keywords(self, path: str | os.PathLike) -> str | None:
        note = self.get(path)
        return note.keywords if note else None

    def blob(self, path: str | os.PathLike) -> str | None:
        note = self.get(path)
        return note.blob if note else None

    def mtime(self, path: str | os.PathLike) -> float | None:
        note = self.get(path)
        return note.mtime if note else None
