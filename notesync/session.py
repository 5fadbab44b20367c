"""
Session state for notesync.

A Session owns everything that changes while notes are browsed: the resolved
roots, the metadata cache, the unfiltered and filtered file lists, the query
and filter strings, and the view coordinator. Callers route every change
notification through it, and it decides what has to be redone.
"""

import os
from collections.abc import Callable, Iterable
from pathlib import Path

import structlog

from .cache import NoteCache
from .config import Settings, settings as default_settings
from .coordinator import ViewCoordinator
from .enumerator import find_note_files_in_roots, is_note_file
from .filtering import blob_matches, filter_files, normalize_filter_string, parse_filter_string
from .formatting import NoteFormatter, default_formatter
from .index import SearchIndex, SqliteSearchIndex
from .models import ChangeEvent, UpdateLevel
from .resolver import filter_existing, resolve_directories
from .utils import SearchIndexError, find_containing_root, normalize_path

logger = structlog.get_logger(__name__)


class Session:
    """Synchronizes a filtered note list with the note directories.

    Args:
        settings: Configuration; defaults to the global settings
        index: Full-text search index; None lists notes by recency only
        render: Called with the current file list whenever the view must be redrawn
        is_visible: Tells whether the view is shown; updates wait while it is not
        formatter: Display strategy used by ``format_files``
    """

    def __init__(
        self,
        settings: Settings | None = None,
        index: SearchIndex | None = None,
        render: Callable[[list[Path]], None] | None = None,
        is_visible: Callable[[], bool] | None = None,
        formatter: NoteFormatter | None = None,
    ):
        self.settings = settings or default_settings
        self.index = index
        self.formatter = formatter or default_formatter
        self.cache = NoteCache(max_file_size=self.settings.max_file_size)

        self.roots: list[Path] = []
        self.all_files: list[Path] = []
        self.current_files: list[Path] = []
        self.query: str | None = None
        self.filter_string: str | None = None

        self._render_callback = render
        self._index_available = index is not None
        # Roots owing an index update, mapped to whether it must be forced
        self._stale_roots: dict[Path, bool] = {}
        self._all_files_stale = True

        self.view = ViewCoordinator(
            recompute=self._recompute,
            render=self._render,
            is_visible=is_visible or (lambda: True),
        )

    @property
    def pending(self) -> UpdateLevel:
        return self.view.pending

    @property
    def index_available(self) -> bool:
        return self._index_available

    # ============== Roots ==============

    def _resolve_roots(self) -> list[Path]:
        """Resolve the configured roots from scratch, dropping missing ones and duplicates."""
        roots: list[Path] = []
        for directory in filter_existing(resolve_directories(self.settings.directories)):
            root = normalize_path(directory)
            if root not in roots:
                roots.append(root)
        logger.info("roots_resolved", roots=[str(r) for r in roots])
        return roots

    def root_for(self, path: str | os.PathLike) -> Path | None:
        """Return the root containing ``path``, if any."""
        return find_containing_root(normalize_path(path), self.roots)

    def _mark_stale(self, root: Path, force: bool = False) -> None:
        self._stale_roots[root] = self._stale_roots.get(root, False) or force
        self._all_files_stale = True

    async def _report(self, event: ChangeEvent, flush: bool = True) -> bool:
        self.view.record(event)
        if not flush:
            return False
        return await self.view.flush()

    # ============== Entry points ==============

    async def initialize(self) -> bool:
        """Resolve roots and schedule the first listing."""
        return await self.refresh()

    async def refresh(self, force: bool = False) -> bool:
        """Re-resolve the roots and re-derive the file lists.

        Args:
            force: Rebuild the search index for every root instead of updating it

        Returns:
            True if the view was redrawn immediately
        """
        self.roots = self._resolve_roots()
        self._stale_roots = {}
        for root in self.roots:
            self._mark_stale(root, force)
        self._all_files_stale = True
        if self.index is not None and not self._index_available:
            logger.info("search_index_reenabled")
            self._index_available = True
        return await self.view.on_event(ChangeEvent.FILESYSTEM)

    async def reset(self) -> bool:
        """Drop all cached state, the query and the filter, then refresh."""
        self.cache.clear()
        self.query = None
        self.filter_string = None
        self.all_files = []
        self.current_files = []
        return await self.refresh()

    async def set_query(self, query: str | None, flush: bool = True) -> bool:
        """Replace the search query. Blank queries mean "all notes".

        With ``flush=False`` the change is only recorded; the next flush acts on it.
        """
        if query is not None and not query.strip():
            query = None
        if query == self.query:
            return False
        self.query = query
        self._all_files_stale = True
        return await self._report(ChangeEvent.QUERY, flush)

    async def set_filter(self, filter_string: str | None, flush: bool = True) -> bool:
        """Replace the filter string. Empty strings mean no filter."""
        filter_string = normalize_filter_string(filter_string)
        if filter_string == self.filter_string:
            return False
        self.filter_string = filter_string
        return await self._report(ChangeEvent.FILTER, flush)

    async def notify_files_changed(self, paths: Iterable[str | os.PathLike]) -> bool:
        """Handle a files-changed event for absolute note paths.

        Paths outside every root are ignored.

        Returns:
            True if the view was redrawn immediately
        """
        affected = False
        for path in paths:
            root = self.root_for(path)
            if root is not None:
                self._mark_stale(root)
                affected = True
        if not affected:
            return False
        return await self.view.on_event(ChangeEvent.FILESYSTEM)

    async def notify_dirs_changed(self, dirs: Iterable[str | os.PathLike]) -> bool:
        """Handle a dirs-changed event.

        Relative directories are taken relative to each root. A directory
        containing a root marks that root as changed too.
        """
        affected = False
        for directory in dirs:
            dir_path = Path(os.fspath(directory)).expanduser()
            if dir_path.is_absolute():
                candidates = [normalize_path(dir_path)]
            else:
                candidates = [normalize_path(root / dir_path) for root in self.roots]

            for candidate in candidates:
                for root in self.roots:
                    if find_containing_root(candidate, [root]) or find_containing_root(root, [candidate]):
                        self._mark_stale(root)
                        affected = True
        if not affected:
            return False
        return await self.view.on_event(ChangeEvent.FILESYSTEM)

    async def notify_files_removed(self, paths: Iterable[str | os.PathLike]) -> bool:
        """Forget deleted or renamed-away files, then report them as changed."""
        paths = list(paths)
        self.cache.remove(paths)
        return await self.notify_files_changed(paths)

    async def notify_files_renamed(self, moves: Iterable[tuple[str | os.PathLike, str | os.PathLike]]) -> bool:
        """Handle (old, new) path pairs as one event: forget the old paths, report both."""
        moves = list(moves)
        self.cache.remove(old for old, _ in moves)
        return await self.notify_files_changed([path for move in moves for path in move])

    async def note_saved(self, path: str | os.PathLike) -> bool:
        """Save-hook observer: report a saved note as changed.

        Files that are not notes under a root are ignored.
        """
        if not is_note_file(path, self.settings.extensions, self.settings.exclude_prefixes):
            return False
        return await self.notify_files_changed([path])

    async def window_resized(self) -> bool:
        """The view changed size; only a redraw is owed."""
        return await self.view.on_event(ChangeEvent.RESIZE)

    async def view_shown(self) -> bool:
        """The view became visible; carry out any deferred work."""
        return await self.view.flush()

    def garbage_collect(self) -> list[Path]:
        """Drop cache entries of files that no longer exist."""
        return self.cache.garbage_collect()

    # ============== Recomputation ==============

    def _disable_index(self, error: Exception) -> None:
        logger.warning("search_index_unavailable", error=str(error))
        self._index_available = False

    async def _update_index(self) -> None:
        """Run the index updates owed for changed roots."""
        stale, self._stale_roots = self._stale_roots, {}
        if not stale or self.index is None or not self._index_available:
            return

        roots = [root for root in self.roots if root in stale]
        forced = [root for root in roots if stale[root]]
        incremental = [root for root in roots if not stale[root]]
        try:
            if forced:
                await self.index.index_directories(forced, force=True)
            if incremental:
                await self.index.index_directories(incremental, force=False)
        except SearchIndexError as e:
            self._disable_index(e)

    async def _enumerate_all_files(self) -> list[Path]:
        """List notes straight from disk, newest first."""
        files = find_note_files_in_roots(
            self.roots, self.settings.extensions, self.settings.exclude_prefixes
        )
        await self.cache.refresh_many(files)
        files = [path for path in files if self.cache.get(path) is not None]

        tokens = parse_filter_string(self.query)
        if tokens:
            files = [
                path for path in files
                if blob_matches(self.cache.blob(path), tokens, self.settings.filter_case_sensitive)
            ]

        files.sort(key=lambda path: self.cache.mtime(path), reverse=True)
        return files

    async def _derive_all_files(self) -> list[Path]:
        """Rebuild the unfiltered list from the index, or from disk without one."""
        if self.index is not None and self._index_available:
            try:
                files = await self.index.query(
                    self.roots,
                    self.query,
                    max_results=self.settings.max_results,
                    order=self.settings.order,
                )
            except SearchIndexError as e:
                self._disable_index(e)
            else:
                await self.cache.refresh_many(files)
                return files
        return await self._enumerate_all_files()

    async def _recompute(self) -> None:
        """Rebuild all_files if needed, then current_files from it."""
        if self._all_files_stale:
            # Cleared first so changes reported while deriving mark it stale again
            self._all_files_stale = False
            try:
                await self._update_index()
                self.all_files = await self._derive_all_files()
            except Exception:
                self._all_files_stale = True
                raise

        self.current_files = filter_files(
            self.all_files,
            self.filter_string,
            self.cache,
            case_sensitive=self.settings.filter_case_sensitive,
        )
        logger.debug(
            "file_lists_recomputed",
            all_files=len(self.all_files),
            current_files=len(self.current_files),
        )

    def _render(self) -> None:
        if self._render_callback is not None:
            self._render_callback(self.current_files)

    # ============== Display ==============

    def format_files(self, files: Iterable[Path] | None = None) -> list[str]:
        """Format ``files`` (default: the current list) with the session's formatter."""
        if files is None:
            files = self.current_files
        return [self.formatter(path, self.cache.get(path)) for path in files]


def create_session(settings: Settings | None = None, **kwargs) -> Session:
    """Build a Session, attaching the SQLite index when the settings ask for one."""
    settings = settings or default_settings
    index = None
    if settings.use_search_index:
        index = SqliteSearchIndex(
            settings.index_path,
            extensions=settings.extensions,
            exclude_prefixes=settings.exclude_prefixes,
            max_file_size=settings.max_file_size,
        )
    return Session(settings, index=index, **kwargs)
