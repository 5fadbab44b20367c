"""
View-state coordination for notesync.

Change notifications are merged into a single pending UpdateLevel. Work is
only done when the view is visible, so any number of events arriving while
it is hidden cost one recompute and one render once it is shown.
"""

import asyncio
from collections.abc import Awaitable, Callable

import structlog

from .models import ChangeEvent, UpdateLevel

logger = structlog.get_logger(__name__)

# Minimum level each event source requires
EVENT_LEVELS: dict[ChangeEvent, UpdateLevel] = {
    ChangeEvent.FILESYSTEM: UpdateLevel.RECOMPUTE,
    ChangeEvent.QUERY: UpdateLevel.RECOMPUTE,
    ChangeEvent.FILTER: UpdateLevel.RECOMPUTE,
    ChangeEvent.RESIZE: UpdateLevel.REDRAW,
}


class ViewCoordinator:
    """Tracks owed work and decides when to recompute and render.

    Args:
        recompute: Rebuilds the file lists (all files, then current files)
        render: Draws the current file list
        is_visible: Whether the view is currently shown to the user
    """

    def __init__(
        self,
        recompute: Callable[[], Awaitable[None]],
        render: Callable[[], None],
        is_visible: Callable[[], bool],
    ):
        self._recompute = recompute
        self._render = render
        self._is_visible = is_visible
        self._pending = UpdateLevel.NONE
        # Serializes flushes; recompute and render must not flush themselves
        self._flush_lock = asyncio.Lock()

    @property
    def pending(self) -> UpdateLevel:
        return self._pending

    def merge(self, level: UpdateLevel) -> UpdateLevel:
        """Join ``level`` into the pending level without flushing."""
        self._pending = self._pending.merge(UpdateLevel(level))
        return self._pending

    async def request(self, level: UpdateLevel) -> bool:
        """Merge ``level`` and try to flush. Returns True if a flush happened."""
        self.merge(level)
        return await self.flush()

    def record(self, event: ChangeEvent) -> UpdateLevel:
        """Merge the level a change event requires, without flushing."""
        logger.debug("view_event", source=event.value)
        return self.merge(EVENT_LEVELS[event])

    async def on_event(self, event: ChangeEvent) -> bool:
        """Record a change event and try to flush."""
        self.record(event)
        return await self.flush()

    async def flush(self) -> bool:
        """Act on the pending level if the view is visible.

        Flushes run one at a time. A flush requested while another is running
        waits for it, then acts on whatever is still pending.

        Returns:
            True if a render happened
        """
        async with self._flush_lock:
            level = self._pending
            if level is UpdateLevel.NONE:
                return False
            if not self._is_visible():
                logger.debug("view_flush_deferred", pending=level.name)
                return False

            # Cleared up front so events arriving during recompute are kept
            self._pending = UpdateLevel.NONE
            try:
                if level is UpdateLevel.RECOMPUTE:
                    await self._recompute()
                self._render()
            except Exception:
                self._pending = self._pending.merge(level)
                raise

        logger.debug("view_flushed", level=level.name)
        return True
