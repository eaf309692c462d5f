"""Periodic flush of pending warning changes.

Commits are write-through, so the timer only has work to do after a durable
write failed. Each tick calls :meth:`RecordStore.flush_if_dirty`, which takes
the store's write lock like every other persist.
"""

from __future__ import annotations

import asyncio

from modwarden.storage.record_store import RecordStore
from modwarden.util.logger import get_logger

logger = get_logger("autosave_scheduler")


class AutoSaveScheduler:
    """
    Background task that retries failed saves on a fixed interval.

    Args:
        store: The record store to flush.
        interval_minutes: Minutes between ticks; 0 or less disables the timer.
    """

    def __init__(self, store: RecordStore, interval_minutes: float) -> None:
        self._store = store
        self._interval = interval_minutes * 60
        self._task: asyncio.Task | None = None

    @property
    def enabled(self) -> bool:
        return self._interval > 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def tick(self) -> None:
        """Flush once if the store holds unsaved changes."""
        if not self._store.is_dirty:
            return
        result = await self._store.flush_if_dirty()
        if result.ok:
            logger.info("[AUTOSAVE] Pending warning changes saved")
        else:
            logger.error("[AUTOSAVE] Save failed, will retry in %.0fs: %s", self._interval, result.error)

    async def _run_loop(self) -> None:
        """Infinite loop: sleep, flush, repeat."""
        try:
            while True:
                await asyncio.sleep(self._interval)
                try:
                    await self.tick()
                except asyncio.CancelledError:
                    raise
                except Exception as exc:
                    logger.error("[AUTOSAVE] Unexpected error during autosave: %s", exc)
        except asyncio.CancelledError:
            logger.info("[AUTOSAVE] Autosave cancelled")
            raise

    def start(self) -> None:
        """Start the background task if enabled and not already running."""
        if not self.enabled:
            logger.info("[AUTOSAVE] Autosave disabled")
            return
        if self.running:
            logger.warning("[AUTOSAVE] Autosave task already running")
            return
        logger.info("[AUTOSAVE] Creating autosave task with interval %.0fs", self._interval)
        self._task = asyncio.create_task(self._run_loop())

    async def shutdown(self) -> None:
        """Cancel the task and wait for it to finish."""
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("[AUTOSAVE] Scheduler shutdown complete")
