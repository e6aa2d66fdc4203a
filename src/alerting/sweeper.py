"""
Periodic maintenance sweep over the engine's in-memory state.
"""

import asyncio
from datetime import datetime
from typing import Callable, Dict, Optional

import structlog

from .engine import AlertEngine

logger = structlog.get_logger(__name__)


class MaintenanceSweeper:
    """
    Prunes expired cooldowns, filter state and event history on a fixed interval.

    The interval does not depend on event volume. At most one sweep runs at a
    time; each structure is pruned under its own lock, so a sweep never
    interleaves with an evaluation writing to the same structure.
    """

    def __init__(
        self,
        engine: AlertEngine,
        interval_seconds: float = 60,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.engine = engine
        self.interval_seconds = interval_seconds
        self._clock = clock
        self._task: Optional[asyncio.Task] = None
        self._sweep_lock = asyncio.Lock()
        self.sweeps_completed = 0
        self.last_sweep_at: Optional[datetime] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self, now: Optional[datetime] = None) -> Optional[Dict[str, int]]:
        """
        Run a single sweep.

        Returns:
            Removed entry counts per structure, or None if a sweep was
            already in progress
        """
        if self._sweep_lock.locked():
            logger.debug("sweep_skipped_in_progress")
            return None

        async with self._sweep_lock:
            now = now or self._clock()
            removed = self.engine.prune(now)
            self.sweeps_completed += 1
            self.last_sweep_at = now
            if any(removed.values()):
                logger.info("maintenance_sweep_completed", **removed)
            return removed

    async def start(self) -> None:
        """Start the sweep loop. Calling start twice is a no-op."""
        if self._task:
            return
        self._task = asyncio.create_task(self._loop())
        logger.info("maintenance_sweeper_started", interval_seconds=self.interval_seconds)

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("maintenance_sweeper_stopped")

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.run_once()
            except Exception as e:
                logger.error("maintenance_sweep_failed", error=str(e))


__all__ = ["MaintenanceSweeper"]
