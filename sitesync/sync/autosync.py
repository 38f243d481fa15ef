# SiteSync Auto Sync
# Periodic background push, plus an immediate push on demand

import asyncio
import logging
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from sitesync.sync.engine import SyncOrchestrator

logger = logging.getLogger(__name__)


class AutoSync:
    """
    Push every ``interval`` seconds until stopped.

    ``trigger()`` wakes the loop early, e.g. when connectivity is restored.
    Push failures are logged and the loop keeps going.
    """

    def __init__(self, orchestrator: "SyncOrchestrator", interval: float):
        """
        Initialize auto sync.

        Args:
            orchestrator: Engine to push through.
            interval: Seconds between pushes; 0 or less disables the loop.
        """
        self.orchestrator = orchestrator
        self.interval = interval
        self.runs = 0
        self._task: Optional[asyncio.Task] = None
        self._wake: Optional[asyncio.Event] = None

    @property
    def running(self) -> bool:
        """Check if the background loop is active."""
        return self._task is not None and not self._task.done()

    def start(self) -> bool:
        """
        Start the background loop on the running event loop.

        Returns:
            True if started, False if disabled or already running.
        """
        if self.interval <= 0:
            logger.info("Auto sync disabled (interval %s)", self.interval)
            return False
        if self.running:
            return False
        self._wake = asyncio.Event()
        self._task = asyncio.get_running_loop().create_task(self._loop(self._wake), name="sitesync-autosync")
        logger.info("Auto sync started, pushing every %gs", self.interval)
        return True

    def trigger(self) -> None:
        """Request an immediate push."""
        if self._wake is not None:
            logger.info("Immediate sync requested")
            self._wake.set()

    async def stop(self) -> None:
        """Cancel the loop and wait for it to finish."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Auto sync stopped after %d runs", self.runs)

    async def _loop(self, wake: asyncio.Event) -> None:
        while True:
            try:
                await asyncio.wait_for(wake.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass
            wake.clear()
            await self._run_once()

    async def _run_once(self) -> None:
        self.runs += 1
        try:
            result = await self.orchestrator.push(force=False)
        except Exception:
            logger.exception("Auto sync push failed")
            return
        logger.debug("Auto sync push: %s %s", result.outcome.value, result.reason)
