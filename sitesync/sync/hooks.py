# SiteSync Mutation Hook
# Requests a push after every committed local write

import asyncio
import logging
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from sitesync.store.local import LocalStore
    from sitesync.sync.engine import SyncOrchestrator, SyncResult

logger = logging.getLogger(__name__)


class MutationHook:
    """
    Fire-and-forget push after a domain transaction commits.

    Register it with ``store.after_commit(hook)``. Domain code never awaits
    the push: the local commit is the durability boundary, remote
    propagation is best effort and retried by the next mutation's push.
    """

    def __init__(self, orchestrator: "SyncOrchestrator"):
        self.orchestrator = orchestrator
        self.pending = False
        self._tasks: set[asyncio.Task] = set()

    def attach(self, store: "LocalStore") -> "MutationHook":
        """Register with a store's after-commit listeners."""
        store.after_commit(self)
        return self

    def detach(self, store: "LocalStore") -> None:
        """Unregister from a store."""
        store.remove_listener(self)

    def __call__(self) -> Optional[asyncio.Task]:
        return self.request_push()

    def request_push(self) -> Optional[asyncio.Task]:
        """
        Schedule ``push(force=False)`` on the running event loop.

        Returns:
            The spawned task, or None when no event loop is running (the
            request is then kept as pending for the next call).
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.pending = True
            logger.debug("No running event loop; push request kept pending")
            return None

        self.pending = False
        task = loop.create_task(self._push_quietly(), name="sitesync-after-commit-push")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def flush_pending(self) -> Optional[asyncio.Task]:
        """Push for commits made while no event loop was running, if any."""
        if not self.pending:
            return None
        logger.info("Pushing writes committed outside the event loop")
        return self.request_push()

    async def _push_quietly(self) -> Optional["SyncResult"]:
        try:
            result = await self.orchestrator.push(force=False)
        except Exception:
            logger.exception("Background push after commit failed")
            return None
        if not result.success:
            logger.debug("Background push ended as %s: %s", result.outcome.value, result.reason)
        return result

    @property
    def outstanding(self) -> int:
        """Number of push tasks not yet finished."""
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every outstanding push task."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
