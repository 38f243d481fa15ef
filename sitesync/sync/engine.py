# SiteSync Sync Engine
# Orchestrates snapshot pull and push between the local store and the bridge

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from sitesync.bridge.client import BridgeClient
from sitesync.config.schema import ConnectionProfile, SyncTable
from sitesync.errors import BridgeConnectionError, NotConfigured, SyncBusy, SyncError, describe_error
from sitesync.store.local import LocalStore
from sitesync.store.settings import SettingsStore

logger = logging.getLogger(__name__)


class SyncOperation(str, Enum):
    """Direction of a sync operation."""

    PULL = "pull"
    PUSH = "push"


class SyncOutcome(str, Enum):
    """How a sync operation ended."""

    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"
    BUSY = "busy"
    NOT_CONFIGURED = "not_configured"


class SyncState(str, Enum):
    """Orchestrator state. Pull and push share one in-flight slot."""

    IDLE = "idle"
    PULLING = "pulling"
    PUSHING = "pushing"


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SyncResult:
    """Result of a pull or push."""

    operation: SyncOperation
    outcome: SyncOutcome = SyncOutcome.FAILED
    reason: str = ""
    tables: dict[str, int] = field(default_factory=dict)
    table_errors: dict[str, str] = field(default_factory=dict)
    started_at: datetime = field(default_factory=_now)
    finished_at: Optional[datetime] = None

    @property
    def success(self) -> bool:
        """Check if the operation completed without errors."""
        return self.outcome == SyncOutcome.COMPLETED

    def __bool__(self) -> bool:
        return self.success

    @property
    def total_rows(self) -> int:
        """Rows moved across all tables."""
        return sum(self.tables.values())

    @property
    def duration(self) -> float:
        """Elapsed seconds, 0 while still running."""
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    def finish(self, outcome: SyncOutcome, reason: str = "") -> "SyncResult":
        """Record the outcome and end time."""
        self.outcome = outcome
        self.reason = reason
        self.finished_at = _now()
        return self


def decode_json_fields(row: dict[str, Any], json_fields: Iterable[str]) -> dict[str, Any]:
    """
    Decode JSON documents the remote stores as text.

    Only values that look like a JSON object or array are decoded; values
    that fail to parse are kept as text.
    """
    decoded = dict(row)
    for name in json_fields:
        value = decoded.get(name)
        if not isinstance(value, str):
            continue
        text = value.strip()
        if not text.startswith(("{", "[")):
            continue
        try:
            decoded[name] = json.loads(text)
        except ValueError:
            logger.debug("Column %s holds non-JSON text; kept as is", name)
    return decoded


class SyncOrchestrator:
    """
    Snapshot synchronization engine.

    Pull replaces every local table of the sync unit with the remote
    contents, all or nothing. Push replaces every remote table with the
    local contents, best effort. At most one of them runs at a time.
    """

    def __init__(
        self,
        store: LocalStore,
        bridge: BridgeClient,
        settings: SettingsStore,
        tables: Iterable[SyncTable],
    ):
        """
        Initialize the orchestrator.

        Args:
            store: Local store holding the entity tables.
            bridge: Client for the remote bridge.
            settings: Settings store owning the connection profile.
            tables: The sync unit, in push order.

        Raises:
            ValueError: If a table is not managed by the store.
        """
        self.store = store
        self.bridge = bridge
        self.settings = settings
        self.tables: tuple[SyncTable, ...] = tuple(tables)

        unknown = [t.name for t in self.tables if t.name not in store.tables]
        if unknown:
            raise ValueError(f"Tables not present in the local store: {', '.join(unknown)}")

        self._lock = asyncio.Lock()
        self._waiting = 0
        self._state = SyncState.IDLE
        self._queued_push: Optional[asyncio.Task] = None

    @property
    def state(self) -> SyncState:
        """Current state."""
        return self._state

    @property
    def in_flight(self) -> bool:
        """
        Check if the slot is held or already promised to a waiter.

        A released lock still counts as held until the woken waiter resumes.
        """
        if self._lock.locked() or self._waiting > 0:
            return True
        return self._queued_push is not None and not self._queued_push.done()

    @asynccontextmanager
    async def _slot(self, state: Optional[SyncState] = None) -> AsyncIterator[None]:
        self._waiting += 1
        try:
            await self._lock.acquire()
        finally:
            self._waiting -= 1
        try:
            if state is not None:
                self._state = state
            yield
        finally:
            self._state = SyncState.IDLE
            self._lock.release()

    # --- Pull ---

    async def pull(self, profile: ConnectionProfile) -> SyncResult:
        """
        Replace the local sync unit with the remote snapshot.

        Nothing is written locally unless every table was fetched; the
        local write is one transaction over all tables.

        Args:
            profile: Connection parameters to pull with (not necessarily saved).

        Returns:
            SyncResult, truthy only after the local commit.
        """
        result = SyncResult(operation=SyncOperation.PULL)
        if self.in_flight:
            logger.info("Pull rejected: a %s is in progress", self._state.value)
            return result.finish(SyncOutcome.BUSY, SyncBusy().reason)

        async with self._slot(SyncState.PULLING):
            return await self._pull(profile, result)

    async def _pull(self, profile: ConnectionProfile, result: SyncResult) -> SyncResult:
        logger.info("Pull started from %s (%d tables)", profile.api_url or "<no bridge>", len(self.tables))
        try:
            await self.bridge.probe(profile)

            fetched: dict[str, list[dict[str, Any]]] = {}
            for table in self.tables:
                rows = await self.bridge.fetch_table(profile, table.name)
                fetched[table.name] = [decode_json_fields(row, table.json_fields) for row in rows]
                logger.debug("Fetched %d rows from %s", len(rows), table.name)

            counts: dict[str, int] = {}
            with self.store.snapshot() as snap:
                for table in self.tables:
                    counts[table.name] = snap.replace(table.name, fetched[table.name])
        except SyncError as e:
            logger.error("Pull failed: %s", e.reason)
            return result.finish(SyncOutcome.FAILED, e.reason)
        except Exception as e:
            logger.exception("Pull failed unexpectedly")
            return result.finish(SyncOutcome.FAILED, describe_error(e))

        result.tables = counts
        result.finish(SyncOutcome.COMPLETED)
        logger.info("Pull completed: %d rows in %d tables (%.2fs)", result.total_rows, len(counts), result.duration)
        return result

    # --- Push ---

    async def push(self, force: bool = False) -> SyncResult:
        """
        Replace the remote sync unit with the local contents.

        Args:
            force: Wait for an in-flight operation instead of declining.
                Forced pushes queued behind the same operation share one run.

        Returns:
            SyncResult. Local data is never modified, whatever the outcome.
        """
        if self.in_flight:
            if not force:
                logger.info("Push skipped: a %s is in progress", self._state.value)
                return SyncResult(operation=SyncOperation.PUSH).finish(SyncOutcome.BUSY, SyncBusy().reason)

            if self._queued_push is None or self._queued_push.done():
                logger.debug("Forced push queued behind the running %s", self._state.value)
                self._queued_push = asyncio.ensure_future(self._run_push(queued=True))
            return await asyncio.shield(self._queued_push)

        return await self._run_push()

    async def _run_push(self, *, queued: bool = False) -> SyncResult:
        async with self._slot(SyncState.PUSHING):
            if queued:
                # Once running, later forced pushes must queue a fresh run.
                self._queued_push = None
            return await self._push()

    async def _push(self) -> SyncResult:
        result = SyncResult(operation=SyncOperation.PUSH)
        try:
            profile = self.settings.load()
            missing = profile.missing_fields()
            if missing:
                reason = NotConfigured(missing=missing).reason
                logger.debug("Push deferred: %s", reason)
                return result.finish(SyncOutcome.NOT_CONFIGURED, reason)

            # Read the whole unit before the first await so the snapshot is consistent.
            snapshot = {table.name: self.store.read_all(table.name) for table in self.tables}
        except SyncError as e:
            logger.error("Push failed before sending: %s", e.reason)
            return result.finish(SyncOutcome.FAILED, e.reason)

        logger.info("Push started to %s (%d tables)", profile.api_url, len(self.tables))
        for index, table in enumerate(self.tables):
            rows = snapshot[table.name]
            try:
                await self.bridge.replace_table(profile, table.name, rows)
            except BridgeConnectionError as e:
                logger.error("Push of %s failed: %s", table.name, e.reason)
                result.table_errors[table.name] = e.reason
                # Bridge unreachable: the remaining tables are skipped.
                for skipped in self.tables[index + 1 :]:
                    result.table_errors[skipped.name] = f"Skipped: {e.reason}"
                break
            except SyncError as e:
                logger.error("Push of %s failed: %s", table.name, e.reason)
                result.table_errors[table.name] = e.reason
            except Exception as e:
                logger.exception("Push of %s failed unexpectedly", table.name)
                result.table_errors[table.name] = describe_error(e)
            else:
                result.tables[table.name] = len(rows)

        if not result.table_errors:
            result.finish(SyncOutcome.COMPLETED)
            logger.info(
                "Push completed: %d rows in %d tables (%.2fs)", result.total_rows, len(result.tables), result.duration
            )
        elif result.tables:
            result.finish(SyncOutcome.PARTIAL, f"{len(result.table_errors)} of {len(self.tables)} tables failed")
            logger.warning("Push partially failed: %s", result.reason)
        else:
            first_error = next(iter(result.table_errors.values()))
            result.finish(SyncOutcome.FAILED, first_error)
        return result

    # --- Setup and reset ---

    async def configure(self, profile: ConnectionProfile) -> SyncResult:
        """
        Verify new connection parameters, then persist them.

        The profile is saved only if a full pull with it succeeds.

        Args:
            profile: Candidate connection parameters.

        Returns:
            The pull result (or a failure if saving the profile failed).
        """
        result = await self.pull(profile)
        if not result:
            logger.info("Connection settings not saved: %s", result.reason)
            return result

        try:
            self.settings.save(profile)
        except SyncError as e:
            logger.error("Pull succeeded but saving the connection settings failed: %s", e.reason)
            result.finish(SyncOutcome.FAILED, e.reason)
        return result

    async def factory_reset(self) -> None:
        """
        Wipe every entity table and the settings, atomically.

        Waits for any in-flight sync first. Irreversible: callers confirm
        with the user before calling.

        Raises:
            LocalStoreError: If the reset failed; nothing was cleared.
        """
        async with self._slot():
            self.store.factory_reset()
