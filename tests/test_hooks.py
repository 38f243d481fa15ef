# Tests for sitesync.sync.hooks
# Background push after committed local writes

import asyncio
from unittest.mock import AsyncMock

import pytest

from conftest import TABLES
from sitesync.sync.engine import SyncOutcome
from sitesync.sync.hooks import MutationHook


class TestMutationHook:
    """Tests for MutationHook."""

    @pytest.mark.asyncio
    async def test_commit_schedules_push(self, orchestrator, store, fake_bridge, configured):
        hook = MutationHook(orchestrator).attach(store)

        with store.transaction() as tx:
            tx.insert("projects", {"name": "Nuevo"})

        assert hook.outstanding == 1
        await hook.drain()
        assert hook.outstanding == 0
        assert "'Nuevo'" in fake_bridge.executed["projects"]

    @pytest.mark.asyncio
    async def test_commit_does_not_wait_for_push(self, orchestrator, store, fake_bridge, configured):
        fake_bridge.gate = asyncio.Event()
        hook = MutationHook(orchestrator).attach(store)

        with store.transaction() as tx:
            tx.insert("projects", {"name": "A"})
        # The write is durable before the push even started.
        assert store.count("projects") == 1

        fake_bridge.gate.set()
        await hook.drain()

    @pytest.mark.asyncio
    async def test_rollback_schedules_nothing(self, orchestrator, store, configured):
        hook = MutationHook(orchestrator).attach(store)
        with pytest.raises(RuntimeError):
            with store.transaction() as tx:
                tx.insert("projects", {"name": "A"})
                raise RuntimeError("validation failed")
        assert hook.outstanding == 0

    @pytest.mark.asyncio
    async def test_push_failure_is_swallowed(self, orchestrator, store, fake_bridge, configured):
        fake_bridge.offline = True
        hook = MutationHook(orchestrator).attach(store)

        with store.transaction() as tx:
            tx.insert("projects", {"name": "A"})
        await hook.drain()

        assert store.count("projects") == 1

    @pytest.mark.asyncio
    async def test_not_configured_is_silent(self, orchestrator, store, fake_bridge):
        hook = MutationHook(orchestrator).attach(store)
        task = hook.request_push()
        result = await task
        assert result.outcome == SyncOutcome.NOT_CONFIGURED
        assert fake_bridge.requests == []

    @pytest.mark.asyncio
    async def test_concurrent_requests_are_declined(self, orchestrator, fake_bridge, configured):
        hook = MutationHook(orchestrator)
        first = hook.request_push()
        second = hook.request_push()

        first_result, second_result = await asyncio.gather(first, second)

        assert first_result.outcome == SyncOutcome.COMPLETED
        assert second_result.outcome == SyncOutcome.BUSY
        assert len(fake_bridge.executes()) == len(TABLES)

    @pytest.mark.asyncio
    async def test_unexpected_exception_logged(self):
        orchestrator = AsyncMock()
        orchestrator.push.side_effect = RuntimeError("bug")
        hook = MutationHook(orchestrator)

        assert await hook.request_push() is None

    def test_without_event_loop_keeps_pending(self, orchestrator, store):
        hook = MutationHook(orchestrator).attach(store)

        with store.transaction() as tx:
            tx.insert("projects", {"name": "A"})

        assert hook.pending is True
        assert hook.outstanding == 0

    @pytest.mark.asyncio
    async def test_pending_cleared_by_next_request(self, orchestrator, configured):
        hook = MutationHook(orchestrator)
        hook.pending = True
        task = hook.request_push()
        assert hook.pending is False
        await task

    @pytest.mark.asyncio
    async def test_flush_pending_pushes(self, orchestrator, fake_bridge, configured):
        hook = MutationHook(orchestrator)
        hook.pending = True

        task = hook.flush_pending()

        assert hook.pending is False
        assert (await task).success
        assert len(fake_bridge.executes()) == len(TABLES)

    @pytest.mark.asyncio
    async def test_flush_without_pending_does_nothing(self, orchestrator, fake_bridge, configured):
        hook = MutationHook(orchestrator)
        assert hook.flush_pending() is None
        assert fake_bridge.requests == []

    @pytest.mark.asyncio
    async def test_detach(self, orchestrator, store, configured):
        hook = MutationHook(orchestrator).attach(store)
        hook.detach(store)
        with store.transaction() as tx:
            tx.insert("projects", {"name": "A"})
        assert hook.outstanding == 0
