# SiteSync Application
# Wires the store, settings, bridge, orchestrator and mutation hook together

import logging
from typing import Optional

import httpx

from sitesync.bridge.client import BridgeClient
from sitesync.config.schema import SiteSyncConfig
from sitesync.store.local import LocalStore
from sitesync.store.settings import SettingsStore
from sitesync.sync.autosync import AutoSync
from sitesync.sync.engine import SyncOrchestrator
from sitesync.sync.hooks import MutationHook

logger = logging.getLogger(__name__)


class SiteSyncApp:
    """
    One instance per process.

    Domain code receives ``app.store`` for its writes; the mutation hook
    attached here turns every committed write into a background push.
    """

    def __init__(self, config: SiteSyncConfig, *, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Open the local store and build the engine.

        Args:
            config: Application configuration.
            transport: Optional httpx transport for the bridge client.
        """
        self.config = config
        self.store = LocalStore(config.store.path, config.table_names())
        self.settings = SettingsStore(self.store)
        self.bridge = BridgeClient(
            timeout=config.bridge.timeout,
            push_timeout=config.bridge.push_timeout,
            verify=config.bridge.verify_tls,
            payload_warn_mb=config.bridge.payload_warn_mb,
            transport=transport,
        )
        self.orchestrator = SyncOrchestrator(self.store, self.bridge, self.settings, config.sync.tables)
        self.hook = MutationHook(self.orchestrator).attach(self.store)
        logger.debug("SiteSync ready: store=%s tables=%d", config.store.path, len(config.sync.tables))

    def auto_sync(self, interval: Optional[float] = None) -> AutoSync:
        """Create an AutoSync runner (interval defaults to the configured one)."""
        if interval is None:
            interval = self.config.sync.auto_push_interval
        return AutoSync(self.orchestrator, interval)

    async def aclose(self) -> None:
        """Wait for background pushes, then release the bridge and the store."""
        await self.hook.drain()
        self.hook.detach(self.store)
        await self.bridge.aclose()
        self.store.close()

    async def __aenter__(self) -> "SiteSyncApp":
        self.hook.flush_pending()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
