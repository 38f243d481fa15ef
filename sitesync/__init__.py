"""SiteSync - offline-first synchronization for the site database.

Keeps a local SQLite store usable without a network and reconciles it with
a remote relational database reachable only through an HTTP bridge, using
whole-table snapshot pull and push.
"""

__version__ = "1.0.0"

__all__ = [
    "__version__",
    "ConnectionProfile",
    "LocalStore",
    "SettingsStore",
    "BridgeClient",
    "SyncOrchestrator",
    "SyncResult",
    "SyncOutcome",
    "MutationHook",
    "SiteSyncApp",
]


def __getattr__(name: str):
    """Lazy import to avoid loading dependencies during setup."""
    if name == "ConnectionProfile":
        from sitesync.config.schema import ConnectionProfile

        return ConnectionProfile
    if name in ("LocalStore", "SettingsStore"):
        from sitesync import store

        return getattr(store, name)
    if name == "BridgeClient":
        from sitesync.bridge.client import BridgeClient

        return BridgeClient
    if name in ("SyncOrchestrator", "SyncResult", "SyncOutcome", "MutationHook"):
        from sitesync import sync

        return getattr(sync, name)
    if name == "SiteSyncApp":
        from sitesync.app import SiteSyncApp

        return SiteSyncApp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
