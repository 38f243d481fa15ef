# SiteSync Store Module
# Local offline store and the settings kept inside it

from sitesync.store.local import LocalStore, SnapshotTransaction, Transaction
from sitesync.store.settings import PROFILE_KEYS, SettingsStore

__all__ = [
    "LocalStore",
    "Transaction",
    "SnapshotTransaction",
    "SettingsStore",
    "PROFILE_KEYS",
]
