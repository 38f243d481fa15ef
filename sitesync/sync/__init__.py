# SiteSync Sync Module
# Orchestrator, mutation hook, auto sync and dump export

from sitesync.sync.autosync import AutoSync
from sitesync.sync.dump import generate_dump, write_dump
from sitesync.sync.engine import (
    SyncOperation,
    SyncOrchestrator,
    SyncOutcome,
    SyncResult,
    SyncState,
    decode_json_fields,
)
from sitesync.sync.hooks import MutationHook

__all__ = [
    # Engine
    "SyncOrchestrator",
    "SyncResult",
    "SyncOperation",
    "SyncOutcome",
    "SyncState",
    "decode_json_fields",
    # Hooks
    "MutationHook",
    # Scheduling
    "AutoSync",
    # Export
    "generate_dump",
    "write_dump",
]
