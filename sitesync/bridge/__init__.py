# SiteSync Bridge Module
# HTTP bridge client and the operations it carries

from sitesync.bridge.client import BridgeClient, BridgeResult
from sitesync.bridge.operations import (
    PROBE_SQL,
    BridgeOperation,
    FetchTable,
    Probe,
    ReplaceTable,
    escape_value,
    replace_statements,
)

__all__ = [
    "BridgeClient",
    "BridgeResult",
    "BridgeOperation",
    "Probe",
    "FetchTable",
    "ReplaceTable",
    "PROBE_SQL",
    "escape_value",
    "replace_statements",
]
