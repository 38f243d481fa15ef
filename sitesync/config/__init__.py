# SiteSync Configuration Module
# Handles YAML-based configuration loading, validation, and defaults

from sitesync.config.defaults import DEFAULT_CONFIG, DEFAULT_TABLES, generate_default_config
from sitesync.config.loader import (
    ensure_config_exists,
    get_config_path,
    load_config,
    load_or_default_config,
    save_config,
    validate_config_file,
)
from sitesync.config.schema import (
    DEFAULT_REMOTE_PORT,
    SETTINGS_TABLE,
    BridgeConfig,
    ConnectionProfile,
    OutputConfig,
    SiteSyncConfig,
    StoreConfig,
    SyncConfig,
    SyncTable,
)

__all__ = [
    # Schema
    "SiteSyncConfig",
    "StoreConfig",
    "BridgeConfig",
    "SyncConfig",
    "SyncTable",
    "OutputConfig",
    "ConnectionProfile",
    "SETTINGS_TABLE",
    "DEFAULT_REMOTE_PORT",
    # Loader
    "load_config",
    "load_or_default_config",
    "save_config",
    "get_config_path",
    "ensure_config_exists",
    "validate_config_file",
    # Defaults
    "DEFAULT_CONFIG",
    "DEFAULT_TABLES",
    "generate_default_config",
]
