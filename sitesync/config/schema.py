# SiteSync Configuration Schema
# Pydantic models for YAML configuration and the remote connection profile

import re
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

SETTINGS_TABLE = "settings"
DEFAULT_REMOTE_PORT = "3306"

_TABLE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class ConnectionProfile(BaseModel):
    """Remote connection parameters handed to the bridge on every request."""

    host: str = Field(default="", description="Remote database host")
    port: str = Field(default=DEFAULT_REMOTE_PORT, description="Remote database port")
    user: str = Field(default="", description="Remote database user")
    password: str = Field(default="", description="Remote database password")
    database: str = Field(default="", description="Remote database name")
    api_url: str = Field(default="", description="Public URL of the HTTP bridge script")

    @field_validator("port", mode="before")
    @classmethod
    def port_as_text(cls, v: object) -> str:
        """Accept integer ports; blank means the MySQL default."""
        if v is None or str(v).strip() == "":
            return DEFAULT_REMOTE_PORT
        return str(v).strip()

    def missing_fields(self, *, probe: bool = False) -> tuple[str, ...]:
        """
        Names of required fields that are empty.

        Args:
            probe: Only the bridge URL is required for the connectivity probe.

        Returns:
            Tuple of missing field names, empty when usable.
        """
        required = ("api_url",) if probe else ("api_url", "host", "user", "database")
        return tuple(name for name in required if not getattr(self, name).strip())

    @property
    def is_complete(self) -> bool:
        """Check if enough is set to issue data requests."""
        return not self.missing_fields()

    def masked(self) -> "ConnectionProfile":
        """Copy with the password hidden, for display."""
        return self.model_copy(update={"password": "********" if self.password else ""})


class SyncTable(BaseModel):
    """One entity table of the sync unit."""

    name: str = Field(description="Table name, identical locally and remotely")
    json_fields: list[str] = Field(
        default_factory=list,
        description="Columns holding JSON documents; decoded when pulled from the remote",
    )

    @field_validator("name")
    @classmethod
    def valid_identifier(cls, v: str) -> str:
        """Table names are interpolated into SQL, so restrict them."""
        if not _TABLE_NAME.match(v):
            raise ValueError(f"invalid table name: {v!r}")
        if v == SETTINGS_TABLE:
            raise ValueError("the settings table holds the connection profile and cannot be synced")
        return v


class StoreConfig(BaseModel):
    """Local store settings."""

    path: str = Field(default="~/.local/share/sitesync/site.db", description="SQLite database file")

    @field_validator("path")
    @classmethod
    def expand_path(cls, v: str) -> str:
        """Expand ~ in path."""
        if v == ":memory:":
            return v
        return str(Path(v).expanduser())


class BridgeConfig(BaseModel):
    """HTTP bridge client settings."""

    timeout: float = Field(default=30.0, gt=0, description="Seconds allowed per fetch request")
    push_timeout: float = Field(default=60.0, gt=0, description="Seconds allowed per replace request")
    verify_tls: bool = Field(default=True, description="Verify the bridge TLS certificate")
    payload_warn_mb: float = Field(default=8.0, gt=0, description="Warn when a push payload exceeds this size")


class SyncConfig(BaseModel):
    """Sync unit and scheduling."""

    tables: list[SyncTable] = Field(default_factory=list, description="Tables synchronized together, in order")
    auto_push_interval: float = Field(default=300.0, ge=0, description="Seconds between automatic pushes (0 = off)")

    @field_validator("tables")
    @classmethod
    def unique_names(cls, v: list[SyncTable]) -> list[SyncTable]:
        """Reject duplicate table names."""
        seen: set[str] = set()
        for table in v:
            if table.name in seen:
                raise ValueError(f"duplicate table: {table.name}")
            seen.add(table.name)
        return v


class OutputConfig(BaseModel):
    """Output and logging configuration."""

    verbose: bool = Field(default=False, description="Enable verbose output")
    colored: bool = Field(default=True, description="Enable colored output")
    log_file: str | None = Field(default=None, description="Path to log file")

    @field_validator("log_file")
    @classmethod
    def expand_optional_path(cls, v: str | None) -> str | None:
        """Expand ~ in optional paths."""
        if v is None:
            return None
        return str(Path(v).expanduser())


class SiteSyncConfig(BaseModel):
    """Root configuration model for SiteSync."""

    store: StoreConfig = Field(default_factory=StoreConfig, description="Local store settings")
    bridge: BridgeConfig = Field(default_factory=BridgeConfig, description="Bridge client settings")
    sync: SyncConfig = Field(default_factory=SyncConfig, description="Sync unit settings")
    output: OutputConfig = Field(default_factory=OutputConfig, description="Output settings")

    def get_table(self, name: str) -> SyncTable | None:
        """Get a sync table by name."""
        for table in self.sync.tables:
            if table.name == name:
                return table
        return None

    def table_names(self) -> list[str]:
        """Names of the sync unit tables, in order."""
        return [table.name for table in self.sync.tables]
