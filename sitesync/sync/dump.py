# SiteSync Dump Export
# Render the local sync unit as a MySQL script

from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from sitesync.bridge.operations import create_statement, insert_statement, quote_identifier
from sitesync.config.schema import SyncTable
from sitesync.store.local import LocalStore
from sitesync.utils.paths import atomic_write


def generate_dump(store: LocalStore, tables: Iterable[SyncTable], now: Optional[datetime] = None) -> str:
    """
    Build a MySQL script that loads the local tables into the remote schema.

    Args:
        store: Local store to read from.
        tables: Tables to include, in order.
        now: Timestamp for the header (defaults to current UTC time).

    Returns:
        SQL text.
    """
    now = now or datetime.now(timezone.utc)
    sql = "-- Database export for MySQL\n"
    sql += f"-- Generated on {now.isoformat()}\n\n"
    sql += "SET FOREIGN_KEY_CHECKS=0;\n\n"
    for table in tables:
        rows = store.read_all(table.name)
        sql += f"-- Table: {table.name}\n"
        sql += f"DROP TABLE IF EXISTS {quote_identifier(table.name)};\n"
        sql += create_statement(table.name, rows, if_not_exists=False)
        sql += insert_statement(table.name, rows)
        sql += "\n"
    sql += "SET FOREIGN_KEY_CHECKS=1;\n"
    return sql


def write_dump(store: LocalStore, tables: Iterable[SyncTable], path: Path) -> Path:
    """Write the dump atomically to ``path``."""
    atomic_write(path, generate_dump(store, tables))
    return path
