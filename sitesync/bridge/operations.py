# SiteSync Bridge Operations
# SQL-shaped requests carried by the bridge protocol

import json
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any

PROBE_SQL = "SELECT 1"

QUERY_ACTION = "query"
EXECUTE_ACTION = "execute_sql"


def quote_identifier(name: str) -> str:
    """Backquote a MySQL identifier."""
    return "`" + name.replace("`", "``") + "`"


def escape_value(value: Any) -> str:
    """
    Render a Python value as a MySQL literal.

    Args:
        value: Column value from a local record.

    Returns:
        SQL literal text.
    """
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    if isinstance(value, datetime):
        return "'" + value.strftime("%Y-%m-%d %H:%M:%S") + "'"
    if isinstance(value, date):
        return "'" + value.isoformat() + "'"
    if isinstance(value, (dict, list)):
        value = json.dumps(value, ensure_ascii=False)
    text = str(value).replace("\\", "\\\\").replace("'", "\\'")
    return f"'{text}'"


def row_columns(rows: list[dict[str, Any]]) -> list[str]:
    """Union of the columns of ``rows``: ``id`` first, the rest sorted."""
    names: set[str] = set()
    for row in rows:
        names.update(row.keys())
    ordered = sorted(names - {"id"})
    return (["id"] if "id" in names else []) + ordered


def column_type(values: list[Any]) -> str:
    """
    MySQL column type able to hold every non-null value in ``values``.

    Booleans, whole numbers and fractional numbers get numeric types;
    everything else (text, JSON documents, mixed columns) is TEXT.
    """
    kinds = {type(v) for v in values if v is not None}
    if not kinds:
        return "TEXT"
    if kinds == {bool}:
        return "TINYINT(1)"
    if kinds == {int}:
        return "BIGINT"
    if kinds <= {int, float}:
        return "DOUBLE"
    if kinds <= {int, Decimal}:
        return "DECIMAL(15,2)"
    if kinds == {datetime}:
        return "DATETIME"
    if kinds == {date}:
        return "DATE"
    return "TEXT"


def create_statement(table: str, rows: list[dict[str, Any]], if_not_exists: bool = True) -> str:
    """
    ``CREATE TABLE`` for ``table`` with columns derived from ``rows``.

    ``id`` is always the auto-increment primary key, so an empty table
    still gets a usable definition.
    """
    columns = ["  `id` INT AUTO_INCREMENT PRIMARY KEY"]
    for name in row_columns(rows):
        if name == "id":
            continue
        columns.append(f"  {quote_identifier(name)} {column_type([row.get(name) for row in rows])}")
    guard = "IF NOT EXISTS " if if_not_exists else ""
    return f"CREATE TABLE {guard}{quote_identifier(table)} (\n" + ",\n".join(columns) + "\n);\n"


def insert_statement(table: str, rows: list[dict[str, Any]]) -> str:
    """One multi-row INSERT for ``rows``, empty text when there are none."""
    if not rows:
        return ""
    columns = row_columns(rows)
    column_list = ", ".join(quote_identifier(c) for c in columns)
    values = ",\n".join("(" + ", ".join(escape_value(row.get(c)) for c in columns) + ")" for row in rows)
    return f"INSERT INTO {quote_identifier(table)} ({column_list}) VALUES\n{values};\n"


def replace_statements(table: str, rows: list[dict[str, Any]]) -> str:
    """Statements that make ``table`` contain exactly ``rows``."""
    return f"DELETE FROM {quote_identifier(table)};\n" + insert_statement(table, rows)


@dataclass(frozen=True)
class Probe:
    """Connectivity and credentials check."""

    action: str = QUERY_ACTION
    is_probe: bool = True

    @property
    def sql(self) -> str:
        return PROBE_SQL

    def describe(self) -> str:
        return "connectivity probe"


@dataclass(frozen=True)
class FetchTable:
    """Read every row of a remote table."""

    table: str
    action: str = QUERY_ACTION
    is_probe: bool = False

    @property
    def sql(self) -> str:
        return f"SELECT * FROM {quote_identifier(self.table)}"

    def describe(self) -> str:
        return f"fetch {self.table}"


@dataclass(frozen=True)
class ReplaceTable:
    """Replace every row of a remote table, creating the table if missing."""

    table: str
    rows: list[dict[str, Any]] = field(default_factory=list, hash=False)
    action: str = EXECUTE_ACTION
    is_probe: bool = False

    @property
    def sql(self) -> str:
        return (
            "SET FOREIGN_KEY_CHECKS=0;\n"
            + create_statement(self.table, self.rows)
            + replace_statements(self.table, self.rows)
            + "SET FOREIGN_KEY_CHECKS=1;\n"
        )

    def describe(self) -> str:
        return f"replace {self.table} ({len(self.rows)} rows)"


BridgeOperation = Probe | FetchTable | ReplaceTable
