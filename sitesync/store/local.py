# SiteSync Local Store
# SQLite-backed offline store holding every entity table and the settings table

import json
import logging
import sqlite3
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Optional

from sitesync.config.schema import SETTINGS_TABLE
from sitesync.errors import LocalStoreError

logger = logging.getLogger(__name__)

CommitListener = Callable[[], None]


def _encode_record(record: dict[str, Any]) -> str:
    """Serialize a record body (everything but the id) as JSON."""
    body = {k: v for k, v in record.items() if k != "id"}
    return json.dumps(body, ensure_ascii=False, default=str)


def _coerce_id(value: Any) -> Optional[int]:
    """Remote identifiers may arrive as numeric strings."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise LocalStoreError(f"Invalid record id: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    raise LocalStoreError(f"Invalid record id: {value!r}")


class _Writer:
    """Statements shared by domain and snapshot transactions."""

    def __init__(self, store: "LocalStore", conn: sqlite3.Connection):
        self._store = store
        self._conn = conn

    def _insert_row(self, table: str, record: dict[str, Any]) -> int:
        record_id = _coerce_id(record.get("id"))
        if record_id is None:
            cursor = self._conn.execute(f'INSERT INTO "{table}" (data) VALUES (?)', (_encode_record(record),))
        else:
            cursor = self._conn.execute(
                f'INSERT INTO "{table}" (id, data) VALUES (?, ?)', (record_id, _encode_record(record))
            )
        return int(cursor.lastrowid if record_id is None else record_id)

    def put_setting(self, key: str, value: Any) -> None:
        """Upsert one settings row: update if the key exists, insert otherwise."""
        text = None if value is None else str(value)
        with self._store._translate_errors(f"write setting {key}"):
            cursor = self._conn.execute(f'UPDATE "{SETTINGS_TABLE}" SET value = ? WHERE key = ?', (text, key))
            if cursor.rowcount == 0:
                self._conn.execute(f'INSERT INTO "{SETTINGS_TABLE}" (key, value) VALUES (?, ?)', (key, text))


class Transaction(_Writer):
    """Scoped single-row mutations available to domain code."""

    def insert(self, table: str, record: dict[str, Any]) -> int:
        """
        Insert one record.

        Args:
            table: Entity table name.
            record: Field values; an ``id`` key is honoured if present.

        Returns:
            The record id.
        """
        self._store._check_table(table)
        with self._store._translate_errors(f"insert into {table}"):
            return self._insert_row(table, record)

    def update(self, table: str, record_id: int, fields: dict[str, Any]) -> bool:
        """Merge ``fields`` into an existing record. Returns False if it doesn't exist."""
        self._store._check_table(table)
        with self._store._translate_errors(f"update {table}"):
            row = self._conn.execute(f'SELECT data FROM "{table}" WHERE id = ?', (record_id,)).fetchone()
            if row is None:
                return False
            body = json.loads(row["data"])
            body.update({k: v for k, v in fields.items() if k != "id"})
            self._conn.execute(f'UPDATE "{table}" SET data = ? WHERE id = ?', (_encode_record(body), record_id))
            return True

    def delete(self, table: str, record_id: int) -> bool:
        """Delete one record. Returns False if it doesn't exist."""
        self._store._check_table(table)
        with self._store._translate_errors(f"delete from {table}"):
            cursor = self._conn.execute(f'DELETE FROM "{table}" WHERE id = ?', (record_id,))
            return cursor.rowcount > 0


class SnapshotTransaction(_Writer):
    """Whole-table writes, reserved for the sync orchestrator and factory reset."""

    def clear(self, table: str) -> int:
        """Delete every row of a table. Returns the number removed."""
        self._store._check_table(table, allow_settings=True)
        with self._store._translate_errors(f"clear {table}"):
            return self._store._clear_table(self._conn, table)

    def replace(self, table: str, rows: Iterable[dict[str, Any]]) -> int:
        """
        Replace a table's entire contents.

        Rows keep their ``id``; rows without one get a fresh id.

        Args:
            table: Entity table name.
            rows: New contents.

        Returns:
            Number of rows written.
        """
        self._store._check_table(table)
        count = 0
        with self._store._translate_errors(f"replace {table}"):
            self._store._clear_table(self._conn, table)
            for row in rows:
                self._insert_row(table, row)
                count += 1
        return count


class LocalStore:
    """
    Offline transactional store.

    Every entity table keeps a surrogate integer id plus a JSON body. The
    ``settings`` table is a key/value table. Write transactions begin with
    ``BEGIN IMMEDIATE`` so SQLite's write lock serializes them against any
    other writer on the same database file.
    """

    def __init__(self, path: str | Path, tables: Iterable[str]):
        """
        Open (creating if needed) the store.

        Args:
            path: SQLite file path or ``":memory:"``.
            tables: Names of the entity tables to manage.
        """
        self.path = str(path)
        self.tables: tuple[str, ...] = tuple(tables)
        if SETTINGS_TABLE in self.tables:
            raise LocalStoreError(f"'{SETTINGS_TABLE}' is reserved and cannot be an entity table")
        self._listeners: list[CommitListener] = []
        self._snapshot_active = False
        self._conn = self._connect()
        self.ensure_tables()

    def _connect(self) -> sqlite3.Connection:
        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        try:
            conn = sqlite3.connect(self.path, isolation_level=None, check_same_thread=False, timeout=10)
            conn.row_factory = sqlite3.Row
            if self.path != ":memory:":
                conn.execute("PRAGMA journal_mode=WAL;")
        except sqlite3.Error as e:
            raise LocalStoreError(f"Failed to open database '{self.path}': {e}") from e
        logger.debug("Opened local store at %s", self.path)
        return conn

    def ensure_tables(self) -> None:
        """Create missing tables."""
        with self._translate_errors("create tables"):
            for table in self.tables:
                self._conn.execute(
                    f'CREATE TABLE IF NOT EXISTS "{table}" (id INTEGER PRIMARY KEY AUTOINCREMENT, data TEXT NOT NULL)'
                )
            self._conn.execute(
                f'CREATE TABLE IF NOT EXISTS "{SETTINGS_TABLE}" '
                "(id INTEGER PRIMARY KEY AUTOINCREMENT, key TEXT NOT NULL UNIQUE, value TEXT)"
            )

    def close(self) -> None:
        """Close the underlying connection."""
        try:
            self._conn.close()
        except sqlite3.Error as e:
            logger.warning("Error closing local store: %s", e)

    def __enter__(self) -> "LocalStore":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # --- Listeners ---

    def after_commit(self, callback: CommitListener) -> CommitListener:
        """
        Register a callback run after every committed domain transaction.

        Returns the callback so it can be used as a decorator.
        """
        self._listeners.append(callback)
        return callback

    def remove_listener(self, callback: CommitListener) -> None:
        """Unregister an after-commit callback."""
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify(self) -> None:
        for callback in list(self._listeners):
            try:
                callback()
            except Exception:
                # The transaction is already durable; a listener must not undo that.
                logger.exception("After-commit listener %r failed", callback)

    # --- Reads ---

    def read_all(self, table: str) -> list[dict[str, Any]]:
        """Every record of a table, ordered by id, with ``id`` included."""
        self._check_table(table)
        with self._translate_errors(f"read {table}"):
            rows = self._conn.execute(f'SELECT id, data FROM "{table}" ORDER BY id').fetchall()
        return [{"id": row["id"], **json.loads(row["data"])} for row in rows]

    def get(self, table: str, record_id: int) -> Optional[dict[str, Any]]:
        """One record by id, or None."""
        self._check_table(table)
        with self._translate_errors(f"read {table}"):
            row = self._conn.execute(f'SELECT id, data FROM "{table}" WHERE id = ?', (record_id,)).fetchone()
        if row is None:
            return None
        return {"id": row["id"], **json.loads(row["data"])}

    def count(self, table: str) -> int:
        """Number of rows in a table (entity or settings)."""
        self._check_table(table, allow_settings=True)
        with self._translate_errors(f"count {table}"):
            return int(self._conn.execute(f'SELECT COUNT(*) FROM "{table}"').fetchone()[0])

    def read_settings(self, keys: Optional[Iterable[str]] = None) -> dict[str, Optional[str]]:
        """Settings rows as a key -> value dict, optionally restricted to ``keys``."""
        with self._translate_errors("read settings"):
            rows = self._conn.execute(f'SELECT key, value FROM "{SETTINGS_TABLE}"').fetchall()
        wanted = set(keys) if keys is not None else None
        return {row["key"]: row["value"] for row in rows if wanted is None or row["key"] in wanted}

    # --- Transactions ---

    @contextmanager
    def transaction(self, *, notify: bool = True) -> Iterator[Transaction]:
        """
        Domain write transaction.

        Commits on successful exit, rolls back on any exception. A nested
        call joins the outer transaction. After the outermost commit the
        after-commit listeners run, unless ``notify`` is False.

        Yields:
            Transaction: scoped single-row write API.
        """
        if self._snapshot_active:
            raise LocalStoreError("Cannot open a domain transaction inside a snapshot transaction")
        conn = self._conn
        if conn.in_transaction:
            yield Transaction(self, conn)
            return

        with self._translate_errors("begin transaction"):
            conn.execute("BEGIN IMMEDIATE")
        try:
            yield Transaction(self, conn)
            with self._translate_errors("commit"):
                conn.commit()
        except BaseException:
            self._rollback()
            raise

        if notify:
            self._notify()

    @contextmanager
    def snapshot(self) -> Iterator[SnapshotTransaction]:
        """
        Whole-table write transaction. Never fires after-commit listeners.

        Raises:
            LocalStoreError: If another transaction is already open.
        """
        conn = self._conn
        if conn.in_transaction:
            raise LocalStoreError("Snapshot writes cannot join an open transaction")

        with self._translate_errors("begin snapshot"):
            conn.execute("BEGIN IMMEDIATE")
        self._snapshot_active = True
        try:
            yield SnapshotTransaction(self, conn)
            with self._translate_errors("commit snapshot"):
                conn.commit()
        except BaseException:
            self._rollback()
            raise
        finally:
            self._snapshot_active = False

    def factory_reset(self) -> None:
        """Clear every entity table and the settings table atomically."""
        with self.snapshot() as snap:
            for table in self.tables:
                snap.clear(table)
            snap.clear(SETTINGS_TABLE)
        logger.info("Local store reset: %d tables and settings cleared", len(self.tables))

    # --- Internals ---

    def _clear_table(self, conn: sqlite3.Connection, table: str) -> int:
        return conn.execute(f'DELETE FROM "{table}"').rowcount

    def _rollback(self) -> None:
        try:
            self._conn.rollback()
            logger.debug("Rolled back local transaction")
        except sqlite3.Error as e:
            logger.error("Rollback failed: %s", e)

    def _check_table(self, table: str, *, allow_settings: bool = False) -> None:
        if table in self.tables or (allow_settings and table == SETTINGS_TABLE):
            return
        raise LocalStoreError(f"Unknown table: {table}")

    @contextmanager
    def _translate_errors(self, what: str) -> Iterator[None]:
        try:
            yield
        except sqlite3.Error as e:
            raise LocalStoreError(f"Failed to {what}: {e}") from e
