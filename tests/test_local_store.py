# Tests for sitesync.store.local
# SQLite local store: transactions, snapshots, listeners and reset

import sqlite3

import pytest

from conftest import TABLE_NAMES
from sitesync.errors import LocalStoreError
from sitesync.store.local import LocalStore


class TestLocalStoreSetup:
    """Tests for opening the store."""

    def test_creates_tables(self, store):
        for name in TABLE_NAMES + ["settings"]:
            assert store.count(name) == 0

    def test_settings_cannot_be_entity_table(self, temp_dir):
        with pytest.raises(LocalStoreError, match="reserved"):
            LocalStore(temp_dir / "x.db", ["projects", "settings"])

    def test_creates_parent_directory(self, temp_dir):
        path = temp_dir / "nested" / "dir" / "site.db"
        with LocalStore(path, ["projects"]):
            pass
        assert path.exists()

    def test_in_memory(self):
        with LocalStore(":memory:", ["projects"]) as mem:
            with mem.transaction() as tx:
                tx.insert("projects", {"name": "A"})
            assert mem.count("projects") == 1

    def test_data_survives_reopen(self, temp_dir):
        path = temp_dir / "site.db"
        with LocalStore(path, ["projects"]) as first:
            with first.transaction() as tx:
                tx.insert("projects", {"name": "Persisted"})
        with LocalStore(path, ["projects"]) as second:
            assert second.read_all("projects") == [{"id": 1, "name": "Persisted"}]

    def test_unknown_table(self, store):
        with pytest.raises(LocalStoreError, match="Unknown table"):
            store.read_all("workers")


class TestTransaction:
    """Tests for domain transactions."""

    def test_insert_assigns_id(self, store):
        with store.transaction() as tx:
            first = tx.insert("projects", {"name": "A"})
            second = tx.insert("projects", {"name": "B"})
        assert second == first + 1
        assert store.get("projects", first) == {"id": first, "name": "A"}

    def test_insert_keeps_explicit_id(self, store):
        with store.transaction() as tx:
            assert tx.insert("projects", {"id": "42", "name": "Remote"}) == 42
        assert store.get("projects", 42)["name"] == "Remote"

    def test_insert_rejects_invalid_id(self, store):
        with pytest.raises(LocalStoreError, match="Invalid record id"):
            with store.transaction() as tx:
                tx.insert("projects", {"id": "abc"})

    def test_duplicate_id_is_store_error(self, store):
        with store.transaction() as tx:
            tx.insert("projects", {"id": 1, "name": "A"})
        with pytest.raises(LocalStoreError):
            with store.transaction() as tx:
                tx.insert("projects", {"id": 1, "name": "B"})
        assert store.get("projects", 1)["name"] == "A"

    def test_read_all_ordered_by_id(self, store):
        with store.transaction() as tx:
            tx.insert("projects", {"id": 3, "name": "C"})
            tx.insert("projects", {"id": 1, "name": "A"})
        assert [r["id"] for r in store.read_all("projects")] == [1, 3]

    def test_update_merges_fields(self, store):
        with store.transaction() as tx:
            record_id = tx.insert("projects", {"name": "A", "balance": 0})
        with store.transaction() as tx:
            assert tx.update("projects", record_id, {"balance": 50, "id": 999}) is True
        assert store.get("projects", record_id) == {"id": record_id, "name": "A", "balance": 50}

    def test_update_missing(self, store):
        with store.transaction() as tx:
            assert tx.update("projects", 123, {"name": "x"}) is False

    def test_delete(self, store):
        with store.transaction() as tx:
            record_id = tx.insert("projects", {"name": "A"})
        with store.transaction() as tx:
            assert tx.delete("projects", record_id) is True
            assert tx.delete("projects", record_id) is False
        assert store.count("projects") == 0

    def test_rollback_on_error(self, store):
        with pytest.raises(RuntimeError):
            with store.transaction() as tx:
                tx.insert("projects", {"name": "A"})
                tx.insert("inventory", {"name": "B"})
                raise RuntimeError("boom")
        assert store.count("projects") == 0
        assert store.count("inventory") == 0

    def test_json_values_round_trip(self, store):
        with store.transaction() as tx:
            record_id = tx.insert("roles", {"name": "Admin", "permissions": ["all"], "meta": {"a": 1}})
        assert store.get("roles", record_id)["permissions"] == ["all"]
        assert store.get("roles", record_id)["meta"] == {"a": 1}


class TestListeners:
    """Tests for after-commit listeners."""

    def test_called_after_commit(self, store):
        calls = []
        store.after_commit(lambda: calls.append(store.count("projects")))
        with store.transaction() as tx:
            tx.insert("projects", {"name": "A"})
        # The listener sees the committed row.
        assert calls == [1]

    def test_not_called_on_rollback(self, store):
        calls = []
        store.after_commit(lambda: calls.append(1))
        with pytest.raises(ValueError):
            with store.transaction() as tx:
                tx.insert("projects", {"name": "A"})
                raise ValueError("nope")
        assert calls == []

    def test_nested_transaction_notifies_once(self, store):
        calls = []
        store.after_commit(lambda: calls.append(1))
        with store.transaction() as outer:
            outer.insert("projects", {"name": "A"})
            with store.transaction() as inner:
                inner.insert("inventory", {"name": "B"})
            assert calls == []
        assert calls == [1]

    def test_nested_failure_rolls_back_outer(self, store):
        with pytest.raises(RuntimeError):
            with store.transaction() as outer:
                outer.insert("projects", {"name": "A"})
                with store.transaction() as inner:
                    inner.insert("inventory", {"name": "B"})
                    raise RuntimeError("inner")
        assert store.count("projects") == 0
        assert store.count("inventory") == 0

    def test_notify_false(self, store):
        calls = []
        store.after_commit(lambda: calls.append(1))
        with store.transaction(notify=False) as tx:
            tx.insert("projects", {"name": "A"})
        assert calls == []

    def test_failing_listener_does_not_undo_commit(self, store):
        def broken():
            raise RuntimeError("listener bug")

        calls = []
        store.after_commit(broken)
        store.after_commit(lambda: calls.append(1))
        with store.transaction() as tx:
            tx.insert("projects", {"name": "A"})
        assert store.count("projects") == 1
        assert calls == [1]

    def test_remove_listener(self, store):
        calls = []
        listener = store.after_commit(lambda: calls.append(1))
        store.remove_listener(listener)
        store.remove_listener(listener)
        with store.transaction() as tx:
            tx.insert("projects", {"name": "A"})
        assert calls == []


class TestSnapshot:
    """Tests for snapshot transactions."""

    def test_replace(self, store):
        with store.transaction() as tx:
            tx.insert("projects", {"id": 9, "name": "Old"})
        with store.snapshot() as snap:
            written = snap.replace("projects", [{"id": 1, "name": "New"}, {"name": "No id"}])
        assert written == 2
        rows = store.read_all("projects")
        assert rows[0] == {"id": 1, "name": "New"}
        assert rows[1]["name"] == "No id"
        assert store.get("projects", 9) is None

    def test_never_notifies(self, store):
        calls = []
        store.after_commit(lambda: calls.append(1))
        with store.snapshot() as snap:
            snap.replace("projects", [{"name": "A"}])
        assert calls == []

    def test_rollback_keeps_previous_contents(self, store):
        with store.transaction() as tx:
            tx.insert("projects", {"id": 1, "name": "Keep"})
        with pytest.raises(LocalStoreError):
            with store.snapshot() as snap:
                snap.replace("projects", [{"id": 2, "name": "New"}])
                snap.replace("inventory", [{"id": "bad id"}])
        assert store.read_all("projects") == [{"id": 1, "name": "Keep"}]

    def test_cannot_join_open_transaction(self, store):
        with store.transaction():
            with pytest.raises(LocalStoreError, match="cannot join"):
                with store.snapshot():
                    pass

    def test_domain_transaction_inside_snapshot_rejected(self, store):
        with store.snapshot():
            with pytest.raises(LocalStoreError, match="inside a snapshot"):
                with store.transaction():
                    pass

    def test_clear_settings_allowed(self, store):
        with store.transaction(notify=False) as tx:
            tx.put_setting("remote_api_url", "https://x")
        with store.snapshot() as snap:
            assert snap.clear("settings") == 1

    def test_replace_settings_rejected(self, store):
        with pytest.raises(LocalStoreError, match="Unknown table"):
            with store.snapshot() as snap:
                snap.replace("settings", [])


class TestFactoryReset:
    """Tests for factory_reset."""

    def test_clears_everything(self, store, seed_local, configured):
        store.factory_reset()
        for name in TABLE_NAMES + ["settings"]:
            assert store.count(name) == 0

    def test_failure_midway_changes_nothing(self, store, seed_local, configured, monkeypatch):
        def failing_clear(conn, table):
            if table == "inventory":
                raise sqlite3.OperationalError("disk I/O error")
            return conn.execute(f'DELETE FROM "{table}"').rowcount

        monkeypatch.setattr(store, "_clear_table", failing_clear)

        with pytest.raises(LocalStoreError, match="disk I/O error"):
            store.factory_reset()

        assert store.count("projects") == 1
        assert store.count("inventory") == 1
        assert store.count("settings") == 6

    def test_does_not_notify(self, store, seed_local):
        calls = []
        store.after_commit(lambda: calls.append(1))
        store.factory_reset()
        assert calls == []
