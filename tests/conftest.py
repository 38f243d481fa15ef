# SiteSync Test Fixtures
# Pytest fixtures for SiteSync tests

import asyncio
import json
import logging
import re
import tempfile
from collections.abc import Generator
from pathlib import Path
from typing import Any, Optional

import httpx
import pytest
import yaml

from sitesync.bridge.client import BridgeClient
from sitesync.config.schema import ConnectionProfile, SyncTable
from sitesync.store.local import LocalStore
from sitesync.store.settings import SettingsStore
from sitesync.sync.engine import SyncOrchestrator

TABLES = [
    SyncTable(name="projects"),
    SyncTable(name="inventory"),
    SyncTable(name="roles", json_fields=["permissions"]),
]
TABLE_NAMES = [t.name for t in TABLES]

REMOTE_ROWS: dict[str, list[dict[str, Any]]] = {
    "projects": [
        {"id": 1, "name": "Casa Lima", "value": "1200.00", "balance": "0.00", "status": "Activo"},
        {"id": 2, "name": "Edificio Sol", "value": "98000.00", "balance": "1500.00", "status": "Pausado"},
    ],
    "inventory": [
        {"id": 10, "name": "Cemento", "quantity": 40, "unit": "saco"},
    ],
    "roles": [
        {"id": 1, "name": "Admin", "permissions": '["all"]'},
    ],
}

_SELECT = re.compile(r"^SELECT \* FROM `(\w+)`$")
_DELETE = re.compile(r"DELETE FROM `(\w+)`;")


def ok(data: Any = None, message: Optional[str] = None) -> httpx.Response:
    """Successful bridge response."""
    body: dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = data
    if message is not None:
        body["message"] = message
    return httpx.Response(200, json=body)


def rejected(message: str) -> httpx.Response:
    """Bridge response with success: false."""
    return httpx.Response(200, json={"success": False, "message": message})


class FakeBridge:
    """
    In-memory bridge script served through httpx.MockTransport.

    ``responses`` overrides the answer per table name (or ``"probe"``),
    ``offline`` simulates an unreachable host, and ``gate`` holds every
    request until the event is set. Tables missing from ``tables`` reject
    writes unless the SQL creates them.
    """

    def __init__(self, tables: Optional[dict[str, list[dict[str, Any]]]] = None):
        self.tables = {name: [dict(row) for row in rows] for name, rows in (tables or {}).items()}
        self.requests: list[dict[str, Any]] = []
        self.executed: dict[str, str] = {}
        self.created: list[str] = []
        self.responses: dict[str, httpx.Response] = {}
        self.offline = False
        self.gate: Optional[asyncio.Event] = None

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def executes(self) -> list[dict[str, Any]]:
        """Requests that used the execute_sql action."""
        return [r for r in self.requests if r["action"] == "execute_sql"]

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        self.requests.append(payload)
        if self.gate is not None:
            await self.gate.wait()
        if self.offline:
            raise httpx.ConnectError("Connection refused", request=request)

        sql = payload["sql"]
        match = _SELECT.match(sql) or _DELETE.search(sql)
        target = match.group(1) if match else "probe"
        if target in self.responses:
            return self.responses[target]

        if payload["action"] == "query":
            if target == "probe":
                return ok(data=[{"1": 1}])
            if target not in self.tables:
                return rejected(f"Table '{payload['database']}.{target}' doesn't exist")
            return ok(data=self.tables[target])

        if target not in self.tables:
            if f"CREATE TABLE IF NOT EXISTS `{target}`" not in sql:
                return rejected(f"Table '{payload['database']}.{target}' doesn't exist")
            self.tables[target] = []
            self.created.append(target)
        self.executed[target] = sql
        return ok(message="SQL executed successfully")


async def wait_for(predicate, attempts: int = 200) -> None:
    """Yield to the event loop until ``predicate()`` is true."""
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0.005)
    raise AssertionError("condition not reached")


@pytest.fixture(autouse=True)
def _restore_sitesync_logger() -> Generator[None, None, None]:
    """Undo handler changes made by setup_logging during a test."""
    logger = logging.getLogger("sitesync")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(level)
    logger.propagate = propagate


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def store(temp_dir: Path) -> Generator[LocalStore, None, None]:
    """File-backed local store with the test tables."""
    local = LocalStore(temp_dir / "site.db", TABLE_NAMES)
    yield local
    local.close()


@pytest.fixture
def settings(store: LocalStore) -> SettingsStore:
    return SettingsStore(store)


@pytest.fixture
def profile() -> ConnectionProfile:
    """Complete connection profile."""
    return ConnectionProfile(
        host="db.example.com",
        port="3306",
        user="site",
        password="s3cret",
        database="obras",
        api_url="https://bridge.example.com/api.php",
    )


@pytest.fixture
def configured(settings: SettingsStore, profile: ConnectionProfile) -> ConnectionProfile:
    """Save the profile so push can run."""
    settings.save(profile)
    return profile


@pytest.fixture
def fake_bridge() -> FakeBridge:
    return FakeBridge(REMOTE_ROWS)


@pytest.fixture
def bridge(fake_bridge: FakeBridge) -> BridgeClient:
    return BridgeClient(transport=fake_bridge.transport)


@pytest.fixture
def orchestrator(store: LocalStore, bridge: BridgeClient, settings: SettingsStore) -> SyncOrchestrator:
    return SyncOrchestrator(store, bridge, settings, TABLES)


@pytest.fixture
def seed_local(store: LocalStore) -> LocalStore:
    """Local data that differs from the remote."""
    with store.transaction() as tx:
        tx.insert("projects", {"id": 5, "name": "Local Only", "value": 10, "balance": 0, "status": "Activo"})
        tx.insert("inventory", {"id": 3, "name": "Arena", "quantity": 2, "unit": "m3"})
    return store


@pytest.fixture
def config_file(temp_dir: Path) -> Path:
    """Config file with a temporary store and the test tables."""
    config = {
        "store": {"path": str(temp_dir / "data" / "site.db")},
        "sync": {
            "tables": [t.model_dump() for t in TABLES],
            "auto_push_interval": 300,
        },
        "output": {"colored": False},
    }
    path = temp_dir / "config.yaml"
    path.write_text(yaml.dump(config), encoding="utf-8")
    return path
