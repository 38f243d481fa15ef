# SiteSync Default Configuration
# Full default configuration as Python dict and YAML generator

import copy
from typing import Any

import yaml

DEFAULT_TABLES: list[dict[str, Any]] = [
    {"name": "projects", "json_fields": []},
    {"name": "inventory", "json_fields": []},
    {"name": "inventoryMovements", "json_fields": []},
    {"name": "transactions", "json_fields": []},
    {"name": "suppliers", "json_fields": []},
    {"name": "returns", "json_fields": []},
    {"name": "categories", "json_fields": []},
    {"name": "users", "json_fields": []},
    {"name": "roles", "json_fields": ["permissions"]},
    {"name": "workers", "json_fields": []},
    {"name": "workerRoles", "json_fields": []},
    {"name": "payrolls", "json_fields": ["details"]},
    {"name": "loans", "json_fields": []},
    {"name": "clients", "json_fields": []},
    {"name": "dailyLogs", "json_fields": ["photos", "usedMaterials"]},
    {"name": "attendance", "json_fields": []},
]

DEFAULT_CONFIG: dict[str, Any] = {
    "store": {
        "path": "~/.local/share/sitesync/site.db",
    },
    "bridge": {
        "timeout": 30.0,
        "push_timeout": 60.0,
        "verify_tls": True,
        "payload_warn_mb": 8.0,
    },
    "sync": {
        "tables": DEFAULT_TABLES,
        "auto_push_interval": 300.0,
    },
    "output": {
        "verbose": False,
        "colored": True,
    },
}


def default_config() -> dict[str, Any]:
    """Deep copy of the default configuration, safe to mutate."""
    return copy.deepcopy(DEFAULT_CONFIG)


def generate_default_config() -> str:
    """
    Generate default configuration as YAML string.

    Returns:
        YAML formatted configuration string with comments.
    """
    header = """# SiteSync Configuration
# Offline-first synchronization between the local site database and the
# remote database behind the HTTP bridge.
#
# The remote connection itself (host, user, password, database, bridge URL)
# is not stored here: run 'sitesync setup' to verify and save it.
#
# Documentation: sitesync --help

"""

    sections = [
        ("Local store", {"store": DEFAULT_CONFIG["store"]}),
        ("Bridge client timeouts (seconds)", {"bridge": DEFAULT_CONFIG["bridge"]}),
        ("Tables synchronized together (order matters for push)", {"sync": DEFAULT_CONFIG["sync"]}),
        ("Output", {"output": DEFAULT_CONFIG["output"]}),
    ]

    body = ""
    for title, data in sections:
        body += f"# {title}\n"
        body += yaml.dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)
        body += "\n"

    return header + body
