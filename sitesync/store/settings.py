# SiteSync Settings Store
# Remote connection profile persisted as key/value rows in the local store

import logging

from sitesync.config.schema import DEFAULT_REMOTE_PORT, ConnectionProfile
from sitesync.store.local import LocalStore

logger = logging.getLogger(__name__)

# Profile field -> settings key
PROFILE_KEYS: dict[str, str] = {
    "host": "remote_db_host",
    "port": "remote_db_port",
    "user": "remote_db_user",
    "password": "remote_db_password",
    "database": "remote_db_name",
    "api_url": "remote_api_url",
}

PROFILE_DEFAULTS: dict[str, str] = {
    "port": DEFAULT_REMOTE_PORT,
}


class SettingsStore:
    """
    Single source of truth for the remote connection profile.

    The profile is written only after a successful verification pull, so
    "configured" here means "known to have worked at least once".
    """

    def __init__(self, store: LocalStore):
        self.store = store

    def load(self) -> ConnectionProfile:
        """
        Read the stored profile.

        Missing or empty keys fall back to their defaults (empty string, or
        the MySQL port for ``port``).

        Returns:
            ConnectionProfile built from the settings table.
        """
        stored = self.store.read_settings(PROFILE_KEYS.values())
        values = {}
        for field_name, key in PROFILE_KEYS.items():
            value = stored.get(key)
            values[field_name] = value if value else PROFILE_DEFAULTS.get(field_name, "")
        return ConnectionProfile(**values)

    def save(self, profile: ConnectionProfile) -> None:
        """
        Persist every profile key in one transaction.

        Keys are upserted in place, so readers never observe an empty
        configuration. Saving the profile is not a domain mutation and does
        not trigger a push.
        """
        with self.store.transaction(notify=False) as tx:
            for field_name, key in PROFILE_KEYS.items():
                tx.put_setting(key, getattr(profile, field_name))
        logger.info("Saved remote connection profile for %s@%s/%s", profile.user, profile.host, profile.database)

    def is_configured(self) -> bool:
        """Check if a complete profile is stored."""
        return self.load().is_complete
