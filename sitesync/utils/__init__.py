# SiteSync Utilities Module
# File system helpers

from sitesync.utils.paths import atomic_write, ensure_dir

__all__ = [
    "atomic_write",
    "ensure_dir",
]
