# SiteSync Output Module
# Rich console output

from sitesync.output.console import Console, create_console

__all__ = [
    "Console",
    "create_console",
]
