"""Logging setup: rich console handler plus optional log file."""

import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "sitesync"
FILE_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s"

_installed: list[logging.Handler] = []


def setup_logging(
    verbose: bool = False,
    log_file: Optional[str | Path] = None,
    console: Optional[Console] = None,
) -> logging.Logger:
    """
    Configure the ``sitesync`` logger.

    Calling it again replaces the handlers installed by the previous call.

    Args:
        verbose: Log DEBUG instead of INFO.
        log_file: Also append records to this file.
        console: Rich console to render to (stderr by default).

    Returns:
        The configured package logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in _installed:
        logger.removeHandler(handler)
        handler.close()
    _installed.clear()

    level = logging.DEBUG if verbose else logging.INFO
    logger.setLevel(level)

    rich_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=verbose,
        rich_tracebacks=True,
        markup=False,
    )
    rich_handler.setLevel(level)
    _installed.append(rich_handler)

    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        file_handler.setLevel(logging.DEBUG)
        _installed.append(file_handler)

    for handler in _installed:
        logger.addHandler(handler)
    logger.propagate = False
    return logger
