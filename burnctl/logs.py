"""
Logging setup for burnctl entry points.

Library modules only ever call ``logging.getLogger(__name__)``; handlers are
attached here, once, by whoever owns the process (the CLI or an application).

Routing:
- INFO and above always go to the console.
- verbose=True: DEBUG goes to the console as well.
- verbose=False with a log file: DEBUG goes to the file only.
"""

from __future__ import annotations

import logging
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
DEFAULT_LOG_FILE = "burnctl.log"

# Marks handlers installed by configure_logging so repeated calls replace them
_HANDLER_TAG = "_burnctl_handler"


def configure_logging(
    verbose: bool = False,
    log_file: Path | str | None = None,
) -> logging.Logger:
    """
    Attach console (and optionally file) handlers to the ``burnctl`` logger.

    Args:
        verbose: Send DEBUG records to the console.
        log_file: When not verbose, write DEBUG records to this file.

    Returns:
        The configured ``burnctl`` package logger.
    """
    logger = logging.getLogger("burnctl")
    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_TAG, False):
            logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler()
    console.setLevel(logging.DEBUG if verbose else logging.INFO)
    console.setFormatter(formatter)
    setattr(console, _HANDLER_TAG, True)
    logger.addHandler(console)

    if not verbose and log_file is not None:
        file_handler = logging.FileHandler(Path(log_file), encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        setattr(file_handler, _HANDLER_TAG, True)
        logger.addHandler(file_handler)

    logger.setLevel(logging.DEBUG)
    return logger
