"""Logging helpers for the access tunnel."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

LOGGER_NAME = "access_tunnel"


def _build_formatter() -> logging.Formatter:
    return logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")


def setup_logging(
    *,
    debug: bool = False,
    log_dir: str | Path | None = None,
    log_name: str = LOGGER_NAME,
) -> logging.Logger:
    """Initialize stderr logging and, optionally, a log file.

    Parameters
    ----------
    debug:
        Log at ``DEBUG`` instead of ``INFO``. Retry attempts and idle ticks
        are only visible at this level.
    log_dir:
        Directory for ``<log_name>.log``. No file is written when omitted.
    log_name:
        Base name of the log file without extension.

    Returns
    -------
    logging.Logger
        The configured package logger.
    """

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if debug else logging.INFO)

    # Avoid attaching duplicate handlers in case of repeated initialization.
    existing_handlers = {type(handler) for handler in logger.handlers}

    formatter = _build_formatter()

    if logging.StreamHandler not in existing_handlers:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_dir is not None and logging.FileHandler not in existing_handlers:
        log_directory = Path(log_dir)
        log_directory.mkdir(parents=True, exist_ok=True)
        log_file = log_directory / f"{log_name}.log"
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
        logger.debug("Logging initialized", extra={"log_file": str(log_file)})

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a namespaced logger under the ``access_tunnel`` hierarchy."""

    base = logging.getLogger(LOGGER_NAME)
    if not name:
        return base
    if name == LOGGER_NAME or name.startswith(f"{LOGGER_NAME}."):
        return logging.getLogger(name)
    return base.getChild(name)
