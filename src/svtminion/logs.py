"""Logging setup for a single svtminion invocation."""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
CONSOLE_FORMAT = "%(message)s"

ROOT_LOGGER = "svtminion"


def log_file_path(log_dir: Path, script_name: str = "svtminion") -> Path:
    """Timestamped log file path, one per invocation."""
    stamp = datetime.now().strftime("%Y%m%d%H%M%S%f")
    return log_dir / f"{script_name}-{stamp}.log"


def setup_logging(
    log_dir: Path,
    verbose: bool = False,
    debug: bool = False,
) -> Optional[Path]:
    """Configure the ``svtminion`` logger.

    Always logs to a timestamped file under ``log_dir`` if it can be
    created. ``verbose`` echoes records to stdout as well; ``debug``
    lowers the level to DEBUG (and echoes too).

    Args:
        log_dir: Directory for the log file.
        verbose: Echo log lines to the console.
        debug: Enable debug logging.

    Returns:
        Path of the log file, or None when no file could be opened.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    logger.propagate = False

    log_file: Optional[Path] = log_file_path(log_dir)
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_file)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    except OSError:
        log_file = None

    if verbose or debug:
        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        logger.addHandler(console)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    return log_file
