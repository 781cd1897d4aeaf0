"""Debug logging for grading runs: one log file per run and per submission."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FORMAT = "[%(asctime)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def _attach(logger: logging.Logger, handler: logging.Handler) -> None:
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    logger.addHandler(handler)


def setup_logger(
    debug_file: Path, verbose: bool = False, logger_name: str = "codequest"
) -> logging.Logger:
    """Return *logger_name* writing every record to *debug_file*.

    With ``verbose`` the same records are echoed to stderr. Calling this again
    for a name replaces the handlers from the previous call, and records never
    reach the root logger.
    """
    logger = logging.getLogger(logger_name)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.disabled = False
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    debug_file.parent.mkdir(parents=True, exist_ok=True)
    _attach(logger, logging.FileHandler(debug_file, mode="a", encoding="utf-8"))
    if verbose:
        _attach(logger, logging.StreamHandler(sys.stderr))

    return logger
