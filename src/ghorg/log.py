"""Logging setup shared by the ghorg commands."""
from __future__ import annotations

import logging
import sys
from typing import Optional

# Between DEBUG and INFO: per-org / per-repo narration
VERBOSE = 15
logging.addLevelName(VERBOSE, "VERBOSE")

LEVELS = {
    "debug": logging.DEBUG,
    "verbose": VERBOSE,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


def setup_logging(
    verbosity: int = 1,
    quiet: bool = False,
    level_name: Optional[str] = None,
    log_file: Optional[str] = None,
) -> None:
    """Configure root logging on stderr; stdout carries the JSON report."""
    level = logging.INFO
    if level_name:
        level = LEVELS.get(str(level_name).lower(), logging.INFO)
    elif verbosity > 1:
        level = logging.DEBUG
    elif verbosity == 0:
        level = logging.WARNING
    if quiet:
        level = logging.ERROR
    for h in logging.root.handlers[:]:
        logging.root.removeHandler(h)
    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=level,
        format='%(asctime)s | %(levelname)-8s | %(message)s',
        handlers=handlers,
    )
