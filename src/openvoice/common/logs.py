"""Logging setup for OpenVoice."""

from __future__ import annotations

import logging
import os
from pathlib import Path

LOGGER_NAME = "openvoice"
_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def debug_enabled() -> bool:
    return os.environ.get("OPENVOICE_DEBUG") == "1"


def setup_logging(debug: bool | None = None, log_path: Path | None = None) -> logging.Logger:
    """Attach handlers to the package logger once and return it."""
    if debug is None:
        debug = debug_enabled()
    level = logging.DEBUG if debug else logging.INFO
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    if not any(type(h) is logging.StreamHandler for h in logger.handlers):
        sh = logging.StreamHandler()
        sh.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(sh)
    if log_path is not None and not any(
        isinstance(h, logging.FileHandler) for h in logger.handlers
    ):
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_path, encoding="utf-8")
        fh.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(fh)
    for h in logger.handlers:
        h.setLevel(level)
    return logger
