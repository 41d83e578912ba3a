"""Central logging configuration for SmartMark.

File logging only. Terminal output for people goes through
smartmark.utils.console.

Usage:
    from smartmark.utils.logging import get_logger, init_logging
    init_logging("recategorize")  # once, from the CLI entry point
    logger = get_logger(__name__)
    logger.info("Categorized bookmark %s", bookmark_id)

Each run writes its own file: ./logs/{name}_YYYYmmdd_HHMMSS.log
(directory overridable via SMARTMARK_LOG_DIR). Per-record failures in
bulk runs are only reported here, so DEBUG is captured by default.
"""
from __future__ import annotations

import datetime
import logging
import os
from pathlib import Path

_INITIALIZED = False
LOG_DIR = Path(os.getenv("SMARTMARK_LOG_DIR", "logs"))
# Updated by init_logging
LOG_FILE = LOG_DIR / "smartmark.log"
DEFAULT_FILE_LEVEL = logging.DEBUG

_NOISY_LOGGERS = ("urllib3", "requests", "sqlalchemy.engine", "azure")


def init_logging(name: str = "smartmark", file_level: int = DEFAULT_FILE_LEVEL) -> Path:
    """Initialize file logging once. Safe to call multiple times.

    Args:
        name: Base name for the log file (usually the CLI command).
        file_level: Minimum level written to the file.

    Returns:
        Path of the active log file.
    """
    global _INITIALIZED, LOG_DIR, LOG_FILE
    if _INITIALIZED:
        return LOG_FILE
    LOG_DIR = Path(os.getenv("SMARTMARK_LOG_DIR", str(LOG_DIR)))
    LOG_DIR.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    timestamp = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
    LOG_FILE = LOG_DIR / f"{name}_{timestamp}.log"

    # timestamp | level | module:function:line | message
    file_fmt = "%(asctime)s.%(msecs)03d | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s"

    file_handler = logging.FileHandler(LOG_FILE, encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(logging.Formatter(file_fmt, datefmt="%Y-%m-%d %H:%M:%S"))
    root.addHandler(file_handler)

    for noisy in _NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    _INITIALIZED = True
    return LOG_FILE


def get_logger(name: str) -> logging.Logger:
    """Return the module logger; usually called with __name__."""
    return logging.getLogger(name)


__all__ = ["init_logging", "get_logger", "LOG_FILE"]
