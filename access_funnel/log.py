"""Logging setup shared by all access_funnel modules.

Usage:
    from access_funnel.log import get_logger

    logger = get_logger(__name__)
    logger.warning("Progress save failed")
"""
from __future__ import annotations

import logging
import sys
from typing import TextIO

ROOT_LOGGER = "access_funnel"
DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_configured = False


def configure_logging(level: int | str = logging.WARNING, stream: TextIO | None = None) -> None:
    """Install one stderr handler on the package logger. Later calls only adjust the level."""
    global _configured
    root = logging.getLogger(ROOT_LOGGER)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING
    root.setLevel(level)
    if _configured:
        return

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(DEFAULT_FORMAT, DEFAULT_DATE_FORMAT))
    root.addHandler(handler)
    _configured = True


def get_logger(name: str) -> logging.Logger:
    if name == ROOT_LOGGER or name.startswith(f"{ROOT_LOGGER}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
