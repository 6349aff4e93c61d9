"""
Structured logging for the frame adapter.

All package loggers hang off the ``nrql_frames`` root logger, which owns the
single stdout handler.  Child loggers only carry a level and propagate.
"""
from __future__ import annotations

import logging
import sys

from nrql_frames.core.config import get_settings

_ROOT = "nrql_frames"


def _ensure_root_handler(level: int) -> None:
    root = logging.getLogger(_ROOT)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        root.addHandler(handler)
    root.setLevel(level)


def get_logger(name: str) -> logging.Logger:
    settings = get_settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    _ensure_root_handler(level)
    if name != _ROOT and not name.startswith(_ROOT + "."):
        name = f"{_ROOT}.{name}"
    logger = logging.getLogger(name)
    logger.setLevel(level)
    return logger
