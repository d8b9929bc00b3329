"""Logging helpers for request output."""

from __future__ import annotations

import logging
from typing import Mapping, Optional

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

LEVELS = {
    "trace": TRACE,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
}


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Attach the service's stream handler once and return its root logger."""
    logger = logging.getLogger("shellexec")
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter("[shellexec] %(levelname)s - %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(level)
    return logger


def debug_log_level(debug: bool, debug_level: str) -> Optional[int]:
    """``None`` when request output should not be logged at all."""
    if not debug:
        return None
    return LEVELS[debug_level]


def status_log_level(status: int, debug_level: Optional[int]) -> Optional[int]:
    if status == 0:
        return debug_level
    return logging.ERROR


def request_info_text(request_info: Optional[Mapping[str, str]]) -> str:
    """Render request metadata as ``# key: value`` lines."""
    if not request_info:
        return ""
    return "".join(f"# {key}: {value}\n" for key, value in request_info.items())
