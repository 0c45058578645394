"""Centralized logging configuration for the media pipeline."""

import os
import sys
import logging
import threading
from typing import Optional

ROOT_LOGGER = "media-pipeline"

# Rendition workers run on pool threads, so the structured format names the thread.
FORMATS = {
    "structured": (
        "%(asctime)s | %(name)s | %(levelname)-8s | "
        "%(threadName)s | %(funcName)s() | %(message)s"
    ),
    "simple": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
}

_setup_lock = threading.Lock()


def _resolve_level(level: Optional[str]) -> int:
    name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    return getattr(logging, name, logging.INFO)


def _build_formatter(format_type: str) -> logging.Formatter:
    fmt = FORMATS.get(os.getenv("LOG_FORMAT", format_type).lower(), FORMATS["simple"])
    return logging.Formatter(fmt, datefmt="%Y-%m-%d %H:%M:%S")


def setup_logger(
    name: str = ROOT_LOGGER,
    level: Optional[str] = None,
    format_type: str = "structured",
) -> logging.Logger:
    """
    Setup centralized logging with environment variable configuration.

    Args:
        name: Logger name (defaults to "media-pipeline")
        level: Log level override (defaults to env var or INFO)
        format_type: Logging format ("structured" or "simple")

    Returns:
        Configured logger instance writing to stdout

    Environment Variables:
        LOG_LEVEL: Set logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        LOG_FORMAT: Set format type ("structured" or "simple")
    """
    logger = logging.getLogger(name)
    logger.setLevel(_resolve_level(level))

    # Pool threads may configure the same logger at once.
    with _setup_lock:
        if not logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(_build_formatter(format_type))
            logger.addHandler(handler)

    logger.propagate = False
    return logger


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """
    Get a logger namespaced under "media-pipeline".

    ``get_logger("storage")`` and ``get_logger("media-pipeline.storage")``
    return the same logger.
    """
    if name != ROOT_LOGGER and not name.startswith(f"{ROOT_LOGGER}."):
        name = f"{ROOT_LOGGER}.{name}"
    return setup_logger(name)


logger = setup_logger()
