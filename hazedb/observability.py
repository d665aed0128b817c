"""
Logging setup for processes embedding HazeDB.

The library itself only creates module loggers; the host decides where
records go. setup_logging() is a convenience for hosts without their own
logging configuration.
"""

from __future__ import annotations

import logging

import json_log_formatter

from .config import StoreSettings

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(settings: StoreSettings | None = None) -> None:
    """Configure the root logger from settings.

    Args:
        settings: Store settings (loaded from env if not provided)
    """
    settings = settings or StoreSettings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    if settings.log_format == "json":
        formatter: logging.Formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter(TEXT_FORMAT)

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]
