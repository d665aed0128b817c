"""
Configuration for HazeDB.

Settings are loaded from environment variables with the HAZE_ prefix
(e.g. HAZE_THREAD_SAFE=true) or passed explicitly to DocumentStore.

Invariants:
    - All settings have defaults suitable for single-threaded, in-process use
    - Settings are read once, when the store is constructed

How to change safely:
    - Add new settings with defaults that keep existing behavior
    - Behavior-changing flags default to the safe choice (copy, not mutate)
"""

from __future__ import annotations

import logging

from pydantic import Field
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class StoreSettings(BaseSettings):
    """Document store configuration loaded from environment."""

    # Include resolution rewrites the stored document instead of a copy.
    # Only for parity with stores that persisted expanded references on read.
    resolve_in_place: bool = Field(
        default=False,
        description="Resolve included references into the stored document",
    )

    # Serialize store operations on a single registry lock
    thread_safe: bool = Field(
        default=False,
        description="Guard the collection registry with a re-entrant lock",
    )

    # Logging
    log_level: str = Field(default="INFO", description="DEBUG, INFO, WARNING, ERROR")
    log_format: str = Field(default="text", description="Log format (json, text)")

    model_config = {"env_prefix": "HAZE_"}

    def log_settings(self) -> None:
        """Log the effective configuration."""
        logger.info(
            "Store configuration loaded",
            extra={
                "resolve_in_place": self.resolve_in_place,
                "thread_safe": self.thread_safe,
                "log_level": self.log_level,
                "log_format": self.log_format,
            },
        )
