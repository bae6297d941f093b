"""
Configuration settings for permit loading and cell decryption.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path


class Config:
    """Central configuration class read from the environment."""

    def __init__(self) -> None:
        # Installation identifier (HW_ID) the permits are bound to
        self.INSTALLATION_ID: str | None = os.getenv("S63_INSTALLATION_ID")

        # File paths
        permit_file = os.getenv("S63_PERMIT_FILE")
        self.PERMIT_FILE_PATH: Path | None = Path(permit_file) if permit_file else None
        self.OUTPUT_SUFFIX: str = ".dec"

        # Logging
        level_name = os.getenv("S63_LOG_LEVEL", "INFO").upper()
        self.LOG_LEVEL: int = getattr(logging, level_name, logging.INFO)

    def get_installation_id(self) -> str:
        """Return the configured installation id."""
        if not self.INSTALLATION_ID:
            msg = (
                "No installation id configured. "
                "Set S63_INSTALLATION_ID or pass --installation-id."
            )
            raise ValueError(msg)
        return self.INSTALLATION_ID
