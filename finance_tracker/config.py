"""Configuration management for the finance tracker.

This module centralizes all configuration values including paths,
defaults, and environment variable overrides.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

APP_NAME = os.getenv("FINTRACK_APP_NAME", "FinanceFlow")

# Base project root - assumes this file is in finance_tracker/
_PROJECT_ROOT = Path(__file__).parent.parent.resolve()

# Data directories
DATA_DIR = Path(os.getenv("FINTRACK_DATA_DIR", _PROJECT_ROOT / "data"))
EXPORTS_DIR = DATA_DIR / "exports"

# Database
DB_PATH = Path(
    os.getenv("FINTRACK_DB_PATH", DATA_DIR / "finance.db")
).resolve()

# User preferences file
PREFERENCES_PATH = Path(
    os.getenv("FINTRACK_PREFERENCES_PATH", DATA_DIR / "preferences.json")
).resolve()

# Seconds to wait on a locked database before the fetch fails
FETCH_TIMEOUT_SECONDS = float(os.getenv("FINTRACK_FETCH_TIMEOUT", "10"))

# Identity of the signed-in user for the local dashboard
DEFAULT_USER_ID = os.getenv("FINTRACK_USER_ID", "local-user")

LOG_LEVEL = os.getenv("FINTRACK_LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def ensure_data_directories() -> None:
    """Create all required data directories if they don't exist."""
    for directory in [DATA_DIR, EXPORTS_DIR]:
        directory.mkdir(parents=True, exist_ok=True)


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once for the dashboard process."""
    logging.basicConfig(
        level=(level or LOG_LEVEL).upper(),
        format=LOG_FORMAT,
    )
