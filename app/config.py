# -*- coding: utf-8 -*-


from pathlib import Path
from dataclasses import dataclass
import os

from dotenv import load_dotenv

# ============================================================================
# Load .env file for local environment configuration
# ============================================================================
load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


# ============================================================================
# Read settings from environment variables (from .env or system)
# ============================================================================
# Step pacing (cosmetic delays around each step body)
_FLOW_SETTLE_BEFORE_MS = int(os.getenv("FLOW_SETTLE_BEFORE_MS", "100"))
_FLOW_SETTLE_AFTER_MS = int(os.getenv("FLOW_SETTLE_AFTER_MS", "200"))

# Logging
_LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG").upper()
_LOG_TO_FILE = _env_flag("LOG_TO_FILE", "true")


@dataclass
class Config:
    """Library configuration."""

    # Library Info
    APP_NAME: str = "Sequential Flow"
    VERSION: str = "1.0.0"
    LOGGER_NAME: str = "seqflow"

    # Step pacing
    # Delays only smooth UI transitions; 0 disables the sleep entirely
    FLOW_SETTLE_BEFORE_MS: int = _FLOW_SETTLE_BEFORE_MS
    FLOW_SETTLE_AFTER_MS: int = _FLOW_SETTLE_AFTER_MS

    # Paths
    PROJECT_ROOT: Path = Path(__file__).parent.parent
    LOGS_DIR: Path = PROJECT_ROOT / "logs"

    # Logging
    LOG_LEVEL: str = _LOG_LEVEL
    LOG_TO_FILE: bool = _LOG_TO_FILE
    LOG_FILE: str = "flow.log"
    LOG_PATH: Path = LOGS_DIR / LOG_FILE
    LOG_MAX_BYTES: int = 5 * 1024 * 1024  # 5MB
    LOG_BACKUP_COUNT: int = 3
