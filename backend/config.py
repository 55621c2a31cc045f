"""Centralised settings for the Upwork scraper backend.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from dotenv import load_dotenv

# Load .env from the project root (two levels up from this file)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


def _env_int(name: str, default: int) -> int:
    """Read a positive integer from the environment, else *default*."""
    try:
        value = int(os.environ.get(name, ""))
    except ValueError:
        return default
    return value if value > 0 else default


def _env_flag(name: str) -> bool:
    """Flags are on unless explicitly set to the string ``"false"``."""
    return os.environ.get(name) != "false"


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Scraper
    # ------------------------------------------------------------------
    navigation_timeout_ms: int = field(
        default_factory=lambda: _env_int("SCRAPER_NAV_TIMEOUT_MS", 30000)
    )
    challenge_wait_ms: int = field(
        default_factory=lambda: _env_int("SCRAPER_CHALLENGE_WAIT_MS", 7000)
    )
    settle_ms: int = field(
        default_factory=lambda: _env_int("SCRAPER_SETTLE_MS", 1200)
    )
    enable_parser_fallback: bool = field(
        default_factory=lambda: _env_flag("SCRAPER_ENABLE_PARSER_FALLBACK")
    )
    headless: bool = field(
        default_factory=lambda: _env_flag("SCRAPER_HEADLESS")
    )

    # ------------------------------------------------------------------
    # HTTP API
    # ------------------------------------------------------------------
    app_env: str = field(
        default_factory=lambda: os.environ.get("APP_ENV", "development")
    )
    allowed_origins: List[str] = field(
        default_factory=lambda: [
            origin.strip()
            for origin in os.environ.get("ALLOWED_ORIGINS", "").split(",")
            if origin.strip()
        ]
    )

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def navigation_timeout(self) -> float:
        """Navigation timeout in seconds, for clients that take seconds."""
        return self.navigation_timeout_ms / 1000


# Module-level singleton — import this everywhere:
#   from backend.config import settings
settings = Settings()
