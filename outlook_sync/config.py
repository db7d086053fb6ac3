"""Configuration for outlook-sync using pydantic-settings.

All settings are driven by environment variables with the OUTLOOK_ prefix.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Client configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="OUTLOOK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    data_url: str = (
        "https://gda-outputs-760321902186-eu-central-1.s3.eu-central-1"
        ".amazonaws.com/latest/answer.json"
    )
    cache_bust: bool = True
    state_path: Path = Path("state/outlook_cache.json")

    user_agent: str = "outlook-sync/0.1"

    timeout_seconds: float = 8.0
    max_retries: int = 1
    retry_backoff_seconds: float = 1.0
    max_body_bytes: int = 1_048_576

    refresh_interval_seconds: float = 3600.0
    freshness_interval_seconds: float = 60.0

    def ensure_dirs(self) -> None:
        """Create the directory holding the state file if it doesn't exist."""
        self.state_path.parent.mkdir(parents=True, exist_ok=True)
        logger.debug("Ensured directory: %s", self.state_path.parent)


def get_settings() -> Settings:
    """Load settings from environment and ensure the state directory exists."""
    s = Settings()
    s.ensure_dirs()
    return s
