"""Runtime configuration — env-driven via pydantic-settings.

Reads from a ``.env`` file and ``INTURANK_*`` environment variables.
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from inturank.routing.gateways.http import build_endpoint


class NotifyConfig(BaseSettings):
    """Notification settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export INTURANK_EMAIL_API_URL=https://inturank.example.com
        export INTURANK_LOG_LEVEL=DEBUG
        export INTURANK_STORE_PATH=/data/inturank.db

    Or via .env file::

        INTURANK_ENVIRONMENT=production
        INTURANK_FRESHNESS_WINDOW_MINUTES=60
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="INTURANK_",
        env_file_encoding="utf-8",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"

    # Storage
    store_path: Path = Path(".inturank/state.db")

    # Email relay; empty means email is not configured
    email_api_url: str = ""
    email_timeout_seconds: float = 10.0

    # Notification policy
    freshness_window_minutes: int = 120
    digest_interval_hours: int = 24

    # Polling
    poll_interval_seconds: int = Field(60, ge=1)
    activity_fetch_limit: int = Field(40, ge=1)
    follow_fetch_limit: int = Field(30, ge=1)

    # Capacity bounds, at least one entry each
    max_follows: int = Field(200, ge=1)
    max_dedup_ids: int = Field(2000, ge=1)
    max_digest_items: int = Field(100, ge=1)
    max_recorded_failures: int = Field(100, ge=1)

    @property
    def email_endpoint(self) -> str:
        """Full send-email URL, or ``""`` when no relay is configured."""
        return build_endpoint(self.email_api_url)

    @property
    def freshness_window(self) -> timedelta:
        return timedelta(minutes=self.freshness_window_minutes)

    @property
    def digest_interval(self) -> timedelta:
        return timedelta(hours=self.digest_interval_hours)

    @property
    def is_production(self) -> bool:
        """Whether running in production mode."""
        return self.environment == "production"


# Module-level singleton: import as `from inturank.config import config`
config = NotifyConfig()
