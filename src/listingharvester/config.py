"""Configuration system for ListingHarvester.

Uses pydantic-settings to load configuration from environment variables
and .env files with defaults tuned for the Greek listing portals.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables.

    All settings can be overridden via environment variables or .env file.
    Environment variables are prefixed with LISTINGHARVESTER_ (e.g.,
    LISTINGHARVESTER_HTTP_TIMEOUT).
    """

    model_config = SettingsConfigDict(
        env_prefix="LISTINGHARVESTER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Timeouts
    http_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Per-request HTTP timeout in seconds",
    )
    browser_timeout_ms: int = Field(
        default=30000,
        gt=0,
        description="Per-navigation browser timeout in milliseconds",
    )

    # Browser pacing
    page_settle_seconds: float = Field(
        default=4.0,
        ge=0,
        description="Wait after navigation for script-rendered content",
    )
    post_consent_min: float = Field(default=4.0, ge=0)
    post_consent_max: float = Field(default=6.0, ge=0)
    selector_wait_ms: int = Field(
        default=5000,
        ge=0,
        description="How long to wait for each candidate listing selector",
    )
    consent_click_timeout_ms: int = Field(default=2000, ge=0)
    headless: bool = Field(default=True, description="Run Chromium headless")

    # Human-pacing jitter (seconds)
    request_jitter_min: float = Field(default=1.0, ge=0)
    request_jitter_max: float = Field(default=3.0, ge=0)
    page_jitter_min: float = Field(default=2.0, ge=0)
    page_jitter_max: float = Field(default=4.0, ge=0)

    # Rate limiting
    rate_limit_max_wait: float = Field(
        default=60.0,
        gt=0,
        description="Upper bound on a single advised rate-limit wait",
    )

    # Collection
    default_max_pages: int = Field(
        default=5,
        ge=1,
        description="Page budget when the caller does not pass one",
    )
    strict_sources: bool = Field(
        default=False,
        description="Raise instead of skipping when a source id is unknown",
    )
    log_level: str = Field(default="INFO")


# Singleton instance for easy import
config = Settings()
