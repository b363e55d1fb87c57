"""
Application configuration via pydantic-settings.

All settings are loaded from environment variables (and .env file).

Analytics bucketing runs in local wall-clock time. ANALYTICS_TIMEZONE pins
that local time to an IANA zone; left empty, the server's local time is used.
"""

from __future__ import annotations

from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    mongodb_uri: str
    db_name: str = "linkinbio"

    # Owned by the profile service; read-only here
    profiles_collection: str = "profiles"


class AnalyticsSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # IANA zone for local wall-clock bucketing; None = server local time
    analytics_timezone: Optional[str] = None

    # Offset ceilings, in the window unit of each bucket width
    max_minute_offset: int = Field(default=120, ge=0)
    max_hour_offset: int = Field(default=168, ge=0)

    # Counters are keyed by calendar date; pad date-range queries by this much
    date_padding_days: int = Field(default=1, ge=1)

    max_window_buckets: int = Field(default=2000, ge=1)
    query_timeout_seconds: Optional[float] = 10.0

    # 0 = Monday ... 6 = Sunday
    summary_week_start: int = Field(default=6, ge=0, le=6)
    series_week_start: int = Field(default=0, ge=0, le=6)

    @field_validator("analytics_timezone", mode="after")
    @classmethod
    def _validate_timezone(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        try:
            ZoneInfo(v.strip())
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown timezone: {v}") from exc
        return v.strip()


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    log_level: str = "INFO"
    log_format: str = "console"  # "json" in production

    # Sampling rates (0.0–1.0)
    sample_rate_click: float = 0.05
    sample_rate_series: float = 0.20


class SentrySettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    sentry_dsn: str = ""
    sentry_send_pii: bool = False
    sentry_traces_sample_rate: float = 0.1
    sentry_profile_sample_rate: float = 0.05


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Core
    env: str = "development"
    app_name: str = "linkinbio-analytics"

    # CORS — public profile pages post tracking events from any origin
    cors_origins: list[str] = ["*"]

    # OpenAPI docs URL (None disables the docs UI in production)
    docs_url: Optional[str] = "/docs"

    # Sub-configs (composed via model_validator below)
    db: Optional[DatabaseSettings] = None
    analytics: Optional[AnalyticsSettings] = None
    logging: Optional[LoggingSettings] = None
    sentry: Optional[SentrySettings] = None

    @model_validator(mode="after")
    def _populate_sub_configs(self) -> "AppSettings":
        # Populate sub-configs from the same env/dotenv source
        if self.db is None:
            self.db = DatabaseSettings()
        if self.analytics is None:
            self.analytics = AnalyticsSettings()
        if self.logging is None:
            self.logging = LoggingSettings()
        if self.sentry is None:
            self.sentry = SentrySettings()

        return self

    @property
    def is_production(self) -> bool:
        return self.env == "production"
