"""
Application configuration via pydantic-settings.

All settings are loaded from environment variables (and .env file).

Secret resolution: the session signing secret (ENDORSEMENT_ACCESS_SECRET) and
the OTP pepper (ENDORSEMENT_OTP_PEPPER) each fall back to SECRET_KEY.
PAYLOAD_SECRET is accepted as an alias for SECRET_KEY so deployments sharing
the CMS secret keep working. In production an unresolved secret aborts startup.
"""

from __future__ import annotations

from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.crypto import resolve_secret


class DatabaseSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    mongodb_uri: str
    db_name: str = "portfolio"


class RedisSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Optional; without Redis the process-local rate limiter is used
    redis_uri: Optional[str] = None
    rate_limit_prefix: str = "ratelimit"


class EmailSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    zepto_api_token: str = ""
    zepto_from_email: str = "noreply@example.com"
    zepto_from_name: str = "Endorsements"


class EndorsementAccessSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Dedicated secrets; both fall back to AppSettings.secret_key
    endorsement_access_secret: str = ""
    endorsement_otp_pepper: str = ""

    cookie_name: str = "endorsement_manage_session"

    otp_ttl_seconds: int = 600
    otp_max_attempts: int = 5
    otp_lockout_seconds: int = 900
    session_ttl_seconds: int = 1800

    # Rate limits: (max requests, window seconds)
    send_otp_ip_limit: int = 10
    send_otp_ip_window_seconds: int = 3600
    send_otp_pair_limit: int = 3
    send_otp_pair_window_seconds: int = 900

    verify_otp_ip_limit: int = 30
    verify_otp_ip_window_seconds: int = 900
    verify_otp_pair_limit: int = 12
    verify_otp_pair_window_seconds: int = 600

    update_ip_limit: int = 30
    update_ip_window_seconds: int = 600
    delete_ip_limit: int = 10
    delete_ip_window_seconds: int = 600

    @property
    def otp_ttl_minutes(self) -> int:
        return max(1, self.otp_ttl_seconds // 60)


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    log_level: str = "INFO"
    log_format: str = "console"  # "json" in production


class SentrySettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    sentry_dsn: str = ""
    sentry_send_pii: bool = False
    sentry_traces_sample_rate: float = 0.1
    sentry_profile_sample_rate: float = 0.05


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Core
    secret_key: str = ""
    payload_secret: str = ""  # alias shared with the CMS
    env: str = "development"
    # Canonical site URL for links in emails; blank derives it from the request
    app_url: str = ""
    app_name: str = "Endorsement Access API"

    cors_origins: list[str] = ["*"]

    # OpenAPI docs URL (None disables the docs UI in production)
    docs_url: Optional[str] = "/docs"

    # Sub-configs (composed via model_validator below)
    db: Optional[DatabaseSettings] = None
    redis: Optional[RedisSettings] = None
    email: Optional[EmailSettings] = None
    access: Optional[EndorsementAccessSettings] = None
    logging: Optional[LoggingSettings] = None
    sentry: Optional[SentrySettings] = None

    @model_validator(mode="after")
    def _populate_sub_configs_and_secrets(self) -> "AppSettings":
        if not self.secret_key and self.payload_secret:
            self.secret_key = self.payload_secret

        if self.db is None:
            self.db = DatabaseSettings()
        if self.redis is None:
            self.redis = RedisSettings()
        if self.email is None:
            self.email = EmailSettings()
        if self.access is None:
            self.access = EndorsementAccessSettings()
        if self.logging is None:
            self.logging = LoggingSettings()
        if self.sentry is None:
            self.sentry = SentrySettings()

        self.access.endorsement_access_secret = resolve_secret(
            self.access.endorsement_access_secret,
            self.secret_key,
            production=self.is_production,
            name="ENDORSEMENT_ACCESS_SECRET",
        )
        self.access.endorsement_otp_pepper = resolve_secret(
            self.access.endorsement_otp_pepper,
            self.secret_key,
            production=self.is_production,
            name="ENDORSEMENT_OTP_PEPPER",
        )

        return self

    @property
    def is_production(self) -> bool:
        return self.env == "production"
