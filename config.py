"""
Application configuration via pydantic-settings.

All settings are loaded from environment variables (and .env file).

Rate-limit caps, OTP lifetime and collaborator credentials are deployment
configuration; the defaults below are the production policy (3 codes per
hour, 10 per day, 10 minute lifetime, 3 verification attempts).
"""

from __future__ import annotations

from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    mongodb_uri: str
    db_name: str = "storefront"


class RedisSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Optional; without Redis, rate counters live in MongoDB
    redis_uri: Optional[str] = None


class PhoneSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Replaces a leading national trunk prefix "0"
    default_calling_code: str = "+234"


class OtpSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    otp_length: int = 6
    otp_ttl_seconds: int = 600
    otp_max_attempts: int = 3


class RateLimitSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    otp_hourly_limit: int = 3
    otp_daily_limit: int = 10
    otp_hourly_window_seconds: int = 3600
    otp_daily_window_seconds: int = 86400
    rate_limit_max_cas_retries: int = 10


class SmsSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    twilio_account_sid: str = ""
    twilio_auth_token: str = ""
    twilio_phone_number: str = ""
    sms_timeout_seconds: float = 10.0

    @property
    def is_configured(self) -> bool:
        return bool(
            self.twilio_account_sid
            and self.twilio_auth_token
            and self.twilio_phone_number
        )


class CredentialStoreSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    auth_admin_url: str = ""
    auth_service_role_key: str = ""
    credential_store_timeout_seconds: float = 10.0


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
    env: str = "development"
    app_name: str = "Alpen Store"

    # The storefront frontend calls these endpoints cross-origin
    cors_origins: list[str] = ["*"]

    # OpenAPI docs URL (None disables the docs UI in production)
    docs_url: Optional[str] = "/docs"

    # Sub-configs (composed via model_validator below)
    db: Optional[DatabaseSettings] = None
    redis: Optional[RedisSettings] = None
    phone: Optional[PhoneSettings] = None
    otp: Optional[OtpSettings] = None
    rate_limit: Optional[RateLimitSettings] = None
    sms: Optional[SmsSettings] = None
    credential_store: Optional[CredentialStoreSettings] = None
    logging: Optional[LoggingSettings] = None
    sentry: Optional[SentrySettings] = None

    @model_validator(mode="after")
    def _populate_sub_configs(self) -> "AppSettings":
        # Populate sub-configs from the same env/dotenv source
        if self.db is None:
            self.db = DatabaseSettings()
        if self.redis is None:
            self.redis = RedisSettings()
        if self.phone is None:
            self.phone = PhoneSettings()
        if self.otp is None:
            self.otp = OtpSettings()
        if self.rate_limit is None:
            self.rate_limit = RateLimitSettings()
        if self.sms is None:
            self.sms = SmsSettings()
        if self.credential_store is None:
            self.credential_store = CredentialStoreSettings()
        if self.logging is None:
            self.logging = LoggingSettings()
        if self.sentry is None:
            self.sentry = SentrySettings()

        return self

    @property
    def is_production(self) -> bool:
        return self.env == "production"
