"""Application configuration via pydantic settings."""

from functools import lru_cache
from pathlib import Path

from typing import Any

from pydantic import Field
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed application configuration."""

    app_env: str = Field("local", alias="APP_ENV")
    app_name: str = "LabLinc API"
    api_v1_prefix: str = "/api/v1"

    database_url: str = Field(..., alias="DATABASE_URL")
    sync_database_url: str | None = Field(default=None, alias="SYNC_DATABASE_URL")

    secret_key: str = Field(..., alias="SECRET_KEY")
    jwt_secret_key: str = Field(default="", alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(60, alias="ACCESS_TOKEN_EXPIRE_MINUTES")
    refresh_token_expire_days: int = Field(7, alias="REFRESH_TOKEN_EXPIRE_DAYS")
    password_reset_expire_minutes: int = Field(
        60, alias="PASSWORD_RESET_EXPIRE_MINUTES"
    )
    email_verification_expire_hours: int = Field(
        48, alias="EMAIL_VERIFICATION_EXPIRE_HOURS"
    )
    frontend_url: str = Field("http://localhost:5173", alias="FRONTEND_URL")

    redis_url: str | None = Field(default=None, alias="REDIS_URL")

    smtp_host: str | None = Field(default=None, alias="SMTP_HOST")
    smtp_port: int | None = Field(default=None, alias="SMTP_PORT")
    smtp_username: str | None = Field(default=None, alias="SMTP_USER")
    smtp_password: str | None = Field(default=None, alias="SMTP_PASSWORD")
    smtp_from: str | None = Field(default=None, alias="SMTP_FROM")

    stripe_secret_key: str | None = Field(default=None, alias="STRIPE_SECRET_KEY")
    booking_currency: str = Field("INR", alias="BOOKING_CURRENCY")

    dev_sms_echo: bool = Field(default=False, alias="DEV_SMS_ECHO")

    s3_endpoint_url: str | None = Field(default=None, alias="S3_ENDPOINT_URL")
    s3_bucket: str | None = Field(default=None, alias="S3_BUCKET")
    s3_root: str | None = Field(default=None, alias="S3_ROOT")
    s3_cache_seconds: int = Field(31536000, alias="S3_CACHE_SECONDS")

    image_max_width: int = Field(1600, alias="IMAGE_MAX_WIDTH")
    image_webp_quality: int = Field(82, alias="IMAGE_WEBP_QUALITY")
    image_max_bytes: int = Field(5 * 1024 * 1024, alias="IMAGE_MAX_BYTES")

    catalog_cache_ttl_seconds: int = Field(300, alias="CATALOG_CACHE_TTL_SECONDS")
    cache_purge_interval_seconds: int = Field(
        300, alias="CACHE_PURGE_INTERVAL_SECONDS"
    )

    default_admin_email: str | None = Field(default=None, alias="DEFAULT_ADMIN_EMAIL")
    default_admin_password: str | None = Field(
        default=None, alias="DEFAULT_ADMIN_PASSWORD"
    )
    default_admin_name: str = Field("LabLinc Admin", alias="DEFAULT_ADMIN_NAME")

    cors_allowlist: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173"], alias="CORS_ALLOWLIST"
    )
    cors_allow_credentials: bool = Field(default=False, alias="CORS_ALLOW_CREDENTIALS")

    rate_limit_default: str = Field("100/minute", alias="RATE_LIMIT_DEFAULT")
    rate_limit_login: str = Field("10/minute", alias="RATE_LIMIT_LOGIN")
    rate_limit_forms: str = Field("5/minute", alias="RATE_LIMIT_FORMS")

    model_config = SettingsConfigDict(
        env_file=Path(__file__).resolve().parents[3] / ".env",
        case_sensitive=False,
    )

    def model_post_init(self, __context: Any) -> None:
        """Populate JWT secret from the generic secret when not provided."""

        if not self.jwt_secret_key:
            object.__setattr__(self, "jwt_secret_key", self.secret_key)

    @field_validator("cors_allowlist", mode="before")
    @classmethod
    def _split_origins(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""
    return Settings()  # type: ignore[call-arg]
