"""Sessionvault Configuration - loaded from environment variables."""

from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ISSUER = "sessionvault"
DEFAULT_AUDIENCE = "sessionvault-clients"


@dataclass(frozen=True)
class TokenSettings:
    """Immutable token configuration handed to each token component.

    Built once from Settings so that services never read the global
    settings object directly.
    """

    secret_key: str
    issuer: str
    audience: str
    access_token_ttl: timedelta
    refresh_token_ttl: timedelta
    clock_skew: timedelta = timedelta(0)
    max_refresh_tokens_per_user: int = 5
    cleanup_interval: timedelta = timedelta(minutes=360)
    algorithm: str = "HS256"


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_name: str = "Sessionvault"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    log_format: Literal["dev", "structured"] = "structured"

    # Database
    database_url: str = "sqlite+aiosqlite:///./sessionvault.db"
    db_pool_size: int = Field(default=20, ge=1)
    db_max_overflow: int = Field(default=20, ge=0)
    db_pool_timeout: int = Field(default=30, ge=1)
    db_pool_recycle: int = Field(default=1800, ge=1)
    db_create_tables: bool = False

    # JWT access credentials
    jwt_secret_key: str
    jwt_issuer: str = DEFAULT_ISSUER
    jwt_audience: str = DEFAULT_AUDIENCE
    jwt_access_token_expire_minutes: int = Field(default=15, ge=1, le=1440)
    jwt_clock_skew_minutes: int = Field(default=0, ge=0, le=60)

    # Renewal credentials
    jwt_refresh_token_expire_days: int = Field(default=7, ge=1, le=365)
    max_refresh_tokens_per_user: int = Field(default=5, ge=1, le=20)
    refresh_token_cleanup_interval_minutes: int = Field(default=360, ge=1)

    # Account lockout
    max_failed_login_attempts: int = Field(default=5, ge=1)
    lockout_minutes: int = Field(default=15, ge=1)

    # Login rate limiting (per client IP)
    login_rate_limit_per_minute: int = Field(default=10, ge=1)

    # Notifications
    notification_webhook_url: str | None = None
    notify_on_login: bool = False

    # Initial admin account, created at startup when absent
    admin_seed_enabled: bool = False
    admin_seed_email: str | None = None
    admin_seed_password: str | None = None

    @field_validator("jwt_secret_key")
    @classmethod
    def validate_jwt_secret_key(cls, v: str) -> str:
        """Require a signing key long enough for HS256."""
        if not v or not v.strip():
            raise ValueError(
                "JWT_SECRET_KEY is required. Generate one with: "
                "python -c \"import secrets; print(secrets.token_urlsafe(48))\""
            )
        if len(v) < 32:
            raise ValueError(f"JWT_SECRET_KEY must be at least 32 characters, got {len(v)}")
        return v

    @field_validator("jwt_issuer", "jwt_audience")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("JWT issuer and audience must not be blank")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {v}")
        return level

    @model_validator(mode="after")
    def validate_admin_seed(self) -> "Settings":
        if self.admin_seed_enabled:
            if not (self.admin_seed_email or "").strip():
                raise ValueError("ADMIN_SEED_EMAIL is required when ADMIN_SEED_ENABLED is set")
            if not (self.admin_seed_password or "").strip():
                raise ValueError("ADMIN_SEED_PASSWORD is required when ADMIN_SEED_ENABLED is set")
            if len(self.admin_seed_password) < 8:
                raise ValueError("ADMIN_SEED_PASSWORD must be at least 8 characters")
        return self

    def token_settings(self) -> TokenSettings:
        """Build the immutable token configuration."""
        return TokenSettings(
            secret_key=self.jwt_secret_key,
            issuer=self.jwt_issuer,
            audience=self.jwt_audience,
            access_token_ttl=timedelta(minutes=self.jwt_access_token_expire_minutes),
            refresh_token_ttl=timedelta(days=self.jwt_refresh_token_expire_days),
            clock_skew=timedelta(minutes=self.jwt_clock_skew_minutes),
            max_refresh_tokens_per_user=self.max_refresh_tokens_per_user,
            cleanup_interval=timedelta(minutes=self.refresh_token_cleanup_interval_minutes),
        )

    def check_security_configuration(self) -> list[str]:
        """Return warnings for insecure but technically valid settings."""
        warnings = []
        if self.debug:
            warnings.append("Debug mode is enabled - API docs are exposed")
        if self.jwt_issuer == DEFAULT_ISSUER or self.jwt_audience == DEFAULT_AUDIENCE:
            warnings.append("JWT issuer/audience use default values - set JWT_ISSUER and JWT_AUDIENCE")
        if self.database_url.startswith("sqlite"):
            warnings.append("Using SQLite database - not recommended for production")
        return warnings


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()  # type: ignore[call-arg]


settings = get_settings()
