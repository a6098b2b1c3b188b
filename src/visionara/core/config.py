"""Configuration management for Visionara.

This module uses Pydantic Settings to load and validate configuration from
environment variables and .env files. Configuration is loaded at application
startup and is immutable during runtime.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration settings.

    Settings are loaded from environment variables and .env files.
    All configuration values are validated at startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="VISIONARA_",
        case_sensitive=False,
        extra="ignore",
    )

    # Application Settings
    app_name: str = "Visionara"
    app_version: str = "0.1.0"
    environment: Literal["development", "production", "testing"] = "development"
    debug: bool = False
    api_prefix: str = "/api"

    # Server Settings
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 1

    # Database Settings
    database_url: str = "sqlite+aiosqlite:///./data/visionara.db"
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_timeout: int = 30
    db_pool_recycle: int = 3600
    db_echo: bool = False

    # Identity Provider Settings
    identity_provider_url: str = "http://localhost:54321"
    identity_provider_anon_key: str = Field(
        default="",
        description="Public key used for token verification and sign-in",
    )
    identity_provider_service_key: str = Field(
        default="",
        description="Service-role key used for admin user management",
    )
    identity_provider_timeout_seconds: float = 10.0

    # Session Settings
    session_cookie_name: str = "sb-access-token"

    # Verification Code Settings
    verification_code_ttl_minutes: int = 10
    verification_code_max_per_window: int = 3
    verification_code_window_minutes: int = 10
    verification_code_max_attempts: int = 5
    password_change_requires_current_password: bool = True
    password_min_length: int = 8

    # SMTP Settings (email delivery is disabled unless host/user/password are set)
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_username: str | None = None
    smtp_password: str | None = None
    smtp_from_email: str | None = None
    smtp_from_name: str = "Visionara"
    smtp_use_tls: bool = True
    smtp_use_ssl: bool = False
    smtp_timeout: int = 10

    # CORS Settings
    cors_origins: list[str] = Field(default=["http://localhost:3000"])
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = Field(default=["*"])
    cors_allow_headers: list[str] = Field(default=["*"])

    # Logging Settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["json", "console"] = "json"

    # Superadmin Settings
    superadmin_email: str | None = Field(
        default=None,
        description="Email for initial superadmin creation (auto-created on startup if set)",
    )
    superadmin_password: str | None = Field(
        default=None,
        description="Password for initial superadmin creation (auto-created on startup if set)",
    )
    superadmin_display_name: str = "Super Admin"

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: str | list[str]) -> list[str]:
        """Parse CORS origins from comma-separated string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    @field_validator("identity_provider_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the provider base URL."""
        return v.rstrip("/")

    @model_validator(mode="after")
    def validate_code_policy(self) -> "Settings":
        """Reject verification code settings that would disable throttling."""
        if self.verification_code_max_per_window < 1:
            raise ValueError("verification_code_max_per_window must be at least 1")
        if self.verification_code_window_minutes < 1:
            raise ValueError("verification_code_window_minutes must be at least 1")
        if self.verification_code_max_attempts < 1:
            raise ValueError("verification_code_max_attempts must be at least 1")
        if self.verification_code_ttl_minutes < 0:
            raise ValueError("verification_code_ttl_minutes cannot be negative")
        return self

    @model_validator(mode="after")
    def validate_sqlite_workers(self) -> "Settings":
        """Validate that SQLite is not used with multiple workers."""
        if self.workers > 1 and self.database_url.startswith("sqlite"):
            raise ValueError(
                "SQLite does not support multiple worker processes. "
                f"Requested {self.workers} workers, but SQLite requires workers=1. "
                "Either use --workers 1 or switch to PostgreSQL."
            )
        return self

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.environment == "testing"

    @property
    def smtp_configured(self) -> bool:
        """Whether enough SMTP settings are present to send mail."""
        return bool(self.smtp_host and self.smtp_username and self.smtp_password)

    @property
    def database_url_sync(self) -> str:
        """Get synchronous database URL for migrations."""
        url = self.database_url
        if url.startswith("sqlite+aiosqlite"):
            return url.replace("sqlite+aiosqlite", "sqlite")
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql")
        return url


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    This function caches the settings instance to avoid reloading
    configuration on every call. Settings are loaded once at startup.

    Returns:
        Settings: Cached application settings instance.
    """
    return Settings()
