"""Configuration management using Pydantic Settings."""

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppConfig(BaseSettings):
    """Application configuration."""

    model_config = SettingsConfigDict(extra="ignore")

    env: Literal["development", "production", "testing"] = Field(default="development", alias="APP_ENV")
    debug: bool = Field(default=False, alias="APP_DEBUG")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", alias="LOG_LEVEL"
    )
    log_format: Literal["json", "console"] = Field(default="json", alias="LOG_FORMAT")
    # Provision an identity on startup when nothing could be restored
    auto_create_session: bool = Field(default=True, alias="AUTO_CREATE_SESSION")


class ProvidersConfig(BaseSettings):
    """Mail provider endpoints.

    Base URLs are injectable so deployments can route provider traffic
    through a same-origin relay.
    """

    model_config = SettingsConfigDict(extra="ignore")

    onesecmail_base_url: str = Field(
        default="https://www.1secmail.com/api/v1/", alias="ONESECMAIL_BASE_URL"
    )
    mailtm_base_url: str = Field(default="https://api.mail.tm", alias="MAILTM_BASE_URL")
    guerrilla_base_url: str = Field(
        default="https://api.guerrillamail.com/ajax.php", alias="GUERRILLA_BASE_URL"
    )
    timeout_seconds: float = Field(default=15.0, alias="PROVIDER_TIMEOUT")
    max_retries: int = Field(default=3, ge=1, alias="PROVIDER_MAX_RETRIES")
    retry_backoff_max: float = 8.0
    default_provider: Literal["1secmail", "mailtm", "guerrilla"] = Field(
        default="1secmail", alias="DEFAULT_PROVIDER"
    )


class InboxConfig(BaseSettings):
    """Inbox polling configuration."""

    model_config = SettingsConfigDict(extra="ignore")

    poll_interval_seconds: float = Field(default=8.0, gt=0, alias="INBOX_POLL_INTERVAL")


class SessionConfig(BaseSettings):
    """Session persistence configuration."""

    model_config = SettingsConfigDict(extra="ignore")

    store_backend: Literal["memory", "file", "redis"] = Field(
        default="file", alias="SESSION_STORE_BACKEND"
    )
    storage_key: str = Field(default="tempvortex_session", alias="SESSION_STORAGE_KEY")
    store_path: Path = Field(default=Path(".tempvortex"), alias="SESSION_STORE_PATH")
    redis_url: str = Field(default="redis://localhost:6379/0", alias="REDIS_URL")

    @field_validator("store_path", mode="before")
    @classmethod
    def validate_path(cls, v: str | Path) -> Path:
        """Convert string to Path."""
        return Path(v) if isinstance(v, str) else v


class StorageConfig(BaseSettings):
    """Local storage for downloaded attachments."""

    model_config = SettingsConfigDict(extra="ignore")

    download_dir: Path = Field(default=Path("/tmp/tempvortex/downloads"), alias="DOWNLOAD_DIR")

    @field_validator("download_dir", mode="before")
    @classmethod
    def validate_path(cls, v: str | Path) -> Path:
        """Convert string to Path."""
        return Path(v) if isinstance(v, str) else v


class AdminConfig(BaseSettings):
    """HTTP API configuration."""

    model_config = SettingsConfigDict(extra="ignore")

    port: int = Field(default=8080, alias="ADMIN_PORT")
    public_base_url: str = Field(default="http://localhost:3000/", alias="PUBLIC_BASE_URL")
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:8080"],
        alias="ADMIN_CORS_ORIGINS",
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_origins(cls, v: str | list[str]) -> list[str]:
        """Parse comma-separated string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v


class Settings(BaseSettings):
    """Master settings combining all configuration sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app: AppConfig = Field(default_factory=AppConfig)
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
    inbox: InboxConfig = Field(default_factory=InboxConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    admin: AdminConfig = Field(default_factory=AdminConfig)


# Global settings instance
settings = Settings()
