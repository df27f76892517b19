"""Application configuration settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = ".env"
ENV_FILE_ENCODING = "utf-8"


class Settings(BaseSettings):
    """Application configuration values loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE, env_file_encoding=ENV_FILE_ENCODING, extra="ignore"
    )

    database_url: str = Field(
        description="Database connection URL used by SQLAlchemy to connect to the DB",
        min_length=1,
    )
    secret_key: str = Field(
        description="Shared secret used to verify access tokens", min_length=1
    )
    jwt_algorithm: str = Field(
        default="HS256",
        description="Algorithm used to sign and verify access tokens",
    )
    access_token_expire_minutes: int = Field(
        default=60,
        description="Number of minutes before access tokens expire",
        gt=0,
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Connection string of the shared cache and pub/sub backend",
        min_length=1,
    )
    notification_channel: str = Field(
        default="notifications",
        description="Pub/sub channel carrying notification relay envelopes",
        min_length=1,
    )
    app_timezone: str = Field(
        default="UTC",
        description="Timezone used to interpret naive timestamps stored in the DB",
    )
    log_level: str = Field(default="INFO", description="Root logging level")
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000"],
        description="Origins allowed to call the API from a browser",
    )


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the settings cache to force reloading from the environment."""

    get_settings.cache_clear()


__all__ = ["Settings", "get_settings", "reset_settings_cache"]
