"""
Configuration settings for the sales dashboard.

Uses Pydantic Settings to load environment variables for the record store
connection, logging, the fixed business timezone, and dashboard defaults.
"""
from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Record store (Postgres)
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("sales_dashboard", alias="DB_NAME")
    db_pool_min_size: int = Field(1, alias="DB_POOL_MIN_SIZE")
    db_pool_max_size: int = Field(10, alias="DB_POOL_MAX_SIZE")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    # Display timezone; stored instants are always UTC
    business_timezone: str = Field("America/Chicago", alias="BUSINESS_TIMEZONE")
    business_timezone_label: str = Field("Central Time", alias="BUSINESS_TIMEZONE_LABEL")

    # Dashboard defaults
    page_size: int = Field(25, alias="PAGE_SIZE")
    erase_export_window_hours: int = Field(24, alias="ERASE_EXPORT_WINDOW_HOURS")
    session_ttl_minutes: int = Field(60, alias="SESSION_TTL_MINUTES")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    def build_dsn(self) -> str:
        """Compose a Postgres DSN from the db_* fields."""
        return (
            f"postgresql://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
