"""Centralized application configuration using Pydantic settings."""
from functools import lru_cache
from typing import List, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven configuration for the booking service."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    database_url: str = Field(
        default="sqlite:///./spacerental.db",
        description="SQLAlchemy database URL. Defaults to local SQLite for development.",
    )
    run_db_migrations: bool = Field(
        default=False,
        description="Whether the service should create/update database tables on startup.",
    )
    booking_store_backend: Literal["sql", "json"] = Field(
        default="sql", description="Durable store used for the booking collection"
    )
    bookings_json_path: str = Field(
        default="./data/bookings.json", description="File backing the JSON booking store"
    )
    status_update_interval_seconds: float = Field(
        default=60.0, gt=0, description="Seconds between booking status promotion passes"
    )
    scheduler_enabled: bool = Field(default=True, description="Start the status promotion scheduler")
    jwt_secret: str = Field(default="super-secret", description="JWT signing secret")
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    access_token_expire_minutes: int = Field(default=60, description="Token lifetime in minutes")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"], description="Allowed CORS origins")
    default_rate_limit: str = Field(default="30/minute", description="Global rate limiting rule")
    rate_limiting_enabled: bool = Field(default=True, description="Toggle to disable SlowAPI limits (useful in tests)")
    booking_write_rate_limit: str = Field(default="20/minute", description="Limit for endpoints that mutate bookings")
    room_cache_ttl: int = Field(default=5, description="TTL (s) for cached room catalog lookups; rate changes show up after this")
    log_dir: str = Field(default="./logs", description="Directory receiving per-service log files")

    bookings_service_port: int = 8003


@lru_cache
def get_settings() -> Settings:
    """Return a cached instance of the Settings object."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the cached Settings instance (useful for tests)."""

    get_settings.cache_clear()
