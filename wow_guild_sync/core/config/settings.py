"""
Application Settings

Configuration classes using Pydantic for validation.
"""

from typing import Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_ENV = SettingsConfigDict(
    populate_by_name=True,
    env_file=".env",
    env_file_encoding="utf-8",
    case_sensitive=False,
    extra="ignore",
)


class APIConfig(BaseSettings):
    """Upstream provider settings."""

    model_config = _ENV

    client_id: Optional[str] = Field(default=None, alias="BLIZZARD_CLIENT_ID")
    client_secret: Optional[str] = Field(
        default=None,
        alias="BLIZZARD_CLIENT_SECRET"
    )
    locale: str = Field(default="en_US", alias="BLIZZARD_LOCALE")
    raiderio_url: str = Field(
        default="https://raider.io",
        alias="RAIDERIO_URL"
    )
    timeout: float = Field(
        default=30.0,
        alias="API_TIMEOUT",
        description="Default upstream request timeout in seconds"
    )


class DatabaseConfig(BaseSettings):
    """Database configuration settings."""

    model_config = _ENV

    url: str = Field(
        default="sqlite+aiosqlite:///wowguildsync.db",
        alias="DATABASE_URL"
    )
    echo: bool = Field(default=False, alias="DATABASE_ECHO")
    pool_size: int = Field(default=20)
    max_overflow: int = Field(default=0)

    @field_validator("url")
    @classmethod
    def fix_postgres_url(cls, v: str) -> str:
        """Fix Heroku postgres URL format."""
        if v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql+asyncpg://", 1)
        return v


class CacheConfig(BaseSettings):
    """Redis settings shared by the cache, pub/sub and the job queue."""

    model_config = _ENV

    redis_url: str = Field(
        default="redis://localhost:6379",
        alias="REDIS_URL"
    )
    token_ttl: int = Field(
        default=55 * 60,
        alias="TOKEN_CACHE_TTL",
        description="Access token cache TTL in seconds"
    )


class SyncConfig(BaseSettings):
    """Worker pacing, batching and queue settings."""

    model_config = SettingsConfigDict(
        env_prefix="SYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    batch_size: int = Field(default=40, ge=1)
    character_delay: float = Field(
        default=1.0,
        description="Seconds between character fetches within one batch"
    )
    activity_delay: float = Field(
        default=0.2,
        description="Seconds between activity lookups"
    )
    activity_timeout: float = Field(default=10.0)
    active_threshold_days: int = Field(default=30)
    progress_every: int = Field(default=10, ge=1)
    error_rate_alert_threshold: float = Field(default=0.5)

    # Credential renewal
    token_lock_ttl: int = Field(default=10)
    token_lock_wait: float = Field(default=2.0)

    # Queue consumers
    discovery_concurrency: int = Field(default=3)
    character_sync_concurrency: int = Field(default=2)
    activity_check_concurrency: int = Field(default=3)
    scheduler_concurrency: int = Field(default=1)
    max_tries: int = Field(default=3)
    retry_base_delay: int = Field(default=30)
    retry_max_delay: int = Field(default=600)
    job_timeout: int = Field(default=1800)


class StreamConfig(BaseSettings):
    """Event stream relay and manual trigger settings."""

    model_config = SettingsConfigDict(
        env_prefix="STREAM_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    heartbeat_interval: int = Field(default=30)
    guild_stream_lifetime: int = Field(default=30 * 60)
    activity_stream_lifetime: int = Field(default=10 * 60)
    guild_cache_ttl: int = Field(default=5 * 60)
    trigger_rate_limit: int = Field(default=5)
    trigger_rate_window: int = Field(default=60)


class ServerConfig(BaseSettings):
    """HTTP server settings."""

    model_config = _ENV

    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")


class Settings(BaseSettings):
    """Main application settings."""

    model_config = _ENV

    # Application info
    app_name: str = Field(default="WoW Guild Sync")
    app_version: str = Field(default="1.0.0")
    env: str = Field(default="development", alias="ENV")
    debug: bool = Field(default=False, alias="DEBUG")

    alert_webhook_url: Optional[str] = Field(
        default=None,
        alias="ALERT_WEBHOOK_URL"
    )

    api: APIConfig = Field(default_factory=APIConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    stream: StreamConfig = Field(default_factory=StreamConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

