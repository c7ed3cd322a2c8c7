"""
Configuration Loader

Process-wide settings singleton. Both entry points (worker and API) load
settings once at startup, then check that the values a sync run cannot do
without are present before touching Redis or the database.
"""

import logging
from typing import Optional

from dotenv import load_dotenv

from .settings import Settings

logger = logging.getLogger(__name__)

SUPPORTED_DATABASE_SCHEMES = (
    "postgresql://",
    "postgresql+asyncpg://",
    "sqlite://",
    "sqlite+aiosqlite://",
)


class ConfigLoader:
    """Loads settings once per process."""

    _settings: Optional[Settings] = None

    @classmethod
    def load_config(cls, env_file: Optional[str] = None) -> Settings:
        """
        Load settings from the environment and an optional .env file.

        Later calls return the already loaded instance.
        """
        if cls._settings is not None:
            return cls._settings

        load_dotenv(env_file)
        cls._settings = Settings()

        settings = cls._settings
        logger.info(f"{settings.app_name} v{settings.app_version} configuration loaded")
        logger.info(
            f"Batch size {settings.sync.batch_size}, "
            f"character delay {settings.sync.character_delay}s, "
            f"max tries {settings.sync.max_tries}"
        )
        logger.info(
            f"Queue concurrency: discovery={settings.sync.discovery_concurrency} "
            f"character_sync={settings.sync.character_sync_concurrency} "
            f"activity_check={settings.sync.activity_check_concurrency} "
            f"scheduler={settings.sync.scheduler_concurrency}"
        )
        logger.info(f"Alerts {'enabled' if settings.alert_webhook_url else 'disabled'}")
        return settings

    @classmethod
    def validate_config(cls) -> bool:
        """False (with the reason logged) when a required value is missing."""
        settings = cls._settings
        if settings is None:
            logger.error("No configuration loaded")
            return False

        required = {
            "BLIZZARD_CLIENT_ID": settings.api.client_id,
            "BLIZZARD_CLIENT_SECRET": settings.api.client_secret,
            "DATABASE_URL": settings.database.url,
            "REDIS_URL": settings.cache.redis_url,
        }
        missing = [name for name, value in required.items() if not value]
        if missing:
            logger.error(f"Missing required config: {', '.join(missing)}")
            return False

        if not settings.database.url.startswith(SUPPORTED_DATABASE_SCHEMES):
            logger.error("Unsupported DATABASE_URL scheme")
            return False

        return True
