"""
Dependency Injection Container

Central container for managing application dependencies.
"""

import logging
from typing import Optional

from arq import create_pool
from arq.connections import RedisSettings
from dependency_injector import containers, providers

from .config import ConfigLoader
from ..application.workers import (
    ActivityCheckWorker,
    CharacterSyncWorker,
    DiscoveryWorker,
    SyncScheduler,
)
from ..infrastructure.alerts import AlertService
from ..infrastructure.api import (
    BlizzardAPIClient,
    BlizzardOAuthService,
    CredentialManager,
    ProviderClient,
    RaiderIOClient,
)
from ..infrastructure.api.middleware import MultiKeyRateLimiter
from ..infrastructure.cache import RedisCache, MemoryCache
from ..infrastructure.database import (
    DatabaseConnection,
    GuildRepository,
    MemberRepository,
    SyncJobRepository,
    SyncErrorRepository,
)
from ..infrastructure.events import EventPublisher, StreamRelay
from ..infrastructure.queue import JobQueue

logger = logging.getLogger(__name__)


class Container(containers.DeclarativeContainer):
    """Main DI container for the application."""

    # Load settings
    settings = providers.Singleton(
        ConfigLoader.load_config
    )

    # Infrastructure - Cache
    cache = providers.Singleton(
        RedisCache,
        redis_url=settings.provided.cache.redis_url
    )

    # Process-local guild metadata for the activity stream
    local_cache = providers.Singleton(
        MemoryCache,
        max_size=1000,
        default_ttl=settings.provided.stream.guild_cache_ttl
    )

    # arq pool, created asynchronously in initialize_container()
    arq_redis = providers.Dependency()

    # Infrastructure - Database
    database = providers.Singleton(
        DatabaseConnection,
        database_url=settings.provided.database.url,
        echo=settings.provided.database.echo,
        pool_size=settings.provided.database.pool_size,
        max_overflow=settings.provided.database.max_overflow
    )

    guild_repository = providers.Singleton(GuildRepository, database=database)
    member_repository = providers.Singleton(MemberRepository, database=database)
    sync_job_repository = providers.Singleton(SyncJobRepository, database=database)
    sync_error_repository = providers.Singleton(SyncErrorRepository, database=database)

    # Infrastructure - Upstream APIs
    oauth_service = providers.Singleton(
        BlizzardOAuthService,
        client_id=settings.provided.api.client_id,
        client_secret=settings.provided.api.client_secret
    )

    credential_manager = providers.Singleton(
        CredentialManager,
        cache=cache,
        oauth_service=oauth_service,
        token_ttl=settings.provided.cache.token_ttl,
        lock_ttl=settings.provided.sync.token_lock_ttl,
        lock_wait=settings.provided.sync.token_lock_wait
    )

    blizzard_client = providers.Singleton(
        BlizzardAPIClient,
        credentials=credential_manager,
        locale=settings.provided.api.locale,
        timeout=settings.provided.api.timeout
    )

    raiderio_client = providers.Singleton(
        RaiderIOClient,
        base_url=settings.provided.api.raiderio_url,
        timeout=settings.provided.api.timeout
    )

    provider = providers.Singleton(
        ProviderClient,
        blizzard=blizzard_client,
        raiderio=raiderio_client,
        activity_delay=settings.provided.sync.activity_delay,
        activity_timeout=settings.provided.sync.activity_timeout,
        active_threshold_days=settings.provided.sync.active_threshold_days
    )

    # Infrastructure - Events, alerts and queues
    publisher = providers.Singleton(
        EventPublisher,
        redis=cache.provided.client
    )

    relay = providers.Singleton(
        StreamRelay,
        redis=cache.provided.client,
        guilds=guild_repository,
        guild_cache=local_cache,
        guild_cache_ttl=settings.provided.stream.guild_cache_ttl
    )

    alerts = providers.Singleton(
        AlertService,
        webhook_url=settings.provided.alert_webhook_url
    )

    job_queue = providers.Singleton(JobQueue, redis=arq_redis)

    trigger_limiter = providers.Singleton(
        MultiKeyRateLimiter,
        max_requests=settings.provided.stream.trigger_rate_limit,
        time_window=settings.provided.stream.trigger_rate_window
    )

    # Workers
    discovery_worker = providers.Factory(
        DiscoveryWorker,
        guilds=guild_repository,
        members=member_repository,
        sync_jobs=sync_job_repository,
        provider=provider,
        publisher=publisher,
        alerts=alerts
    )

    sync_scheduler = providers.Factory(
        SyncScheduler,
        guilds=guild_repository,
        members=member_repository,
        sync_jobs=sync_job_repository,
        job_queue=job_queue,
        batch_size=settings.provided.sync.batch_size
    )

    character_sync_worker = providers.Factory(
        CharacterSyncWorker,
        guilds=guild_repository,
        members=member_repository,
        sync_jobs=sync_job_repository,
        sync_errors=sync_error_repository,
        provider=provider,
        publisher=publisher,
        alerts=alerts,
        character_delay=settings.provided.sync.character_delay,
        progress_every=settings.provided.sync.progress_every,
        error_rate_alert_threshold=settings.provided.sync.error_rate_alert_threshold
    )

    activity_check_worker = providers.Factory(
        ActivityCheckWorker,
        guilds=guild_repository,
        members=member_repository,
        provider=provider
    )


# Global container instance
_container: Optional[Container] = None


def set_container(container: Optional[Container]) -> None:
    """Set the global container instance."""
    global _container
    _container = container


async def initialize_container(container: Optional[Container] = None) -> Container:
    """
    Connect every stateful dependency of a container.

    Args:
        container: Container to initialize; a new one when omitted

    Returns:
        Initialized container
    """
    container = container or Container()
    settings = container.settings()

    await container.cache().initialize()
    await container.local_cache().initialize()

    database = container.database()
    await database.initialize()
    await database.create_tables()

    if not container.arq_redis.overridden:
        arq_redis = await create_pool(RedisSettings.from_dsn(settings.cache.redis_url))
        container.arq_redis.override(providers.Object(arq_redis))

    await container.provider().initialize()

    set_container(container)
    logger.info(f"Container initialized ({settings.env})")
    return container


async def shutdown_container() -> None:
    """Shutdown the container and cleanup resources."""
    container = _container
    if container is None:
        return

    await container.provider().close()

    if container.arq_redis.overridden:
        await container.arq_redis().aclose()
        container.arq_redis.reset_override()

    await container.local_cache().shutdown()
    await container.cache().shutdown()
    await container.database().shutdown()

    set_container(None)
    logger.info("Container shutdown complete")
