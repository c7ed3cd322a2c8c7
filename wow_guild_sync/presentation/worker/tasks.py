"""
Queue Job Functions

arq entry points for the four sync queues. Each function validates its
payload, resolves a worker from the container in ``ctx`` and runs it.
"""

import logging
from typing import Any, Dict, Optional

from arq.connections import RedisSettings
from arq.cron import cron
from arq.worker import func

from ...core.config import ConfigLoader
from ...core.container import initialize_container, shutdown_container
from ...domain.sync.schemas import (
    DiscoveryJobPayload,
    SchedulerJobPayload,
    CharacterSyncJobPayload,
    ActivityCheckJobPayload,
)
from ...infrastructure.queue import QueueName, JobName, retry_upstream_errors

logger = logging.getLogger(__name__)


async def startup(ctx: Dict[str, Any]) -> None:
    """Build the container unless the caller already put one in ``ctx``."""
    if "container" in ctx:
        return

    container = await initialize_container()
    ctx["container"] = container
    ctx["settings"] = container.settings()
    ctx["owns_container"] = True


async def shutdown(ctx: Dict[str, Any]) -> None:
    if ctx.pop("owns_container", False):
        await shutdown_container()


@retry_upstream_errors
async def guild_discovery(ctx: Dict[str, Any], payload: Dict[str, Any]) -> Optional[dict]:
    worker = ctx["container"].discovery_worker()
    return await worker.run(
        DiscoveryJobPayload.model_validate(payload),
        queue_job_id=ctx.get("job_id")
    )


@retry_upstream_errors
async def schedule_active_sync(ctx: Dict[str, Any], payload: Dict[str, Any]) -> Optional[dict]:
    scheduler = ctx["container"].sync_scheduler()
    return await scheduler.run(
        SchedulerJobPayload.model_validate(payload),
        queue_job_id=ctx.get("job_id")
    )


@retry_upstream_errors
async def character_sync(ctx: Dict[str, Any], payload: Dict[str, Any]) -> Optional[dict]:
    worker = ctx["container"].character_sync_worker()
    return await worker.run(CharacterSyncJobPayload.model_validate(payload))


@retry_upstream_errors
async def activity_check(ctx: Dict[str, Any], payload: Dict[str, Any]) -> dict:
    worker = ctx["container"].activity_check_worker()
    return await worker.run(ActivityCheckJobPayload.model_validate(payload))


async def dispatch_due_schedules(ctx: Dict[str, Any]) -> int:
    """Cron tick: enqueue every recurring run that is due."""
    job_queue = ctx["container"].job_queue()
    return len(await job_queue.dispatch_due_schedules())


settings = ConfigLoader.load_config()


class _BaseWorkerSettings:
    on_startup = startup
    on_shutdown = shutdown
    max_tries = settings.sync.max_tries
    job_timeout = settings.sync.job_timeout
    redis_settings = RedisSettings.from_dsn(settings.cache.redis_url)


class DiscoveryWorkerSettings(_BaseWorkerSettings):
    queue_name = QueueName.DISCOVERY
    functions = [func(guild_discovery, name=JobName.DISCOVERY)]
    max_jobs = settings.sync.discovery_concurrency


class CharacterSyncWorkerSettings(_BaseWorkerSettings):
    queue_name = QueueName.CHARACTER_SYNC
    functions = [func(character_sync, name=JobName.CHARACTER_SYNC)]
    max_jobs = settings.sync.character_sync_concurrency


class ActivityCheckWorkerSettings(_BaseWorkerSettings):
    queue_name = QueueName.ACTIVITY_CHECK
    functions = [func(activity_check, name=JobName.ACTIVITY_CHECK)]
    max_jobs = settings.sync.activity_check_concurrency


class SchedulerWorkerSettings(_BaseWorkerSettings):
    queue_name = QueueName.SCHEDULER
    functions = [func(schedule_active_sync, name=JobName.SCHEDULE_ACTIVE_SYNC)]
    cron_jobs = [
        cron(
            dispatch_due_schedules,
            name=JobName.DISPATCH_SCHEDULES,
            second=0,
            run_at_startup=True,
            unique=True,
        )
    ]
    max_jobs = settings.sync.scheduler_concurrency


WORKER_SETTINGS = [
    DiscoveryWorkerSettings,
    CharacterSyncWorkerSettings,
    ActivityCheckWorkerSettings,
    SchedulerWorkerSettings,
]
