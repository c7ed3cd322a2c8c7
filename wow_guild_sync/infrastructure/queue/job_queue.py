"""
Job Queue

Producer side of the arq queues plus the recurring schedule registry.

arq orders each queue by score (the time a job becomes runnable), so
priorities are expressed by backdating a job's ``_defer_until``: a job with
priority 1 becomes runnable well before a priority 10 job enqueued at the
same moment.

Recurring discovery and active-sync runs are kept in Redis: one hash with
each guild's intervals and one sorted set per run type scored by the next
due time. A once-a-minute cron tick enqueues what is due, with job ids
derived from the due time so that overlapping ticks cannot double-enqueue.
"""

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from arq.connections import ArqRedis

from .queues import QueueName, JobName, Priority
from ...core.exceptions import ServiceError
from ...domain.sync.schemas import (
    DiscoveryJobPayload,
    SchedulerJobPayload,
    CharacterSyncJobPayload,
    ActivityCheckJobPayload,
)

logger = logging.getLogger(__name__)

SCHEDULES_KEY = "sync:schedules"
DUE_KEYS = {
    "discovery": "sync:schedules:discovery",
    "active_sync": "sync:schedules:active_sync",
}

# How far one priority step moves a job ahead in its queue
PRIORITY_STEP = timedelta(minutes=1)


def priority_defer_until(priority: int, now: Optional[datetime] = None) -> datetime:
    """Runnable-from time that places a job according to its priority."""
    now = now or datetime.now(timezone.utc)
    return now - PRIORITY_STEP * (Priority.DEFAULT - priority)


def _text(value: Any) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else str(value)


class JobQueue:
    """Enqueues jobs and manages per-guild recurring schedules."""

    def __init__(self, redis: ArqRedis):
        """
        Initialize job queue.

        Args:
            redis: arq connection pool (from ``arq.create_pool``)
        """
        self.redis = redis

    async def _enqueue(
        self,
        function: str,
        queue_name: str,
        payload: Dict[str, Any],
        priority: int = Priority.DEFAULT,
        job_id: Optional[str] = None
    ) -> Optional[str]:
        try:
            job = await self.redis.enqueue_job(
                function,
                payload,
                _queue_name=queue_name,
                _job_id=job_id,
                _defer_until=priority_defer_until(priority),
            )
        except Exception as e:
            raise ServiceError(
                f"Failed to enqueue {function}: {e}",
                service_name="JobQueue",
                operation="enqueue"
            ) from e

        if job is None:
            logger.debug(f"Job {job_id} already queued, skipping")
            return None
        return job.job_id

    # Producers

    async def enqueue_discovery(
        self,
        guild_id: Any,
        priority: int = Priority.DEFAULT,
        job_id: Optional[str] = None
    ) -> Optional[str]:
        payload = DiscoveryJobPayload(guild_id=str(guild_id))
        return await self._enqueue(
            JobName.DISCOVERY, QueueName.DISCOVERY, payload.model_dump(), priority, job_id
        )

    async def enqueue_immediate_discovery(self, guild_id: Any) -> Optional[str]:
        """Discovery ahead of everything scheduled, for manual triggers."""
        job_id = await self.enqueue_discovery(guild_id, priority=Priority.HIGHEST)
        logger.info(f"Immediate discovery enqueued for guild {guild_id}")
        return job_id

    async def enqueue_active_sync(
        self,
        guild_id: Any,
        job_id: Optional[str] = None
    ) -> Optional[str]:
        payload = SchedulerJobPayload(guild_id=str(guild_id))
        return await self._enqueue(
            JobName.SCHEDULE_ACTIVE_SYNC, QueueName.SCHEDULER, payload.model_dump(),
            job_id=job_id
        )

    async def enqueue_character_sync(
        self,
        payload: CharacterSyncJobPayload,
        priority: int = Priority.CHARACTER_SYNC
    ) -> Optional[str]:
        return await self._enqueue(
            JobName.CHARACTER_SYNC, QueueName.CHARACTER_SYNC,
            payload.model_dump(), priority
        )

    async def enqueue_activity_check(self, payload: ActivityCheckJobPayload) -> Optional[str]:
        return await self._enqueue(
            JobName.ACTIVITY_CHECK, QueueName.ACTIVITY_CHECK, payload.model_dump()
        )

    # Recurring schedules

    async def register_schedules(
        self,
        guild_id: Any,
        discovery_interval_hours: int,
        active_sync_interval_min: int,
        now: Optional[datetime] = None
    ) -> None:
        """
        Install or update a guild's recurring runs.

        A new schedule has its first discovery due immediately and its first
        active sync one interval from now. Registering again with the same
        intervals keeps the pending due times, so worker restarts neither
        trigger extra discoveries nor postpone active syncs; a changed
        interval starts that schedule over.
        """
        if discovery_interval_hours <= 0 or active_sync_interval_min <= 0:
            raise ValueError("Schedule intervals must be positive")

        guild_id = str(guild_id)
        now_ts = (now or datetime.now(timezone.utc)).timestamp()
        intervals = {
            "discovery": discovery_interval_hours * 3600,
            "active_sync": active_sync_interval_min * 60,
        }
        first_due = {
            "discovery": now_ts,
            "active_sync": now_ts + intervals["active_sync"],
        }

        raw = await self.redis.hget(SCHEDULES_KEY, guild_id)
        previous = json.loads(_text(raw)) if raw is not None else {}

        await self.redis.hset(SCHEDULES_KEY, guild_id, json.dumps(intervals))
        for kind, key in DUE_KEYS.items():
            unchanged = previous.get(kind) == intervals[kind]
            # NX leaves an existing due time in place
            await self.redis.zadd(key, {guild_id: first_due[kind]}, nx=unchanged)

        logger.info(
            f"Registered schedules for guild {guild_id}: discovery every "
            f"{discovery_interval_hours}h, active sync every {active_sync_interval_min}m"
        )

    async def remove_schedules(self, guild_id: Any) -> None:
        guild_id = str(guild_id)
        await self.redis.hdel(SCHEDULES_KEY, guild_id)
        for key in DUE_KEYS.values():
            await self.redis.zrem(key, guild_id)
        logger.info(f"Removed schedules for guild {guild_id}")

    async def dispatch_due_schedules(self, now: Optional[datetime] = None) -> List[str]:
        """
        Enqueue every recurring run that is due and push its next due time.

        Returns:
            Ids of the jobs that were enqueued
        """
        now_ts = (now or datetime.now(timezone.utc)).timestamp()
        enqueued = []

        for kind, key in DUE_KEYS.items():
            due = await self.redis.zrangebyscore(key, "-inf", now_ts, withscores=True)
            for member, score in due:
                guild_id = _text(member)
                raw = await self.redis.hget(SCHEDULES_KEY, guild_id)
                if raw is None:
                    # Schedule removed between reads
                    await self.redis.zrem(key, guild_id)
                    continue

                interval = json.loads(_text(raw))[kind]
                job_id = f"{kind}:{guild_id}:{int(score)}"
                if kind == "discovery":
                    queued = await self.enqueue_discovery(guild_id, job_id=job_id)
                else:
                    queued = await self.enqueue_active_sync(guild_id, job_id=job_id)

                # Skip missed slots instead of replaying them
                next_due = score + interval
                while next_due <= now_ts:
                    next_due += interval
                await self.redis.zadd(key, {guild_id: next_due})

                if queued:
                    enqueued.append(queued)

        if enqueued:
            logger.info(f"Dispatched {len(enqueued)} scheduled jobs")
        return enqueued
