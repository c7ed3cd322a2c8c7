"""
Sync Scheduler

Starts an active sync for a guild: picks the recently active members,
opens a SyncJob for them and fans them out into character-sync batches.
"""

import logging
from datetime import timedelta
from typing import Any, List, Optional

from ...core.utils import redact_secrets, utc_now, timestamp_ms
from ...domain.guild.models import GuildMember
from ...domain.guild.schemas import CharacterRef
from ...domain.sync.models import SyncJobType
from ...domain.sync.schemas import SchedulerJobPayload, CharacterSyncJobPayload
from ...infrastructure.database.repositories import (
    GuildRepository,
    MemberRepository,
    SyncJobRepository,
)
from ...infrastructure.queue import JobQueue, Priority

logger = logging.getLogger(__name__)


def split_batches(items: List[Any], batch_size: int) -> List[List[Any]]:
    """Consecutive slices of ``batch_size``; the last one may be shorter."""
    if batch_size <= 0:
        raise ValueError("batch_size must be positive")
    return [items[i:i + batch_size] for i in range(0, len(items), batch_size)]


def _character_ref(member: GuildMember) -> CharacterRef:
    return CharacterRef(
        name=member.character_name,
        realm=member.realm,
        character_api_url=member.character_api_url,
        character_class=member.character_class,
    )


class SyncScheduler:
    """Consumer for the sync-scheduler queue."""

    def __init__(
        self,
        guilds: GuildRepository,
        members: MemberRepository,
        sync_jobs: SyncJobRepository,
        job_queue: JobQueue,
        batch_size: int = 40
    ):
        self.guilds = guilds
        self.members = members
        self.sync_jobs = sync_jobs
        self.job_queue = job_queue
        self.batch_size = batch_size

    async def run(
        self,
        payload: SchedulerJobPayload,
        queue_job_id: Optional[str] = None
    ) -> Optional[dict]:
        """
        Schedule character syncs for one guild.

        Returns:
            Batch and character counts, or None when nothing was scheduled
        """
        guild = await self.guilds.get_by_id(payload.guild_id)
        if guild is None or not guild.sync_enabled:
            logger.info(f"Guild {payload.guild_id} not found or sync disabled, skipping")
            return None

        since = utc_now() - timedelta(days=guild.activity_window_days)
        active = await self.members.active_members(guild.id, timestamp_ms(since))

        if not active:
            logger.info(f"No active members for {guild.name}, nothing to sync")
            return None

        job = await self.sync_jobs.start(
            guild.id,
            SyncJobType.ACTIVE_SYNC,
            total_items=len(active),
            queue_job_id=queue_job_id,
        )

        batches = split_batches([_character_ref(m) for m in active], self.batch_size)
        try:
            for index, batch in enumerate(batches):
                await self.job_queue.enqueue_character_sync(
                    CharacterSyncJobPayload(
                        guild_id=str(guild.id),
                        sync_job_id=str(job.id),
                        characters=batch,
                        batch_index=index,
                        total_batches=len(batches),
                    ),
                    priority=Priority.CHARACTER_SYNC,
                )
        except Exception as e:
            # Batches that never got queued would leave the job running forever
            message = redact_secrets(e)
            logger.error(f"Fan-out failed for {guild.name} at batch {index}: {message}")
            await self.sync_jobs.mark_failed(job.id, message)
            raise

        await self.guilds.update_fields(guild.id, last_active_sync_at=utc_now())

        logger.info(
            f"Scheduled {len(batches)} batches for {len(active)} active members "
            f"of {guild.name}"
        )
        return {"batches": len(batches), "total_characters": len(active)}
