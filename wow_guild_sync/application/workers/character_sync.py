"""
Character Sync Worker

Refreshes statistics for one batch of an active sync. Batches of the same
run share the SyncJob counters; whichever batch finishes the last character
completes the run and announces it.
"""

import asyncio
import logging
from typing import Optional

from ...core.utils import redact_secrets, utc_now
from ...domain.guild.schemas import CharacterRef, CharacterStats
from ...domain.sync.models import SyncJobType
from ...domain.sync.schemas import CharacterSyncJobPayload
from ...infrastructure.alerts import AlertService, AlertLevel
from ...infrastructure.api.provider_client import ProviderClient
from ...infrastructure.database.repositories import (
    GuildRepository,
    MemberRepository,
    SyncJobRepository,
    SyncErrorRepository,
)
from ...infrastructure.events import EventPublisher

logger = logging.getLogger(__name__)

SYNC_ERROR_TYPE = "sync_error"
SYNC_SOURCE = "auto"


def stat_columns(stats: CharacterStats, ref: CharacterRef) -> dict:
    """Member columns written after a successful lookup."""
    values = stats.model_dump(exclude={"source", "level"})
    values["character_class"] = stats.character_class or ref.character_class
    return values


class CharacterSyncWorker:
    """Consumer for the character-sync queue."""

    def __init__(
        self,
        guilds: GuildRepository,
        members: MemberRepository,
        sync_jobs: SyncJobRepository,
        sync_errors: SyncErrorRepository,
        provider: ProviderClient,
        publisher: EventPublisher,
        alerts: AlertService,
        character_delay: float = 1.0,
        progress_every: int = 10,
        error_rate_alert_threshold: float = 0.5
    ):
        self.guilds = guilds
        self.members = members
        self.sync_jobs = sync_jobs
        self.sync_errors = sync_errors
        self.provider = provider
        self.publisher = publisher
        self.alerts = alerts
        self.character_delay = character_delay
        self.progress_every = progress_every
        self.error_rate_alert_threshold = error_rate_alert_threshold

    async def run(self, payload: CharacterSyncJobPayload) -> Optional[dict]:
        """
        Sync one batch, one character at a time.

        A character failure is recorded and counted; it never aborts the
        batch.
        """
        guild = await self.guilds.get_by_id(payload.guild_id)
        if guild is None:
            logger.info(f"Guild {payload.guild_id} not found, dropping batch")
            return None

        batch = payload.characters
        logger.info(
            f"Syncing batch {payload.batch_index + 1}/{payload.total_batches} "
            f"({len(batch)} characters) for {guild.name}"
        )

        synced = 0
        error_count = 0
        for i, character in enumerate(batch):
            failed = not await self._sync_character(guild, character)
            if failed:
                error_count += 1
            else:
                synced += 1

            await self.sync_jobs.increment_progress(
                payload.sync_job_id, failed=failed, current_character=character.name
            )

            if (i + 1) % self.progress_every == 0 or i == len(batch) - 1:
                await self.publisher.publish_progress(
                    guild.id, i + 1, len(batch), error_count, character.name
                )

            if i < len(batch) - 1 and self.character_delay:
                await asyncio.sleep(self.character_delay)

        if batch and error_count / len(batch) > self.error_rate_alert_threshold:
            await self.alerts.send_alert(
                title="High Sync Error Rate",
                message=(
                    f"Guild {guild.name}: {error_count}/{len(batch)} characters "
                    f"failed in batch {payload.batch_index + 1}/{payload.total_batches}"
                ),
                level=AlertLevel.WARNING,
                source="worker/character-sync",
            )

        await self._maybe_complete(guild.id, payload.sync_job_id)

        logger.info(
            f"Batch {payload.batch_index + 1}/{payload.total_batches} done for "
            f"{guild.name}: {synced} synced, {error_count} errors"
        )
        return {"synced": synced, "errors": error_count}

    async def _sync_character(self, guild, character: CharacterRef) -> bool:
        try:
            stats = await self.provider.get_member(
                character.name,
                character.realm,
                guild.region,
                source=SYNC_SOURCE,
                character_api_url=character.character_api_url,
            )
            values = stat_columns(stats, character)
            values["last_hourly_check"] = utc_now()
            await self.members.update_stats(guild.id, character.name, character.realm, values)
            return True
        except Exception as e:
            message = redact_secrets(e)
            logger.warning(f"Sync failed for {character.name}-{character.realm}: {message}")
            await self.sync_errors.record(
                guild.id,
                character.name,
                character.realm,
                error_type=SYNC_ERROR_TYPE,
                error_message=message,
                service=SYNC_SOURCE,
            )
            return False

    async def _maybe_complete(self, guild_id, sync_job_id: str) -> None:
        job = await self.sync_jobs.get_by_id(sync_job_id)
        if job is None or job.processed_items < job.total_items:
            return

        started_at = job.started_at or job.created_at
        duration = round((utc_now() - started_at).total_seconds()) if started_at else 0

        if not await self.sync_jobs.try_complete(job.id, duration):
            # Another batch completed the run first
            return

        logger.info(
            f"Active sync {job.id} completed: {job.processed_items} characters, "
            f"{job.error_count} errors ({duration}s)"
        )
        await self.publisher.publish_complete(
            guild_id,
            synced=job.processed_items,
            errors=job.error_count,
            duration=duration,
            sync_type=SyncJobType.ACTIVE_SYNC,
        )
