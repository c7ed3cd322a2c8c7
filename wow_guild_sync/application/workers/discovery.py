"""
Roster Discovery Worker

Reconciles a guild's stored membership with the live roster: upserts every
roster member, refreshes their activity, removes departed members and
updates the guild's crest and member count.
"""

import logging
import time
from typing import Optional

from .activity_check import apply_activity_results
from ...core.utils import redact_secrets, utc_now
from ...domain.guild.schemas import CharacterRef
from ...domain.sync.models import SyncJobType
from ...domain.sync.schemas import DiscoveryJobPayload
from ...infrastructure.alerts import AlertService, AlertLevel
from ...infrastructure.api.provider_client import ProviderClient
from ...infrastructure.database.repositories import (
    GuildRepository,
    MemberRepository,
    SyncJobRepository,
)
from ...infrastructure.events import EventPublisher

logger = logging.getLogger(__name__)


class DiscoveryWorker:
    """Consumer for the guild-discovery queue."""

    def __init__(
        self,
        guilds: GuildRepository,
        members: MemberRepository,
        sync_jobs: SyncJobRepository,
        provider: ProviderClient,
        publisher: EventPublisher,
        alerts: AlertService
    ):
        self.guilds = guilds
        self.members = members
        self.sync_jobs = sync_jobs
        self.provider = provider
        self.publisher = publisher
        self.alerts = alerts

    async def run(
        self,
        payload: DiscoveryJobPayload,
        queue_job_id: Optional[str] = None
    ) -> Optional[dict]:
        """
        Run one discovery pass.

        Any failure marks the run failed, publishes an ``error`` event,
        raises an alert and is re-raised for the queue's retry policy.
        Per-member write failures are counted but do not fail the run.
        """
        guild_id = payload.guild_id
        start = time.monotonic()

        guild = await self.guilds.get_by_id(guild_id)
        if guild is None or not guild.sync_enabled:
            logger.info(f"Guild {guild_id} not found or sync disabled, skipping discovery")
            return None

        logger.info(f"Starting discovery for {guild.name}-{guild.realm} ({guild.region})")
        job = await self.sync_jobs.start(
            guild.id, SyncJobType.DISCOVERY, queue_job_id=queue_job_id
        )

        try:
            roster = await self.provider.get_roster(guild.name, guild.realm, guild.region)

            if not roster:
                logger.info(f"No members found for {guild.name}")
                await self.sync_jobs.complete(
                    job.id, processed_items=0, error_count=0,
                    duration=round(time.monotonic() - start)
                )
                return {"total": 0, "updated": 0, "errors": 0}

            await self.sync_jobs.update_fields(job.id, total_items=len(roster))

            upsert_errors = 0
            created = 0
            for member in roster:
                try:
                    if await self.members.upsert_roster_member(guild.id, member):
                        created += 1
                except Exception as e:
                    upsert_errors += 1
                    logger.warning(
                        f"Failed to upsert {member.character_name}-{member.realm}: {e}"
                    )

            results = await self.provider.bulk_check_activity(
                [
                    CharacterRef(name=m.character_name, realm=m.realm)
                    for m in roster
                ],
                guild.region
            )
            updated, update_errors = await apply_activity_results(
                self.members, guild.id, results
            )

            removed = await self.members.delete_departed(
                guild.id, ((m.character_name, m.realm) for m in roster)
            )
            if removed:
                logger.info(f"Removed {removed} departed members from {guild.name}")

            crest = await self.provider.get_guild_crest(guild.name, guild.realm, guild.region)

            duration = round(time.monotonic() - start)
            await self.guilds.update_fields(
                guild.id,
                last_discovery_at=utc_now(),
                member_count=len(roster),
                **crest.to_columns()
            )
            await self.sync_jobs.complete(
                job.id,
                processed_items=len(roster),
                error_count=upsert_errors + update_errors,
                duration=duration,
            )

            await self.publisher.publish_discovery_complete(
                guild.id,
                total=len(roster),
                updated=updated,
                errors=update_errors,
                duration=duration,
            )

            logger.info(
                f"Discovery completed for {guild.name}: {len(roster)} members, "
                f"{created} new, {removed} removed, "
                f"{upsert_errors + update_errors} errors ({duration}s)"
            )
            return {"total": len(roster), "updated": updated, "errors": update_errors}

        except Exception as e:
            message = redact_secrets(e)
            logger.error(f"Discovery failed for {guild.name}: {message}")

            await self.sync_jobs.mark_failed(
                job.id, message, duration=round(time.monotonic() - start)
            )
            await self.publisher.publish_error(guild.id, f"Discovery failed: {message}")
            await self.alerts.send_alert(
                title="Guild Discovery Failed",
                message=f"Guild {guild.name} ({guild.region}): {message}",
                level=AlertLevel.ERROR,
                source="worker/guild-discovery",
            )
            raise
