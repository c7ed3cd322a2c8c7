"""
Activity Check Worker

Re-checks last-login activity for an explicit list of characters.
"""

import logging
from typing import Any, List, Tuple

from ...domain.guild.models import ActivityStatus
from ...domain.guild.schemas import ActivityResult
from ...domain.sync.schemas import ActivityCheckJobPayload
from ...infrastructure.api.provider_client import ProviderClient
from ...infrastructure.database.repositories import GuildRepository, MemberRepository
from ...core.utils import utc_now

logger = logging.getLogger(__name__)


async def apply_activity_results(
    members: MemberRepository,
    guild_id: Any,
    results: List[ActivityResult]
) -> Tuple[int, int]:
    """
    Write activity results onto member rows.

    A result with a login timestamp stores it with its classified status;
    a result without one marks the member inactive.

    Returns:
        (members updated, update failures)
    """
    updated = 0
    errors = 0
    checked_at = utc_now()

    for result in results:
        if result.last_login_timestamp:
            status = result.activity_status
        else:
            status = ActivityStatus.INACTIVE

        try:
            rows = await members.update_activity(
                guild_id,
                result.name,
                result.realm,
                activity_status=status,
                last_login_timestamp=result.last_login_timestamp,
                checked_at=checked_at,
            )
        except Exception as e:
            logger.warning(f"Activity update failed for {result.name}-{result.realm}: {e}")
            errors += 1
            continue

        if rows:
            updated += 1
        else:
            # Member left the roster since the lookup was queued
            errors += 1

    return updated, errors


class ActivityCheckWorker:
    """Consumer for the activity-check queue."""

    def __init__(
        self,
        guilds: GuildRepository,
        members: MemberRepository,
        provider: ProviderClient
    ):
        self.guilds = guilds
        self.members = members
        self.provider = provider

    async def run(self, payload: ActivityCheckJobPayload) -> dict:
        logger.info(
            f"Checking activity of {len(payload.characters)} characters "
            f"for guild {payload.guild_id}"
        )

        guild = await self.guilds.get_by_id(payload.guild_id)
        if guild is None:
            logger.info(f"Guild {payload.guild_id} not found, skipping activity check")
            return {"updated": 0, "errors": 0}

        results = await self.provider.bulk_check_activity(payload.characters, guild.region)
        updated, errors = await apply_activity_results(self.members, guild.id, results)

        logger.info(f"Activity check done for {guild.name}: {updated} updated, {errors} errors")
        return {"updated": updated, "errors": errors}
