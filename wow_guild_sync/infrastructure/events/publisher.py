"""
Event Publisher

Fire-and-forget publication of sync lifecycle events. Events are not stored;
a subscriber that is not connected when an event is published never sees it.
"""

import logging
from typing import Any, Optional

from ...domain.sync.schemas import (
    SyncEvent,
    ProgressEvent,
    SyncCompleteEvent,
    DiscoveryCompleteEvent,
    ErrorEvent,
)

logger = logging.getLogger(__name__)

AGGREGATE_PATTERN = "guild:*:sync"


def guild_channel(guild_id: Any) -> str:
    return f"guild:{guild_id}:sync"


class EventPublisher:
    """Publishes events on ``guild:{guild_id}:sync`` channels."""

    def __init__(self, redis):
        """
        Initialize publisher.

        Args:
            redis: Client exposing an async ``publish(channel, message)``
        """
        self.redis = redis

    async def publish(self, event: SyncEvent) -> bool:
        """Publish one event; delivery failures are logged, not raised."""
        try:
            await self.redis.publish(guild_channel(event.guild_id), event.model_dump_json())
            return True
        except Exception as e:
            logger.error(f"Failed to publish {event.type} for guild {event.guild_id}: {e}")
            return False

    async def publish_progress(
        self,
        guild_id: Any,
        processed: int,
        total: int,
        errors: int,
        current_character: Optional[str] = None
    ) -> bool:
        return await self.publish(ProgressEvent(
            guild_id=str(guild_id),
            processed=processed,
            total=total,
            errors=errors,
            current_character=current_character,
        ))

    async def publish_complete(
        self,
        guild_id: Any,
        synced: int,
        errors: int,
        duration: float,
        sync_type: str = "active_sync"
    ) -> bool:
        return await self.publish(SyncCompleteEvent(
            guild_id=str(guild_id),
            synced=synced,
            errors=errors,
            duration=duration,
            sync_type=sync_type,
        ))

    async def publish_discovery_complete(
        self,
        guild_id: Any,
        total: int,
        updated: int,
        errors: int,
        duration: float
    ) -> bool:
        return await self.publish(DiscoveryCompleteEvent(
            guild_id=str(guild_id),
            total=total,
            updated=updated,
            errors=errors,
            duration=duration,
        ))

    async def publish_error(self, guild_id: Any, message: str) -> bool:
        return await self.publish(ErrorEvent(guild_id=str(guild_id), message=message))
