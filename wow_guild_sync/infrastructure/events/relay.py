"""
Stream Relay

Turns Redis pub/sub traffic into server-sent event payloads.

A per-guild stream forwards every event on that guild's channel. The
aggregate stream listens to all guild channels, forwards only completion
events and decorates them with the guild's name, realm, region and crest.
Both streams start with a ``connected`` event and end when their lifetime
runs out; heartbeats are added by the HTTP layer.
"""

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Dict, Optional

from .publisher import guild_channel, AGGREGATE_PATTERN
from ..cache import MemoryCache
from ..database.repositories import GuildRepository
from ...core.utils import utc_now
from ...domain.sync.schemas import EventType

logger = logging.getLogger(__name__)

AGGREGATE_EVENT_TYPES = {EventType.DISCOVERY_COMPLETE, EventType.SYNC_COMPLETE}

# Longest single wait on the pub/sub socket; bounds how late a stream notices
# its deadline
POLL_INTERVAL = 1.0


def _connected_event(**fields: Any) -> Dict[str, str]:
    payload = {
        "type": EventType.CONNECTED,
        "timestamp": utc_now().isoformat() + "Z",
        **fields,
    }
    return {"data": json.dumps(payload)}


class StreamRelay:
    """Relays guild channel messages to connected stream clients."""

    def __init__(
        self,
        redis,
        guilds: GuildRepository,
        guild_cache: MemoryCache,
        guild_cache_ttl: int = 300,
        poll_interval: float = POLL_INTERVAL
    ):
        """
        Initialize relay.

        Args:
            redis: Client exposing ``pubsub()``
            guilds: Repository for guild metadata lookups
            guild_cache: Process-local cache of guild metadata
            guild_cache_ttl: Metadata cache lifetime in seconds
            poll_interval: Maximum wait per pub/sub read
        """
        self.redis = redis
        self.guilds = guilds
        self.guild_cache = guild_cache
        self.guild_cache_ttl = guild_cache_ttl
        self.poll_interval = poll_interval

    async def guild_stream(
        self,
        guild_id: str,
        lifetime: float
    ) -> AsyncIterator[Dict[str, str]]:
        """Every event published for one guild, until ``lifetime`` seconds pass."""
        pubsub = self.redis.pubsub()
        channel = guild_channel(guild_id)
        await pubsub.subscribe(channel)
        logger.info(f"Stream opened for guild {guild_id}")

        try:
            yield _connected_event(guild_id=guild_id)

            async for message in self._messages(pubsub, lifetime):
                yield {"data": message["data"]}
        finally:
            await pubsub.unsubscribe(channel)
            await pubsub.aclose()
            logger.info(f"Stream closed for guild {guild_id}")

    async def activity_stream(self, lifetime: float) -> AsyncIterator[Dict[str, str]]:
        """Completion events from all guilds, with guild metadata attached."""
        pubsub = self.redis.pubsub()
        await pubsub.psubscribe(AGGREGATE_PATTERN)
        logger.info("Activity stream opened")

        try:
            yield _connected_event()

            async for message in self._messages(pubsub, lifetime):
                event = await self._decorate(message["data"])
                if event is not None:
                    yield {"data": json.dumps(event)}
        finally:
            await pubsub.punsubscribe(AGGREGATE_PATTERN)
            await pubsub.aclose()
            logger.info("Activity stream closed")

    async def _messages(self, pubsub, lifetime: float) -> AsyncIterator[Dict[str, Any]]:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + lifetime

        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                return

            message = await pubsub.get_message(
                ignore_subscribe_messages=True,
                timeout=min(self.poll_interval, remaining)
            )
            if message is None or message.get("type") not in ("message", "pmessage"):
                continue

            data = message.get("data")
            if isinstance(data, bytes):
                data = data.decode("utf-8")
            yield {**message, "data": data}

    async def _decorate(self, raw: str) -> Optional[Dict[str, Any]]:
        try:
            event = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Dropping malformed event on guild channel")
            return None

        if not isinstance(event, dict):
            logger.warning("Dropping non-object event on guild channel")
            return None
        if event.get("type") not in AGGREGATE_EVENT_TYPES:
            return None

        event.update(await self.guild_metadata(event.get("guild_id")))
        return event

    async def guild_metadata(self, guild_id: Optional[str]) -> Dict[str, Any]:
        """Name, realm, region and crest for a guild, cached for a few minutes."""
        if not guild_id:
            return {}

        cached = await self.guild_cache.get(guild_id, namespace="guild_meta")
        if cached is not None:
            return cached

        try:
            guild = await self.guilds.get_by_id(guild_id)
        except ValueError:
            logger.warning(f"Event carried an invalid guild id: {guild_id}")
            return {}

        if guild is None:
            # Not cached so a guild added later is picked up on its first event
            return {}

        metadata = {
            "guild_name": guild.name,
            "guild_realm": guild.realm,
            "guild_region": guild.region,
            **guild.crest_dict(),
        }
        await self.guild_cache.set(
            guild_id, metadata, ttl=self.guild_cache_ttl, namespace="guild_meta"
        )
        return metadata
