"""Event publication and the stream relay."""

import json
from uuid import uuid4

import pytest

from wow_guild_sync.domain.sync.schemas import EventType
from wow_guild_sync.infrastructure.events import EventPublisher, StreamRelay, guild_channel


class BrokenRedis:
    async def publish(self, channel, message):
        raise ConnectionError("redis down")


@pytest.fixture
def relay(pubsub_redis, guilds, memory_cache):
    return StreamRelay(pubsub_redis, guilds, memory_cache, guild_cache_ttl=300, poll_interval=0.05)


@pytest.mark.asyncio
class TestEventPublisher:
    async def test_events_go_to_the_guild_channel(self, publisher, pubsub_redis):
        await publisher.publish_progress("g1", 10, 40, 1, "Alice")

        channel, message = pubsub_redis.published[0]
        event = json.loads(message)
        assert channel == guild_channel("g1") == "guild:g1:sync"
        assert event["type"] == EventType.SYNC_PROGRESS
        assert event["guild_id"] == "g1"
        assert event["processed"] == 10
        assert event["current_character"] == "Alice"
        assert event["timestamp"].endswith("Z")

    async def test_completion_payloads(self, publisher, pubsub_redis):
        await publisher.publish_complete("g1", synced=85, errors=3, duration=120)
        await publisher.publish_discovery_complete("g1", total=90, updated=88, errors=2, duration=40)
        await publisher.publish_error("g1", "Discovery failed: boom")

        complete, discovery, error = pubsub_redis.events()
        assert complete["type"] == "sync:complete"
        assert complete["sync_type"] == "active_sync"
        assert discovery["type"] == "discovery:complete"
        assert discovery["updated"] == 88
        assert error["type"] == "error"
        assert error["message"] == "Discovery failed: boom"

    async def test_publish_failure_is_not_raised(self):
        assert await EventPublisher(BrokenRedis()).publish_error("g1", "x") is False


@pytest.mark.asyncio
class TestStreamRelay:
    async def test_guild_stream_starts_connected_then_relays(self, relay, publisher, pubsub_redis):
        stream = relay.guild_stream("g1", lifetime=5)

        first = json.loads((await stream.__anext__())["data"])
        assert first["type"] == EventType.CONNECTED
        assert first["guild_id"] == "g1"

        await publisher.publish_progress("g1", 1, 2, 0, "Alice")
        await publisher.publish_progress("other", 1, 2, 0, "Bob")

        relayed = json.loads((await stream.__anext__())["data"])
        assert relayed["type"] == EventType.SYNC_PROGRESS
        assert relayed["current_character"] == "Alice"

        await stream.aclose()
        assert pubsub_redis.subscribers == []

    async def test_stream_ends_after_lifetime(self, relay):
        events = [event async for event in relay.guild_stream("g1", lifetime=0.1)]

        assert len(events) == 1

    async def test_activity_stream_forwards_completions_with_metadata(
        self, relay, publisher, guild
    ):
        stream = relay.activity_stream(lifetime=5)
        await stream.__anext__()

        await publisher.publish_progress(guild.id, 1, 2, 0, "Alice")
        await publisher.publish_discovery_complete(guild.id, total=3, updated=3, errors=0, duration=2)

        event = json.loads((await stream.__anext__())["data"])
        await stream.aclose()

        assert event["type"] == EventType.DISCOVERY_COMPLETE
        assert event["guild_name"] == "Method"
        assert event["guild_realm"] == "tarren-mill"
        assert event["guild_region"] == "eu"

    async def test_guild_metadata_is_cached(self, relay, guild, guilds, memory_cache):
        first = await relay.guild_metadata(str(guild.id))
        await guilds.update_fields(guild.id, name="Renamed")
        second = await relay.guild_metadata(str(guild.id))

        assert first["guild_name"] == "Method"
        assert second == first

    async def test_unknown_guild_has_no_metadata(self, relay):
        assert await relay.guild_metadata("not-a-uuid") == {}

    async def test_activity_stream_skips_non_object_payloads(
        self, relay, publisher, pubsub_redis, guild
    ):
        stream = relay.activity_stream(lifetime=5)
        await stream.__anext__()

        await pubsub_redis.publish(guild_channel(guild.id), "42")
        await pubsub_redis.publish(guild_channel(guild.id), '["sync:complete"]')
        await publisher.publish_complete(guild.id, synced=5, errors=0, duration=3)

        event = json.loads((await stream.__anext__())["data"])
        await stream.aclose()

        assert event["type"] == EventType.SYNC_COMPLETE
        assert event["guild_name"] == "Method"

    async def test_unknown_guild_is_not_cached(self, relay, memory_cache):
        missing = str(uuid4())

        assert await relay.guild_metadata(missing) == {}
        assert await memory_cache.get(missing, namespace="guild_meta") is None
