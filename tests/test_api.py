"""HTTP routes, exercised in-process through httpx's ASGI transport."""

import json

import httpx
import pytest
import pytest_asyncio
from dependency_injector import providers

from wow_guild_sync.core.config import Settings
from wow_guild_sync.core.container import Container
from wow_guild_sync.domain.sync.models import SyncJobType
from wow_guild_sync.infrastructure.events import StreamRelay
from wow_guild_sync.infrastructure.queue import JobName, Priority, priority_defer_until
from wow_guild_sync.presentation.api import create_app


@pytest.fixture
def settings():
    settings = Settings()
    settings.stream.guild_stream_lifetime = 1
    return settings


@pytest.fixture
def container(settings, database, memory_cache, pubsub_redis, guilds, job_queue, alerts):
    container = Container()
    container.settings.override(providers.Object(settings))
    container.database.override(providers.Object(database))
    container.cache.override(providers.Object(memory_cache))
    container.job_queue.override(providers.Object(job_queue))
    container.alerts.override(providers.Object(alerts))
    container.relay.override(providers.Object(
        StreamRelay(pubsub_redis, guilds, memory_cache, poll_interval=0.05)
    ))
    return container


@pytest_asyncio.fixture
async def client(container):
    app = create_app(container)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.mark.asyncio
class TestSyncTrigger:
    async def test_trigger_enqueues_immediate_discovery(self, client, guild, arq_redis):
        response = await client.post(f"/api/guilds/{guild.id}/sync")

        assert response.status_code == 200
        assert response.json() == {"message": "Sync triggered"}

        job = arq_redis.jobs[0]
        assert job["function"] == JobName.DISCOVERY
        assert job["args"] == ({"guild_id": str(guild.id)},)
        # Queued ahead of regular work
        assert job["defer_until"] < priority_defer_until(Priority.CHARACTER_SYNC)

    async def test_unknown_guild_is_404(self, client, arq_redis):
        response = await client.post(
            "/api/guilds/00000000-0000-0000-0000-000000000000/sync"
        )

        assert response.status_code == 404
        assert arq_redis.jobs == []

    async def test_malformed_guild_id_is_404(self, client):
        response = await client.post("/api/guilds/not-a-uuid/sync")

        assert response.status_code == 404

    async def test_rate_limited_per_forwarded_client(self, client, guild):
        headers = {"X-Forwarded-For": "203.0.113.7, 10.0.0.1"}

        statuses = [
            (await client.post(f"/api/guilds/{guild.id}/sync", headers=headers)).status_code
            for _ in range(6)
        ]
        other = await client.post(
            f"/api/guilds/{guild.id}/sync", headers={"X-Forwarded-For": "198.51.100.2"}
        )

        assert statuses == [200] * 5 + [429]
        assert other.status_code == 200

    async def test_enqueue_failure_alerts(self, client, guild, arq_redis, alerts):
        async def broken(*args, **kwargs):
            raise ConnectionError("redis down")

        arq_redis.enqueue_job = broken

        response = await client.post(f"/api/guilds/{guild.id}/sync")

        assert response.status_code == 500
        assert alerts.alerts[0]["title"] == "Sync Trigger Failed"


@pytest.mark.asyncio
class TestReadRoutes:
    async def test_recent_sync_jobs(self, client, guild, sync_jobs):
        await sync_jobs.start(guild.id, SyncJobType.DISCOVERY)
        await sync_jobs.start(guild.id, SyncJobType.ACTIVE_SYNC, total_items=3)

        response = await client.get(f"/api/guilds/{guild.id}/sync")

        assert response.status_code == 200
        jobs = response.json()
        assert len(jobs) == 2
        assert {j["type"] for j in jobs} == {"discovery", "active_sync"}

    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["database"] is True

    async def test_events_for_unknown_guild_is_404(self, client):
        response = await client.get(
            "/api/guilds/00000000-0000-0000-0000-000000000000/events"
        )

        assert response.status_code == 404

    async def test_guild_event_stream_opens_with_connected(self, client, guild):
        response = await client.get(f"/api/guilds/{guild.id}/events")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")

        data_lines = [
            line[len("data: "):] for line in response.text.splitlines()
            if line.startswith("data: ")
        ]
        first = json.loads(data_lines[0])
        assert first["type"] == "connected"
        assert first["guild_id"] == str(guild.id)
