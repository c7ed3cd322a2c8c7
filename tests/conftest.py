"""Shared fixtures: a temporary SQLite database, in-memory Redis stand-ins and
recording fakes for the queue, publisher and alerts."""

import asyncio
import json
from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio

from wow_guild_sync.infrastructure.cache import MemoryCache
from wow_guild_sync.infrastructure.database import (
    DatabaseConnection,
    GuildRepository,
    MemberRepository,
    SyncJobRepository,
    SyncErrorRepository,
)
from wow_guild_sync.infrastructure.events import EventPublisher
from wow_guild_sync.infrastructure.queue import JobQueue


class FakeJob:
    def __init__(self, job_id: str):
        self.job_id = job_id


class FakeArqRedis:
    """
    Enough of ArqRedis for JobQueue: enqueue_job with job-id dedup plus the
    hash and sorted-set commands used by the schedule registry.
    """

    def __init__(self):
        self.jobs: List[Dict[str, Any]] = []
        self.hashes: Dict[str, Dict[str, str]] = {}
        self.zsets: Dict[str, Dict[str, float]] = {}
        self._counter = 0

    async def enqueue_job(self, function, *args, _job_id=None, _queue_name=None,
                          _defer_until=None, **kwargs):
        if _job_id is not None and any(j["job_id"] == _job_id for j in self.jobs):
            return None
        self._counter += 1
        job_id = _job_id or f"job-{self._counter}"
        self.jobs.append({
            "function": function,
            "args": args,
            "job_id": job_id,
            "queue_name": _queue_name,
            "defer_until": _defer_until,
        })
        return FakeJob(job_id)

    async def hset(self, key, field, value):
        self.hashes.setdefault(key, {})[field] = value

    async def hget(self, key, field):
        return self.hashes.get(key, {}).get(field)

    async def hdel(self, key, field):
        return 1 if self.hashes.get(key, {}).pop(field, None) is not None else 0

    async def zadd(self, key, mapping, nx=False):
        zset = self.zsets.setdefault(key, {})
        for member, score in mapping.items():
            if not (nx and member in zset):
                zset[member] = score

    async def zrem(self, key, member):
        return 1 if self.zsets.get(key, {}).pop(member, None) is not None else 0

    async def zrangebyscore(self, key, low, high, withscores=False):
        entries = sorted(self.zsets.get(key, {}).items(), key=lambda item: item[1])
        due = [(m, s) for m, s in entries if s <= high]
        return due if withscores else [m for m, _ in due]


class FakePubSub:
    """Pub/sub connection fed from FakePubSubRedis.publish()."""

    def __init__(self, hub: "FakePubSubRedis"):
        self.hub = hub
        self.channels: set = set()
        self.patterns: set = set()
        self.queue: asyncio.Queue = asyncio.Queue()
        self.closed = False

    async def subscribe(self, channel):
        self.channels.add(channel)
        self.hub.subscribers.append(self)

    async def psubscribe(self, pattern):
        self.patterns.add(pattern)
        self.hub.subscribers.append(self)

    async def unsubscribe(self, channel):
        self.channels.discard(channel)

    async def punsubscribe(self, pattern):
        self.patterns.discard(pattern)

    async def aclose(self):
        self.closed = True
        if self in self.hub.subscribers:
            self.hub.subscribers.remove(self)

    async def get_message(self, ignore_subscribe_messages=True, timeout=0.0):
        try:
            return await asyncio.wait_for(self.queue.get(), timeout)
        except asyncio.TimeoutError:
            return None


class FakePubSubRedis:
    """Records published messages and delivers them to fake subscribers."""

    def __init__(self):
        self.published: List[tuple] = []
        self.subscribers: List[FakePubSub] = []

    def pubsub(self) -> FakePubSub:
        return FakePubSub(self)

    async def publish(self, channel: str, message: str) -> int:
        self.published.append((channel, message))
        delivered = 0
        for sub in list(self.subscribers):
            if channel in sub.channels:
                sub.queue.put_nowait({"type": "message", "channel": channel, "data": message})
                delivered += 1
            elif any(_glob_match(p, channel) for p in sub.patterns):
                sub.queue.put_nowait({"type": "pmessage", "channel": channel, "data": message})
                delivered += 1
        return delivered

    def events(self, event_type: Optional[str] = None) -> List[dict]:
        decoded = [json.loads(message) for _, message in self.published]
        if event_type is None:
            return decoded
        return [e for e in decoded if e["type"] == event_type]


def _glob_match(pattern: str, channel: str) -> bool:
    prefix, _, suffix = pattern.partition("*")
    return channel.startswith(prefix) and channel.endswith(suffix)


class RecordingAlerts:
    """AlertService stand-in that keeps every alert."""

    def __init__(self):
        self.alerts: List[Dict[str, str]] = []

    async def send_alert(self, title, message, level="error", source="worker"):
        self.alerts.append(
            {"title": title, "message": message, "level": level, "source": source}
        )
        return True


@pytest_asyncio.fixture
async def database(tmp_path):
    db = DatabaseConnection(f"sqlite+aiosqlite:///{tmp_path / 'sync.db'}")
    await db.initialize()
    await db.create_tables()
    yield db
    await db.shutdown()


@pytest.fixture
def guilds(database):
    return GuildRepository(database)


@pytest.fixture
def members(database):
    return MemberRepository(database)


@pytest.fixture
def sync_jobs(database):
    return SyncJobRepository(database)


@pytest.fixture
def sync_errors(database):
    return SyncErrorRepository(database)


@pytest_asyncio.fixture
async def guild(guilds):
    return await guilds.create(name="Method", realm="tarren-mill", region="eu")


@pytest_asyncio.fixture
async def memory_cache():
    cache = MemoryCache()
    await cache.initialize()
    yield cache
    await cache.shutdown()


@pytest.fixture
def pubsub_redis():
    return FakePubSubRedis()


@pytest.fixture
def publisher(pubsub_redis):
    return EventPublisher(pubsub_redis)


@pytest.fixture
def alerts():
    return RecordingAlerts()


@pytest.fixture
def arq_redis():
    return FakeArqRedis()


@pytest.fixture
def job_queue(arq_redis):
    return JobQueue(arq_redis)
