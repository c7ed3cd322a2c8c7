"""arq job functions and worker process wiring."""

from types import SimpleNamespace

import pytest
from arq import Retry

from wow_guild_sync.core.exceptions import UpstreamError
from wow_guild_sync.domain.sync.schemas import DiscoveryJobPayload
from wow_guild_sync.infrastructure.queue import JobName, QueueName
from wow_guild_sync.infrastructure.queue.job_queue import DUE_KEYS
from wow_guild_sync.presentation.worker import (
    WORKER_SETTINGS,
    SchedulerWorkerSettings,
)
from wow_guild_sync.presentation.worker.main import register_guild_schedules
from wow_guild_sync.presentation.worker.tasks import (
    dispatch_due_schedules,
    guild_discovery,
)


class RecordingWorker:
    def __init__(self, error=None):
        self.calls = []
        self.error = error

    async def run(self, payload, queue_job_id=None):
        self.calls.append((payload, queue_job_id))
        if self.error:
            raise self.error
        return {"total": 0}


def test_one_consumer_per_queue():
    assert {s.queue_name for s in WORKER_SETTINGS} == {
        QueueName.DISCOVERY,
        QueueName.CHARACTER_SYNC,
        QueueName.ACTIVITY_CHECK,
        QueueName.SCHEDULER,
    }
    assert [s.max_jobs for s in WORKER_SETTINGS] == [3, 2, 3, 1]
    assert SchedulerWorkerSettings.cron_jobs[0].name == JobName.DISPATCH_SCHEDULES


@pytest.mark.asyncio
class TestJobFunctions:
    async def test_discovery_validates_payload_and_passes_job_id(self):
        worker = RecordingWorker()
        ctx = {
            "container": SimpleNamespace(discovery_worker=lambda: worker),
            "job_id": "discovery:g1:1",
            "job_try": 1,
        }

        await guild_discovery(ctx, {"guild_id": "g1"})

        payload, job_id = worker.calls[0]
        assert payload == DiscoveryJobPayload(guild_id="g1")
        assert job_id == "discovery:g1:1"

    async def test_retryable_failure_is_retried(self):
        worker = RecordingWorker(UpstreamError("busy", service="blizzard", status_code=429))
        ctx = {"container": SimpleNamespace(discovery_worker=lambda: worker), "job_try": 1}

        with pytest.raises(Retry):
            await guild_discovery(ctx, {"guild_id": "g1"})

    async def test_cron_tick_dispatches(self, job_queue):
        await job_queue.register_schedules("g1", 6, 60)
        ctx = {"container": SimpleNamespace(job_queue=lambda: job_queue)}

        assert await dispatch_due_schedules(ctx) == 1


@pytest.mark.asyncio
async def test_schedules_registered_for_enabled_guilds(guilds, job_queue, arq_redis):
    enabled = await guilds.create(name="A", realm="r", region="us")
    await guilds.create(name="B", realm="r", region="us", sync_enabled=False)
    container = SimpleNamespace(
        guild_repository=lambda: guilds,
        job_queue=lambda: job_queue,
    )

    assert await register_guild_schedules(container) == 1
    assert set(arq_redis.zsets[DUE_KEYS["discovery"]]) == {str(enabled.id)}
