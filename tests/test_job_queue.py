"""Job queue producers, schedule registry and retry policy."""

import json
from datetime import datetime, timedelta, timezone

import pytest
from arq import Retry

from wow_guild_sync.core.exceptions import UpstreamError, ServiceError
from wow_guild_sync.domain.guild.schemas import CharacterRef
from wow_guild_sync.domain.sync.schemas import ActivityCheckJobPayload
from wow_guild_sync.infrastructure.queue import (
    JobName,
    Priority,
    QueueName,
    priority_defer_until,
    retry_delay,
    retry_upstream_errors,
)
from wow_guild_sync.infrastructure.queue.job_queue import DUE_KEYS, SCHEDULES_KEY

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


class TestPriority:
    def test_higher_priority_runs_earlier(self):
        immediate = priority_defer_until(Priority.HIGHEST, NOW)
        batch = priority_defer_until(Priority.CHARACTER_SYNC, NOW)
        default = priority_defer_until(Priority.DEFAULT, NOW)

        assert immediate < batch < default
        assert default == NOW


@pytest.mark.asyncio
class TestProducers:
    async def test_immediate_discovery(self, job_queue, arq_redis):
        job_id = await job_queue.enqueue_immediate_discovery("guild-1")

        job = arq_redis.jobs[0]
        assert job_id == job["job_id"]
        assert job["function"] == JobName.DISCOVERY
        assert job["queue_name"] == QueueName.DISCOVERY
        assert job["args"] == ({"guild_id": "guild-1"},)

    async def test_activity_check_payload(self, job_queue, arq_redis):
        payload = ActivityCheckJobPayload(
            guild_id="guild-1",
            characters=[CharacterRef(name="Alice", realm="tarren-mill")],
        )

        await job_queue.enqueue_activity_check(payload)

        job = arq_redis.jobs[0]
        assert job["function"] == JobName.ACTIVITY_CHECK
        assert job["queue_name"] == QueueName.ACTIVITY_CHECK
        assert job["args"][0]["characters"][0]["name"] == "Alice"

    async def test_duplicate_job_id_is_skipped(self, job_queue, arq_redis):
        first = await job_queue.enqueue_discovery("guild-1", job_id="discovery:guild-1:1")
        second = await job_queue.enqueue_discovery("guild-1", job_id="discovery:guild-1:1")

        assert first == "discovery:guild-1:1"
        assert second is None
        assert len(arq_redis.jobs) == 1

    async def test_enqueue_failure_is_a_service_error(self, job_queue, arq_redis):
        async def broken(*args, **kwargs):
            raise ConnectionError("redis down")

        arq_redis.enqueue_job = broken

        with pytest.raises(ServiceError):
            await job_queue.enqueue_immediate_discovery("guild-1")


@pytest.mark.asyncio
class TestSchedules:
    async def test_register_sets_first_due_times(self, job_queue, arq_redis):
        await job_queue.register_schedules("g1", 6, 60, now=NOW)

        assert json.loads(arq_redis.hashes[SCHEDULES_KEY]["g1"]) == {
            "discovery": 6 * 3600,
            "active_sync": 3600,
        }
        assert arq_redis.zsets[DUE_KEYS["discovery"]]["g1"] == NOW.timestamp()
        assert arq_redis.zsets[DUE_KEYS["active_sync"]]["g1"] == NOW.timestamp() + 3600

    async def test_non_positive_interval_rejected(self, job_queue):
        with pytest.raises(ValueError):
            await job_queue.register_schedules("g1", 0, 60)

    async def test_dispatch_enqueues_due_runs_once(self, job_queue, arq_redis):
        await job_queue.register_schedules("g1", 6, 60, now=NOW)

        first = await job_queue.dispatch_due_schedules(now=NOW)
        again = await job_queue.dispatch_due_schedules(now=NOW)

        assert first == [f"discovery:g1:{int(NOW.timestamp())}"]
        assert again == []
        assert arq_redis.zsets[DUE_KEYS["discovery"]]["g1"] == NOW.timestamp() + 6 * 3600

    async def test_dispatch_runs_active_sync_after_interval(self, job_queue, arq_redis):
        await job_queue.register_schedules("g1", 6, 60, now=NOW)
        later = NOW + timedelta(minutes=61)

        enqueued = await job_queue.dispatch_due_schedules(now=later)

        functions = [j["function"] for j in arq_redis.jobs]
        assert JobName.SCHEDULE_ACTIVE_SYNC in functions
        assert len(enqueued) == 2

    async def test_missed_slots_are_not_replayed(self, job_queue, arq_redis):
        await job_queue.register_schedules("g1", 1, 60, now=NOW)
        much_later = NOW + timedelta(hours=5, minutes=30)

        await job_queue.dispatch_due_schedules(now=much_later)

        discovery_jobs = [j for j in arq_redis.jobs if j["function"] == JobName.DISCOVERY]
        assert len(discovery_jobs) == 1
        assert arq_redis.zsets[DUE_KEYS["discovery"]]["g1"] == (
            NOW + timedelta(hours=6)
        ).timestamp()

    async def test_reregistering_keeps_pending_due_times(self, job_queue, arq_redis):
        await job_queue.register_schedules("g1", 6, 60, now=NOW)
        await job_queue.dispatch_due_schedules(now=NOW)

        # Worker restarts every 50 minutes for five hours
        for step in range(1, 7):
            now = NOW + timedelta(minutes=50 * step)
            await job_queue.register_schedules("g1", 6, 60, now=now)
            await job_queue.dispatch_due_schedules(now=now)

        functions = [j["function"] for j in arq_redis.jobs]
        assert functions.count(JobName.DISCOVERY) == 1
        assert functions.count(JobName.SCHEDULE_ACTIVE_SYNC) == 5

    async def test_changed_interval_restarts_that_schedule(self, job_queue, arq_redis):
        await job_queue.register_schedules("g1", 6, 60, now=NOW)
        await job_queue.dispatch_due_schedules(now=NOW)
        later = NOW + timedelta(minutes=10)

        await job_queue.register_schedules("g1", 6, 30, now=later)

        assert arq_redis.zsets[DUE_KEYS["active_sync"]]["g1"] == (
            later + timedelta(minutes=30)
        ).timestamp()
        assert arq_redis.zsets[DUE_KEYS["discovery"]]["g1"] == NOW.timestamp() + 6 * 3600

    async def test_removed_schedule_is_not_dispatched(self, job_queue, arq_redis):
        await job_queue.register_schedules("g1", 6, 60, now=NOW)
        await job_queue.remove_schedules("g1")

        assert await job_queue.dispatch_due_schedules(now=NOW) == []
        assert arq_redis.jobs == []


class TestRetryPolicy:
    def test_retry_delay_backs_off_and_caps(self):
        assert retry_delay(1) == 30
        assert retry_delay(2) == 60
        assert retry_delay(3) == 120
        assert retry_delay(10) == 600

    def test_retryable_statuses(self):
        assert UpstreamError("x", service="s").retryable
        assert UpstreamError("x", service="s", status_code=429).retryable
        assert UpstreamError("x", service="s", status_code=408).retryable
        assert UpstreamError("x", service="s", status_code=503).retryable
        assert not UpstreamError("x", service="s", status_code=403).retryable
        assert not UpstreamError("x", service="s", status_code=404).retryable


@pytest.mark.asyncio
class TestRetryDecorator:
    async def test_retryable_error_becomes_retry(self):
        @retry_upstream_errors
        async def job(ctx):
            raise UpstreamError("busy", service="blizzard", status_code=503)

        with pytest.raises(Retry) as exc_info:
            await job({"job_try": 2})

        assert exc_info.value.defer_score == 60_000

    async def test_last_try_reraises(self):
        @retry_upstream_errors
        async def job(ctx):
            raise UpstreamError("busy", service="blizzard", status_code=503)

        with pytest.raises(UpstreamError):
            await job({"job_try": 3})

    async def test_client_error_is_not_retried(self):
        @retry_upstream_errors
        async def job(ctx):
            raise UpstreamError("forbidden", service="blizzard", status_code=403)

        with pytest.raises(UpstreamError):
            await job({"job_try": 1})

    async def test_success_passes_through(self):
        @retry_upstream_errors
        async def job(ctx, value):
            return value * 2

        assert await job({"job_try": 1}, 21) == 42
