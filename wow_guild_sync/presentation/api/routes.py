"""
HTTP Routes

Manual sync trigger, recent run history and the two event streams.
"""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, HTTPException, Request
from sse_starlette import EventSourceResponse, ServerSentEvent

from ...core.exceptions import ServiceError
from ...infrastructure.alerts import AlertLevel
from ...infrastructure.api.middleware import RateLimitExceeded

logger = logging.getLogger(__name__)

router = APIRouter()

RECENT_JOBS_LIMIT = 50


def client_ip(request: Request) -> str:
    """First X-Forwarded-For hop, else the peer address."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    return request.client.host if request.client else "unknown"


def _heartbeat() -> ServerSentEvent:
    return ServerSentEvent(comment="heartbeat")


def _event_stream(request: Request, events) -> EventSourceResponse:
    settings = request.app.state.container.settings()
    return EventSourceResponse(
        events,
        sep="\n",
        ping=settings.stream.heartbeat_interval,
        ping_message_factory=_heartbeat,
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


async def _require_guild(request: Request, guild_id: str):
    guilds = request.app.state.container.guild_repository()
    try:
        guild = await guilds.get_by_id(guild_id)
    except ValueError:
        guild = None

    if guild is None:
        raise HTTPException(status_code=404, detail="Guild not found")
    return guild


@router.get("/health")
async def health_check(request: Request) -> Dict[str, Any]:
    """Health check endpoint for monitoring"""
    container = request.app.state.container
    database = await container.database().health_check()
    cache = await container.cache().health_check()
    return {
        "status": "healthy" if (database and cache) else "degraded",
        "service": "wow-guild-sync",
        "database": database,
        "cache": cache,
    }


@router.post("/api/guilds/{guild_id}/sync")
async def trigger_sync(guild_id: str, request: Request) -> Dict[str, str]:
    """Queue an immediate discovery for a guild."""
    container = request.app.state.container

    try:
        await container.trigger_limiter().acquire(client_ip(request))
    except RateLimitExceeded as e:
        headers = {}
        if e.retry_after is not None:
            headers["Retry-After"] = str(int(e.retry_after) + 1)
        raise HTTPException(status_code=429, detail=e.message, headers=headers)

    guild = await _require_guild(request, guild_id)

    try:
        await container.job_queue().enqueue_immediate_discovery(guild.id)
    except ServiceError as e:
        logger.error(f"Sync trigger failed for guild {guild_id}: {e}")
        await container.alerts().send_alert(
            title="Sync Trigger Failed",
            message=str(e),
            level=AlertLevel.ERROR,
            source="api/sync-trigger",
        )
        raise HTTPException(status_code=500, detail="Failed to trigger sync")

    logger.info(f"Manual sync triggered for {guild.name} by {client_ip(request)}")
    return {"message": "Sync triggered"}


@router.get("/api/guilds/{guild_id}/sync")
async def list_sync_jobs(guild_id: str, request: Request) -> List[Dict[str, Any]]:
    """Most recent sync runs for a guild."""
    guild = await _require_guild(request, guild_id)
    sync_jobs = request.app.state.container.sync_job_repository()
    jobs = await sync_jobs.recent_for_guild(guild.id, limit=RECENT_JOBS_LIMIT)
    return [job.to_dict() for job in jobs]


@router.get("/api/guilds/{guild_id}/events")
async def guild_events(guild_id: str, request: Request) -> EventSourceResponse:
    """Live events for one guild."""
    guild = await _require_guild(request, guild_id)
    container = request.app.state.container
    relay = container.relay()
    lifetime = container.settings().stream.guild_stream_lifetime
    return _event_stream(request, relay.guild_stream(str(guild.id), lifetime))


@router.get("/api/activity")
async def activity_events(request: Request) -> EventSourceResponse:
    """Completion events from every guild."""
    container = request.app.state.container
    relay = container.relay()
    lifetime = container.settings().stream.activity_stream_lifetime
    return _event_stream(request, relay.activity_stream(lifetime))
