"""
Sync Schemas

Queue job payloads and the events published on guild channels.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from ...core.utils import utc_now
from ..guild.schemas import CharacterRef


class DiscoveryJobPayload(BaseModel):
    """Payload of a guild-discovery job."""

    guild_id: str


class SchedulerJobPayload(BaseModel):
    """Payload of a sync-scheduler job."""

    guild_id: str


class CharacterSyncJobPayload(BaseModel):
    """One batch of active characters belonging to a SyncJob."""

    guild_id: str
    sync_job_id: str
    characters: List[CharacterRef]
    batch_index: int = Field(ge=0)
    total_batches: int = Field(ge=1)


class ActivityCheckJobPayload(BaseModel):
    """Explicit list of characters to re-check."""

    guild_id: str
    characters: List[CharacterRef]


class EventType:
    """Event type names on guild channels."""

    SYNC_PROGRESS = "sync:progress"
    SYNC_COMPLETE = "sync:complete"
    DISCOVERY_COMPLETE = "discovery:complete"
    ERROR = "error"
    CONNECTED = "connected"


def _timestamp() -> str:
    return utc_now().isoformat() + "Z"


class SyncEvent(BaseModel):
    """Base event; every event carries type, guild id and timestamp."""

    type: str
    guild_id: str
    timestamp: str = Field(default_factory=_timestamp)


class ProgressEvent(SyncEvent):
    type: str = EventType.SYNC_PROGRESS
    processed: int
    total: int
    errors: int
    current_character: Optional[str] = None


class SyncCompleteEvent(SyncEvent):
    type: str = EventType.SYNC_COMPLETE
    synced: int
    errors: int
    duration: float
    sync_type: str = "active_sync"


class DiscoveryCompleteEvent(SyncEvent):
    type: str = EventType.DISCOVERY_COMPLETE
    total: int
    updated: int
    errors: int
    duration: float


class ErrorEvent(SyncEvent):
    type: str = EventType.ERROR
    message: str
