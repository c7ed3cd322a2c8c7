"""
Repositories

Data access for guilds, members, sync jobs and sync errors. Every write runs
in its own short session so that concurrent workers never hold a transaction
across an upstream call.
"""

import logging
from datetime import datetime
from typing import (
    TypeVar, Generic, Optional, List, Type, Any, Dict, Iterable, Set, Tuple
)
from uuid import UUID

from sqlalchemy import select, update, delete, desc
from sqlalchemy.exc import IntegrityError

from .connection import DatabaseConnection
from ...core.models import BaseModel
from ...core.utils import utc_now
from ...domain.guild.models import Guild, GuildMember
from ...domain.guild.schemas import RosterMember
from ...domain.sync.models import SyncJob, SyncJobStatus, SyncError

logger = logging.getLogger(__name__)

T = TypeVar('T', bound=BaseModel)


def _as_uuid(value: Any) -> UUID:
    return value if isinstance(value, UUID) else UUID(str(value))


class BaseRepository(Generic[T]):
    """Base repository implementation for SQLAlchemy models."""

    model: Type[T]

    def __init__(self, database: DatabaseConnection):
        """
        Initialize repository.

        Args:
            database: Connection used to open per-operation sessions
        """
        self.database = database

    async def get_by_id(self, id: Any) -> Optional[T]:
        """Retrieve an entity by its ID."""
        async with self.database.get_session() as session:
            return await session.get(self.model, _as_uuid(id))

    async def create(self, **values: Any) -> T:
        """Create a new entity."""
        entity = self.model(**values)
        async with self.database.get_session() as session:
            session.add(entity)
            await session.flush()
            await session.refresh(entity)
        return entity

    async def update_fields(self, id: Any, **values: Any) -> int:
        """Update columns of one row; returns the number of rows touched."""
        async with self.database.get_session() as session:
            result = await session.execute(
                update(self.model)
                .where(self.model.id == _as_uuid(id))
                .values(**values)
            )
            return result.rowcount

    async def delete(self, id: Any) -> bool:
        """Delete an entity by ID."""
        async with self.database.get_session() as session:
            result = await session.execute(
                delete(self.model).where(self.model.id == _as_uuid(id))
            )
            return result.rowcount > 0


class GuildRepository(BaseRepository[Guild]):
    """Guild lookups and bookkeeping updates."""

    model = Guild

    async def list_sync_enabled(self) -> List[Guild]:
        async with self.database.get_session() as session:
            result = await session.execute(
                select(Guild).where(Guild.sync_enabled.is_(True))
            )
            return list(result.scalars().all())


class MemberRepository(BaseRepository[GuildMember]):
    """Roster rows keyed by (guild, character name, realm)."""

    model = GuildMember

    async def list_for_guild(self, guild_id: Any) -> List[GuildMember]:
        async with self.database.get_session() as session:
            result = await session.execute(
                select(GuildMember).where(
                    GuildMember.guild_id == _as_uuid(guild_id)
                )
            )
            return list(result.scalars().all())

    async def get_member(
        self,
        guild_id: Any,
        character_name: str,
        realm: str
    ) -> Optional[GuildMember]:
        async with self.database.get_session() as session:
            result = await session.execute(
                select(GuildMember).where(
                    GuildMember.guild_id == _as_uuid(guild_id),
                    GuildMember.character_name == character_name,
                    GuildMember.realm == realm,
                )
            )
            return result.scalar_one_or_none()

    async def upsert_roster_member(self, guild_id: Any, member: RosterMember) -> bool:
        """
        Create or refresh a member from the roster.

        Existing rows get class, level and character URL refreshed; new rows
        start with default statistics.

        Returns:
            True if a new row was created
        """
        roster_values = {
            "character_class": member.character_class,
            "level": member.level,
            "character_api_url": member.character_api_url,
        }

        updated = await self._update_by_key(
            guild_id, member.character_name, member.realm, roster_values
        )
        if updated:
            return False

        try:
            await self.create(
                guild_id=_as_uuid(guild_id),
                character_name=member.character_name,
                realm=member.realm,
                **roster_values
            )
            return True
        except IntegrityError:
            # Another worker inserted the same key first
            await self._update_by_key(
                guild_id, member.character_name, member.realm, roster_values
            )
            return False

    async def update_stats(
        self,
        guild_id: Any,
        character_name: str,
        realm: str,
        values: Dict[str, Any]
    ) -> int:
        return await self._update_by_key(guild_id, character_name, realm, values)

    async def update_activity(
        self,
        guild_id: Any,
        character_name: str,
        realm: str,
        activity_status: str,
        last_login_timestamp: Optional[int] = None,
        checked_at: Optional[datetime] = None
    ) -> int:
        values: Dict[str, Any] = {
            "activity_status": activity_status,
            "last_activity_check": checked_at or utc_now(),
        }
        if last_login_timestamp is not None:
            values["last_login_timestamp"] = last_login_timestamp

        return await self._update_by_key(guild_id, character_name, realm, values)

    async def delete_departed(
        self,
        guild_id: Any,
        keep: Iterable[Tuple[str, str]]
    ) -> int:
        """Delete members whose (name, realm) is not in ``keep``."""
        keep_keys: Set[Tuple[str, str]] = set(keep)
        existing = await self.list_for_guild(guild_id)
        departed = [
            m.id for m in existing
            if (m.character_name, m.realm) not in keep_keys
        ]
        if not departed:
            return 0

        async with self.database.get_session() as session:
            result = await session.execute(
                delete(GuildMember).where(GuildMember.id.in_(departed))
            )
            return result.rowcount

    async def active_members(
        self,
        guild_id: Any,
        since_timestamp_ms: int
    ) -> List[GuildMember]:
        """Members seen since the given time, most recent login first."""
        async with self.database.get_session() as session:
            result = await session.execute(
                select(GuildMember)
                .where(
                    GuildMember.guild_id == _as_uuid(guild_id),
                    GuildMember.last_login_timestamp.is_not(None),
                    GuildMember.last_login_timestamp >= since_timestamp_ms,
                )
                .order_by(desc(GuildMember.last_login_timestamp))
            )
            return list(result.scalars().all())

    async def _update_by_key(
        self,
        guild_id: Any,
        character_name: str,
        realm: str,
        values: Dict[str, Any]
    ) -> int:
        async with self.database.get_session() as session:
            result = await session.execute(
                update(GuildMember)
                .where(
                    GuildMember.guild_id == _as_uuid(guild_id),
                    GuildMember.character_name == character_name,
                    GuildMember.realm == realm,
                )
                .values(last_updated=utc_now(), **values)
            )
            return result.rowcount


class SyncJobRepository(BaseRepository[SyncJob]):
    """
    Sync run records.

    Progress is only ever changed with single-statement increments and the
    running -> completed transition is a conditional update, so concurrent
    batch workers cannot lose counts or complete a run twice.
    """

    model = SyncJob

    async def start(
        self,
        guild_id: Any,
        job_type: str,
        total_items: int = 0,
        queue_job_id: Optional[str] = None
    ) -> SyncJob:
        return await self.create(
            guild_id=_as_uuid(guild_id),
            type=job_type,
            status=SyncJobStatus.RUNNING,
            total_items=total_items,
            queue_job_id=queue_job_id,
            started_at=utc_now(),
        )

    async def increment_progress(
        self,
        job_id: Any,
        failed: bool = False,
        current_character: Optional[str] = None
    ) -> None:
        values: Dict[str, Any] = {
            "processed_items": SyncJob.processed_items + 1,
        }
        if failed:
            values["error_count"] = SyncJob.error_count + 1
        if current_character is not None:
            values["current_character"] = current_character

        await self.update_fields(job_id, **values)

    async def try_complete(self, job_id: Any, duration: float) -> bool:
        """
        Flip a fully processed running job to completed.

        Returns:
            True only for the single caller whose update took effect
        """
        async with self.database.get_session() as session:
            result = await session.execute(
                update(SyncJob)
                .where(
                    SyncJob.id == _as_uuid(job_id),
                    SyncJob.status == SyncJobStatus.RUNNING,
                    SyncJob.processed_items >= SyncJob.total_items,
                )
                .values(
                    status=SyncJobStatus.COMPLETED,
                    completed_at=utc_now(),
                    duration=duration,
                )
            )
            return result.rowcount == 1

    async def complete(
        self,
        job_id: Any,
        processed_items: int,
        error_count: int,
        duration: float
    ) -> None:
        await self.update_fields(
            job_id,
            status=SyncJobStatus.COMPLETED,
            processed_items=processed_items,
            error_count=error_count,
            completed_at=utc_now(),
            duration=duration,
        )

    async def mark_failed(
        self,
        job_id: Any,
        error_message: str,
        duration: Optional[float] = None
    ) -> None:
        values: Dict[str, Any] = {
            "status": SyncJobStatus.FAILED,
            "error_message": error_message,
            "completed_at": utc_now(),
        }
        if duration is not None:
            values["duration"] = duration
        await self.update_fields(job_id, **values)

    async def recent_for_guild(self, guild_id: Any, limit: int = 50) -> List[SyncJob]:
        async with self.database.get_session() as session:
            result = await session.execute(
                select(SyncJob)
                .where(SyncJob.guild_id == _as_uuid(guild_id))
                .order_by(desc(SyncJob.created_at))
                .limit(limit)
            )
            return list(result.scalars().all())


class SyncErrorRepository(BaseRepository[SyncError]):
    """Append-only per-character failure log."""

    model = SyncError

    async def record(
        self,
        guild_id: Any,
        character_name: str,
        realm: str,
        error_type: str,
        error_message: str,
        service: str
    ) -> SyncError:
        return await self.create(
            guild_id=_as_uuid(guild_id),
            character_name=character_name,
            realm=realm,
            error_type=error_type,
            error_message=error_message,
            service=service,
        )

    async def list_for_guild(self, guild_id: Any) -> List[SyncError]:
        async with self.database.get_session() as session:
            result = await session.execute(
                select(SyncError)
                .where(SyncError.guild_id == _as_uuid(guild_id))
                .order_by(desc(SyncError.created_at))
            )
            return list(result.scalars().all())
