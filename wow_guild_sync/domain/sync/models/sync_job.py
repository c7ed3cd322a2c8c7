"""
Sync Job Entity Models

Run records for discovery and active-sync passes, plus their per-character
failure log.
"""

from sqlalchemy import (
    Column, String, Integer, Float, Text, DateTime, ForeignKey, Index, Uuid
)
from sqlalchemy.orm import relationship

from ....core.models import CreatedAtModel


class SyncJobType:
    """Values of SyncJob.type."""

    DISCOVERY = "discovery"
    ACTIVE_SYNC = "active_sync"


class SyncJobStatus:
    """Values of SyncJob.status."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class SyncJob(CreatedAtModel):
    """
    One discovery or active-sync run for a guild.

    processed_items only ever grows, through single-statement increments,
    and the run is completed by whichever worker flips status from running
    to completed first.
    """

    __tablename__ = "sync_jobs"

    guild_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("guilds.id", ondelete="CASCADE"),
        nullable=False
    )
    type = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default=SyncJobStatus.PENDING)

    total_items = Column(Integer, default=0, nullable=False)
    processed_items = Column(Integer, default=0, nullable=False)
    error_count = Column(Integer, default=0, nullable=False)
    current_character = Column(String(50))
    error_message = Column(Text)
    queue_job_id = Column(String(100))

    started_at = Column(DateTime)
    completed_at = Column(DateTime)
    duration = Column(Float)

    guild = relationship("Guild", back_populates="sync_jobs")

    __table_args__ = (
        Index('idx_sync_job_guild_created', 'guild_id', 'created_at'),
    )

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "id": str(self.id),
            "guild_id": str(self.guild_id),
            "type": self.type,
            "status": self.status,
            "total_items": self.total_items,
            "processed_items": self.processed_items,
            "error_count": self.error_count,
            "current_character": self.current_character,
            "error_message": self.error_message,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration": self.duration,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class SyncError(CreatedAtModel):
    """Append-only record of a per-character sync failure."""

    __tablename__ = "sync_errors"

    guild_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("guilds.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    character_name = Column(String(50))
    realm = Column(String(50))
    error_type = Column(String(50), nullable=False)
    error_message = Column(Text)
    service = Column(String(30))

    guild = relationship("Guild", back_populates="sync_errors")
