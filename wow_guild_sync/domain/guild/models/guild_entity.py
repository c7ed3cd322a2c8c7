"""
Guild Entity Model

Tracked guilds and their sync configuration.
"""

from sqlalchemy import (
    Column, String, Integer, DateTime, Boolean, Index
)
from sqlalchemy.orm import relationship

from ....core.models import TimestampedModel


class Guild(TimestampedModel):
    """Guild entity model."""

    __tablename__ = "guilds"

    # Natural key
    name = Column(String(100), nullable=False)
    realm = Column(String(50), nullable=False)
    region = Column(String(10), nullable=False, default='us')

    # Sync configuration
    sync_enabled = Column(Boolean, default=True, nullable=False)
    discovery_interval_hours = Column(Integer, default=6, nullable=False)
    active_sync_interval_min = Column(Integer, default=60, nullable=False)
    activity_window_days = Column(Integer, default=30, nullable=False)

    # Crest, colors stored as "r,g,b,a"
    crest_emblem_id = Column(Integer)
    crest_emblem_color = Column(String(32))
    crest_border_id = Column(Integer)
    crest_border_color = Column(String(32))
    crest_bg_color = Column(String(32))

    last_discovery_at = Column(DateTime)
    last_active_sync_at = Column(DateTime)
    member_count = Column(Integer, default=0, nullable=False)

    members = relationship(
        "GuildMember",
        back_populates="guild",
        cascade="all, delete-orphan",
        passive_deletes=True
    )
    sync_jobs = relationship(
        "SyncJob",
        back_populates="guild",
        cascade="all, delete-orphan",
        passive_deletes=True
    )
    sync_errors = relationship(
        "SyncError",
        back_populates="guild",
        cascade="all, delete-orphan",
        passive_deletes=True
    )

    __table_args__ = (
        Index('idx_guild_natural_key', 'name', 'realm', 'region', unique=True),
        Index('idx_guild_sync_enabled', 'sync_enabled'),
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Guild(name={self.name}, realm={self.realm}, "
            f"region={self.region})>"
        )

    @property
    def full_name(self) -> str:
        """Get full guild name with realm."""
        return f"{self.name} - {self.realm}"

    def crest_dict(self) -> dict:
        """Crest fields as published on the aggregate feed."""
        return {
            "crest_emblem_id": self.crest_emblem_id,
            "crest_emblem_color": self.crest_emblem_color,
            "crest_border_id": self.crest_border_id,
            "crest_border_color": self.crest_border_color,
            "crest_bg_color": self.crest_bg_color,
        }

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "id": str(self.id),
            "name": self.name,
            "realm": self.realm,
            "region": self.region,
            "sync_enabled": self.sync_enabled,
            "discovery_interval_hours": self.discovery_interval_hours,
            "active_sync_interval_min": self.active_sync_interval_min,
            "activity_window_days": self.activity_window_days,
            "member_count": self.member_count,
            "last_discovery_at": self.last_discovery_at.isoformat()
            if self.last_discovery_at else None,
            "last_active_sync_at": self.last_active_sync_at.isoformat()
            if self.last_active_sync_at else None,
            **self.crest_dict(),
        }
