"""
Guild Member Entity Model

One row per character on a guild roster, keyed by (guild, name, realm).
"""

from sqlalchemy import (
    Column, String, Integer, Float, DateTime, BigInteger, ForeignKey,
    Index, UniqueConstraint, Uuid
)
from sqlalchemy.orm import relationship

from ....core.models import BaseModel
from ....core.utils import utc_now


class ActivityStatus:
    """Values of GuildMember.activity_status."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    UNKNOWN = "unknown"


class GuildMember(BaseModel):
    """Guild member entity model."""

    __tablename__ = "guild_members"

    guild_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("guilds.id", ondelete="CASCADE"),
        nullable=False
    )
    character_name = Column(String(50), nullable=False)
    realm = Column(String(50), nullable=False)

    # Statistics
    character_class = Column(String(30))
    level = Column(Integer, default=0)
    item_level = Column(Float, default=0)
    mythic_plus_score = Column(Float, default=0)
    current_season = Column(String(50))
    pvp_2v2_rating = Column(Integer, default=0)
    pvp_3v3_rating = Column(Integer, default=0)
    pvp_rbg_rating = Column(Integer, default=0)
    solo_shuffle_rating = Column(Integer, default=0)
    max_solo_shuffle_rating = Column(Integer, default=0)
    rbg_shuffle_rating = Column(Integer, default=0)
    achievement_points = Column(Integer, default=0)
    raid_progress = Column(String(30))
    weekly_keys_completed = Column(Integer, default=0)
    weekly_best_key_level = Column(Integer, default=0)
    weekly_slot2_key_level = Column(Integer, default=0)
    weekly_slot3_key_level = Column(Integer, default=0)

    # Activity
    last_login_timestamp = Column(BigInteger)
    activity_status = Column(String(10), default=ActivityStatus.UNKNOWN, nullable=False)
    last_activity_check = Column(DateTime)

    # Bookkeeping
    character_api_url = Column(String(500))
    last_hourly_check = Column(DateTime)
    last_updated = Column(DateTime, default=utc_now, onupdate=utc_now)

    guild = relationship("Guild", back_populates="members")

    __table_args__ = (
        UniqueConstraint(
            'guild_id', 'character_name', 'realm',
            name='uq_member_guild_name_realm'
        ),
        Index('idx_member_guild_login', 'guild_id', 'last_login_timestamp'),
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<GuildMember(name={self.character_name}, realm={self.realm})>"
