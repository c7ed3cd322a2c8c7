"""
Guild Data Schemas

Normalized provider output consumed by the sync workers.
"""

from typing import Optional

from pydantic import BaseModel, Field


class RosterMember(BaseModel):
    """A character as listed on the Blizzard guild roster."""

    character_name: str
    realm: str
    character_class: str = "Unknown"
    level: int = 0
    rank: int = 0
    character_api_url: Optional[str] = None


class GuildCrest(BaseModel):
    """Guild crest; every field is empty when the lookup failed."""

    emblem_id: Optional[int] = None
    emblem_color: Optional[str] = None
    border_id: Optional[int] = None
    border_color: Optional[str] = None
    bg_color: Optional[str] = None

    def to_columns(self) -> dict:
        """Map onto the Guild crest columns."""
        return {
            "crest_emblem_id": self.emblem_id,
            "crest_emblem_color": self.emblem_color,
            "crest_border_id": self.border_id,
            "crest_border_color": self.border_color,
            "crest_bg_color": self.bg_color,
        }


class CharacterStats(BaseModel):
    """Statistics for one character, from Raider.IO, Blizzard or both."""

    character_class: Optional[str] = None
    level: int = 0
    item_level: float = 0
    mythic_plus_score: float = 0
    current_season: Optional[str] = None
    pvp_2v2_rating: int = 0
    pvp_3v3_rating: int = 0
    pvp_rbg_rating: int = 0
    solo_shuffle_rating: int = 0
    max_solo_shuffle_rating: int = 0
    rbg_shuffle_rating: int = 0
    achievement_points: int = 0
    raid_progress: Optional[str] = None
    weekly_keys_completed: int = 0
    weekly_best_key_level: int = 0
    weekly_slot2_key_level: int = 0
    weekly_slot3_key_level: int = 0
    source: str = Field(default="raiderio", description="Which provider(s) answered")


class CharacterRef(BaseModel):
    """Character identity carried in job payloads and activity lookups."""

    name: str
    realm: str
    character_api_url: Optional[str] = None
    character_class: Optional[str] = None


class ActivityResult(BaseModel):
    """Outcome of one activity lookup."""

    name: str
    realm: str
    last_login_timestamp: Optional[int] = None
    activity_status: str
    error: Optional[str] = None
