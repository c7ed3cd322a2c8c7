"""
Provider Client

Single entry point the workers use for upstream data. Rosters, crests and
activity come from Blizzard; character statistics come from Raider.IO with
Blizzard as fallback, and both paths are topped up with Blizzard
achievements and PvP ratings.
"""

import asyncio
import logging
from typing import Optional, Dict, Any, List, Iterable

from .blizzard.client import BlizzardAPIClient, validate_region, is_blizzard_url
from .blizzard.constants import CLASS_ID_MAP, RAID_PRIORITY, PVP_BRACKETS
from .raiderio.client import RaiderIOClient
from ...core.exceptions import GuildSyncError, NotFoundError, ValidationError
from ...core.utils import days_since
from ...domain.guild.models import ActivityStatus
from ...domain.guild.schemas import (
    RosterMember,
    GuildCrest,
    CharacterStats,
    CharacterRef,
    ActivityResult,
)

logger = logging.getLogger(__name__)

SOURCES = ("raiderio", "blizzard", "auto")

# Raider.IO does not return a character level; everything it tracks is max level
RAIDERIO_LEVEL = 80


def _rgba(color: Optional[Dict[str, Any]]) -> Optional[str]:
    rgba = (color or {}).get("rgba")
    if not rgba:
        return None
    return f"{rgba['r']},{rgba['g']},{rgba['b']},{rgba['a']}"


def format_raid_progress(raid_progression: Dict[str, Dict[str, Any]]) -> Optional[str]:
    """
    Summarize Raider.IO raid progression as ``"k/n M|H|N"``.

    The highest difficulty with kills wins within a raid. Raids are ordered
    by tier (current tier first, unknown raids last) and the first one is
    reported. The current tier is reported as ``"0/n"`` when nothing is dead.
    """
    raids = []
    for key, data in raid_progression.items():
        total = data.get("total_bosses") or 0
        if total <= 0:
            continue

        progress = ""
        for field, suffix in (
            ("mythic_bosses_killed", "M"),
            ("heroic_bosses_killed", "H"),
            ("normal_bosses_killed", "N"),
        ):
            killed = data.get(field) or 0
            if killed > 0:
                progress = f"{killed}/{total} {suffix}"
                break

        priority = RAID_PRIORITY.index(key) if key in RAID_PRIORITY else -1
        if progress or priority == 0:
            raids.append((priority, progress or f"0/{total}"))

    if not raids:
        return None

    raids.sort(key=lambda raid: (raid[0] == -1, raid[0]))
    return raids[0][1]


def weekly_vault_levels(runs: List[Dict[str, Any]]) -> Dict[str, int]:
    """Best, 4th-best and 8th-best key levels of the week (vault slots)."""
    levels = sorted((run.get("mythic_level") or 0 for run in runs), reverse=True)

    def nth(i: int) -> int:
        return levels[i] if len(levels) > i else 0

    return {
        "weekly_keys_completed": len(runs),
        "weekly_best_key_level": nth(0),
        "weekly_slot2_key_level": nth(3),
        "weekly_slot3_key_level": nth(7),
    }


def classify_activity(
    last_login_timestamp: Optional[int],
    threshold_days: int = 30,
    now_ms: Optional[int] = None
) -> str:
    """Active iff seen within the threshold (whole days); no login means inactive."""
    if not last_login_timestamp:
        return ActivityStatus.INACTIVE
    if days_since(last_login_timestamp, now_ms) <= threshold_days:
        return ActivityStatus.ACTIVE
    return ActivityStatus.INACTIVE


class ProviderClient:
    """
    Upstream facade used by the sync workers.

    Combines:
    - Blizzard roster, crest and activity lookups
    - Dual-source character statistics with fallback
    - Best-effort achievements and PvP enrichment
    """

    def __init__(
        self,
        blizzard: BlizzardAPIClient,
        raiderio: RaiderIOClient,
        activity_delay: float = 0.2,
        activity_timeout: float = 10.0,
        active_threshold_days: int = 30
    ):
        """
        Initialize provider client.

        Args:
            blizzard: Blizzard API client
            raiderio: Raider.IO API client
            activity_delay: Seconds between activity lookups
            activity_timeout: Timeout for each activity lookup
            active_threshold_days: Days since login still counted as active
        """
        self.blizzard = blizzard
        self.raiderio = raiderio
        self.activity_delay = activity_delay
        self.activity_timeout = activity_timeout
        self.active_threshold_days = active_threshold_days

    async def __aenter__(self):
        """Enter async context."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Exit async context."""
        await self.close()

    async def initialize(self) -> None:
        await self.blizzard.initialize()
        await self.raiderio.initialize()

    async def close(self) -> None:
        await self.blizzard.close()
        await self.raiderio.close()

    # Guild

    async def get_roster(self, guild_name: str, realm: str, region: str) -> List[RosterMember]:
        """
        Fetch the current guild roster.

        Raises:
            ValidationError: Unknown region
            NotFoundError: Guild does not exist upstream
            UpstreamError: Any other upstream failure
        """
        data = await self.blizzard.get_guild_roster(guild_name, realm, region)

        roster = []
        for entry in data.get("members") or []:
            character = entry.get("character") or {}
            class_id = (character.get("playable_class") or {}).get("id", 0)
            roster.append(RosterMember(
                character_name=character["name"],
                realm=(character.get("realm") or {}).get("slug") or realm,
                level=character.get("level") or 0,
                rank=entry.get("rank") or 0,
                character_class=CLASS_ID_MAP.get(class_id, "Unknown"),
                character_api_url=(character.get("key") or {}).get("href"),
            ))

        logger.info(f"Fetched roster for {guild_name}-{realm}: {len(roster)} members")
        return roster

    async def get_guild_crest(self, guild_name: str, realm: str, region: str) -> GuildCrest:
        """Guild crest; any failure yields an empty crest."""
        try:
            data = await self.blizzard.get_guild(guild_name, realm, region)
        except GuildSyncError as e:
            logger.warning(f"Crest lookup failed for {guild_name}-{realm}: {e}")
            return GuildCrest()

        crest = data.get("crest")
        if not crest:
            return GuildCrest()

        emblem = crest.get("emblem") or {}
        border = crest.get("border") or {}
        background = crest.get("background") or {}
        return GuildCrest(
            emblem_id=emblem.get("id"),
            emblem_color=_rgba(emblem.get("color")),
            border_id=border.get("id"),
            border_color=_rgba(border.get("color")),
            bg_color=_rgba(background.get("color")),
        )

    # Character statistics

    async def get_member(
        self,
        name: str,
        realm: str,
        region: str,
        source: str = "auto",
        character_api_url: Optional[str] = None
    ) -> CharacterStats:
        """
        Fetch statistics for one character.

        Args:
            name: Character name
            realm: Realm slug
            region: Region code
            source: ``raiderio``, ``blizzard`` or ``auto`` (Raider.IO with
                Blizzard fallback)
            character_api_url: Stored Blizzard profile link, used when valid

        Returns:
            Normalized statistics
        """
        if source not in SOURCES:
            raise ValidationError(f"Invalid source: {source}", field="source", value=source)

        validate_region(region)

        if source in ("raiderio", "auto"):
            try:
                return await self._member_from_raiderio(name, realm, region)
            except GuildSyncError as e:
                if source == "raiderio":
                    raise
                logger.info(
                    f"Raider.IO lookup failed for {name}-{realm} ({e.message}), "
                    f"falling back to Blizzard"
                )

        return await self._member_from_blizzard(name, realm, region, character_api_url)

    async def _member_from_raiderio(self, name: str, realm: str, region: str) -> CharacterStats:
        data = await self.raiderio.get_character_profile(name, realm, region)

        stats: Dict[str, Any] = {
            "character_class": data.get("class") or "Unknown",
            "level": RAIDERIO_LEVEL,
            "item_level": (data.get("gear") or {}).get("item_level_equipped") or 0,
        }

        seasons = data.get("mythic_plus_scores_by_season") or []
        if seasons:
            stats["mythic_plus_score"] = (seasons[0].get("scores") or {}).get("all") or 0
            stats["current_season"] = seasons[0].get("season")

        stats.update(weekly_vault_levels(data.get("mythic_plus_weekly_highest_level_runs") or []))

        if data.get("raid_progression"):
            stats["raid_progress"] = format_raid_progress(data["raid_progression"])

        stats.update(await self._achievements_and_pvp(name, realm, region))
        return CharacterStats(source="raiderio+blizzard", **stats)

    async def _member_from_blizzard(
        self,
        name: str,
        realm: str,
        region: str,
        character_api_url: Optional[str]
    ) -> CharacterStats:
        if is_blizzard_url(character_api_url):
            data = await self.blizzard.get_by_href(character_api_url)
        else:
            data = await self.blizzard.get_character(name, realm, region)

        stats: Dict[str, Any] = {
            "character_class": (data.get("character_class") or {}).get("name") or "Unknown",
            "level": data.get("level") or 0,
            "item_level": data.get("equipped_item_level") or data.get("average_item_level") or 0,
        }
        stats.update(await self._achievements_and_pvp(name, realm, region))
        return CharacterStats(source="blizzard", **stats)

    async def _achievements_and_pvp(self, name: str, realm: str, region: str) -> Dict[str, int]:
        """
        Achievement points and PvP ratings, each lookup failing on its own.

        Ratings only count when they belong to the current PvP season; if the
        season cannot be determined no filter is applied.
        """
        extras = {
            "achievement_points": 0,
            "pvp_2v2_rating": 0,
            "pvp_3v3_rating": 0,
            "pvp_rbg_rating": 0,
            "solo_shuffle_rating": 0,
            "max_solo_shuffle_rating": 0,
            "rbg_shuffle_rating": 0,
        }

        season_id = None
        try:
            season_id = await self.blizzard.get_current_pvp_season_id(region)
        except GuildSyncError as e:
            logger.debug(f"PvP season lookup failed: {e}")

        def in_season(data: Dict[str, Any]) -> bool:
            return not season_id or (data.get("season") or {}).get("id") == season_id

        try:
            achievements = await self.blizzard.get_character_resource(
                name, realm, region, "achievements"
            )
            extras["achievement_points"] = achievements.get("total_points") or 0
        except GuildSyncError as e:
            logger.debug(f"Achievements lookup failed for {name}-{realm}: {e}")

        for bracket, column in PVP_BRACKETS.items():
            try:
                data = await self.blizzard.get_character_resource(
                    name, realm, region, f"pvp-bracket/{bracket}"
                )
                if in_season(data):
                    extras[column] = data.get("rating") or 0
            except GuildSyncError as e:
                logger.debug(f"PvP {bracket} lookup failed for {name}-{realm}: {e}")

        try:
            summary = await self.blizzard.get_character_resource(
                name, realm, region, "pvp-summary"
            )
        except GuildSyncError as e:
            logger.debug(f"PvP summary lookup failed for {name}-{realm}: {e}")
            return extras

        hrefs = [
            (b.get("href") or "") for b in summary.get("brackets") or []
        ]
        for href in self._bracket_links(hrefs, "/pvp-bracket/shuffle-"):
            try:
                data = await self.blizzard.get_by_href(href)
            except GuildSyncError as e:
                logger.debug(f"Shuffle bracket lookup failed for {name}-{realm}: {e}")
                continue
            if not in_season(data):
                continue
            rating = data.get("rating") or 0
            if rating > extras["solo_shuffle_rating"]:
                extras["solo_shuffle_rating"] = rating
                extras["max_solo_shuffle_rating"] = data.get("season_best_rating") or rating

        for href in self._bracket_links(hrefs, "/pvp-bracket/blitz-"):
            try:
                data = await self.blizzard.get_by_href(href)
            except GuildSyncError as e:
                logger.debug(f"Blitz bracket lookup failed for {name}-{realm}: {e}")
                continue
            if in_season(data):
                extras["rbg_shuffle_rating"] = max(
                    extras["rbg_shuffle_rating"], data.get("rating") or 0
                )

        return extras

    @staticmethod
    def _bracket_links(hrefs: Iterable[str], marker: str) -> List[str]:
        return [href for href in hrefs if marker in href and is_blizzard_url(href)]

    # Activity

    async def check_activity(self, character: CharacterRef, region: str) -> ActivityResult:
        """
        Look up one character's last login.

        A missing character is data, not a failure: it is reported inactive
        with ``error="character_not_found"``. Other failures propagate.
        """
        try:
            data = await self.blizzard.get_character(
                character.name,
                character.realm,
                region,
                timeout=self.activity_timeout
            )
        except NotFoundError:
            return ActivityResult(
                name=character.name,
                realm=character.realm,
                activity_status=ActivityStatus.INACTIVE,
                error="character_not_found",
            )

        last_login = data.get("last_login_timestamp") or None
        return ActivityResult(
            name=character.name,
            realm=character.realm,
            last_login_timestamp=last_login,
            activity_status=classify_activity(last_login, self.active_threshold_days),
        )

    async def bulk_check_activity(
        self,
        characters: List[CharacterRef],
        region: str
    ) -> List[ActivityResult]:
        """
        Check activity for many characters, one at a time.

        Never raises for an individual character: failures are reported as
        ``unknown`` with ``error="fetch_failed"``.
        """
        results = []
        for i, character in enumerate(characters):
            try:
                results.append(await self.check_activity(character, region))
            except GuildSyncError as e:
                logger.warning(
                    f"Activity check failed for {character.name}-{character.realm}: {e}"
                )
                results.append(ActivityResult(
                    name=character.name,
                    realm=character.realm,
                    activity_status=ActivityStatus.UNKNOWN,
                    error="fetch_failed",
                ))

            if i < len(characters) - 1 and self.activity_delay:
                await asyncio.sleep(self.activity_delay)

        return results
