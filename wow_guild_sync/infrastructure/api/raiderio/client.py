"""
Raider.IO API Client
"""

import logging
from typing import Optional, Dict, Any

import httpx

from ..base_client import BaseAPIClient
from ..blizzard.client import validate_region

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ",".join([
    "gear",
    "mythic_plus_scores_by_season:current",
    "mythic_plus_weekly_highest_level_runs",
    "raid_progression",
])


class RaiderIOClient(BaseAPIClient):
    """Unauthenticated client for Raider.IO character profiles."""

    service_name = "raiderio"

    def __init__(
        self,
        base_url: str = "https://raider.io",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        super().__init__(base_url=base_url, timeout=timeout, transport=transport)

    async def get_character_profile(
        self,
        name: str,
        realm: str,
        region: str
    ) -> Dict[str, Any]:
        """
        Character profile with gear, current-season score, this week's
        highest runs and raid progression.
        """
        return await self.get(
            "/api/v1/characters/profile",
            params={
                "region": validate_region(region),
                "realm": realm,
                "name": name,
                "fields": PROFILE_FIELDS,
            }
        )
