"""
Blizzard API Client

Authenticated access to the Blizzard Game Data and Profile APIs across
regions.
"""

import logging
from typing import Optional, Dict, Any
from urllib.parse import quote

import httpx

from ..base_client import BaseAPIClient
from ..auth import CredentialManager
from .constants import VALID_REGIONS, BLIZZARD_HOST_RE
from ....core.exceptions import ValidationError

logger = logging.getLogger(__name__)


def validate_region(region: str) -> str:
    """Lower-case a region and check it against the allow-list."""
    r = (region or "").lower()
    if r not in VALID_REGIONS:
        raise ValidationError(f"Invalid region: {region}", field="region", value=region)
    return r


def validate_blizzard_url(url: Optional[str]) -> str:
    """Reject URLs that do not point at a regional Blizzard API host."""
    if not url or not BLIZZARD_HOST_RE.match(url):
        raise ValidationError("Invalid Blizzard API URL", field="url", value=url)
    return url


def is_blizzard_url(url: Optional[str]) -> bool:
    return bool(url and BLIZZARD_HOST_RE.match(url))


def guild_slug(name: str) -> str:
    """Guild names are lower-cased with whitespace runs turned into dashes."""
    return quote("-".join(name.lower().split()), safe="")


def path_segment(value: str) -> str:
    return quote(value.lower(), safe="")


class BlizzardAPIClient(BaseAPIClient):
    """Blizzard API client using the shared credential manager."""

    service_name = "blizzard"

    def __init__(
        self,
        credentials: CredentialManager,
        locale: str = "en_US",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize Blizzard API client.

        Args:
            credentials: Source of bearer tokens
            locale: API locale
            timeout: Default request timeout in seconds
            transport: Optional httpx transport
        """
        super().__init__(timeout=timeout, transport=transport)
        self.credentials = credentials
        self.locale = locale

    async def _get_auth_headers(self) -> Dict[str, str]:
        token = await self.credentials.get_token()
        return {"Authorization": f"Bearer {token}"}

    async def _on_unauthorized(self) -> bool:
        await self.credentials.invalidate_token()
        return True

    @staticmethod
    def api_host(region: str) -> str:
        return f"https://{validate_region(region)}.api.blizzard.com"

    async def _get_namespaced(
        self,
        region: str,
        path: str,
        namespace: str = "profile",
        timeout: Optional[float] = None
    ) -> Dict[str, Any]:
        r = validate_region(region)
        return await self.get(
            f"{self.api_host(r)}{path}",
            params={"namespace": f"{namespace}-{r}", "locale": self.locale},
            timeout=timeout
        )

    # Guild endpoints

    async def get_guild(self, guild_name: str, realm: str, region: str) -> Dict[str, Any]:
        """Guild profile (includes the crest)."""
        return await self._get_namespaced(
            region,
            f"/data/wow/guild/{path_segment(realm)}/{guild_slug(guild_name)}"
        )

    async def get_guild_roster(self, guild_name: str, realm: str, region: str) -> Dict[str, Any]:
        return await self._get_namespaced(
            region,
            f"/data/wow/guild/{path_segment(realm)}/{guild_slug(guild_name)}/roster"
        )

    # Character endpoints

    def character_path(self, name: str, realm: str) -> str:
        return f"/profile/wow/character/{path_segment(realm)}/{path_segment(name)}"

    async def get_character(
        self,
        name: str,
        realm: str,
        region: str,
        timeout: Optional[float] = None
    ) -> Dict[str, Any]:
        """Character profile summary (class, level, item level, last login)."""
        return await self._get_namespaced(
            region, self.character_path(name, realm), timeout=timeout
        )

    async def get_character_resource(
        self,
        name: str,
        realm: str,
        region: str,
        resource: str
    ) -> Dict[str, Any]:
        """A character sub-resource such as ``achievements`` or ``pvp-summary``."""
        return await self._get_namespaced(
            region, f"{self.character_path(name, realm)}/{resource}"
        )

    async def get_by_href(self, href: str) -> Dict[str, Any]:
        """
        Follow a link returned by the API or stored on a member.

        Links already carry their namespace; only the locale is added.
        """
        validate_blizzard_url(href)
        return await self.get(href, params={"locale": self.locale})

    # Game data

    async def get_current_pvp_season_id(self, region: str) -> Optional[int]:
        data = await self._get_namespaced(
            region, "/data/wow/pvp-season/index", namespace="dynamic"
        )
        return (data.get("current_season") or {}).get("id")
