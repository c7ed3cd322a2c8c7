"""
Blizzard OAuth2 Service

Client-credentials token requests against the Battle.net OAuth endpoint.
"""

import logging
from typing import Dict, Any, Optional

import httpx

from ....core.exceptions import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)


class BlizzardOAuthService:
    """Requests fresh access tokens; caching is the credential manager's job."""

    OAUTH_URLS = {
        "us": "https://oauth.battle.net/token",
        "eu": "https://oauth.battle.net/token",
        "kr": "https://oauth.battle.net/token",
        "tw": "https://oauth.battle.net/token",
        "cn": "https://oauth.battlenet.com.cn/token"
    }

    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        region: str = "us",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize OAuth service.

        Args:
            client_id: Blizzard API client ID
            client_secret: Blizzard API client secret
            region: Region whose OAuth host to use
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests use MockTransport)
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.region = region.lower()
        self.oauth_url = self.OAUTH_URLS.get(self.region, self.OAUTH_URLS["us"])
        self.timeout = timeout
        self.transport = transport

    async def request_token(self) -> Dict[str, Any]:
        """
        Get a new OAuth2 access token.

        Returns:
            Token data including access_token and expires_in

        Raises:
            ConfigurationError: Client credentials are not configured
            UpstreamError: The OAuth endpoint did not answer 2xx
        """
        if not self.client_id or not self.client_secret:
            raise ConfigurationError(
                "Missing BLIZZARD_CLIENT_ID or BLIZZARD_CLIENT_SECRET",
                config_key="BLIZZARD_CLIENT_ID"
            )

        logger.info("Fetching new OAuth token")

        try:
            async with httpx.AsyncClient(transport=self.transport) as client:
                response = await client.post(
                    self.oauth_url,
                    data={
                        "grant_type": "client_credentials"
                    },
                    auth=(self.client_id, self.client_secret),
                    timeout=self.timeout
                )
        except httpx.HTTPError as e:
            raise UpstreamError(
                f"Blizzard OAuth request failed: {e}",
                service="blizzard_oauth",
                endpoint=self.oauth_url
            ) from e

        if response.status_code >= 400:
            raise UpstreamError(
                f"Blizzard OAuth failed: {response.status_code} {response.reason_phrase}",
                service="blizzard_oauth",
                status_code=response.status_code,
                endpoint=self.oauth_url
            )

        token_data = response.json()
        logger.info(
            f"OAuth token obtained, expires in {token_data.get('expires_in')} seconds"
        )
        return token_data
