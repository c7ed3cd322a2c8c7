"""
Credential Manager

Shares one Blizzard access token between every worker process.

The token lives in the shared cache. Renewal is guarded by a short-lived
set-if-absent lock so that concurrent misses do not stampede the OAuth
endpoint; a waiter that still finds no token after the wait renews anyway,
trading an occasional duplicate renewal for never blocking on a crashed
lock holder.
"""

import asyncio
import logging
from typing import Optional, Dict, Any

from ..blizzard.oauth import BlizzardOAuthService
from ....core.protocols import CacheProtocol

logger = logging.getLogger(__name__)

TOKEN_KEY = "blizzard:oauth:token"
TOKEN_LOCK_KEY = "blizzard:oauth:lock"


class CredentialManager:
    """Cached, single-flight access token provider."""

    def __init__(
        self,
        cache: CacheProtocol,
        oauth_service: BlizzardOAuthService,
        token_ttl: int = 55 * 60,
        lock_ttl: int = 10,
        lock_wait: float = 2.0
    ):
        """
        Initialize credential manager.

        Args:
            cache: Shared cache holding the token and the renewal lock
            oauth_service: Service that requests new tokens
            token_ttl: Maximum token cache lifetime in seconds
            lock_ttl: Renewal lock lifetime in seconds
            lock_wait: Seconds to wait when another process holds the lock
        """
        self.cache = cache
        self.oauth_service = oauth_service
        self.token_ttl = token_ttl
        self.lock_ttl = lock_ttl
        self.lock_wait = lock_wait
        self._local_lock = asyncio.Lock()

    async def get_token(self) -> str:
        """
        Get a valid access token, renewing it if the cache is empty.

        Raises:
            ConfigurationError: Client credentials are missing
            UpstreamError: The OAuth endpoint failed
        """
        cached = await self._cached_token()
        if cached:
            return cached

        # Coroutines in this process queue here; the first one renews
        async with self._local_lock:
            cached = await self._cached_token()
            if cached:
                return cached
            return await self._renew()

    async def invalidate_token(self) -> None:
        """Drop the cached token so the next caller renews it."""
        await self.cache.delete(TOKEN_KEY)
        logger.info("Cached access token invalidated")

    async def _cached_token(self) -> Optional[str]:
        cached = await self.cache.get(TOKEN_KEY)
        return str(cached) if cached else None

    async def _renew(self) -> str:
        acquired = await self.cache.set_if_absent(TOKEN_LOCK_KEY, "1", ttl=self.lock_ttl)

        if not acquired:
            logger.debug("Token renewal in progress elsewhere, waiting")
            await asyncio.sleep(self.lock_wait)
            cached = await self._cached_token()
            if cached:
                return cached
            logger.warning("Token still missing after lock wait, renewing anyway")

        try:
            token_data = await self.oauth_service.request_token()
            token = token_data["access_token"]

            await self.cache.set(TOKEN_KEY, token, ttl=self._ttl_for(token_data))
            logger.info("Access token renewed and cached")
            return token
        finally:
            # A waiter that renewed anyway must not release the holder's lock
            if acquired:
                await self.cache.delete(TOKEN_LOCK_KEY)

    def _ttl_for(self, token_data: Dict[str, Any]) -> int:
        """Never outlive the upstream expiry, minus a 5 minute buffer."""
        expires_in = token_data.get("expires_in")
        if not expires_in:
            return self.token_ttl
        return min(self.token_ttl, max(int(expires_in) - 300, 60))
