"""Shared access token caching and single-flight renewal."""

import asyncio

import pytest

from wow_guild_sync.core.exceptions import ConfigurationError
from wow_guild_sync.infrastructure.api import BlizzardOAuthService, CredentialManager
from wow_guild_sync.infrastructure.api.auth import TOKEN_KEY, TOKEN_LOCK_KEY


class SlowOAuth:
    def __init__(self, delay: float = 0.05, expires_in: int = 86399):
        self.delay = delay
        self.expires_in = expires_in
        self.calls = 0

    async def request_token(self):
        self.calls += 1
        await asyncio.sleep(self.delay)
        return {"access_token": f"token-{self.calls}", "expires_in": self.expires_in}


class FailingOAuth:
    async def request_token(self):
        raise RuntimeError("oauth down")


@pytest.mark.asyncio
class TestCredentialManager:
    async def test_concurrent_callers_share_one_renewal(self, memory_cache):
        oauth = SlowOAuth()
        manager = CredentialManager(memory_cache, oauth)

        tokens = await asyncio.gather(*(manager.get_token() for _ in range(10)))

        assert set(tokens) == {"token-1"}
        assert oauth.calls == 1

    async def test_second_process_waits_for_lock_holder(self, memory_cache):
        oauth = SlowOAuth(delay=0.05)
        first = CredentialManager(memory_cache, oauth, lock_wait=0.2)
        second = CredentialManager(memory_cache, oauth, lock_wait=0.2)

        tokens = await asyncio.gather(first.get_token(), second.get_token())

        assert tokens == ["token-1", "token-1"]
        assert oauth.calls == 1

    async def test_cached_token_is_reused(self, memory_cache):
        oauth = SlowOAuth(delay=0)
        manager = CredentialManager(memory_cache, oauth)

        await manager.get_token()
        await manager.get_token()

        assert oauth.calls == 1

    async def test_invalidate_forces_renewal(self, memory_cache):
        oauth = SlowOAuth(delay=0)
        manager = CredentialManager(memory_cache, oauth)

        assert await manager.get_token() == "token-1"
        await manager.invalidate_token()
        assert await manager.get_token() == "token-2"

    async def test_lock_released_after_failure(self, memory_cache):
        manager = CredentialManager(memory_cache, FailingOAuth())

        with pytest.raises(RuntimeError):
            await manager.get_token()

        assert await memory_cache.exists(TOKEN_LOCK_KEY) is False
        assert await memory_cache.exists(TOKEN_KEY) is False

    async def test_renewing_waiter_leaves_foreign_lock_alone(self, memory_cache):
        await memory_cache.set_if_absent(TOKEN_LOCK_KEY, "other-process", ttl=10)
        oauth = SlowOAuth(delay=0)
        manager = CredentialManager(memory_cache, oauth, lock_wait=0.01)

        assert await manager.get_token() == "token-1"
        assert await memory_cache.exists(TOKEN_LOCK_KEY) is True

    async def test_missing_credentials_are_a_configuration_error(self, memory_cache):
        manager = CredentialManager(memory_cache, BlizzardOAuthService(None, None))

        with pytest.raises(ConfigurationError):
            await manager.get_token()


class TestTokenTTL:
    def test_ttl_respects_upstream_expiry(self):
        manager = CredentialManager(cache=None, oauth_service=None, token_ttl=3300)

        assert manager._ttl_for({"expires_in": 86399}) == 3300
        assert manager._ttl_for({"expires_in": 1200}) == 900
        assert manager._ttl_for({"expires_in": 200}) == 60
        assert manager._ttl_for({}) == 3300
