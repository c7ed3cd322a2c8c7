"""
Redis Cache

Holds the shared provider token and its renewal lock. The underlying
connection is also handed to the event publisher and relay for pub/sub.
"""

import json
import logging
from typing import Optional, Any

import redis.asyncio as aioredis
from redis.asyncio import Redis
from redis.exceptions import RedisError

from ...core.protocols import CacheProtocol
from ...core.exceptions import ServiceError

logger = logging.getLogger(__name__)


def encode_value(value: Any) -> Any:
    if isinstance(value, (str, bytes, int, float)):
        return value
    return json.dumps(value, default=str)


def decode_value(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


def namespaced(key: str, namespace: Optional[str] = None) -> str:
    return f"{namespace}:{key}" if namespace else key


class RedisCache(CacheProtocol):
    """CacheProtocol over a redis.asyncio connection."""

    def __init__(self, redis_url: str):
        self.redis_url = redis_url
        self.redis: Optional[Redis] = None

    async def initialize(self) -> None:
        """Connect and ping; a failure here aborts process startup."""
        try:
            self.redis = aioredis.from_url(
                self.redis_url,
                decode_responses=True,
                retry_on_timeout=True,
                health_check_interval=30
            )
            await self.redis.ping()
            logger.info("Redis cache initialized")

        except RedisError as e:
            logger.error(f"Failed to initialize Redis cache: {e}")
            raise ServiceError(
                f"Redis initialization failed: {e}",
                service_name="RedisCache",
                operation="initialize"
            )

    async def shutdown(self) -> None:
        if self.redis:
            await self.redis.aclose()
            self.redis = None
            logger.info("Redis cache shutdown")

    @property
    def client(self) -> Redis:
        """Underlying connection, for pub/sub."""
        if self.redis is None:
            raise ServiceError(
                "Redis cache not initialized",
                service_name="RedisCache",
                operation="client"
            )
        return self.redis

    async def health_check(self) -> bool:
        if self.redis is None:
            return False
        try:
            return bool(await self.redis.ping())
        except RedisError as e:
            logger.warning(f"Redis health check failed: {e}")
            return False

    async def get(self, key: str, namespace: Optional[str] = None) -> Optional[Any]:
        value = await self.client.get(namespaced(key, namespace))
        return None if value is None else decode_value(value)

    async def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[int] = None,
        namespace: Optional[str] = None
    ) -> bool:
        return bool(
            await self.client.set(namespaced(key, namespace), encode_value(value), ex=ttl)
        )

    async def set_if_absent(
        self,
        key: str,
        value: Any,
        ttl: int,
        namespace: Optional[str] = None
    ) -> bool:
        # SET NX EX: the reply is None when another holder owns the key
        result = await self.client.set(
            namespaced(key, namespace), encode_value(value), nx=True, ex=ttl
        )
        return bool(result)

    async def delete(self, key: str, namespace: Optional[str] = None) -> bool:
        return await self.client.delete(namespaced(key, namespace)) > 0

    async def exists(self, key: str, namespace: Optional[str] = None) -> bool:
        return await self.client.exists(namespaced(key, namespace)) > 0
