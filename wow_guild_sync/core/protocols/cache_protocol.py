"""
Cache Protocol Definition

Key/value store with per-key expiry. The credential manager keeps the
provider token and its renewal lock behind this interface so the token can
live either in Redis (shared by every worker process) or in process memory.
"""

from typing import Protocol, Optional, Any, runtime_checkable


@runtime_checkable
class CacheProtocol(Protocol):
    """Expiring key/value store."""

    async def get(self, key: str, namespace: Optional[str] = None) -> Optional[Any]:
        """Value stored under key, or None when missing or expired."""
        ...

    async def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[int] = None,
        namespace: Optional[str] = None
    ) -> bool:
        """
        Store a value.

        Args:
            key: Cache key
            value: Strings and numbers are stored as-is, anything else as JSON
            ttl: Expiry in seconds; None keeps the key until deleted
            namespace: Prefix isolating groups of keys

        Returns:
            True if the value was stored
        """
        ...

    async def set_if_absent(
        self,
        key: str,
        value: Any,
        ttl: int,
        namespace: Optional[str] = None
    ) -> bool:
        """Store only when the key is free; True for the caller that took it."""
        ...

    async def delete(self, key: str, namespace: Optional[str] = None) -> bool:
        ...

    async def exists(self, key: str, namespace: Optional[str] = None) -> bool:
        ...
