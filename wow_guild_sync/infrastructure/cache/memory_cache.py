"""
Memory Cache

Process-local LRU cache with per-key expiry. Each API process keeps its own
guild metadata here for the activity stream; nothing in it is shared between
processes.
"""

import logging
import time
from collections import OrderedDict
from typing import Optional, Any, Tuple

from .redis_cache import decode_value, encode_value, namespaced
from ...core.protocols import CacheProtocol

logger = logging.getLogger(__name__)


class MemoryCache(CacheProtocol):
    """In-memory CacheProtocol; oldest entries are evicted past max_size."""

    def __init__(self, max_size: int = 1000, default_ttl: Optional[int] = None):
        self.max_size = max_size
        self.default_ttl = default_ttl
        # key -> (encoded value, expiry timestamp or None)
        self._entries: "OrderedDict[str, Tuple[Any, Optional[float]]]" = OrderedDict()

    async def initialize(self) -> None:
        logger.info(f"Memory cache initialized (max_size={self.max_size})")

    async def shutdown(self) -> None:
        self._entries.clear()

    async def health_check(self) -> bool:
        return True

    async def get(self, key: str, namespace: Optional[str] = None) -> Optional[Any]:
        full_key = namespaced(key, namespace)
        entry = self._live_entry(full_key)
        if entry is None:
            return None

        self._entries.move_to_end(full_key)
        return decode_value(entry[0])

    async def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[int] = None,
        namespace: Optional[str] = None
    ) -> bool:
        self._store(namespaced(key, namespace), value, ttl or self.default_ttl)
        return True

    async def set_if_absent(
        self,
        key: str,
        value: Any,
        ttl: int,
        namespace: Optional[str] = None
    ) -> bool:
        full_key = namespaced(key, namespace)
        if self._live_entry(full_key) is not None:
            return False

        self._store(full_key, value, ttl)
        return True

    async def delete(self, key: str, namespace: Optional[str] = None) -> bool:
        return self._entries.pop(namespaced(key, namespace), None) is not None

    async def exists(self, key: str, namespace: Optional[str] = None) -> bool:
        return self._live_entry(namespaced(key, namespace)) is not None

    def _live_entry(self, full_key: str) -> Optional[Tuple[Any, Optional[float]]]:
        """Entry for a key; expired entries are dropped on read."""
        entry = self._entries.get(full_key)
        if entry is None:
            return None

        expires_at = entry[1]
        if expires_at is not None and time.monotonic() >= expires_at:
            del self._entries[full_key]
            return None
        return entry

    def _store(self, full_key: str, value: Any, ttl: Optional[int]) -> None:
        expires_at = time.monotonic() + ttl if ttl else None
        self._entries[full_key] = (encode_value(value), expires_at)
        self._entries.move_to_end(full_key)

        if len(self._entries) > self.max_size:
            self._entries.popitem(last=False)
