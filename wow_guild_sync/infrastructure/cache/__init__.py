"""
Cache Infrastructure

Concrete cache implementations.
"""

from .redis_cache import RedisCache
from .memory_cache import MemoryCache

__all__ = [
    "RedisCache",
    "MemoryCache",
]
