"""
Core Protocol Definitions

This module defines the interfaces that all implementations must follow.
"""

from .cache_protocol import CacheProtocol

__all__ = [
    "CacheProtocol",
]
