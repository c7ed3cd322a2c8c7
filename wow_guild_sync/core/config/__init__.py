"""
Configuration Management

Centralized configuration for the application.
"""

from .settings import (
    Settings,
    APIConfig,
    DatabaseConfig,
    CacheConfig,
    SyncConfig,
    StreamConfig,
    ServerConfig,
)
from .loader import ConfigLoader

__all__ = [
    "Settings",
    "APIConfig",
    "DatabaseConfig",
    "CacheConfig",
    "SyncConfig",
    "StreamConfig",
    "ServerConfig",
    "ConfigLoader",
]
