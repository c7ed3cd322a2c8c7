"""
Core Exceptions

Base exception classes for the application.
"""

from .base import (
    GuildSyncError,
    UpstreamError,
    ValidationError,
    NotFoundError,
    ConfigurationError,
    ServiceError,
)

__all__ = [
    "GuildSyncError",
    "UpstreamError",
    "ValidationError",
    "NotFoundError",
    "ConfigurationError",
    "ServiceError",
]
